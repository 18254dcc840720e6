"""Retry helper for optimistic-locking conflicts."""

from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from storefront.domain.exceptions import ConcurrencyConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_with_retry(
    func: Callable[[], T],
    *,
    attempts: int = 3,
    backoff_base: float = 0.01,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call *func*, retrying on ConcurrencyConflictError with exponential backoff.

    *func* must reload whatever it mutates on every call.  The last
    conflict is re-raised once attempts are exhausted.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")
    for attempt in range(attempts):
        try:
            return func()
        except ConcurrencyConflictError as exc:
            if attempt >= attempts - 1:
                raise
            logger.debug("Version conflict (attempt %d/%d): %s", attempt + 1, attempts, exc)
            sleep(backoff_base * (2 ** attempt))
    raise AssertionError("unreachable")
