"""Order-number generation.

Order numbers look like ``20261016000000042``: an eight-digit date prefix
followed by a nine-digit, zero-padded sequence, so they sort by creation
order within a day.

The sequence for a date is read from storage once and then advanced by an
in-process counter under a lock, so concurrent callers in one process never
receive the same number.  Separate processes can still pick the same
candidate; the order repository rejects the second insert with
DuplicateOrderNumberError rather than letting a collision through.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable

from storefront.domain.repository.order_repository import OrderRepository

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y%m%d"
SEQUENCE_WIDTH = 9
DEFAULT_MAX_ATTEMPTS = 100


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderNumberGenerator:

    def __init__(
        self,
        order_repo: OrderRepository,
        clock: Callable[[], datetime] = _utcnow,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self._order_repo = order_repo
        self._clock = clock
        self._max_attempts = max_attempts
        self._lock = threading.Lock()
        self._prefix: str | None = None
        self._next_sequence = 1

    def generate(self) -> str:
        now = self._clock()
        prefix = now.strftime(DATE_FORMAT)

        with self._lock:
            if prefix != self._prefix:
                self._prefix = prefix
                self._next_sequence = self._order_repo.max_order_no_sequence(prefix) + 1

            for _ in range(self._max_attempts):
                candidate = f"{prefix}{self._next_sequence:0{SEQUENCE_WIDTH}d}"
                self._next_sequence += 1
                if not self._order_repo.exists_order_no(candidate):
                    return candidate

        fallback = f"{prefix}{int(now.timestamp()) % 10**SEQUENCE_WIDTH:0{SEQUENCE_WIDTH}d}"
        logger.warning(
            "No free order number after %d attempts for %s; using timestamp suffix %s",
            self._max_attempts, prefix, fallback,
        )
        return fallback
