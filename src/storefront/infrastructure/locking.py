"""In-process advisory lock manager with per-key TTLs."""

from __future__ import annotations

import threading
import time
from typing import Callable

from storefront.domain.service.ports import LockManager


class InMemoryLockManager(LockManager):
    """Holds locks in a dict of ``key -> expiry`` on a monotonic clock.

    An expired lock counts as free, so a holder that crashed cannot block
    the key for longer than its TTL.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._expiries: dict[str, float] = {}
        self._guard = threading.Lock()

    def acquire(self, key: str, ttl_seconds: int) -> bool:
        now = self._clock()
        with self._guard:
            expiry = self._expiries.get(key)
            if expiry is not None and expiry > now:
                return False
            self._expiries[key] = now + ttl_seconds
            return True

    def release(self, key: str) -> None:
        with self._guard:
            self._expiries.pop(key, None)

    def is_held(self, key: str) -> bool:
        with self._guard:
            expiry = self._expiries.get(key)
            return expiry is not None and expiry > self._clock()
