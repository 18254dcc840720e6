"""Runtime settings read from ``STOREFRONT_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

_PREFIX = "STOREFRONT_"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{_PREFIX}{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    data_dir: Path = Path("data")
    log_level: str = "INFO"
    payment_timeout_minutes: int = 30
    order_lock_ttl_seconds: int = 30
    max_line_items: int = 50
    order_no_max_attempts: int = 100
    low_stock_threshold: int = 10
    stock_retry_attempts: int = 3

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            data_dir=Path(os.environ.get(_PREFIX + "DATA_DIR", "data")),
            log_level=os.environ.get(_PREFIX + "LOG_LEVEL", "INFO").upper(),
            payment_timeout_minutes=_env_int("PAYMENT_TIMEOUT_MINUTES", 30),
            order_lock_ttl_seconds=_env_int("ORDER_LOCK_TTL_SECONDS", 30),
            max_line_items=_env_int("MAX_LINE_ITEMS", 50),
            order_no_max_attempts=_env_int("ORDER_NO_MAX_ATTEMPTS", 100),
            low_stock_threshold=_env_int("LOW_STOCK_THRESHOLD", 10),
            stock_retry_attempts=_env_int("STOCK_RETRY_ATTEMPTS", 3),
        )
