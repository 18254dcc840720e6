"""Journal entries for stock reservations made while creating an order.

An entry is written *before* stock is reserved for a line, so a crash at
any point leaves a trail that recovery can act on instead of silently
stranding reserved units.

    PENDING  -> about to reserve (reservation may or may not have happened)
    RESERVED -> stock is held for this line
    COMMITTED / COMPENSATED / ABANDONED -> resolved
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class JournalState(Enum):
    PENDING = "PENDING"
    RESERVED = "RESERVED"
    COMMITTED = "COMMITTED"
    COMPENSATED = "COMPENSATED"
    ABANDONED = "ABANDONED"

    @property
    def is_open(self) -> bool:
        return self in (JournalState.PENDING, JournalState.RESERVED)


@dataclass
class ReservationEntry:
    entry_id: str
    order_no: str
    product_id: str
    quantity: int
    state: JournalState = JournalState.PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    note: str = ""
