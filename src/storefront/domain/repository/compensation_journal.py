"""Abstract durable journal of stock reservations awaiting resolution."""

from __future__ import annotations

from abc import ABC, abstractmethod

from storefront.domain.model.compensation import JournalState, ReservationEntry


class CompensationJournal(ABC):

    @abstractmethod
    def record(self, order_no: str, product_id: str, quantity: int) -> ReservationEntry:
        """Durably write a PENDING entry and return it."""

    @abstractmethod
    def mark(self, entry_id: str, state: JournalState, note: str = "") -> None:
        """Move an entry to *state*."""

    @abstractmethod
    def pending(self) -> list[ReservationEntry]:
        """Entries still PENDING or RESERVED, oldest first."""

    @abstractmethod
    def for_order(self, order_no: str) -> list[ReservationEntry]:
        """Every entry written for *order_no*."""
