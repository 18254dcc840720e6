"""Abstract repository for Order aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from storefront.domain.model.order import Order
from storefront.domain.model.order_state import OrderStatus


class OrderRepository(ABC):

    @abstractmethod
    def next_id(self) -> int:
        """Generate the next unique order ID."""

    @abstractmethod
    def get_by_id(self, order_id: int) -> Order | None:
        """Return an order by its ID, or None if not found."""

    @abstractmethod
    def get_by_order_no(self, order_no: str, include_deleted: bool = False) -> Order | None:
        """Return an order by its order number; soft-deleted orders are hidden by default."""

    @abstractmethod
    def exists_order_no(self, order_no: str) -> bool:
        """True if any order (deleted or not) already uses *order_no*."""

    @abstractmethod
    def max_order_no_sequence(self, prefix: str) -> int:
        """Highest numeric suffix among order numbers starting with *prefix*, or 0."""

    @abstractmethod
    def list_by_user(self, user_id: int) -> list[Order]:
        """Return a user's non-deleted orders, newest first."""

    @abstractmethod
    def list_by_status(self, status: OrderStatus) -> list[Order]:
        """Return non-deleted orders in *status*."""

    @abstractmethod
    def save(self, order: Order) -> None:
        """Persist a new or updated order, recomputing its amounts first.

        Raises DuplicateOrderNumberError when a *new* order reuses an
        existing order number.
        """
