"""Abstract repository for Payment aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from storefront.domain.model.payment import Payment


class PaymentRepository(ABC):

    @abstractmethod
    def get_by_payment_no(self, payment_no: str) -> Payment | None:
        """Return a payment by its payment number, or None."""

    @abstractmethod
    def list_for_order(self, order_no: str) -> list[Payment]:
        """Return every payment recorded for an order, oldest first."""

    @abstractmethod
    def save(self, payment: Payment) -> None:
        """Persist a new or updated payment."""

    def get_active_for_order(self, order_no: str) -> Payment | None:
        """Most recent payment for the order that has not failed."""
        for payment in reversed(self.list_for_order(order_no)):
            if not payment.status.is_failed:
                return payment
        return None
