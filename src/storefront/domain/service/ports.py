"""Ports for collaborators outside the domain: locks and the payment gateway."""

from __future__ import annotations

from abc import ABC, abstractmethod

from storefront.domain.model.payment import Payment
from storefront.domain.model.value_objects import Money


class LockManager(ABC):
    """Short-TTL advisory locks (a key-value store in production)."""

    @abstractmethod
    def acquire(self, key: str, ttl_seconds: int) -> bool:
        """Take *key* if it is free or expired; never blocks."""

    @abstractmethod
    def release(self, key: str) -> None:
        """Drop *key*; releasing an unknown key is a no-op."""


class PaymentGateway(ABC):

    @abstractmethod
    def create_payment(self, payment: Payment) -> dict[str, str]:
        """Register a payment with the provider; returns client-facing params.

        The result always contains ``payment_url``.
        """

    @abstractmethod
    def refund(self, payment: Payment, amount: Money) -> str:
        """Ask the provider to refund *amount*; returns the refund reference."""
