"""Application services: payment initiation and gateway callbacks.

A successful callback moves the order to PAID.  Reserved stock stays
reserved until the order ships, so cancelling a paid but unshipped order
simply releases it again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from storefront.application.dto import PaymentDTO, to_payment_dto
from storefront.application.lookup import load_active_payment, load_order
from storefront.domain.exceptions import (
    InvalidTransitionError,
    PaymentMismatchError,
    ValidationError,
)
from storefront.domain.model.order_state import OrderStatus
from storefront.domain.model.payment import Payment, PaymentMethod, PaymentStatus
from storefront.domain.model.value_objects import Money
from storefront.domain.repository.order_repository import OrderRepository
from storefront.domain.repository.payment_repository import PaymentRepository
from storefront.domain.service.ports import PaymentGateway

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PaymentCallback:
    """What the gateway tells us about a payment attempt."""

    order_no: str
    amount: str
    transaction_no: str
    success: bool = True
    error_code: str = ""
    error_message: str = ""


class InitiatePaymentHandler:
    """Start (or restart after a failure) payment for a pending order."""

    def __init__(
        self,
        order_repo: OrderRepository,
        payment_repo: PaymentRepository,
        payment_gateway: PaymentGateway,
        payment_timeout_minutes: int = 30,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._order_repo = order_repo
        self._payment_repo = payment_repo
        self._gateway = payment_gateway
        self._payment_timeout = timedelta(minutes=payment_timeout_minutes)
        self._clock = clock

    def handle(self, order_no: str, user_id: int | None, method: str | None = None) -> PaymentDTO:
        now = self._clock()
        order = load_order(self._order_repo, order_no, user_id)
        if not order.can_pay(now):
            raise InvalidTransitionError(
                f"Order {order_no} cannot be paid in {order.status.value} status"
                + (" (payment window expired)" if order.is_payment_expired(now) else "")
            )

        existing = self._payment_repo.get_active_for_order(order_no)
        if existing is not None and existing.status.is_pending:
            if not existing.is_expired(now):
                if existing.status is PaymentStatus.PENDING:
                    existing.start_processing()
                    order.start_payment()
                    self._payment_repo.save(existing)
                    self._order_repo.save(order)
                return to_payment_dto(existing)
            # Superseded attempt: close it before opening a new one
            if existing.status is PaymentStatus.PENDING:
                existing.mark_timeout()
            else:
                existing.cancel()
            self._payment_repo.save(existing)

        attempt = len(self._payment_repo.list_for_order(order_no)) + 1
        payment = Payment.initiate(
            payment_no=f"PAY{order_no}-{attempt}",
            order_no=order_no,
            user_id=order.user_id,
            method=PaymentMethod.from_code(method) if method else PaymentMethod.ALIPAY,
            amount=order.actual_amount,
            expires_in=self._payment_timeout,
            now=now,
        )
        params = self._gateway.create_payment(payment)
        payment.payment_url = params["payment_url"]
        payment.start_processing()
        order.start_payment()

        self._payment_repo.save(payment)
        self._order_repo.save(order)
        logger.info("Payment %s initiated for order %s", payment.payment_no, order_no)
        return to_payment_dto(payment)


class HandlePaymentCallbackHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        payment_repo: PaymentRepository,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._order_repo = order_repo
        self._payment_repo = payment_repo
        self._clock = clock

    def handle(self, callback: PaymentCallback) -> PaymentDTO:
        if not callback.transaction_no.strip():
            raise ValidationError("Callback is missing the transaction number")

        order = load_order(self._order_repo, callback.order_no)

        # Gateways redeliver notifications; a repeat of the one we applied is a no-op.
        if order.status is not OrderStatus.PENDING_PAYMENT:
            for payment in self._payment_repo.list_for_order(order.order_no):
                if payment.transaction_no == callback.transaction_no:
                    logger.info(
                        "Duplicate callback %s for order %s ignored",
                        callback.transaction_no, order.order_no,
                    )
                    return to_payment_dto(payment)

        payment = load_active_payment(self._payment_repo, order.order_no)

        if not callback.success:
            payment.mark_failed(callback.error_code or "FAILED", callback.error_message)
            order.mark_payment_failed()
            self._payment_repo.save(payment)
            self._order_repo.save(order)
            logger.warning(
                "Payment %s for order %s failed: %s",
                payment.payment_no, order.order_no, callback.error_message or callback.error_code,
            )
            return to_payment_dto(payment)

        amount = Money.of(callback.amount)
        if amount != order.actual_amount:
            raise PaymentMismatchError(
                f"Paid amount {amount} does not match order amount {order.actual_amount}"
            )

        now = self._clock()
        order.mark_paid(now)
        payment.mark_success(callback.transaction_no, now)

        self._payment_repo.save(payment)
        self._order_repo.save(order)
        logger.info("Order %s paid (%s, txn %s)", order.order_no, amount, callback.transaction_no)
        return to_payment_dto(payment)
