"""Payment aggregate: one record per payment attempt against an order.

A payment has its own status machine, separate from the order's.  The
amount requested from the gateway always equals the order's
``actual_amount`` at initiation time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from storefront.domain.exceptions import InvalidTransitionError, ValidationError
from storefront.domain.model.value_objects import Money


class PaymentStatus(Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    TIMEOUT = "TIMEOUT"
    REFUNDING = "REFUNDING"
    REFUNDED = "REFUNDED"
    PARTIAL_REFUNDED = "PARTIAL_REFUNDED"

    @property
    def is_success(self) -> bool:
        return self in (PaymentStatus.SUCCESS, PaymentStatus.PARTIAL_REFUNDED)

    @property
    def is_failed(self) -> bool:
        return self in (PaymentStatus.FAILED, PaymentStatus.CANCELLED, PaymentStatus.TIMEOUT)

    @property
    def is_pending(self) -> bool:
        return self in (PaymentStatus.PENDING, PaymentStatus.PROCESSING)

    def can_transition_to(self, target: PaymentStatus) -> bool:
        return target in PAYMENT_TRANSITIONS[self]


PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset(
        {PaymentStatus.PROCESSING, PaymentStatus.CANCELLED, PaymentStatus.TIMEOUT}
    ),
    PaymentStatus.PROCESSING: frozenset(
        {PaymentStatus.SUCCESS, PaymentStatus.FAILED, PaymentStatus.CANCELLED}
    ),
    PaymentStatus.SUCCESS: frozenset(
        {PaymentStatus.REFUNDING, PaymentStatus.REFUNDED, PaymentStatus.PARTIAL_REFUNDED}
    ),
    PaymentStatus.REFUNDING: frozenset(
        {PaymentStatus.REFUNDED, PaymentStatus.PARTIAL_REFUNDED, PaymentStatus.SUCCESS}
    ),
    PaymentStatus.PARTIAL_REFUNDED: frozenset(
        {PaymentStatus.REFUNDING, PaymentStatus.REFUNDED, PaymentStatus.PARTIAL_REFUNDED}
    ),
    PaymentStatus.FAILED: frozenset(),
    PaymentStatus.CANCELLED: frozenset(),
    PaymentStatus.TIMEOUT: frozenset(),
    PaymentStatus.REFUNDED: frozenset(),
}


class PaymentMethod(Enum):
    """Supported payment channels and the fee rate each one charges."""

    ALIPAY = ("ALIPAY", "0.006")
    WECHAT_PAY = ("WECHAT_PAY", "0.006")
    BANK_CARD = ("BANK_CARD", "0.008")
    CREDIT_CARD = ("CREDIT_CARD", "0.012")
    BALANCE = ("BALANCE", "0.000")
    CASH_ON_DELIVERY = ("CASH_ON_DELIVERY", "0.000")

    def __init__(self, code: str, fee_rate: str) -> None:
        self.code = code
        self.fee_rate = Decimal(fee_rate)

    @staticmethod
    def from_code(code: str) -> PaymentMethod:
        for method in PaymentMethod:
            if method.code == code.strip().upper():
                return method
        raise ValidationError(f"Unsupported payment method: {code!r}")

    def fee_for(self, amount: Money) -> Money:
        fee = (amount.amount * self.fee_rate).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        return Money(fee, amount.currency)


DEFAULT_PAYMENT_EXPIRY = timedelta(minutes=30)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Payment:
    payment_no: str
    order_no: str
    user_id: int
    method: PaymentMethod
    payment_amount: Money
    status: PaymentStatus = PaymentStatus.PENDING
    fee_amount: Money = field(default_factory=Money.zero)
    refunded_amount: Money = field(default_factory=Money.zero)
    transaction_no: str = ""
    payment_url: str = ""
    created_at: datetime = field(default_factory=_utcnow)
    expire_time: datetime | None = None
    payment_time: datetime | None = None
    result_code: str = ""
    result_message: str = ""
    error_code: str = ""
    error_message: str = ""

    @staticmethod
    def initiate(
        payment_no: str,
        order_no: str,
        user_id: int,
        method: PaymentMethod,
        amount: Money,
        expires_in: timedelta = DEFAULT_PAYMENT_EXPIRY,
        now: datetime | None = None,
    ) -> Payment:
        if amount.is_zero:
            raise ValidationError("Payment amount must be greater than zero")
        now = now or _utcnow()
        return Payment(
            payment_no=payment_no,
            order_no=order_no,
            user_id=user_id,
            method=method,
            payment_amount=amount,
            fee_amount=method.fee_for(amount),
            created_at=now,
            expire_time=now + expires_in,
        )

    # --- Amounts --------------------------------------------------------------

    @property
    def actual_amount(self) -> Money:
        """Amount actually debited: payment plus channel fee."""
        return self.payment_amount + self.fee_amount

    @property
    def refundable_amount(self) -> Money:
        return self.payment_amount.minus_clamped(self.refunded_amount)

    # --- Queries --------------------------------------------------------------

    @property
    def can_refund(self) -> bool:
        return self.status.is_success and self.refunded_amount < self.payment_amount

    @property
    def can_retry(self) -> bool:
        return self.status.is_failed

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expire_time is not None and (now or _utcnow()) > self.expire_time

    # --- State changes --------------------------------------------------------

    def update_status(
        self,
        target: PaymentStatus,
        result_code: str = "",
        result_message: str = "",
        now: datetime | None = None,
    ) -> None:
        if not self.status.can_transition_to(target):
            raise InvalidTransitionError(
                f"Invalid payment transition for {self.payment_no}: "
                f"{self.status.value} -> {target.value}"
            )
        self.status = target
        self.result_code = result_code
        self.result_message = result_message
        if target is PaymentStatus.SUCCESS:
            self.payment_time = now or _utcnow()

    def start_processing(self) -> None:
        self.update_status(PaymentStatus.PROCESSING, "PROCESSING", "Awaiting gateway")

    def mark_success(self, transaction_no: str, now: datetime | None = None) -> None:
        if self.status is PaymentStatus.PENDING:
            self.start_processing()
        self.update_status(PaymentStatus.SUCCESS, "SUCCESS", "Payment succeeded", now=now)
        self.transaction_no = transaction_no

    def mark_failed(self, error_code: str, error_message: str) -> None:
        if self.status is PaymentStatus.PENDING:
            self.start_processing()
        self.update_status(PaymentStatus.FAILED, "FAILED", "Payment failed")
        self.error_code = error_code
        self.error_message = error_message

    def mark_timeout(self) -> None:
        self.update_status(PaymentStatus.TIMEOUT, "TIMEOUT", "Payment window expired")

    def cancel(self) -> None:
        self.update_status(PaymentStatus.CANCELLED, "CANCELLED", "Payment cancelled")

    def process_refund(self, amount: Money) -> None:
        """Refund *amount*; the status becomes REFUNDED once nothing is left."""
        if amount.is_zero:
            raise ValidationError("Refund amount must be greater than zero")
        if not self.can_refund:
            raise InvalidTransitionError(
                f"Payment {self.payment_no} cannot be refunded in {self.status.value} status"
            )
        new_refunded = self.refunded_amount + amount
        if new_refunded > self.payment_amount:
            raise ValidationError("Refund amount exceeds the paid amount")

        if new_refunded == self.payment_amount:
            self.update_status(PaymentStatus.REFUNDED, "REFUNDED", "Refund completed")
        else:
            self.update_status(
                PaymentStatus.PARTIAL_REFUNDED, "PARTIAL_REFUNDED", "Partial refund completed"
            )
        self.refunded_amount = new_refunded
