"""Stand-in payment provider used by the CLI and the tests."""

from __future__ import annotations

import logging

from storefront.domain.exceptions import PaymentGatewayError
from storefront.domain.model.payment import Payment
from storefront.domain.model.value_objects import Money
from storefront.domain.service.ports import PaymentGateway

logger = logging.getLogger(__name__)

PAYMENT_BASE_URL = "https://pay.example.com/checkout"


class StubPaymentGateway(PaymentGateway):
    """Deterministic gateway: URLs and references derive from the payment number."""

    def __init__(self, base_url: str = PAYMENT_BASE_URL) -> None:
        self._base_url = base_url.rstrip("/")
        self.refunds: list[tuple[str, Money]] = []

    def create_payment(self, payment: Payment) -> dict[str, str]:
        if payment.payment_amount.is_zero:
            raise PaymentGatewayError(f"Refusing zero-amount payment {payment.payment_no}")
        params = {
            "payment_no": payment.payment_no,
            "order_no": payment.order_no,
            "method": payment.method.code,
            "amount": str(payment.actual_amount.amount),
            "payment_url": f"{self._base_url}/{payment.payment_no}",
        }
        logger.debug("Created gateway payment %s", payment.payment_no)
        return params

    def refund(self, payment: Payment, amount: Money) -> str:
        if amount > payment.refundable_amount:
            raise PaymentGatewayError(
                f"Gateway refused refund of {amount} on {payment.payment_no}"
            )
        self.refunds.append((payment.payment_no, amount))
        return f"RF{payment.payment_no}-{len(self.refunds)}"
