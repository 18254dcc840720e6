"""Application service: Refund Order use case.

Refunds go to the gateway first; only a refund the gateway accepted is
recorded on the payment and the order.
"""

from __future__ import annotations

import logging

from storefront.application.dto import PaymentDTO, to_payment_dto
from storefront.application.lookup import load_active_payment, load_order
from storefront.domain.exceptions import InvalidTransitionError, ValidationError
from storefront.domain.model.value_objects import Money
from storefront.domain.repository.order_repository import OrderRepository
from storefront.domain.repository.payment_repository import PaymentRepository
from storefront.domain.service.ports import PaymentGateway

logger = logging.getLogger(__name__)


class RefundOrderHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        payment_repo: PaymentRepository,
        payment_gateway: PaymentGateway,
    ) -> None:
        self._order_repo = order_repo
        self._payment_repo = payment_repo
        self._gateway = payment_gateway

    def handle(self, order_no: str, amount: str | None = None) -> PaymentDTO:
        """Refund *amount*, or everything still refundable when omitted."""
        order = load_order(self._order_repo, order_no)
        if not order.can_refund:
            raise InvalidTransitionError(
                f"Order {order_no} cannot be refunded in {order.status.value} status"
            )

        refund = Money.of(amount) if amount is not None else order.refundable_amount
        if refund.is_zero:
            raise ValidationError("Refund amount must be positive")
        if refund > order.refundable_amount:
            raise ValidationError(
                f"Refund {refund} exceeds refundable amount {order.refundable_amount}"
            )

        payment = load_active_payment(self._payment_repo, order_no)
        reference = self._gateway.refund(payment, refund)
        payment.process_refund(refund)
        fully_refunded = order.apply_refund(refund)

        self._payment_repo.save(payment)
        self._order_repo.save(order)
        logger.info(
            "Refunded %s on order %s (ref %s%s)",
            refund, order_no, reference, ", fully refunded" if fully_refunded else "",
        )
        return to_payment_dto(payment)
