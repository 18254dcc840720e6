"""Application service: Cancel Order use case.

Allowed for unpaid orders and for paid orders that have not shipped.
Reserved stock for every unshipped unit is released; a paid order is
refunded in full through the payment gateway before it is cancelled.
"""

from __future__ import annotations

import logging

from storefront.application.lookup import load_order
from storefront.domain.exceptions import InvalidTransitionError
from storefront.domain.model.order_state import OrderPaymentStatus
from storefront.domain.repository.order_repository import OrderRepository
from storefront.domain.repository.payment_repository import PaymentRepository
from storefront.domain.repository.product_repository import ProductRepository
from storefront.domain.service.ports import PaymentGateway
from storefront.domain.service.stock_reservation_service import (
    StockReservationService,
)

logger = logging.getLogger(__name__)


class CancelOrderHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        payment_repo: PaymentRepository,
        payment_gateway: PaymentGateway,
    ) -> None:
        self._order_repo = order_repo
        self._product_repo = product_repo
        self._payment_repo = payment_repo
        self._gateway = payment_gateway

    def handle(self, order_no: str, user_id: int | None = None, reason: str = "") -> None:
        order = load_order(self._order_repo, order_no, user_id)
        if not order.can_cancel:
            raise InvalidTransitionError(
                f"Order {order_no} cannot be cancelled in {order.status.value} status"
            )

        # Release before the refund, which cannot be rolled back
        svc = StockReservationService(self._product_repo)
        svc.release_for_order(order)

        payment = self._payment_repo.get_active_for_order(order_no)
        if order.payment_status is OrderPaymentStatus.PAID and payment is not None:
            amount = order.refundable_amount
            try:
                reference = self._gateway.refund(payment, amount)
                payment.process_refund(amount)
            except Exception:
                logger.exception("Refund for order %s failed; reserving stock again", order_no)
                svc.restore_for_order(order)
                raise
            self._payment_repo.save(payment)
            logger.info("Refunded %s for cancelled order %s (ref %s)", amount, order_no, reference)
        elif payment is not None and payment.status.is_pending:
            payment.cancel()
            self._payment_repo.save(payment)

        order.cancel(reason)
        self._order_repo.save(order)
        logger.info("Order %s cancelled: %s", order_no, reason or "no reason given")
