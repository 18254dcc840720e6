"""Application service: expire unpaid orders.

Orders still waiting for payment after their deadline are cancelled and
their reserved stock goes back on sale.  Meant to run periodically.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from storefront.domain.exceptions import DomainException
from storefront.domain.model.order import Order
from storefront.domain.model.order_state import OrderStatus
from storefront.domain.model.payment import PaymentStatus
from storefront.domain.repository.order_repository import OrderRepository
from storefront.domain.repository.payment_repository import PaymentRepository
from storefront.domain.repository.product_repository import ProductRepository
from storefront.domain.service.stock_reservation_service import StockReservationService

logger = logging.getLogger(__name__)

EXPIRY_REASON = "Payment timeout"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ExpiryReport:
    expired: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class ExpireUnpaidOrdersHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        payment_repo: PaymentRepository,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._order_repo = order_repo
        self._payment_repo = payment_repo
        self._stock = StockReservationService(product_repo)
        self._clock = clock

    def handle(self, now: datetime | None = None) -> ExpiryReport:
        now = now or self._clock()
        report = ExpiryReport()
        for order in self._order_repo.list_by_status(OrderStatus.PENDING_PAYMENT):
            if not order.is_payment_expired(now):
                continue
            try:
                self._expire(order, now)
            except DomainException:
                # One broken order must not stop the sweep
                logger.exception("Could not expire order %s", order.order_no)
                report.failed.append(order.order_no)
                continue
            report.expired.append(order.order_no)

        if report.expired:
            logger.info("Expired %d unpaid order(s)", len(report.expired))
        return report

    def _expire(self, order: Order, now: datetime) -> None:
        self._stock.release_for_order(order)

        payment = self._payment_repo.get_active_for_order(order.order_no)
        if payment is not None and payment.status.is_pending:
            if payment.status is PaymentStatus.PENDING:
                payment.mark_timeout()
            else:
                payment.cancel()
            self._payment_repo.save(payment)

        order.cancel(EXPIRY_REASON, now=now)
        self._order_repo.save(order)
        logger.info("Order %s expired unpaid", order.order_no)
