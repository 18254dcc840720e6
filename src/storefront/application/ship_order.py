"""Application service: Ship Order use case.

Shipping is the point where reserved stock leaves the warehouse: every
unshipped unit is moved from ``reserved_stock`` into ``sold_quantity``.
"""

from __future__ import annotations

import logging

from storefront.application.lookup import load_order
from storefront.domain.repository.order_repository import OrderRepository
from storefront.domain.repository.product_repository import ProductRepository
from storefront.domain.service.stock_reservation_service import StockReservationService

logger = logging.getLogger(__name__)


class ShipOrderHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
    ) -> None:
        self._order_repo = order_repo
        self._product_repo = product_repo

    def handle(self, order_no: str, carrier: str, tracking_number: str = "") -> None:
        order = load_order(self._order_repo, order_no)

        quantities = {
            item.product_id: item.remaining_quantity
            for item in order.items
            if item.remaining_quantity > 0
        }

        # Ship on the aggregate first: it validates status and carrier
        order.ship(carrier, tracking_number)

        svc = StockReservationService(self._product_repo)
        svc.confirm_for_order(quantities)

        self._order_repo.save(order)
        logger.info("Order %s shipped via %s %s", order_no, carrier, tracking_number)
