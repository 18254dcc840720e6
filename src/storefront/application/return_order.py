"""Application service: Return Order use case.

Returned units go back into the warehouse as fresh stock; the money side
is handled separately by the refund use case.
"""

from __future__ import annotations

import logging

from storefront.application.lookup import load_order
from storefront.domain.repository.order_repository import OrderRepository
from storefront.domain.repository.product_repository import ProductRepository
from storefront.domain.service.stock_reservation_service import StockReservationService

logger = logging.getLogger(__name__)


class ReturnOrderHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        retry_attempts: int = 3,
    ) -> None:
        self._order_repo = order_repo
        self._product_repo = product_repo
        self._retry_attempts = retry_attempts

    def handle(
        self,
        order_no: str,
        quantities: dict[str, int],
        user_id: int | None = None,
    ) -> None:
        order = load_order(self._order_repo, order_no, user_id)
        order.return_items(quantities)
        self._order_repo.save(order)

        svc = StockReservationService(self._product_repo, retry_attempts=self._retry_attempts)
        for product_id, qty in quantities.items():
            svc.restock(product_id, qty)
        logger.info("Order %s returned: %s", order_no, quantities)
