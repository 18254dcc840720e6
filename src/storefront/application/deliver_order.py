"""Application services: delivery confirmation and order completion."""

from __future__ import annotations

import logging

from storefront.application.lookup import load_order
from storefront.domain.repository.order_repository import OrderRepository

logger = logging.getLogger(__name__)


class ConfirmDeliveryHandler:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def handle(self, order_no: str) -> None:
        order = load_order(self._order_repo, order_no)
        order.confirm_delivery()
        self._order_repo.save(order)
        logger.info("Order %s delivered", order_no)


class CompleteOrderHandler:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def handle(self, order_no: str, user_id: int | None = None) -> None:
        order = load_order(self._order_repo, order_no, user_id)
        order.complete()
        self._order_repo.save(order)
        logger.info("Order %s completed", order_no)
