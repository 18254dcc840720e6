"""Application services: soft delete and restore of finished orders."""

from __future__ import annotations

import logging

from storefront.application.lookup import load_order
from storefront.domain.repository.order_repository import OrderRepository

logger = logging.getLogger(__name__)


class DeleteOrderHandler:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def handle(self, order_no: str, user_id: int | None = None) -> None:
        order = load_order(self._order_repo, order_no, user_id)
        order.mark_deleted()
        self._order_repo.save(order)
        logger.info("Order %s deleted", order_no)


class RestoreOrderHandler:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def handle(self, order_no: str, user_id: int | None = None) -> None:
        order = load_order(self._order_repo, order_no, user_id, include_deleted=True)
        order.restore()
        self._order_repo.save(order)
        logger.info("Order %s restored", order_no)
