"""Application service: receive new stock for a product."""

from __future__ import annotations

import logging

from storefront.domain.model.product import Product
from storefront.domain.repository.product_repository import ProductRepository
from storefront.domain.service.stock_reservation_service import StockReservationService

logger = logging.getLogger(__name__)


class RestockProductHandler:

    def __init__(self, product_repo: ProductRepository, retry_attempts: int = 3) -> None:
        self._stock = StockReservationService(product_repo, retry_attempts=retry_attempts)

    def handle(self, product_id: str, quantity: int) -> Product:
        product = self._stock.restock(product_id, quantity)
        logger.info(
            "Restocked product %s by %d (available %d)",
            product_id, quantity, product.available_stock,
        )
        return product
