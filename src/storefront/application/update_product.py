"""Application services: catalog edits (price, publish, unpublish)."""

from __future__ import annotations

import logging

from storefront.domain.exceptions import EntityNotFoundError
from storefront.domain.model.product import Product
from storefront.domain.model.value_objects import Money
from storefront.domain.repository.product_repository import ProductRepository
from storefront.domain.service.concurrency import run_with_retry

logger = logging.getLogger(__name__)


def _load(product_repo: ProductRepository, product_id: str) -> Product:
    product = product_repo.get_by_id(product_id)
    if product is None:
        raise EntityNotFoundError(f"Product with ID '{product_id}' not found")
    return product


class UpdateProductHandler:

    def __init__(self, product_repo: ProductRepository, retry_attempts: int = 3) -> None:
        self._product_repo = product_repo
        self._retry_attempts = retry_attempts

    def handle(self, product_id: str, new_price: str) -> None:
        """Update a product's price.

        This does NOT affect any existing orders; they captured a
        price snapshot at creation time.
        """
        price = Money.of(new_price)

        def attempt() -> None:
            product = _load(self._product_repo, product_id)
            product.update_price(price)
            self._product_repo.save(product)

        run_with_retry(attempt, attempts=self._retry_attempts)
        logger.info("Product %s repriced to %s", product_id, price)


class PublishProductHandler:

    def __init__(self, product_repo: ProductRepository, retry_attempts: int = 3) -> None:
        self._product_repo = product_repo
        self._retry_attempts = retry_attempts

    def handle(self, product_id: str, publish: bool = True) -> Product:
        def attempt() -> Product:
            product = _load(self._product_repo, product_id)
            if publish:
                product.publish()
            else:
                product.unpublish()
            self._product_repo.save(product)
            return product

        product = run_with_retry(attempt, attempts=self._retry_attempts)
        logger.info("Product %s is now %s", product_id, product.status.value)
        return product
