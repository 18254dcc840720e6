"""Application service: Add Product use case."""

from __future__ import annotations

import logging

from storefront.domain.exceptions import ValidationError
from storefront.domain.model.product import (
    DEFAULT_LOW_STOCK_THRESHOLD,
    Product,
    ProductStatus,
)
from storefront.domain.model.value_objects import Money
from storefront.domain.repository.product_repository import ProductRepository

logger = logging.getLogger(__name__)


class AddProductHandler:

    def __init__(
        self,
        product_repo: ProductRepository,
        low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
    ) -> None:
        self._product_repo = product_repo
        self._low_stock_threshold = low_stock_threshold

    def handle(
        self,
        name: str,
        price: str,
        stock: int = 0,
        code: str = "",
        image_url: str = "",
        draft: bool = False,
    ) -> Product:
        """Add a new product to the catalog, optionally with opening stock."""
        if not name or not name.strip():
            raise ValidationError("Product name is required")
        if stock < 0:
            raise ValidationError("Opening stock cannot be negative")

        existing = self._product_repo.get_by_name(name.strip())
        if existing is not None:
            raise ValidationError(f"Product '{name}' already exists")

        money = Money.of(price)
        if money.is_zero:
            raise ValidationError("Product price must be greater than zero")

        product = Product(
            id=self._product_repo.next_id(),
            name=name.strip(),
            price=money,
            code=code.strip(),
            image_url=image_url.strip(),
            status=ProductStatus.DRAFT if draft else ProductStatus.OUT_OF_STOCK,
            low_stock_threshold=self._low_stock_threshold,
        )
        if stock:
            product.add_stock(stock)
        self._product_repo.save(product)
        logger.info("Added product %s (%s) with %d in stock", product.id, product.name, stock)
        return product
