"""Application service: Show Inventory use case (query)."""

from __future__ import annotations

from dataclasses import dataclass

from storefront.domain.repository.product_repository import ProductRepository


@dataclass(frozen=True)
class InventoryLineDTO:
    product_id: str
    product_name: str
    price: str
    status: str
    total: int
    available: int
    reserved: int
    sold: int
    low_stock: bool


class ShowInventoryHandler:

    def __init__(self, product_repo: ProductRepository) -> None:
        self._product_repo = product_repo

    def handle(self, low_stock_only: bool = False) -> list[InventoryLineDTO]:
        products = self._product_repo.list_all()
        if low_stock_only:
            products = [p for p in products if p.is_low_stock]
        return [
            InventoryLineDTO(
                product_id=p.id,
                product_name=p.name,
                price=str(p.price),
                status=p.status.value,
                total=p.total_stock,
                available=p.available_stock,
                reserved=p.reserved_stock,
                sold=p.sold_quantity,
                low_stock=p.is_low_stock,
            )
            for p in products
        ]
