"""JSON-file-backed implementation of ProductRepository."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Callable, TypeVar

from storefront.domain.exceptions import ConcurrencyConflictError, EntityNotFoundError
from storefront.domain.model.product import (
    DEFAULT_LOW_STOCK_THRESHOLD,
    Product,
    ProductStatus,
)
from storefront.domain.model.value_objects import Money
from storefront.domain.repository.product_repository import ProductRepository
from storefront.infrastructure.persistence.json_store import JsonFileStore

T = TypeVar("T")


class JsonProductRepository(ProductRepository):

    def __init__(self, file_path: Path) -> None:
        self._store = JsonFileStore(file_path)

    # --- ProductRepository interface ------------------------------------------

    def next_id(self) -> str:
        ids = [int(raw["id"]) for raw in self._store.load() if str(raw["id"]).isdigit()]
        return str(max(ids, default=0) + 1)

    def get_by_id(self, product_id: str) -> Product | None:
        for raw in self._store.load():
            if raw["id"] == product_id:
                return self._to_domain(raw)
        return None

    def get_many(self, product_ids: list[str]) -> dict[str, Product]:
        wanted = set(product_ids)
        return {
            raw["id"]: self._to_domain(raw)
            for raw in self._store.load()
            if raw["id"] in wanted
        }

    def get_by_name(self, name: str) -> Product | None:
        for raw in self._store.load():
            if raw["name"].lower() == name.lower():
                return self._to_domain(raw)
        return None

    def list_all(self) -> list[Product]:
        return [self._to_domain(raw) for raw in self._store.load()]

    def save(self, product: Product) -> None:
        with self._store.locked():
            rows = self._store.load()
            index = self._index_of(rows, product.id)
            stored_version = rows[index].get("version", 0) if index is not None else 0
            if stored_version != product.version:
                raise ConcurrencyConflictError(
                    f"Product {product.id} was modified concurrently "
                    f"(have version {product.version}, stored {stored_version})"
                )
            product.version += 1
            self._upsert(rows, index, product)

    def update_stock(self, product_id: str, operation: Callable[[Product], T]) -> T:
        with self._store.locked():
            rows = self._store.load()
            index = self._index_of(rows, product_id)
            if index is None:
                raise EntityNotFoundError(f"Product with ID '{product_id}' not found")
            product = self._to_domain(rows[index])
            result = operation(product)
            product.version += 1
            self._upsert(rows, index, product)
            return result

    # --- Serialization helpers ------------------------------------------------

    def _upsert(self, rows: list[dict], index: int | None, product: Product) -> None:
        if index is None:
            rows.append(self._to_raw(product))
        else:
            rows[index] = self._to_raw(product)
        self._store.persist(rows)

    @staticmethod
    def _index_of(rows: list[dict], product_id: str) -> int | None:
        for i, raw in enumerate(rows):
            if raw["id"] == product_id:
                return i
        return None

    @staticmethod
    def _to_raw(p: Product) -> dict:
        return {
            "id": p.id,
            "name": p.name,
            "code": p.code,
            "image_url": p.image_url,
            "price": str(p.price.amount),
            "currency": p.price.currency,
            "status": p.status.value,
            "total_stock": p.total_stock,
            "available_stock": p.available_stock,
            "reserved_stock": p.reserved_stock,
            "sold_quantity": p.sold_quantity,
            "low_stock_threshold": p.low_stock_threshold,
            "version": p.version,
            "reservation_holds": list(p.reservation_holds),
        }

    @staticmethod
    def _to_domain(raw: dict) -> Product:
        return Product(
            id=raw["id"],
            name=raw["name"],
            price=Money(Decimal(raw["price"]), raw.get("currency", "USD")),
            code=raw.get("code", ""),
            image_url=raw.get("image_url", ""),
            status=ProductStatus(raw.get("status", ProductStatus.ACTIVE.value)),
            total_stock=raw.get("total_stock", 0),
            available_stock=raw.get("available_stock", 0),
            reserved_stock=raw.get("reserved_stock", 0),
            sold_quantity=raw.get("sold_quantity", 0),
            low_stock_threshold=raw.get("low_stock_threshold", DEFAULT_LOW_STOCK_THRESHOLD),
            version=raw.get("version", 0),
            reservation_holds=list(raw.get("reservation_holds", [])),
        )
