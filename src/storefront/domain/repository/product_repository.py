"""Abstract repository for Product aggregate.

Defined in the domain layer so the domain never depends on
infrastructure. Concrete implementations (JSON, SQL, in-memory)
live in the infrastructure layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, TypeVar

from storefront.domain.model.product import Product

T = TypeVar("T")


class ProductRepository(ABC):

    @abstractmethod
    def next_id(self) -> str:
        """Generate the next unique product ID."""

    @abstractmethod
    def get_by_id(self, product_id: str) -> Product | None:
        """Return a product by its ID, or None if not found."""

    @abstractmethod
    def get_many(self, product_ids: list[str]) -> dict[str, Product]:
        """Return the products that exist among *product_ids*, keyed by ID."""

    @abstractmethod
    def get_by_name(self, name: str) -> Product | None:
        """Return a product by its exact name, or None if not found."""

    @abstractmethod
    def list_all(self) -> list[Product]:
        """Return every product in the catalog."""

    @abstractmethod
    def save(self, product: Product) -> None:
        """Persist a new or updated product.

        Raises ConcurrencyConflictError if the stored version differs from
        ``product.version``; on success the version is incremented.
        """

    @abstractmethod
    def update_stock(self, product_id: str, operation: Callable[[Product], T]) -> T:
        """Atomically load, mutate and persist one product.

        No other ``update_stock`` or ``save`` on the same store can
        interleave.  If *operation* raises, nothing is persisted and the
        exception propagates.  Returns whatever *operation* returns.
        Raises EntityNotFoundError for an unknown product.
        """
