"""Product aggregate.

Products live independently of orders. They have their own lifecycle:
prices change, products are published and unpublished, and stock moves
between three counters:

* ``available_stock``: can be reserved by new orders
* ``reserved_stock``: held for unpaid or unshipped orders
* ``sold_quantity``: left the warehouse (no longer part of total)

``total_stock == available_stock + reserved_stock`` holds after every
successful operation.  Every mutating method validates first and raises
without touching any counter.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from storefront.domain.exceptions import InsufficientStockError, ValidationError
from storefront.domain.model.value_objects import Money


class ProductStatus(Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    DISCONTINUED = "DISCONTINUED"

    @property
    def is_saleable(self) -> bool:
        return self is ProductStatus.ACTIVE

    @property
    def is_visible(self) -> bool:
        return self in (ProductStatus.ACTIVE, ProductStatus.OUT_OF_STOCK)


DEFAULT_LOW_STOCK_THRESHOLD = 10


@dataclass
class Product:
    """A product in the catalog together with its stock counters.

    ``version`` is bumped by the repository on every save and used as an
    optimistic lock; stale copies are rejected instead of overwriting
    newer counters.

    ``reservation_holds`` lists the journal entries whose reservation is
    applied to the counters but not yet resolved.  It is written together
    with the counters, so recovery can tell whether a journaled reservation
    actually happened.
    """

    id: str
    name: str
    price: Money
    code: str = ""
    image_url: str = ""
    status: ProductStatus = ProductStatus.ACTIVE
    total_stock: int = 0
    available_stock: int = 0
    reserved_stock: int = 0
    sold_quantity: int = 0
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD
    version: int = 0
    reservation_holds: list[str] = field(default_factory=list)

    # --- Queries --------------------------------------------------------------

    @property
    def is_saleable(self) -> bool:
        return self.status.is_saleable and self.available_stock > 0

    @property
    def is_out_of_stock(self) -> bool:
        return self.available_stock <= 0

    @property
    def is_low_stock(self) -> bool:
        return self.available_stock <= self.low_stock_threshold

    # --- Stock movements ------------------------------------------------------

    def reserve(self, quantity: int, hold: str = "") -> None:
        """Hold *quantity* units for an unpaid order.

        Raises InsufficientStockError (and changes nothing) if fewer than
        *quantity* units are available.  A non-empty *hold* is remembered
        until released or dropped.
        """
        self._require_positive(quantity, "Reservation")
        if quantity > self.available_stock:
            raise InsufficientStockError(
                f"Insufficient stock for {self.name} "
                f"(need {quantity}, have {self.available_stock} available)"
            )
        self.available_stock -= quantity
        self.reserved_stock += quantity
        if hold:
            self.reservation_holds.append(hold)
        if self.available_stock == 0 and self.status is ProductStatus.ACTIVE:
            self.status = ProductStatus.OUT_OF_STOCK

    def release_reserved(self, quantity: int, hold: str = "") -> None:
        """Return reserved units to the available pool."""
        self._require_positive(quantity, "Release")
        if quantity > self.reserved_stock:
            raise ValidationError(
                f"Cannot release {quantity} of {self.name} "
                f"- only {self.reserved_stock} currently reserved"
            )
        self.reserved_stock -= quantity
        self.available_stock += quantity
        self.drop_hold(hold)
        self._back_in_stock()

    def has_hold(self, hold: str) -> bool:
        return hold in self.reservation_holds

    def drop_hold(self, hold: str) -> None:
        if hold in self.reservation_holds:
            self.reservation_holds.remove(hold)

    def confirm_reserved(self, quantity: int) -> int:
        """Move reserved units out of the warehouse.

        Moves at most ``reserved_stock`` units; returns how many moved.
        """
        self._require_positive(quantity, "Confirm")
        moved = min(quantity, self.reserved_stock)
        self.reserved_stock -= moved
        self.total_stock -= moved
        self.sold_quantity += moved
        return moved

    def add_stock(self, quantity: int) -> None:
        """Receive new units into the warehouse."""
        self._require_positive(quantity, "Stock addition")
        self.total_stock += quantity
        self.available_stock += quantity
        self._back_in_stock()

    # --- Catalog lifecycle ----------------------------------------------------

    def update_price(self, new_price: Money) -> None:
        """Change the product price.

        This does NOT affect any existing orders because order items
        capture a snapshot at creation time.
        """
        if new_price.amount <= 0:
            raise ValidationError("Product price must be greater than zero")
        self.price = new_price

    def publish(self) -> None:
        if self.status not in (ProductStatus.DRAFT, ProductStatus.INACTIVE):
            raise ValidationError(
                f"Cannot publish product in {self.status.value} status"
            )
        self.status = (
            ProductStatus.ACTIVE if self.available_stock > 0 else ProductStatus.OUT_OF_STOCK
        )

    def unpublish(self) -> None:
        if not self.status.is_visible:
            raise ValidationError(
                f"Cannot unpublish product in {self.status.value} status"
            )
        self.status = ProductStatus.INACTIVE

    # --- Internal helpers -----------------------------------------------------

    def _back_in_stock(self) -> None:
        if self.status is ProductStatus.OUT_OF_STOCK and self.available_stock > 0:
            self.status = ProductStatus.ACTIVE

    @staticmethod
    def _require_positive(quantity: int, what: str) -> None:
        if not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError(f"{what} quantity must be positive")
