"""Order aggregate, the core of the domain.

The Order is an aggregate root that exclusively owns its items; items
have no lifecycle of their own.  Every status change goes through
``update_status`` which consults the transition table in ``order_state``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from storefront.domain.exceptions import InvalidTransitionError, ValidationError
from storefront.domain.model.order_state import (
    OrderPaymentStatus,
    OrderStatus,
    ShippingStatus,
    is_allowed,
    next_statuses,
)
from storefront.domain.model.product import Product
from storefront.domain.model.value_objects import Money, Quantity


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class OrderItem:
    """Snapshot of a product at order-creation time.

    Name, code, image and unit price are copied from the catalog so later
    catalog edits never alter historical orders.
    """

    product_id: str
    product_name: str
    quantity: Quantity
    unit_price: Money  # locked at order-creation time
    product_code: str = ""
    product_image: str = ""
    discount_amount: Money = field(default_factory=Money.zero)
    shipped_quantity: int = 0
    returned_quantity: int = 0
    refund_amount: Money = field(default_factory=Money.zero)

    @staticmethod
    def snapshot(product: Product, quantity: int) -> OrderItem:
        return OrderItem(
            product_id=product.id,
            product_name=product.name,
            quantity=Quantity(quantity),
            unit_price=product.price,
            product_code=product.code,
            product_image=product.image_url,
        )

    @property
    def subtotal(self) -> Money:
        return self.unit_price * self.quantity.value

    @property
    def actual_amount(self) -> Money:
        return self.subtotal.minus_clamped(self.discount_amount)

    @property
    def refundable_amount(self) -> Money:
        return self.actual_amount.minus_clamped(self.refund_amount)

    @property
    def remaining_quantity(self) -> int:
        return self.quantity.value - self.shipped_quantity

    @property
    def returnable_quantity(self) -> int:
        return self.shipped_quantity - self.returned_quantity

    def ship(self, qty: int) -> None:
        if qty <= 0:
            raise ValidationError("Ship quantity must be positive")
        if qty > self.remaining_quantity:
            raise ValidationError(
                f"Cannot ship {qty} of {self.product_name} "
                f"- only {self.remaining_quantity} remaining"
            )
        self.shipped_quantity += qty

    def return_items(self, qty: int) -> None:
        if qty <= 0:
            raise ValidationError("Return quantity must be positive")
        if qty > self.returnable_quantity:
            raise ValidationError(
                f"Cannot return {qty} of {self.product_name} "
                f"- only {self.returnable_quantity} returnable"
            )
        self.returned_quantity += qty

    def refund(self, amount: Money) -> None:
        if amount > self.refundable_amount:
            raise ValidationError(
                f"Refund {amount} exceeds refundable {self.refundable_amount} "
                f"for {self.product_name}"
            )
        self.refund_amount = self.refund_amount + amount


# ---------------------------------------------------------------------------
# Constants for business rules
# ---------------------------------------------------------------------------
MAX_LINE_ITEMS = 50
DELETABLE_STATUSES = (OrderStatus.CANCELLED, OrderStatus.COMPLETED, OrderStatus.REFUNDED)


@dataclass
class Order:
    """Aggregate root for customer orders.

    Use the ``Order.create()`` factory for new orders; it enforces all
    business rules.  The ``__init__`` is intentionally simple so the
    repository can reconstitute persisted orders without re-validating.
    """

    id: int | None
    order_no: str
    user_id: int
    items: list[OrderItem]
    status: OrderStatus = OrderStatus.PENDING_PAYMENT
    payment_status: OrderPaymentStatus = OrderPaymentStatus.UNPAID
    shipping_status: ShippingStatus = ShippingStatus.NOT_SHIPPED
    total_amount: Money = field(default_factory=Money.zero)
    shipping_fee: Money = field(default_factory=Money.zero)
    discount_amount: Money = field(default_factory=Money.zero)
    actual_amount: Money = field(default_factory=Money.zero)
    paid_amount: Money = field(default_factory=Money.zero)
    refunded_amount: Money = field(default_factory=Money.zero)
    receiver_name: str = ""
    receiver_address: str = ""
    carrier: str = ""
    tracking_number: str = ""
    user_remark: str = ""
    merchant_remark: str = ""
    cancel_reason: str = ""
    created_at: datetime = field(default_factory=_utcnow)
    payment_deadline: datetime | None = None
    payment_time: datetime | None = None
    shipping_time: datetime | None = None
    delivery_time: datetime | None = None
    completion_time: datetime | None = None
    cancellation_time: datetime | None = None
    is_deleted: bool = False

    # --- Factory (used for NEW orders only) -----------------------------------

    @staticmethod
    def create(
        order_no: str,
        user_id: int,
        items: list[OrderItem],
        shipping_fee: Money | None = None,
        discount_amount: Money | None = None,
        receiver_name: str = "",
        receiver_address: str = "",
        user_remark: str = "",
        payment_deadline: datetime | None = None,
        max_line_items: int = MAX_LINE_ITEMS,
        now: datetime | None = None,
    ) -> Order:
        """Create a new order, enforcing all invariants."""
        if not order_no or not order_no.strip():
            raise ValidationError("Order number is required")
        if not isinstance(user_id, int) or user_id <= 0:
            raise ValidationError("A valid user ID is required")
        if not items:
            raise ValidationError("Order must contain at least one item")
        if len(items) > max_line_items:
            raise ValidationError(f"Maximum {max_line_items} items per order")

        product_ids = [item.product_id for item in items]
        if len(set(product_ids)) != len(product_ids):
            raise ValidationError("Each product may appear only once per order")

        order = Order(
            id=None,
            order_no=order_no.strip(),
            user_id=user_id,
            items=list(items),
            shipping_fee=shipping_fee or Money.zero(),
            discount_amount=discount_amount or Money.zero(),
            receiver_name=receiver_name.strip(),
            receiver_address=receiver_address.strip(),
            user_remark=user_remark.strip(),
            created_at=now or _utcnow(),
            payment_deadline=payment_deadline,
        )
        order.recalculate_amounts()
        return order

    # --- Amounts --------------------------------------------------------------

    def recalculate_amounts(self) -> None:
        """total = sum of item subtotals; actual = total + shipping - discount, floored at 0."""
        total = Money.zero(self.shipping_fee.currency)
        for item in self.items:
            total = total + item.subtotal
        self.total_amount = total
        self.actual_amount = Money.clamped(
            total.amount + self.shipping_fee.amount - self.discount_amount.amount,
            total.currency,
        )

    @property
    def refundable_amount(self) -> Money:
        return self.paid_amount.minus_clamped(self.refunded_amount)

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity.value for item in self.items)

    # --- State machine --------------------------------------------------------

    def can_transition_to(self, target: OrderStatus) -> bool:
        return is_allowed(self.status, target, self.shipping_status, self.payment_status)

    def next_statuses(self) -> set[OrderStatus]:
        return next_statuses(self.status, self.shipping_status, self.payment_status)

    def update_status(
        self,
        target: OrderStatus,
        remark: str | None = None,
        now: datetime | None = None,
    ) -> None:
        """Apply a transition from the table, stamping the milestone time."""
        if not self.can_transition_to(target):
            raise InvalidTransitionError(
                f"Invalid status transition for order {self.order_no}: "
                f"{self.status.value} -> {target.value}"
            )
        now = now or _utcnow()
        self.status = target

        if target is OrderStatus.PAID:
            self.payment_time = now
            self.paid_amount = self.actual_amount
        elif target is OrderStatus.SHIPPED:
            self.shipping_time = now
        elif target is OrderStatus.DELIVERED:
            self.delivery_time = now
        elif target is OrderStatus.COMPLETED:
            self.completion_time = now
        elif target is OrderStatus.CANCELLED:
            self.cancellation_time = now
            self.cancel_reason = (remark or "").strip()

        if remark and remark.strip():
            self.merchant_remark = remark.strip()

    # --- Eligibility predicates (all answered by the table) -------------------

    @property
    def can_cancel(self) -> bool:
        return self.can_transition_to(OrderStatus.CANCELLED)

    @property
    def can_ship(self) -> bool:
        return self.can_transition_to(OrderStatus.SHIPPED)

    @property
    def can_deliver(self) -> bool:
        return self.can_transition_to(OrderStatus.DELIVERED)

    @property
    def can_complete(self) -> bool:
        return self.can_transition_to(OrderStatus.COMPLETED)

    @property
    def can_return(self) -> bool:
        return self.can_transition_to(OrderStatus.RETURNED)

    @property
    def can_refund(self) -> bool:
        return (
            self.can_transition_to(OrderStatus.REFUNDED)
            and not self.refundable_amount.is_zero
        )

    @property
    def can_review(self) -> bool:
        return self.status is OrderStatus.COMPLETED

    def can_pay(self, now: datetime | None = None) -> bool:
        return (
            self.can_transition_to(OrderStatus.PAID)
            and self.payment_status
            in (OrderPaymentStatus.UNPAID, OrderPaymentStatus.PAYING, OrderPaymentStatus.FAILED)
            and not self.is_payment_expired(now)
        )

    def is_payment_expired(self, now: datetime | None = None) -> bool:
        return (
            self.status is OrderStatus.PENDING_PAYMENT
            and self.payment_deadline is not None
            and (now or _utcnow()) > self.payment_deadline
        )

    # --- Lifecycle operations -------------------------------------------------

    def start_payment(self) -> None:
        if self.status is not OrderStatus.PENDING_PAYMENT:
            raise InvalidTransitionError(
                f"Cannot pay order {self.order_no} in {self.status.value} status"
            )
        if self.payment_status not in (
            OrderPaymentStatus.UNPAID,
            OrderPaymentStatus.PAYING,
            OrderPaymentStatus.FAILED,
        ):
            raise ValidationError(f"Order {self.order_no} is already paid")
        self.payment_status = OrderPaymentStatus.PAYING

    def mark_paid(self, now: datetime | None = None) -> None:
        self.update_status(OrderStatus.PAID, now=now)
        self.payment_status = OrderPaymentStatus.PAID

    def mark_payment_failed(self) -> None:
        if self.status is not OrderStatus.PENDING_PAYMENT:
            raise InvalidTransitionError(
                f"Cannot record a failed payment for order in {self.status.value} status"
            )
        self.payment_status = OrderPaymentStatus.FAILED

    def ship(self, carrier: str, tracking_number: str, now: datetime | None = None) -> None:
        """Ship every remaining unit in one parcel."""
        if not self.can_ship:
            raise InvalidTransitionError(
                f"Cannot ship order {self.order_no} in {self.status.value} status"
            )
        if not carrier or not carrier.strip():
            raise ValidationError("Carrier is required to ship an order")
        # The PAID -> SHIPPED edge is guarded on NOT_SHIPPED
        self.update_status(OrderStatus.SHIPPED, now=now)
        for item in self.items:
            if item.remaining_quantity > 0:
                item.ship(item.remaining_quantity)
        self.carrier = carrier.strip()
        self.tracking_number = tracking_number.strip()
        self.shipping_status = ShippingStatus.SHIPPED

    def confirm_delivery(self, now: datetime | None = None) -> None:
        self.update_status(OrderStatus.DELIVERED, now=now)
        self.shipping_status = ShippingStatus.DELIVERED

    def complete(self, now: datetime | None = None) -> None:
        self.update_status(OrderStatus.COMPLETED, now=now)

    def cancel(self, reason: str = "", now: datetime | None = None) -> None:
        """Cancel the order; a paid order is marked as refunded in full.

        Stock release and the gateway refund are coordinated by the
        application handler *before* calling this.
        """
        was_paid = self.payment_status is OrderPaymentStatus.PAID
        self.update_status(OrderStatus.CANCELLED, remark=reason, now=now)
        if was_paid:
            self.refunded_amount = self.paid_amount
            self.payment_status = OrderPaymentStatus.REFUNDED

    def return_items(self, quantities: dict[str, int], now: datetime | None = None) -> None:
        """Record returned units per product and move the order to RETURNED."""
        if not self.can_return:
            raise InvalidTransitionError(
                f"Cannot return order {self.order_no} in {self.status.value} status"
            )
        if not quantities:
            raise ValidationError("Must specify at least one item to return")

        # Validate everything before mutating any item
        targets: list[tuple[OrderItem, int]] = []
        for product_id, qty in quantities.items():
            item = self._find_item(product_id)
            if qty <= 0 or qty > item.returnable_quantity:
                raise ValidationError(
                    f"Cannot return {qty} of {item.product_name} "
                    f"- only {item.returnable_quantity} returnable"
                )
            targets.append((item, qty))

        for item, qty in targets:
            item.return_items(qty)
        self.shipping_status = ShippingStatus.RETURNED
        self.update_status(OrderStatus.RETURNED, now=now)

    def apply_refund(self, amount: Money, now: datetime | None = None) -> bool:
        """Record a refund against the order; returns True when fully refunded.

        The amount is allocated to items in order (returned items first),
        each up to its own refundable amount; any remainder covers shipping.
        """
        if not self.can_refund:
            raise InvalidTransitionError(
                f"Cannot refund order {self.order_no} in {self.status.value} status"
            )
        if amount.is_zero:
            raise ValidationError("Refund amount must be positive")
        if amount > self.refundable_amount:
            raise ValidationError(
                f"Refund {amount} exceeds refundable amount {self.refundable_amount}"
            )

        remaining = amount
        ordered = sorted(self.items, key=lambda i: i.returned_quantity == 0)
        for item in ordered:
            if remaining.is_zero:
                break
            share = min(remaining, item.refundable_amount)
            if share.is_zero:
                continue
            item.refund(share)
            remaining = remaining - share

        self.refunded_amount = self.refunded_amount + amount
        if self.refundable_amount.is_zero:
            self.update_status(OrderStatus.REFUNDED, now=now)
            self.payment_status = OrderPaymentStatus.REFUNDED
            return True
        self.payment_status = OrderPaymentStatus.PARTIAL_REFUNDED
        return False

    def mark_deleted(self) -> None:
        if self.status not in DELETABLE_STATUSES:
            raise ValidationError(
                "Only cancelled, completed or refunded orders can be deleted"
            )
        self.is_deleted = True

    def restore(self) -> None:
        if not self.is_deleted:
            raise ValidationError(f"Order {self.order_no} is not deleted")
        self.is_deleted = False

    # --- Internal helpers -----------------------------------------------------

    def _find_item(self, product_id: str) -> OrderItem:
        for item in self.items:
            if item.product_id == product_id:
                return item
        raise ValidationError(f"Product ID '{product_id}' not found in this order")
