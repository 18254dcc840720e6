"""Data Transfer Objects: plain containers that cross layer boundaries.

DTOs carry data between the CLI and application layers without
exposing domain internals to the outside world.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from storefront.domain.model.order import Order
from storefront.domain.model.payment import Payment

TIME_FORMAT = "%Y-%m-%d %H:%M UTC"


@dataclass(frozen=True)
class OrderItemSpec:
    """Input: one line of a checkout request.

    ``unit_price`` is the price the customer was shown; when given it must
    still match the catalog.
    """

    product_id: str
    quantity: int
    unit_price: str | None = None


@dataclass(frozen=True)
class CreateOrderCommand:
    user_id: int
    items: list[OrderItemSpec]
    shipping_fee: str = "0.00"
    discount_amount: str = "0.00"
    receiver_name: str = ""
    receiver_address: str = ""
    user_remark: str = ""
    payment_method: str = "ALIPAY"


@dataclass(frozen=True)
class OrderCreationResult:
    order_no: str
    total_amount: str
    actual_amount: str
    payment_no: str
    payment_url: str
    payment_deadline: str
    payment_params: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class OrderItemDTO:
    """Output: a single order item as displayed to the user."""

    product_id: str
    product_name: str
    quantity: int
    unit_price: str  # formatted, e.g. "$15.00"
    subtotal: str
    shipped_quantity: int
    returned_quantity: int
    refund_amount: str


@dataclass(frozen=True)
class OrderDTO:
    """Output: a complete order as displayed to the user."""

    order_no: str
    user_id: int
    status: str
    payment_status: str
    shipping_status: str
    items: list[OrderItemDTO]
    total_amount: str
    shipping_fee: str
    discount_amount: str
    actual_amount: str
    paid_amount: str
    refunded_amount: str
    created_at: str
    payment_deadline: str | None
    carrier: str
    tracking_number: str
    cancel_reason: str
    next_statuses: list[str]
    is_deleted: bool

    @property
    def has_shipments(self) -> bool:
        return any(item.shipped_quantity > 0 for item in self.items)


@dataclass(frozen=True)
class PaymentDTO:
    payment_no: str
    order_no: str
    method: str
    status: str
    payment_amount: str
    fee_amount: str
    actual_amount: str
    refunded_amount: str
    transaction_no: str
    payment_url: str


def format_time(value: datetime | None) -> str | None:
    return value.strftime(TIME_FORMAT) if value is not None else None


def to_order_dto(order: Order) -> OrderDTO:
    return OrderDTO(
        order_no=order.order_no,
        user_id=order.user_id,
        status=order.status.value,
        payment_status=order.payment_status.value,
        shipping_status=order.shipping_status.value,
        items=[
            OrderItemDTO(
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity.value,
                unit_price=str(item.unit_price),
                subtotal=str(item.subtotal),
                shipped_quantity=item.shipped_quantity,
                returned_quantity=item.returned_quantity,
                refund_amount=str(item.refund_amount),
            )
            for item in order.items
        ],
        total_amount=str(order.total_amount),
        shipping_fee=str(order.shipping_fee),
        discount_amount=str(order.discount_amount),
        actual_amount=str(order.actual_amount),
        paid_amount=str(order.paid_amount),
        refunded_amount=str(order.refunded_amount),
        created_at=order.created_at.strftime(TIME_FORMAT),
        payment_deadline=format_time(order.payment_deadline),
        carrier=order.carrier,
        tracking_number=order.tracking_number,
        cancel_reason=order.cancel_reason,
        next_statuses=sorted(s.value for s in order.next_statuses()),
        is_deleted=order.is_deleted,
    )


def to_payment_dto(payment: Payment) -> PaymentDTO:
    return PaymentDTO(
        payment_no=payment.payment_no,
        order_no=payment.order_no,
        method=payment.method.code,
        status=payment.status.value,
        payment_amount=str(payment.payment_amount),
        fee_amount=str(payment.fee_amount),
        actual_amount=str(payment.actual_amount),
        refunded_amount=str(payment.refunded_amount),
        transaction_no=payment.transaction_no,
        payment_url=payment.payment_url,
    )
