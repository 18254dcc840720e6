"""Order status enums and the one transition table every path consults.

Eligibility predicates on the Order (``can_cancel``, ``can_ship`` ...) are
all answered from ``ORDER_TRANSITIONS`` plus the guards below, so the table
and the predicates cannot drift apart.
"""

from __future__ import annotations

from enum import Enum


class OrderStatus(Enum):
    PENDING_PAYMENT = "PENDING_PAYMENT"
    PAID = "PAID"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    RETURNED = "RETURNED"
    REFUNDED = "REFUNDED"

    @property
    def is_terminal(self) -> bool:
        return not ORDER_TRANSITIONS[self]

    @property
    def is_active(self) -> bool:
        return self in (
            OrderStatus.PENDING_PAYMENT,
            OrderStatus.PAID,
            OrderStatus.SHIPPED,
            OrderStatus.DELIVERED,
        )


class OrderPaymentStatus(Enum):
    UNPAID = "UNPAID"
    PAYING = "PAYING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDING = "REFUNDING"
    REFUNDED = "REFUNDED"
    PARTIAL_REFUNDED = "PARTIAL_REFUNDED"


class ShippingStatus(Enum):
    NOT_SHIPPED = "NOT_SHIPPED"
    PREPARING = "PREPARING"
    SHIPPED = "SHIPPED"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    RETURNED = "RETURNED"


ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING_PAYMENT: frozenset({OrderStatus.PAID, OrderStatus.CANCELLED}),
    OrderStatus.PAID: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(
        {OrderStatus.COMPLETED, OrderStatus.RETURNED, OrderStatus.REFUNDED}
    ),
    OrderStatus.RETURNED: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}

# (from, to) -> shipping statuses under which the edge is allowed
SHIPPING_GUARDS: dict[tuple[OrderStatus, OrderStatus], frozenset[ShippingStatus]] = {
    (OrderStatus.PAID, OrderStatus.CANCELLED): frozenset(
        {ShippingStatus.NOT_SHIPPED, ShippingStatus.PREPARING}
    ),
    (OrderStatus.PAID, OrderStatus.SHIPPED): frozenset(
        {ShippingStatus.NOT_SHIPPED, ShippingStatus.PREPARING}
    ),
}

# (from, to) -> payment statuses under which the edge is allowed
PAYMENT_GUARDS: dict[tuple[OrderStatus, OrderStatus], frozenset[OrderPaymentStatus]] = {
    (OrderStatus.DELIVERED, OrderStatus.COMPLETED): frozenset(
        {OrderPaymentStatus.PAID, OrderPaymentStatus.PARTIAL_REFUNDED}
    ),
    (OrderStatus.DELIVERED, OrderStatus.REFUNDED): frozenset(
        {OrderPaymentStatus.PAID, OrderPaymentStatus.PARTIAL_REFUNDED}
    ),
    (OrderStatus.RETURNED, OrderStatus.REFUNDED): frozenset(
        {OrderPaymentStatus.PAID, OrderPaymentStatus.PARTIAL_REFUNDED}
    ),
}


def is_allowed(
    current: OrderStatus,
    target: OrderStatus,
    shipping: ShippingStatus,
    payment: OrderPaymentStatus,
) -> bool:
    if target not in ORDER_TRANSITIONS[current]:
        return False
    edge = (current, target)
    if edge in SHIPPING_GUARDS and shipping not in SHIPPING_GUARDS[edge]:
        return False
    if edge in PAYMENT_GUARDS and payment not in PAYMENT_GUARDS[edge]:
        return False
    return True


def next_statuses(
    current: OrderStatus,
    shipping: ShippingStatus,
    payment: OrderPaymentStatus,
) -> set[OrderStatus]:
    return {
        target
        for target in ORDER_TRANSITIONS[current]
        if is_allowed(current, target, shipping, payment)
    }
