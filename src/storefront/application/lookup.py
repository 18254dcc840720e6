"""Loading helpers shared by the order use cases."""

from __future__ import annotations

from storefront.domain.exceptions import EntityNotFoundError, PermissionDeniedError
from storefront.domain.model.order import Order
from storefront.domain.model.payment import Payment
from storefront.domain.repository.order_repository import OrderRepository
from storefront.domain.repository.payment_repository import PaymentRepository


def load_order(
    order_repo: OrderRepository,
    order_no: str,
    user_id: int | None = None,
    include_deleted: bool = False,
) -> Order:
    """Fetch an order, enforcing ownership when *user_id* is given.

    ``user_id=None`` is the back-office path and skips the owner check.
    """
    order = order_repo.get_by_order_no(order_no, include_deleted=include_deleted)
    if order is None:
        raise EntityNotFoundError(f"Order {order_no} not found")
    if user_id is not None and order.user_id != user_id:
        raise PermissionDeniedError(f"User {user_id} may not act on order {order_no}")
    return order


def load_active_payment(payment_repo: PaymentRepository, order_no: str) -> Payment:
    payment = payment_repo.get_active_for_order(order_no)
    if payment is None:
        raise EntityNotFoundError(f"No active payment for order {order_no}")
    return payment
