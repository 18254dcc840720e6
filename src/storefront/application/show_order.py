"""Application services: order queries."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from storefront.application.dto import OrderDTO, to_order_dto
from storefront.application.lookup import load_order
from storefront.domain.exceptions import ValidationError
from storefront.domain.model.order_state import OrderStatus
from storefront.domain.repository.order_repository import OrderRepository


@dataclass(frozen=True)
class OrderListDTO:
    orders: list[OrderDTO]
    counts: dict[str, int] = field(default_factory=dict)


class ShowOrderHandler:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def handle(self, order_no: str, user_id: int | None = None) -> OrderDTO:
        return to_order_dto(load_order(self._order_repo, order_no, user_id))


class ListOrdersHandler:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def handle(self, user_id: int, status: str | None = None) -> OrderListDTO:
        """A user's orders, newest first, with per-status counts over all of them."""
        orders = self._order_repo.list_by_user(user_id)
        counts = Counter(order.status.value for order in orders)

        if status is not None:
            try:
                wanted = OrderStatus(status.strip().upper())
            except ValueError as exc:
                raise ValidationError(f"Unknown order status: {status!r}") from exc
            orders = [order for order in orders if order.status is wanted]

        return OrderListDTO(
            orders=[to_order_dto(order) for order in orders],
            counts=dict(counts),
        )
