"""JSON-file-backed implementation of OrderRepository."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path

from storefront.domain.exceptions import DuplicateOrderNumberError
from storefront.domain.model.order import Order, OrderItem
from storefront.domain.model.order_state import (
    OrderPaymentStatus,
    OrderStatus,
    ShippingStatus,
)
from storefront.domain.model.value_objects import Money, Quantity
from storefront.domain.repository.order_repository import OrderRepository
from storefront.infrastructure.persistence.json_store import (
    JsonFileStore,
    from_iso,
    to_iso,
)

_MONEY_FIELDS = (
    "total_amount",
    "shipping_fee",
    "discount_amount",
    "actual_amount",
    "paid_amount",
    "refunded_amount",
)
_TIME_FIELDS = (
    "payment_deadline",
    "payment_time",
    "shipping_time",
    "delivery_time",
    "completion_time",
    "cancellation_time",
)
_TEXT_FIELDS = (
    "receiver_name",
    "receiver_address",
    "carrier",
    "tracking_number",
    "user_remark",
    "merchant_remark",
    "cancel_reason",
)


def _money(raw: dict, key: str) -> Money:
    return Money(Decimal(raw.get(key, "0.00")), raw.get("currency", "USD"))


class JsonOrderRepository(OrderRepository):

    def __init__(self, file_path: Path) -> None:
        self._store = JsonFileStore(file_path)

    # --- OrderRepository interface --------------------------------------------

    def next_id(self) -> int:
        return max((raw["id"] for raw in self._store.load()), default=0) + 1

    def get_by_id(self, order_id: int) -> Order | None:
        for raw in self._store.load():
            if raw["id"] == order_id:
                return self._to_domain(raw)
        return None

    def get_by_order_no(self, order_no: str, include_deleted: bool = False) -> Order | None:
        for raw in self._store.load():
            if raw["order_no"] == order_no:
                if raw.get("is_deleted") and not include_deleted:
                    return None
                return self._to_domain(raw)
        return None

    def exists_order_no(self, order_no: str) -> bool:
        return any(raw["order_no"] == order_no for raw in self._store.load())

    def max_order_no_sequence(self, prefix: str) -> int:
        best = 0
        for raw in self._store.load():
            suffix = raw["order_no"][len(prefix):]
            if raw["order_no"].startswith(prefix) and suffix.isdigit():
                best = max(best, int(suffix))
        return best

    def list_by_user(self, user_id: int) -> list[Order]:
        orders = [
            self._to_domain(raw)
            for raw in self._store.load()
            if raw["user_id"] == user_id and not raw.get("is_deleted")
        ]
        return sorted(orders, key=lambda o: (o.created_at, o.id or 0), reverse=True)

    def list_by_status(self, status: OrderStatus) -> list[Order]:
        return [
            self._to_domain(raw)
            for raw in self._store.load()
            if raw["status"] == status.value and not raw.get("is_deleted")
        ]

    def save(self, order: Order) -> None:
        order.recalculate_amounts()
        with self._store.locked():
            rows = self._store.load()

            if order.id is None:
                if any(raw["order_no"] == order.order_no for raw in rows):
                    raise DuplicateOrderNumberError(
                        f"Order number {order.order_no} is already in use"
                    )
                order.id = max((raw["id"] for raw in rows), default=0) + 1
                rows.append(self._to_raw(order))
            else:
                # Upsert: replace if exists, otherwise append
                for i, raw in enumerate(rows):
                    if raw["id"] == order.id:
                        rows[i] = self._to_raw(order)
                        break
                else:
                    rows.append(self._to_raw(order))

            self._store.persist(rows)

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(order: Order) -> dict:
        raw: dict = {
            "id": order.id,
            "order_no": order.order_no,
            "user_id": order.user_id,
            "status": order.status.value,
            "payment_status": order.payment_status.value,
            "shipping_status": order.shipping_status.value,
            "currency": order.total_amount.currency,
            "created_at": order.created_at.isoformat(),
            "is_deleted": order.is_deleted,
            "items": [
                {
                    "product_id": item.product_id,
                    "product_name": item.product_name,
                    "product_code": item.product_code,
                    "product_image": item.product_image,
                    "quantity": item.quantity.value,
                    "unit_price": str(item.unit_price.amount),
                    "discount_amount": str(item.discount_amount.amount),
                    "shipped_quantity": item.shipped_quantity,
                    "returned_quantity": item.returned_quantity,
                    "refund_amount": str(item.refund_amount.amount),
                }
                for item in order.items
            ],
        }
        for name in _MONEY_FIELDS:
            raw[name] = str(getattr(order, name).amount)
        for name in _TIME_FIELDS:
            raw[name] = to_iso(getattr(order, name))
        for name in _TEXT_FIELDS:
            raw[name] = getattr(order, name)
        return raw

    @staticmethod
    def _to_domain(raw: dict) -> Order:
        currency = raw.get("currency", "USD")
        items = [
            OrderItem(
                product_id=i["product_id"],
                product_name=i["product_name"],
                quantity=Quantity(i["quantity"]),
                unit_price=Money(Decimal(i["unit_price"]), currency),
                product_code=i.get("product_code", ""),
                product_image=i.get("product_image", ""),
                discount_amount=Money(Decimal(i.get("discount_amount", "0.00")), currency),
                shipped_quantity=i.get("shipped_quantity", 0),
                returned_quantity=i.get("returned_quantity", 0),
                refund_amount=Money(Decimal(i.get("refund_amount", "0.00")), currency),
            )
            for i in raw["items"]
        ]
        order = Order(
            id=raw["id"],
            order_no=raw["order_no"],
            user_id=raw["user_id"],
            items=items,
            status=OrderStatus(raw["status"]),
            payment_status=OrderPaymentStatus(raw["payment_status"]),
            shipping_status=ShippingStatus(raw["shipping_status"]),
            created_at=datetime.fromisoformat(raw["created_at"]),
            is_deleted=raw.get("is_deleted", False),
        )
        for name in _MONEY_FIELDS:
            setattr(order, name, _money(raw, name))
        for name in _TIME_FIELDS:
            setattr(order, name, from_iso(raw.get(name)))
        for name in _TEXT_FIELDS:
            setattr(order, name, raw.get(name, ""))
        return order
