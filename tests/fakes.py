"""In-memory fake repositories and ports for testing.

These implement the same abstract interfaces as the JSON repositories
but keep everything in a dict. No file I/O, no side effects.

Products and orders are stored as copies, so a test holding an object
sees a stale snapshot exactly like two processes would.
"""

from __future__ import annotations

import copy
import itertools
import threading
from datetime import datetime, timezone
from typing import Callable, TypeVar

from storefront.domain.exceptions import (
    ConcurrencyConflictError,
    DuplicateOrderNumberError,
    EntityNotFoundError,
    PaymentGatewayError,
)
from storefront.domain.model.compensation import JournalState, ReservationEntry
from storefront.domain.model.order import Order
from storefront.domain.model.order_state import OrderStatus
from storefront.domain.model.payment import Payment
from storefront.domain.model.product import Product
from storefront.domain.model.value_objects import Money
from storefront.domain.repository.compensation_journal import CompensationJournal
from storefront.domain.repository.order_repository import OrderRepository
from storefront.domain.repository.payment_repository import PaymentRepository
from storefront.domain.repository.product_repository import ProductRepository
from storefront.domain.service.ports import LockManager, PaymentGateway

T = TypeVar("T")


class FakeOrderRepository(OrderRepository):

    def __init__(self) -> None:
        self._store: dict[int, Order] = {}
        self._next_id = 1

    def next_id(self) -> int:
        return self._next_id

    def get_by_id(self, order_id: int) -> Order | None:
        order = self._store.get(order_id)
        return copy.deepcopy(order) if order is not None else None

    def get_by_order_no(self, order_no: str, include_deleted: bool = False) -> Order | None:
        for order in self._store.values():
            if order.order_no == order_no:
                if order.is_deleted and not include_deleted:
                    return None
                return copy.deepcopy(order)
        return None

    def exists_order_no(self, order_no: str) -> bool:
        return any(o.order_no == order_no for o in self._store.values())

    def max_order_no_sequence(self, prefix: str) -> int:
        suffixes = [
            int(o.order_no[len(prefix):])
            for o in self._store.values()
            if o.order_no.startswith(prefix) and o.order_no[len(prefix):].isdigit()
        ]
        return max(suffixes, default=0)

    def list_by_user(self, user_id: int) -> list[Order]:
        orders = [
            copy.deepcopy(o)
            for o in self._store.values()
            if o.user_id == user_id and not o.is_deleted
        ]
        return sorted(orders, key=lambda o: (o.created_at, o.id), reverse=True)

    def list_by_status(self, status: OrderStatus) -> list[Order]:
        return [
            copy.deepcopy(o)
            for o in self._store.values()
            if o.status is status and not o.is_deleted
        ]

    def save(self, order: Order) -> None:
        order.recalculate_amounts()
        if order.id is None:
            if self.exists_order_no(order.order_no):
                raise DuplicateOrderNumberError(f"Order number {order.order_no} is already in use")
            order.id = self._next_id
            self._next_id += 1
        self._store[order.id] = copy.deepcopy(order)


class FakeProductRepository(ProductRepository):

    def __init__(self, products: list[Product] | None = None) -> None:
        self._store: dict[str, Product] = {}
        self._lock = threading.RLock()
        for p in products or []:
            self._store[p.id] = copy.deepcopy(p)

    def next_id(self) -> str:
        ids = [int(pid) for pid in self._store if pid.isdigit()]
        return str(max(ids, default=0) + 1)

    def get_by_id(self, product_id: str) -> Product | None:
        with self._lock:
            product = self._store.get(product_id)
            return copy.deepcopy(product) if product is not None else None

    def get_many(self, product_ids: list[str]) -> dict[str, Product]:
        with self._lock:
            return {
                pid: copy.deepcopy(self._store[pid])
                for pid in product_ids
                if pid in self._store
            }

    def get_by_name(self, name: str) -> Product | None:
        for p in self._store.values():
            if p.name.lower() == name.lower():
                return copy.deepcopy(p)
        return None

    def list_all(self) -> list[Product]:
        return [copy.deepcopy(p) for p in self._store.values()]

    def save(self, product: Product) -> None:
        with self._lock:
            stored = self._store.get(product.id)
            stored_version = stored.version if stored is not None else 0
            if stored_version != product.version:
                raise ConcurrencyConflictError(
                    f"Product {product.id} was modified concurrently"
                )
            product.version += 1
            self._store[product.id] = copy.deepcopy(product)

    def update_stock(self, product_id: str, operation: Callable[[Product], T]) -> T:
        with self._lock:
            stored = self._store.get(product_id)
            if stored is None:
                raise EntityNotFoundError(f"Product with ID '{product_id}' not found")
            working = copy.deepcopy(stored)
            result = operation(working)
            working.version += 1
            self._store[product_id] = working
            return result


class FakePaymentRepository(PaymentRepository):

    def __init__(self) -> None:
        self._store: dict[str, Payment] = {}

    def get_by_payment_no(self, payment_no: str) -> Payment | None:
        payment = self._store.get(payment_no)
        return copy.deepcopy(payment) if payment is not None else None

    def list_for_order(self, order_no: str) -> list[Payment]:
        return [copy.deepcopy(p) for p in self._store.values() if p.order_no == order_no]

    def save(self, payment: Payment) -> None:
        self._store[payment.payment_no] = copy.deepcopy(payment)


class FakeCompensationJournal(CompensationJournal):

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._entries: dict[str, ReservationEntry] = {}
        self._ids = itertools.count(1)
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def record(self, order_no: str, product_id: str, quantity: int) -> ReservationEntry:
        entry = ReservationEntry(
            entry_id=f"e{next(self._ids)}",
            order_no=order_no,
            product_id=product_id,
            quantity=quantity,
            created_at=self.clock(),
        )
        self._entries[entry.entry_id] = copy.deepcopy(entry)
        return entry

    def mark(self, entry_id: str, state: JournalState, note: str = "") -> None:
        self._entries[entry_id].state = state
        self._entries[entry_id].note = note

    def pending(self) -> list[ReservationEntry]:
        return [copy.deepcopy(e) for e in self._entries.values() if e.state.is_open]

    def for_order(self, order_no: str) -> list[ReservationEntry]:
        return [copy.deepcopy(e) for e in self._entries.values() if e.order_no == order_no]

    def all(self) -> list[ReservationEntry]:
        return list(self._entries.values())


class FakeLockManager(LockManager):

    def __init__(self, busy: bool = False) -> None:
        self.busy = busy
        self.held: set[str] = set()
        self.acquired: list[str] = []

    def acquire(self, key: str, ttl_seconds: int) -> bool:
        if self.busy or key in self.held:
            return False
        self.held.add(key)
        self.acquired.append(key)
        return True

    def release(self, key: str) -> None:
        self.held.discard(key)


class FakePaymentGateway(PaymentGateway):

    def __init__(self, fail_refunds: bool = False) -> None:
        self.fail_refunds = fail_refunds
        self.created: list[str] = []
        self.refunds: list[tuple[str, Money]] = []

    def create_payment(self, payment: Payment) -> dict[str, str]:
        self.created.append(payment.payment_no)
        return {"payment_url": f"https://pay.test/{payment.payment_no}"}

    def refund(self, payment: Payment, amount: Money) -> str:
        if self.fail_refunds:
            raise PaymentGatewayError("Gateway rejected the refund")
        self.refunds.append((payment.payment_no, amount))
        return f"RF-{len(self.refunds)}"
