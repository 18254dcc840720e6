"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.

Settings are re-read from the environment on every call so each CLI
invocation (and each test) sees its own ``STOREFRONT_DATA_DIR``.
"""

from __future__ import annotations

from storefront.config import Settings
from storefront.domain.service.order_number import OrderNumberGenerator
from storefront.infrastructure.locking import InMemoryLockManager
from storefront.infrastructure.payment_gateway import StubPaymentGateway
from storefront.infrastructure.persistence.json_compensation_journal import (
    JsonCompensationJournal,
)
from storefront.infrastructure.persistence.json_order_repository import (
    JsonOrderRepository,
)
from storefront.infrastructure.persistence.json_payment_repository import (
    JsonPaymentRepository,
)
from storefront.infrastructure.persistence.json_product_repository import (
    JsonProductRepository,
)

# Process-wide collaborators: one lock table and one gateway per process.
_LOCK_MANAGER = InMemoryLockManager()
_PAYMENT_GATEWAY = StubPaymentGateway()


def settings() -> Settings:
    return Settings.from_env()


def product_repository() -> JsonProductRepository:
    return JsonProductRepository(settings().data_dir / "products.json")


def order_repository() -> JsonOrderRepository:
    return JsonOrderRepository(settings().data_dir / "orders.json")


def payment_repository() -> JsonPaymentRepository:
    return JsonPaymentRepository(settings().data_dir / "payments.json")


def compensation_journal() -> JsonCompensationJournal:
    return JsonCompensationJournal(settings().data_dir / "reservations.json")


def order_number_generator(order_repo: JsonOrderRepository) -> OrderNumberGenerator:
    return OrderNumberGenerator(order_repo, max_attempts=settings().order_no_max_attempts)


def lock_manager() -> InMemoryLockManager:
    return _LOCK_MANAGER


def payment_gateway() -> StubPaymentGateway:
    return _PAYMENT_GATEWAY
