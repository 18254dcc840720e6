"""Application service: Create Order use case.

Orchestrates checkout end to end:

1. take a short-lived advisory lock for ``user + order number``
2. validate the request and the referenced products (existence, price,
   available stock) before touching any stock
3. reserve stock line by line through the compensation journal
4. persist the order and its payment record
5. hand back the payment-initiation parameters

If anything fails after reservations began, the reserved lines are
released again and the original error is re-raised.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from storefront.application.dto import (
    CreateOrderCommand,
    OrderCreationResult,
    OrderItemSpec,
    format_time,
)
from storefront.domain.exceptions import (
    EntityNotFoundError,
    InsufficientStockError,
    LockUnavailableError,
    PriceChangedError,
    ValidationError,
)
from storefront.domain.model.order import MAX_LINE_ITEMS, Order, OrderItem
from storefront.domain.model.payment import Payment, PaymentMethod
from storefront.domain.model.product import Product
from storefront.domain.model.value_objects import Money
from storefront.domain.repository.compensation_journal import CompensationJournal
from storefront.domain.repository.order_repository import OrderRepository
from storefront.domain.repository.payment_repository import PaymentRepository
from storefront.domain.repository.product_repository import ProductRepository
from storefront.domain.service.order_number import OrderNumberGenerator
from storefront.domain.service.ports import LockManager, PaymentGateway
from storefront.domain.service.stock_reservation_service import StockReservationService

logger = logging.getLogger(__name__)

ORDER_LOCK_PREFIX = "order:lock:"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CreateOrderHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        payment_repo: PaymentRepository,
        journal: CompensationJournal,
        lock_manager: LockManager,
        payment_gateway: PaymentGateway,
        order_numbers: OrderNumberGenerator,
        stock: StockReservationService | None = None,
        lock_ttl_seconds: int = 30,
        payment_timeout_minutes: int = 30,
        max_line_items: int = MAX_LINE_ITEMS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._order_repo = order_repo
        self._product_repo = product_repo
        self._payment_repo = payment_repo
        self._journal = journal
        self._locks = lock_manager
        self._gateway = payment_gateway
        self._order_numbers = order_numbers
        self._stock = stock or StockReservationService(product_repo)
        self._lock_ttl_seconds = lock_ttl_seconds
        self._payment_timeout = timedelta(minutes=payment_timeout_minutes)
        self._max_line_items = max_line_items
        self._clock = clock

    def handle(self, command: CreateOrderCommand) -> OrderCreationResult:
        order_no = self._order_numbers.generate()
        lock_key = f"{ORDER_LOCK_PREFIX}{command.user_id}:{order_no}"

        if not self._locks.acquire(lock_key, self._lock_ttl_seconds):
            logger.warning("Order lock busy for user %s (%s)", command.user_id, order_no)
            raise LockUnavailableError("Order creation in progress, please try again")

        try:
            return self._create(order_no, command)
        finally:
            self._locks.release(lock_key)

    # --- Steps ----------------------------------------------------------------

    def _create(self, order_no: str, command: CreateOrderCommand) -> OrderCreationResult:
        logger.info(
            "Creating order %s for user %s with %d line(s)",
            order_no, command.user_id, len(command.items),
        )
        self._validate_request(command)
        method = PaymentMethod.from_code(command.payment_method)
        products = self._load_products(command.items)

        now = self._clock()
        order = Order.create(
            order_no=order_no,
            user_id=command.user_id,
            items=[
                OrderItem.snapshot(products[spec.product_id], spec.quantity)
                for spec in command.items
            ],
            shipping_fee=Money.of(command.shipping_fee),
            discount_amount=Money.of(command.discount_amount),
            receiver_name=command.receiver_name,
            receiver_address=command.receiver_address,
            user_remark=command.user_remark,
            payment_deadline=now + self._payment_timeout,
            max_line_items=self._max_line_items,
            now=now,
        )
        if order.actual_amount.is_zero:
            raise ValidationError("Discount leaves nothing to pay for this order")

        lines =[(spec.product_id, spec.quantity) for spec in command.items]
        entries = self._stock.reserve_for_order(order_no, lines, self._journal)

        try:
            payment = Payment.initiate(
                payment_no=f"PAY{order_no}",
                order_no=order_no,
                user_id=command.user_id,
                method=method,
                amount=order.actual_amount,
                expires_in=self._payment_timeout,
                now=now,
            )
            params = self._gateway.create_payment(payment)
            payment.payment_url = params["payment_url"]
            self._order_repo.save(order)
            self._payment_repo.save(payment)
        except Exception:
            logger.exception(
                "Creating order %s failed after reserving stock; compensating", order_no
            )
            self._stock.compensate(entries, self._journal)
            if order.id is not None:
                order.cancel("Order creation failed", now=now)
                self._order_repo.save(order)
            raise

        self._stock.commit(entries, self._journal)
        logger.info(
            "Order %s created: total %s, payable %s", order_no, order.total_amount, order.actual_amount
        )
        return OrderCreationResult(
            order_no=order_no,
            total_amount=str(order.total_amount),
            actual_amount=str(order.actual_amount),
            payment_no=payment.payment_no,
            payment_url=payment.payment_url,
            payment_deadline=format_time(order.payment_deadline) or "",
            payment_params=dict(params),
        )

    def _validate_request(self, command: CreateOrderCommand) -> None:
        if not command.items:
            raise ValidationError("Order must contain at least one item")
        if len(command.items) > self._max_line_items:
            raise ValidationError(f"Maximum {self._max_line_items} items per order")
        for spec in command.items:
            if not isinstance(spec.quantity, int) or spec.quantity <= 0:
                raise ValidationError(
                    f"Quantity for product '{spec.product_id}' must be positive"
                )

    def _load_products(self, specs: list[OrderItemSpec]) -> dict[str, Product]:
        """Batch-load products and check each line before any stock moves."""
        products = self._product_repo.get_many([spec.product_id for spec in specs])

        for spec in specs:
            product = products.get(spec.product_id)
            if product is None:
                raise EntityNotFoundError(f"Product not found: '{spec.product_id}'")
            if not product.status.is_visible:
                raise ValidationError(f"Product {product.name} is not for sale")
            if spec.unit_price is not None and Money.of(spec.unit_price) != product.price:
                raise PriceChangedError(
                    f"Price of {product.name} changed to {product.price}, please refresh"
                )
            if spec.quantity > product.available_stock:
                raise InsufficientStockError(
                    f"Insufficient stock for {product.name} "
                    f"(need {spec.quantity}, have {product.available_stock} available)"
                )
        return products
