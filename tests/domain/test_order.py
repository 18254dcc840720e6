"""Unit tests for the Order aggregate and its business rules."""

from datetime import datetime, timedelta, timezone

import pytest

from storefront.domain.exceptions import InvalidTransitionError, ValidationError
from storefront.domain.model.order import Order, OrderItem
from storefront.domain.model.order_state import (
    OrderPaymentStatus,
    OrderStatus,
    ShippingStatus,
)
from storefront.domain.model.value_objects import Money, Quantity

NOW = datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc)


def _make_item(product_id: str = "1", qty: int = 1, price: str = "15.00") -> OrderItem:
    """Helper to build a valid order item."""
    return OrderItem(
        product_id=product_id,
        product_name=f"Product {product_id}",
        quantity=Quantity(qty),
        unit_price=Money.of(price),
    )


def _order(items: list[OrderItem] | None = None, **kwargs) -> Order:
    return Order.create(
        order_no="20261016000000001",
        user_id=7,
        items=items or [_make_item(qty=2, price="10.00")],
        payment_deadline=NOW + timedelta(minutes=30),
        now=NOW,
        **kwargs,
    )


def _paid_order(**kwargs) -> Order:
    order = _order(**kwargs)
    order.start_payment()
    order.mark_paid(NOW)
    return order


def _delivered_order(**kwargs) -> Order:
    order = _paid_order(**kwargs)
    order.ship("UPS", "1Z999", NOW)
    order.confirm_delivery(NOW)
    return order


class TestOrderCreation:

    def test_happy_path(self):
        order = _order()
        assert order.status is OrderStatus.PENDING_PAYMENT
        assert order.payment_status is OrderPaymentStatus.UNPAID
        assert order.shipping_status is ShippingStatus.NOT_SHIPPED
        assert order.total_amount == Money.of("20.00")
        assert order.id is None  # assigned by repository

    def test_actual_amount_adds_shipping_and_subtracts_discount(self):
        order = _order(shipping_fee=Money.of("5.00"), discount_amount=Money.of("3.00"))
        assert order.actual_amount == Money.of("22.00")

    def test_actual_amount_never_negative(self):
        order = _order(discount_amount=Money.of("100.00"))
        assert order.actual_amount == Money.zero()

    def test_51_items_rejected(self):
        items = [_make_item(product_id=str(i)) for i in range(51)]
        with pytest.raises(ValidationError, match="Maximum 50 items"):
            _order(items)

    def test_duplicate_products_rejected(self):
        with pytest.raises(ValidationError, match="only once"):
            _order([_make_item("1"), _make_item("1")])

    def test_user_is_required(self):
        with pytest.raises(ValidationError, match="valid user ID"):
            Order.create(order_no="X1", user_id=0, items=[_make_item()])

    def test_order_number_is_required(self):
        with pytest.raises(ValidationError, match="Order number"):
            Order.create(order_no="  ", user_id=1, items=[_make_item()])


class TestOrderItem:

    def test_item_discount_is_clamped(self):
        item = _make_item(qty=2, price="5.00")
        item.discount_amount = Money.of("50.00")
        assert item.subtotal == Money.of("10.00")
        assert item.actual_amount == Money.zero()

    def test_cannot_ship_more_than_remaining(self):
        item = _make_item(qty=2)
        item.ship(2)
        with pytest.raises(ValidationError, match="only 0 remaining"):
            item.ship(1)


class TestStateMachine:

    def test_pending_cannot_jump_to_delivered(self):
        order = _order()
        with pytest.raises(InvalidTransitionError, match="PENDING_PAYMENT -> DELIVERED"):
            order.update_status(OrderStatus.DELIVERED)
        assert order.status is OrderStatus.PENDING_PAYMENT

    def test_next_statuses_follow_the_table(self):
        assert _order().next_statuses() == {OrderStatus.PAID, OrderStatus.CANCELLED}
        assert _delivered_order().next_statuses() == {
            OrderStatus.COMPLETED,
            OrderStatus.RETURNED,
            OrderStatus.REFUNDED,
        }

    @pytest.mark.parametrize(
        "status", [OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.REFUNDED]
    )
    def test_terminal_statuses_have_no_exits(self, status):
        assert status.is_terminal

    def test_paid_order_cannot_be_cancelled_once_shipped(self):
        order = _paid_order()
        order.shipping_status = ShippingStatus.SHIPPED
        assert not order.can_cancel
        assert not order.can_ship

    def test_predicates_agree_with_update_status(self):
        order = _order()
        assert order.can_cancel
        assert not order.can_ship
        assert not order.can_refund


class TestLifecycle:

    def test_paid_records_amount_and_time(self):
        order = _paid_order(shipping_fee=Money.of("5.00"))
        assert order.status is OrderStatus.PAID
        assert order.payment_status is OrderPaymentStatus.PAID
        assert order.paid_amount == Money.of("25.00")
        assert order.payment_time == NOW

    def test_cancel_unpaid_sets_reason_and_time(self):
        order = _order()
        order.cancel("Changed my mind", now=NOW)
        assert order.status is OrderStatus.CANCELLED
        assert order.cancellation_time == NOW
        assert order.cancel_reason == "Changed my mind"
        assert order.refunded_amount == Money.zero()

    def test_cancel_paid_marks_full_refund(self):
        order = _paid_order()
        order.cancel("Out of stock", now=NOW)
        assert order.status is OrderStatus.CANCELLED
        assert order.payment_status is OrderPaymentStatus.REFUNDED
        assert order.refunded_amount == order.paid_amount

    def test_ship_requires_carrier(self):
        order = _paid_order()
        with pytest.raises(ValidationError, match="Carrier"):
            order.ship("  ", "")
        assert order.status is OrderStatus.PAID

    def test_ship_ships_every_unit(self):
        order = _paid_order()
        order.ship("UPS", "1Z999", NOW)
        assert order.status is OrderStatus.SHIPPED
        assert order.shipping_status is ShippingStatus.SHIPPED
        assert all(item.remaining_quantity == 0 for item in order.items)
        assert order.shipping_time == NOW
        assert order.next_statuses() == {OrderStatus.DELIVERED}

    def test_cannot_ship_unpaid(self):
        with pytest.raises(InvalidTransitionError, match="Cannot ship"):
            _order().ship("UPS", "")

    def test_rejected_ship_leaves_items_untouched(self):
        order = _paid_order()
        with pytest.raises(ValidationError):
            order.ship("", "")
        assert all(item.shipped_quantity == 0 for item in order.items)
        assert order.shipping_status is ShippingStatus.NOT_SHIPPED

    def test_shipping_twice_is_rejected(self):
        order = _paid_order()
        order.ship("UPS", "1Z999", NOW)
        with pytest.raises(InvalidTransitionError):
            order.ship("UPS", "1Z999", NOW)
        assert order.status is OrderStatus.SHIPPED

    def test_deliver_then_complete(self):
        order = _delivered_order()
        order.complete(NOW)
        assert order.status is OrderStatus.COMPLETED
        assert order.completion_time == NOW
        assert order.can_review

    def test_payment_deadline(self):
        order = _order()
        assert order.can_pay(NOW)
        assert order.is_payment_expired(NOW + timedelta(minutes=31))
        assert not order.can_pay(NOW + timedelta(minutes=31))

    def test_failed_payment_can_be_retried(self):
        order = _order()
        order.start_payment()
        order.mark_payment_failed()
        assert order.payment_status is OrderPaymentStatus.FAILED
        order.start_payment()
        assert order.payment_status is OrderPaymentStatus.PAYING


class TestReturnsAndRefunds:

    def test_return_validates_before_mutating(self):
        order = _delivered_order(items=[_make_item("1", qty=2), _make_item("2", qty=1)])
        with pytest.raises(ValidationError, match="only 1 returnable"):
            order.return_items({"1": 1, "2": 2})
        assert all(item.returned_quantity == 0 for item in order.items)
        assert order.status is OrderStatus.DELIVERED

    def test_return_moves_to_returned(self):
        order = _delivered_order()
        order.return_items({"1": 1}, NOW)
        assert order.status is OrderStatus.RETURNED
        assert order.shipping_status is ShippingStatus.RETURNED
        assert order.items[0].returned_quantity == 1

    def test_partial_refund_then_full_refund(self):
        order = _delivered_order()
        assert not order.apply_refund(Money.of("5.00"))
        assert order.payment_status is OrderPaymentStatus.PARTIAL_REFUNDED
        assert order.status is OrderStatus.DELIVERED

        assert order.apply_refund(Money.of("15.00"))
        assert order.status is OrderStatus.REFUNDED
        assert order.payment_status is OrderPaymentStatus.REFUNDED
        assert order.refunded_amount == order.paid_amount

    def test_refund_cannot_exceed_paid(self):
        order = _delivered_order()
        with pytest.raises(ValidationError, match="exceeds refundable"):
            order.apply_refund(Money.of("20.01"))

    def test_refund_goes_to_returned_items_first(self):
        order = _delivered_order(items=[_make_item("1", price="10.00"), _make_item("2", price="10.00")])
        order.return_items({"2": 1})
        order.apply_refund(Money.of("10.00"))
        refunds = {item.product_id: item.refund_amount for item in order.items}
        assert refunds == {"1": Money.zero(), "2": Money.of("10.00")}


class TestSoftDelete:

    def test_only_finished_orders_can_be_deleted(self):
        order = _order()
        with pytest.raises(ValidationError, match="can be deleted"):
            order.mark_deleted()
        order.cancel()
        order.mark_deleted()
        assert order.is_deleted

    def test_restore(self):
        order = _order()
        order.cancel()
        order.mark_deleted()
        order.restore()
        assert not order.is_deleted
        with pytest.raises(ValidationError, match="not deleted"):
            order.restore()
