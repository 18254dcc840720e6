"""Tests for the periodic jobs: unpaid-order expiry and reservation recovery."""

from datetime import timedelta

from storefront.application.cancel_order import CancelOrderHandler
from storefront.application.expire_orders import ExpireUnpaidOrdersHandler
from storefront.application.pay_order import InitiatePaymentHandler
from storefront.application.recover_reservations import RecoverCompensationsHandler
from storefront.domain.model.compensation import JournalState
from storefront.domain.model.order_state import OrderStatus
from storefront.domain.model.payment import PaymentStatus
from storefront.domain.service.stock_reservation_service import StockReservationService
from tests.builders import make_world


def _expire(world):
    return ExpireUnpaidOrdersHandler(
        world.orders, world.products, world.payments, clock=world.clock
    ).handle()


def _recover(world, min_age=timedelta(minutes=5)):
    return RecoverCompensationsHandler(
        world.journal, world.orders, world.products, clock=world.clock
    ).handle(min_age)


class TestExpireUnpaidOrders:

    def test_expired_order_is_cancelled_and_stock_released(self):
        world = make_world()
        order_no = world.place(("1", 2), ("2", 2))
        world.advance(minutes=31)

        report = _expire(world)

        assert report.expired == [order_no]
        order = world.order(order_no)
        assert order.status is OrderStatus.CANCELLED
        assert order.cancel_reason == "Payment timeout"
        assert world.stock("1") == (5, 0, 0)
        assert world.stock("2") == (2, 0, 0)
        payment = world.payments.list_for_order(order_no)[0]
        assert payment.status is PaymentStatus.TIMEOUT

    def test_processing_payment_is_cancelled(self):
        world = make_world()
        order_no = world.place(("1", 1))
        InitiatePaymentHandler(
            world.orders, world.payments, world.gateway, clock=world.clock
        ).handle(order_no, user_id=7)
        world.advance(minutes=31)

        _expire(world)

        payment = world.payments.list_for_order(order_no)[0]
        assert payment.status is PaymentStatus.CANCELLED

    def test_orders_within_deadline_are_left_alone(self):
        world = make_world()
        order_no = world.place(("1", 1))
        world.advance(minutes=29)

        report = _expire(world)

        assert report.expired == []
        assert world.order(order_no).status is OrderStatus.PENDING_PAYMENT
        assert world.stock("1") == (4, 1, 0)

    def test_paid_orders_are_never_expired(self):
        world = make_world()
        order_no = world.place(("1", 1))
        world.pay(order_no)
        world.advance(hours=2)

        assert _expire(world).expired == []
        assert world.order(order_no).status is OrderStatus.PAID

    def test_one_broken_order_does_not_stop_the_sweep(self):
        world = make_world()
        broken = world.place(("1", 1))
        healthy = world.place(("2", 1))
        # Simulate drift: someone already released the broken order's units
        StockReservationService(world.products).release_line("1", 1)
        world.advance(minutes=31)

        report = _expire(world)

        assert report.failed == [broken]
        assert report.expired == [healthy]
        assert world.order(broken).status is OrderStatus.PENDING_PAYMENT


class TestRecoverReservations:

    def test_entries_for_existing_orders_are_committed(self):
        world = make_world()
        order_no = world.place(("1", 1))
        # Crash between saving the order and committing the journal
        for entry in world.journal.for_order(order_no):
            world.journal.mark(entry.entry_id, JournalState.RESERVED)
        world.advance(minutes=10)

        report = _recover(world)

        assert report.committed == 1
        assert world.stock("1") == (4, 1, 0)
        assert world.journal.pending() == []

    def test_cancelled_order_entries_are_not_released_twice(self):
        world = make_world()
        first = world.place(("1", 2))
        for entry in world.journal.for_order(first):
            world.journal.mark(entry.entry_id, JournalState.RESERVED)
        CancelOrderHandler(world.orders, world.products, world.payments, world.gateway).handle(
            first
        )
        second = world.place(("1", 3))
        assert world.stock("1") == (2, 3, 0)
        world.advance(minutes=10)

        report = _recover(world)

        assert report.committed == 1
        assert report.compensated == 0
        assert world.stock("1") == (2, 3, 0)
        assert world.order(second).status is OrderStatus.PENDING_PAYMENT

    def test_pending_entry_whose_reservation_applied_is_released(self):
        world = make_world()
        # Crash after the stock moved but before the entry was marked RESERVED
        entry = world.journal.record("GHOST", "1", 2)
        StockReservationService(world.products).reserve_line("1", 2, hold=entry.entry_id)
        world.advance(minutes=10)

        report = _recover(world)

        assert report.compensated == 1
        assert report.abandoned == 0
        assert world.stock("1") == (5, 0, 0)
        assert world.products.get_by_id("1").reservation_holds == []
        assert world.journal.pending() == []

    def test_reserved_entry_without_order_is_released(self):
        world = make_world()
        svc = StockReservationService(world.products)
        svc.reserve_line("1", 2)
        entry = world.journal.record("GHOST", "1", 2)
        world.journal.mark(entry.entry_id, JournalState.RESERVED)
        world.advance(minutes=10)

        report = _recover(world)

        assert report.compensated == 1
        assert world.stock("1") == (5, 0, 0)
        assert world.journal.pending() == []

    def test_pending_entry_without_order_is_abandoned(self):
        world = make_world()
        world.journal.record("GHOST", "1", 2)
        world.advance(minutes=10)

        report = _recover(world)

        assert report.abandoned == 1
        assert world.stock("1") == (5, 0, 0)
        assert [e.state for e in world.journal.all()] == [JournalState.ABANDONED]

    def test_recent_entries_are_skipped(self):
        world = make_world()
        world.journal.record("IN-FLIGHT", "1", 1)

        report = _recover(world, min_age=timedelta(hours=1))

        assert report.abandoned == 0
        assert len(world.journal.pending()) == 1

    def test_release_failure_leaves_entry_for_next_run(self):
        world = make_world()
        entry = world.journal.record("GHOST", "1", 3)
        world.journal.mark(entry.entry_id, JournalState.RESERVED)
        world.advance(minutes=10)

        report = _recover(world)

        assert report.stranded == 1
        assert len(world.journal.pending()) == 1
