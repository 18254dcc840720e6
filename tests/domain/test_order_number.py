"""Unit tests for order-number generation."""

import threading
from datetime import datetime, timezone

from storefront.domain.model.order import Order, OrderItem
from storefront.domain.model.value_objects import Money, Quantity
from storefront.domain.service.order_number import OrderNumberGenerator
from tests.fakes import FakeOrderRepository

DAY = datetime(2026, 10, 16, 9, 30, tzinfo=timezone.utc)


def _store(repo: FakeOrderRepository, order_no: str) -> None:
    item = OrderItem(
        product_id="1", product_name="Widget", quantity=Quantity(1), unit_price=Money.of("1.00")
    )
    repo.save(Order.create(order_no=order_no, user_id=1, items=[item]))


class TestOrderNumberFormat:

    def test_date_prefix_and_nine_digit_sequence(self):
        gen = OrderNumberGenerator(FakeOrderRepository(), clock=lambda: DAY)
        assert gen.generate() == "20261016000000001"
        assert gen.generate() == "20261016000000002"

    def test_continues_after_stored_numbers(self):
        repo = FakeOrderRepository()
        _store(repo, "20261016000000041")
        gen = OrderNumberGenerator(repo, clock=lambda: DAY)
        assert gen.generate() == "20261016000000042"

    def test_new_day_restarts_sequence(self):
        repo = FakeOrderRepository()
        _store(repo, "20261015000000900")
        gen = OrderNumberGenerator(repo, clock=lambda: DAY)
        assert gen.generate() == "20261016000000001"


class TestOrderNumberUniqueness:

    def test_hundred_sequential_calls_are_unique(self):
        gen = OrderNumberGenerator(FakeOrderRepository(), clock=lambda: DAY)
        numbers = [gen.generate() for _ in range(100)]
        assert len(set(numbers)) == 100
        assert numbers == sorted(numbers)

    def test_concurrent_calls_are_unique(self):
        gen = OrderNumberGenerator(FakeOrderRepository(), clock=lambda: DAY)
        results: list[str] = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            for _ in range(25):
                results.append(gen.generate())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(results) == 200
        assert len(set(results)) == 200

    def test_skips_numbers_taken_by_another_writer(self):
        repo = FakeOrderRepository()
        gen = OrderNumberGenerator(repo, clock=lambda: DAY)
        assert gen.generate() == "20261016000000001"
        _store(repo, "20261016000000002")
        assert gen.generate() == "20261016000000003"

    def test_falls_back_to_timestamp_after_max_attempts(self):
        class AlwaysTaken(FakeOrderRepository):
            def exists_order_no(self, order_no: str) -> bool:
                return True

        gen = OrderNumberGenerator(AlwaysTaken(), clock=lambda: DAY, max_attempts=3)
        number = gen.generate()
        expected_suffix = int(DAY.timestamp()) % 10**9
        assert number == f"20261016{expected_suffix:09d}"
