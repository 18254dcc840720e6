"""Tests for settings, the lock manager and the stub payment gateway."""

import logging
from pathlib import Path

import pytest

from storefront.config import Settings
from storefront.domain.exceptions import PaymentGatewayError
from storefront.domain.model.payment import Payment, PaymentMethod
from storefront.domain.model.value_objects import Money
from storefront.infrastructure.locking import InMemoryLockManager
from storefront.infrastructure.payment_gateway import StubPaymentGateway
from storefront.logging_setup import configure_logging


class TestSettings:

    def test_defaults(self, monkeypatch):
        for name in ("DATA_DIR", "PAYMENT_TIMEOUT_MINUTES", "LOG_LEVEL"):
            monkeypatch.delenv(f"STOREFRONT_{name}", raising=False)
        settings = Settings.from_env()
        assert settings.data_dir == Path("data")
        assert settings.payment_timeout_minutes == 30
        assert settings.order_lock_ttl_seconds == 30
        assert settings.log_level == "INFO"

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("STOREFRONT_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("STOREFRONT_PAYMENT_TIMEOUT_MINUTES", "15")
        monkeypatch.setenv("STOREFRONT_LOG_LEVEL", "debug")
        settings = Settings.from_env()
        assert settings.data_dir == tmp_path
        assert settings.payment_timeout_minutes == 15
        assert settings.log_level == "DEBUG"

    def test_bad_integer_names_the_variable(self, monkeypatch):
        monkeypatch.setenv("STOREFRONT_MAX_LINE_ITEMS", "lots")
        with pytest.raises(ValueError, match="STOREFRONT_MAX_LINE_ITEMS"):
            Settings.from_env()


class TestLogging:

    def test_configure_is_idempotent(self):
        log = configure_logging("DEBUG")
        configure_logging("WARNING")
        ours = [h for h in log.handlers if getattr(h, "_storefront", False)]
        assert len(ours) == 1
        assert log.level == logging.WARNING


class TestLockManager:

    def test_lock_is_exclusive_until_released(self):
        locks = InMemoryLockManager()
        assert locks.acquire("order:lock:1:A", 30)
        assert not locks.acquire("order:lock:1:A", 30)
        locks.release("order:lock:1:A")
        assert locks.acquire("order:lock:1:A", 30)

    def test_lock_expires_after_ttl(self):
        now = [100.0]
        locks = InMemoryLockManager(clock=lambda: now[0])
        assert locks.acquire("k", 30)
        now[0] += 31
        assert not locks.is_held("k")
        assert locks.acquire("k", 30)

    def test_release_unknown_key_is_noop(self):
        InMemoryLockManager().release("missing")


class TestStubPaymentGateway:

    def _payment(self) -> Payment:
        return Payment.initiate("PAY1", "A1", 7, PaymentMethod.ALIPAY, Money.of("10.00"))

    def test_payment_params_are_deterministic(self):
        params = StubPaymentGateway("https://pay.test/").create_payment(self._payment())
        assert params["payment_url"] == "https://pay.test/PAY1"
        assert params["amount"] == "10.06"

    def test_refund_is_recorded(self):
        gateway = StubPaymentGateway()
        payment = self._payment()
        payment.mark_success("T1")
        assert gateway.refund(payment, Money.of("4.00")) == "RFPAY1-1"
        assert gateway.refunds == [("PAY1", Money.of("4.00"))]

    def test_refund_beyond_payment_refused(self):
        gateway = StubPaymentGateway()
        with pytest.raises(PaymentGatewayError):
            gateway.refund(self._payment(), Money.of("10.01"))
