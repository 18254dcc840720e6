"""JSON-file-backed implementation of PaymentRepository."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path

from storefront.domain.model.payment import Payment, PaymentMethod, PaymentStatus
from storefront.domain.model.value_objects import Money
from storefront.domain.repository.payment_repository import PaymentRepository
from storefront.infrastructure.persistence.json_store import (
    JsonFileStore,
    from_iso,
    to_iso,
)


class JsonPaymentRepository(PaymentRepository):

    def __init__(self, file_path: Path) -> None:
        self._store = JsonFileStore(file_path)

    def get_by_payment_no(self, payment_no: str) -> Payment | None:
        for raw in self._store.load():
            if raw["payment_no"] == payment_no:
                return self._to_domain(raw)
        return None

    def list_for_order(self, order_no: str) -> list[Payment]:
        # Rows are appended in creation order
        return [
            self._to_domain(raw)
            for raw in self._store.load()
            if raw["order_no"] == order_no
        ]

    def save(self, payment: Payment) -> None:
        with self._store.locked():
            rows = self._store.load()
            for i, raw in enumerate(rows):
                if raw["payment_no"] == payment.payment_no:
                    rows[i] = self._to_raw(payment)
                    break
            else:
                rows.append(self._to_raw(payment))
            self._store.persist(rows)

    @staticmethod
    def _to_raw(p: Payment) -> dict:
        return {
            "payment_no": p.payment_no,
            "order_no": p.order_no,
            "user_id": p.user_id,
            "method": p.method.code,
            "status": p.status.value,
            "currency": p.payment_amount.currency,
            "payment_amount": str(p.payment_amount.amount),
            "fee_amount": str(p.fee_amount.amount),
            "refunded_amount": str(p.refunded_amount.amount),
            "transaction_no": p.transaction_no,
            "payment_url": p.payment_url,
            "created_at": p.created_at.isoformat(),
            "expire_time": to_iso(p.expire_time),
            "payment_time": to_iso(p.payment_time),
            "result_code": p.result_code,
            "result_message": p.result_message,
            "error_code": p.error_code,
            "error_message": p.error_message,
        }

    @staticmethod
    def _to_domain(raw: dict) -> Payment:
        currency = raw.get("currency", "USD")
        return Payment(
            payment_no=raw["payment_no"],
            order_no=raw["order_no"],
            user_id=raw["user_id"],
            method=PaymentMethod.from_code(raw["method"]),
            payment_amount=Money(Decimal(raw["payment_amount"]), currency),
            status=PaymentStatus(raw["status"]),
            fee_amount=Money(Decimal(raw.get("fee_amount", "0.00")), currency),
            refunded_amount=Money(Decimal(raw.get("refunded_amount", "0.00")), currency),
            transaction_no=raw.get("transaction_no", ""),
            payment_url=raw.get("payment_url", ""),
            created_at=datetime.fromisoformat(raw["created_at"]),
            expire_time=from_iso(raw.get("expire_time")),
            payment_time=from_iso(raw.get("payment_time")),
            result_code=raw.get("result_code", ""),
            result_message=raw.get("result_message", ""),
            error_code=raw.get("error_code", ""),
            error_message=raw.get("error_message", ""),
        )
