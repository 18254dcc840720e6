"""JSON-file-backed compensation journal."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path

from storefront.domain.exceptions import EntityNotFoundError
from storefront.domain.model.compensation import JournalState, ReservationEntry
from storefront.domain.repository.compensation_journal import CompensationJournal
from storefront.infrastructure.persistence.json_store import JsonFileStore


class JsonCompensationJournal(CompensationJournal):

    def __init__(self, file_path: Path) -> None:
        self._store = JsonFileStore(file_path)

    def record(self, order_no: str, product_id: str, quantity: int) -> ReservationEntry:
        entry = ReservationEntry(
            entry_id=uuid.uuid4().hex,
            order_no=order_no,
            product_id=product_id,
            quantity=quantity,
            created_at=datetime.now(timezone.utc),
        )
        with self._store.locked():
            rows = self._store.load()
            rows.append(self._to_raw(entry))
            self._store.persist(rows)
        return entry

    def mark(self, entry_id: str, state: JournalState, note: str = "") -> None:
        with self._store.locked():
            rows = self._store.load()
            for raw in rows:
                if raw["entry_id"] == entry_id:
                    raw["state"] = state.value
                    raw["note"] = note
                    break
            else:
                raise EntityNotFoundError(f"Journal entry {entry_id} not found")
            self._store.persist(rows)

    def pending(self) -> list[ReservationEntry]:
        entries = [self._to_domain(raw) for raw in self._store.load()]
        return sorted(
            (e for e in entries if e.state.is_open), key=lambda e: e.created_at
        )

    def for_order(self, order_no: str) -> list[ReservationEntry]:
        return [
            self._to_domain(raw)
            for raw in self._store.load()
            if raw["order_no"] == order_no
        ]

    @staticmethod
    def _to_raw(entry: ReservationEntry) -> dict:
        return {
            "entry_id": entry.entry_id,
            "order_no": entry.order_no,
            "product_id": entry.product_id,
            "quantity": entry.quantity,
            "state": entry.state.value,
            "created_at": entry.created_at.isoformat(),
            "note": entry.note,
        }

    @staticmethod
    def _to_domain(raw: dict) -> ReservationEntry:
        return ReservationEntry(
            entry_id=raw["entry_id"],
            order_no=raw["order_no"],
            product_id=raw["product_id"],
            quantity=raw["quantity"],
            state=JournalState(raw["state"]),
            created_at=datetime.fromisoformat(raw["created_at"]),
            note=raw.get("note", ""),
        )
