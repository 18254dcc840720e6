"""Domain service: Stock Reservation.

Coordinates stock movements across several products for one order.
Every single-product movement goes through ``ProductRepository.update_stock``
so the check-and-decrement of the counters happens as one step and
concurrent reservations cannot both spend the same units.

Reserving for a whole order follows a journaled saga: each line is written
to the compensation journal *before* its stock is reserved, and released
again if a later line fails.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from storefront.domain.exceptions import DomainException, EntityNotFoundError
from storefront.domain.model.compensation import JournalState, ReservationEntry
from storefront.domain.model.order import Order
from storefront.domain.model.product import Product
from storefront.domain.repository.compensation_journal import CompensationJournal
from storefront.domain.repository.product_repository import ProductRepository
from storefront.domain.service.concurrency import run_with_retry

logger = logging.getLogger(__name__)


class StockReservationService:

    def __init__(
        self,
        product_repo: ProductRepository,
        retry_attempts: int = 3,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._product_repo = product_repo
        self._retry_attempts = retry_attempts
        self._sleep = sleep

    # --- Single product -------------------------------------------------------

    def reserve_line(self, product_id: str, quantity: int, hold: str = "") -> None:
        self._product_repo.update_stock(product_id, lambda p: p.reserve(quantity, hold))

    def release_line(self, product_id: str, quantity: int, hold: str = "") -> None:
        self._product_repo.update_stock(
            product_id, lambda p: p.release_reserved(quantity, hold)
        )

    def is_applied(self, entry: ReservationEntry) -> bool:
        """Whether the journaled reservation reached the stock counters."""
        if entry.state is JournalState.RESERVED:
            return True
        product = self._product_repo.get_by_id(entry.product_id)
        return product is not None and product.has_hold(entry.entry_id)

    def confirm_line(self, product_id: str, quantity: int) -> int:
        return self._product_repo.update_stock(
            product_id, lambda p: p.confirm_reserved(quantity)
        )

    def restock(self, product_id: str, quantity: int) -> Product:
        """Add stock with a load/modify/save cycle guarded by the version check."""

        def attempt() -> Product:
            product = self._product_repo.get_by_id(product_id)
            if product is None:
                raise EntityNotFoundError(f"Product with ID '{product_id}' not found")
            product.add_stock(quantity)
            self._product_repo.save(product)
            return product

        return run_with_retry(attempt, attempts=self._retry_attempts, sleep=self._sleep)

    # --- Whole order ----------------------------------------------------------

    def reserve_for_order(
        self,
        order_no: str,
        lines: list[tuple[str, int]],
        journal: CompensationJournal,
    ) -> list[ReservationEntry]:
        """Reserve every ``(product_id, quantity)`` line or none of them.

        Each reservation carries its journal entry id as a hold on the
        product.  On failure, lines already reserved are released and the
        original exception is re-raised.
        """
        entries: list[ReservationEntry] = []
        try:
            for product_id, quantity in lines:
                entry = journal.record(order_no, product_id, quantity)
                entries.append(entry)
                self.reserve_line(product_id, quantity, hold=entry.entry_id)
                self._mark(journal, entry, JournalState.RESERVED)
        except Exception:
            self.compensate(entries, journal)
            raise
        return entries

    def compensate(self, entries: list[ReservationEntry], journal: CompensationJournal) -> None:
        """Undo applied lines, newest first.

        A line whose release fails stays open in the journal so the
        recovery sweep can retry it later.
        """
        for entry in reversed(entries):
            if not entry.state.is_open:
                continue
            if not self.is_applied(entry):
                self._mark(
                    journal, entry, JournalState.ABANDONED, "reservation was not applied"
                )
                continue
            try:
                self.release_line(entry.product_id, entry.quantity, hold=entry.entry_id)
            except DomainException:
                logger.exception(
                    "Could not release %d of product %s for order %s; left for recovery",
                    entry.quantity, entry.product_id, entry.order_no,
                )
                continue
            self._mark(journal, entry, JournalState.COMPENSATED)
            logger.warning(
                "Released %d of product %s reserved for failed order %s",
                entry.quantity, entry.product_id, entry.order_no,
            )

    def commit(self, entries: list[ReservationEntry], journal: CompensationJournal) -> None:
        """Hand the reservations over to the persisted order."""
        for entry in entries:
            self._mark(journal, entry, JournalState.COMMITTED)
            self._product_repo.update_stock(
                entry.product_id, lambda p, hold=entry.entry_id: p.drop_hold(hold)
            )

    def release_for_order(self, order: Order) -> None:
        """Release reserved stock for every unshipped unit of the order, or none.

        If a line cannot be released, the lines already released are
        reserved again before the error is re-raised.
        """
        released: list[tuple[str, int]] = []
        try:
            for product_id, quantity in self._unshipped(order):
                self.release_line(product_id, quantity)
                released.append((product_id, quantity))
        except Exception:
            self._reserve_again(released, order.order_no)
            raise

    def restore_for_order(self, order: Order) -> None:
        """Undo ``release_for_order`` when the step after it fails."""
        self._reserve_again(self._unshipped(order), order.order_no)

    def _reserve_again(self, lines: list[tuple[str, int]], order_no: str) -> None:
        for product_id, quantity in reversed(lines):
            try:
                self.reserve_line(product_id, quantity)
            except DomainException:
                logger.exception(
                    "Could not reserve %d of product %s again for order %s",
                    quantity, product_id, order_no,
                )

    @staticmethod
    def _unshipped(order: Order) -> list[tuple[str, int]]:
        return [
            (item.product_id, item.remaining_quantity)
            for item in order.items
            if item.remaining_quantity > 0
        ]

    def confirm_for_order(self, quantities: dict[str, int]) -> None:
        """Move reserved units out of the warehouse at shipping time."""
        for product_id, quantity in quantities.items():
            self.confirm_line(product_id, quantity)

    @staticmethod
    def _mark(
        journal: CompensationJournal,
        entry: ReservationEntry,
        state: JournalState,
        note: str = "",
    ) -> None:
        journal.mark(entry.entry_id, state, note)
        entry.state = state
        entry.note = note
