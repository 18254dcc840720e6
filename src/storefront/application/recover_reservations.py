"""Application service: resolve stock reservations left open by a crash.

Entries younger than ``min_age`` are skipped; they may belong to an order
that is still being created.

An entry whose order reached storage belongs to that order, whatever its
status: cancelling or expiring the order releases its stock on its own.
Without an order, the product's reservation hold tells whether the
reservation was applied, so an entry still PENDING is either released or
abandoned, never guessed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from storefront.domain.exceptions import DomainException
from storefront.domain.model.compensation import JournalState, ReservationEntry
from storefront.domain.repository.compensation_journal import CompensationJournal
from storefront.domain.repository.order_repository import OrderRepository
from storefront.domain.repository.product_repository import ProductRepository
from storefront.domain.service.stock_reservation_service import StockReservationService

logger = logging.getLogger(__name__)

DEFAULT_MIN_AGE = timedelta(minutes=5)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RecoveryReport:
    committed: int = 0
    compensated: int = 0
    abandoned: int = 0
    stranded: int = 0


class RecoverCompensationsHandler:

    def __init__(
        self,
        journal: CompensationJournal,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._journal = journal
        self._order_repo = order_repo
        self._stock = StockReservationService(product_repo)
        self._clock = clock

    def handle(self, min_age: timedelta = DEFAULT_MIN_AGE) -> RecoveryReport:
        cutoff = self._clock() - min_age
        report = RecoveryReport()
        for entry in self._journal.pending():
            if entry.created_at > cutoff:
                continue
            self._resolve(entry, report)
        return report

    def _resolve(self, entry: ReservationEntry, report: RecoveryReport) -> None:
        order = self._order_repo.get_by_order_no(entry.order_no, include_deleted=True)
        if order is not None:
            self._stock.commit([entry], self._journal)
            report.committed += 1
            return

        if not self._stock.is_applied(entry):
            self._journal.mark(
                entry.entry_id, JournalState.ABANDONED, "no order; reservation never applied"
            )
            logger.warning(
                "Abandoned unapplied reservation of %d x %s for order %s",
                entry.quantity, entry.product_id, entry.order_no,
            )
            report.abandoned += 1
            return

        try:
            self._stock.release_line(entry.product_id, entry.quantity, hold=entry.entry_id)
        except DomainException:
            logger.exception(
                "Stranded reservation of %d x %s for order %s",
                entry.quantity, entry.product_id, entry.order_no,
            )
            report.stranded += 1
            return
        self._journal.mark(entry.entry_id, JournalState.COMPENSATED, "released by recovery")
        logger.warning(
            "Released %d x %s left reserved by failed order %s",
            entry.quantity, entry.product_id, entry.order_no,
        )
        report.compensated += 1
