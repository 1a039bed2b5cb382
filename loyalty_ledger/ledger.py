"""Ledger reducers and the single-writer store that persists them."""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import tzinfo
from typing import Callable, Optional, Protocol, Tuple

from .errors import DuplicateRolloverAttempt, NonPositiveAward, StaleRolloverResult
from .models import ArchivedYear, BannerState, LedgerState, RolloverResult, Snapshot, Transaction, YearSummary
from .rollover import execute_rollover, rollover_due
from .schema import LedgerDocument

logger = logging.getLogger(__name__)


class Storage(Protocol):
    def load(self) -> LedgerDocument: ...

    def save(self, document: LedgerDocument) -> None: ...


def append(state: LedgerState, transaction: Transaction) -> LedgerState:
    """Return ``state`` with ``transaction`` prepended and counted."""

    if transaction.points <= 0:
        raise NonPositiveAward(f"transaction {transaction.id} carries {transaction.points} points")
    return replace(
        state,
        total_points=state.total_points + transaction.points,
        transactions=(transaction,) + state.transactions,
    )


def apply_rollover(
    snapshot: Snapshot,
    result: RolloverResult,
    banner: Optional[BannerState] = None,
) -> Snapshot:
    """Commit ``result`` onto ``snapshot`` if it was computed from it.

    The check is a compare-and-set on ``last_reset_year``: a result built
    from an older ledger, one that repeats an archived year, or one that does
    not move ``last_reset_year`` forward is refused.
    """

    ledger = snapshot.ledger
    new_year = result.new_ledger.last_reset_year
    entry = result.archived

    if result.base_reset_year != ledger.last_reset_year:
        raise DuplicateRolloverAttempt(
            f"rollover computed from last_reset_year={result.base_reset_year}, "
            f"ledger is at {ledger.last_reset_year}"
        )
    if ledger.last_reset_year and new_year <= ledger.last_reset_year:
        raise DuplicateRolloverAttempt(f"ledger already reset for {ledger.last_reset_year}, cannot roll to {new_year}")
    if any(existing.year >= entry.year for existing in snapshot.archived_years):
        raise DuplicateRolloverAttempt(f"year {entry.year} is already archived or precedes the archive")
    if result.archived_years[:-1] != snapshot.archived_years:
        raise StaleRolloverResult("rollover result was computed from a different archive")
    if entry.transactions != ledger.transactions or entry.total_points != ledger.total_points:
        raise StaleRolloverResult("ledger changed after the rollover result was computed")

    return Snapshot(
        ledger=result.new_ledger,
        archived_years=result.archived_years,
        banner=banner if banner is not None else snapshot.banner,
    )


def year_summary(state: LedgerState, year: int, tz: Optional[tzinfo] = None) -> YearSummary:
    in_year = [txn for txn in state.transactions if txn.year_in(tz) == year]
    return YearSummary(year=year, transaction_count=len(in_year), points=sum(t.points for t in in_year))


class LedgerStore:
    """Hold the live snapshot and persist every mutation before publishing it.

    All writers go through one lock, so an award cannot interleave with a
    rollover. State is only replaced in memory after ``storage.save``
    returns; a failed save leaves the previous snapshot in place and the
    error propagates to the caller.
    """

    def __init__(self, storage: Storage) -> None:
        self.storage = storage
        self._lock = threading.Lock()
        self._snapshot = storage.load().to_snapshot()

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def ledger(self) -> LedgerState:
        return self._snapshot.ledger

    @property
    def archived_years(self) -> Tuple[ArchivedYear, ...]:
        return self._snapshot.archived_years

    @property
    def banner(self) -> BannerState:
        return self._snapshot.banner

    def _commit(self, snapshot: Snapshot) -> Snapshot:
        self.storage.save(LedgerDocument.from_snapshot(snapshot))
        self._snapshot = snapshot
        return snapshot

    def append(self, transaction: Transaction) -> LedgerState:
        with self._lock:
            ledger = append(self._snapshot.ledger, transaction)
            self._commit(replace(self._snapshot, ledger=ledger))
        logger.info(
            "points appended",
            extra={"transaction_id": transaction.id, "points": transaction.points, "total_points": ledger.total_points},
        )
        return ledger

    def apply_rollover(self, result: RolloverResult, banner: Optional[BannerState] = None) -> Snapshot:
        with self._lock:
            return self._apply_rollover(result, banner)

    def _apply_rollover(self, result: RolloverResult, banner: Optional[BannerState]) -> Snapshot:
        snapshot = self._commit(apply_rollover(self._snapshot, result, banner))
        logger.info(
            "loyalty year archived",
            extra={
                "archived_year": result.archived.year,
                "previous_points": result.previous_points,
                "last_reset_year": result.new_ledger.last_reset_year,
            },
        )
        return snapshot

    def rollover_if_due(
        self,
        current_year: int,
        banner_for: Optional[Callable[[RolloverResult], BannerState]] = None,
        tz: Optional[tzinfo] = None,
    ) -> Optional[RolloverResult]:
        """Check and roll over in one critical section.

        ``tz`` is the zone ``current_year`` was read in; transaction years
        are taken in the same zone. Returns the committed result, or
        ``None`` when no rollover was due.
        """

        with self._lock:
            ledger = self._snapshot.ledger
            if not rollover_due(ledger, current_year, tz):
                return None
            result = execute_rollover(ledger, self._snapshot.archived_years, current_year)
            banner = banner_for(result) if banner_for is not None else None
            self._apply_rollover(result, banner)
            return result

    def set_banner(self, banner: BannerState) -> BannerState:
        with self._lock:
            if self._snapshot.banner != banner:
                self._commit(replace(self._snapshot, banner=banner))
            return self._snapshot.banner
