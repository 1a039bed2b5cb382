"""Annual rollover: deciding when it is due and computing the transition.

Both halves are pure. Committing a :class:`RolloverResult` is the job of
:meth:`loyalty_ledger.ledger.LedgerStore.apply_rollover`, which refuses to
apply the same year twice.
"""

from __future__ import annotations

from datetime import tzinfo
from typing import Optional, Sequence

from .models import ArchivedYear, LedgerState, RolloverResult


def should_reset(last_reset_year: Optional[int], current_year: int) -> bool:
    """Return ``True`` when the ledger was last reset in an earlier year.

    A ledger that has never been reset (``None`` or ``0``) is not due here;
    see :func:`bootstrap_year` for that case. A ``last_reset_year`` ahead of
    ``current_year`` (clock skew) is never due.
    """

    if not last_reset_year:
        return False
    return last_reset_year < current_year


def bootstrap_year(state: LedgerState, current_year: int, tz: Optional[tzinfo] = None) -> Optional[int]:
    """Return the year a never-reset ledger started in, if that is in the past.

    Ledgers written before rollover existed carry no ``last_reset_year``.
    When such a ledger already holds transactions from an earlier year it is
    treated as having been reset in the year of its earliest transaction, so
    one catch-up rollover closes it.
    """

    if not state.never_reset or not state.transactions:
        return None
    earliest = min(txn.year_in(tz) for txn in state.transactions)
    if earliest < current_year:
        return earliest
    return None


def rollover_due(state: LedgerState, current_year: int, tz: Optional[tzinfo] = None) -> bool:
    if should_reset(state.last_reset_year, current_year):
        return True
    return bootstrap_year(state, current_year, tz) is not None


def execute_rollover(
    state: LedgerState,
    archived_years: Sequence[ArchivedYear],
    new_year: int,
) -> RolloverResult:
    """Archive the whole active ledger as ``new_year - 1`` and start afresh.

    Not re-entrant: calling this twice for the same year produces two archive
    entries for the same label. Callers commit the result through the store,
    which rejects the second one.
    """

    entry = ArchivedYear(
        year=new_year - 1,
        total_points=state.total_points,
        transactions=state.transactions,
    )
    return RolloverResult(
        new_ledger=LedgerState(total_points=0, transactions=(), last_reset_year=new_year),
        archived_years=tuple(archived_years) + (entry,),
        previous_points=state.total_points,
        base_reset_year=state.last_reset_year,
    )
