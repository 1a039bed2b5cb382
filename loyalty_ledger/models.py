"""Immutable value types for the loyalty ledger."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import Optional, Tuple


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_transaction_id() -> str:
    return f"txn_{uuid.uuid4().hex}"


def timestamp_year(timestamp: str, tz: Optional[tzinfo] = None) -> int:
    """Return the calendar year of an ISO-8601 timestamp.

    With ``tz`` the instant is converted first, so a purchase just after
    local midnight on 1 January counts towards the new year. Naive
    timestamps are taken as UTC. Raises ``ValueError`` for anything that is
    not ISO-8601.
    """

    # fromisoformat only accepts a trailing "Z" from 3.11 onwards
    if timestamp.endswith("Z"):
        timestamp = timestamp[:-1] + "+00:00"
    moment = datetime.fromisoformat(timestamp)
    if tz is not None:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        moment = moment.astimezone(tz)
    return moment.year


@dataclass(frozen=True)
class Transaction:
    id: str
    timestamp: str
    points: int
    description: str
    order_id: Optional[int] = None

    @property
    def year(self) -> int:
        return timestamp_year(self.timestamp)

    def year_in(self, tz: Optional[tzinfo]) -> int:
        return timestamp_year(self.timestamp, tz)


@dataclass(frozen=True)
class LedgerState:
    """Active-cycle balance. ``transactions`` is newest first."""

    total_points: int = 0
    transactions: Tuple[Transaction, ...] = ()
    last_reset_year: int = 0

    @property
    def never_reset(self) -> bool:
        return not self.last_reset_year


@dataclass(frozen=True)
class ArchivedYear:
    year: int
    total_points: int
    transactions: Tuple[Transaction, ...] = ()


@dataclass(frozen=True)
class RolloverResult:
    new_ledger: LedgerState
    archived_years: Tuple[ArchivedYear, ...]
    previous_points: int
    # last_reset_year of the ledger the result was computed from
    base_reset_year: int = 0

    @property
    def archived(self) -> ArchivedYear:
        return self.archived_years[-1]


@dataclass(frozen=True)
class BannerState:
    visible: bool = False
    previous_points: int = 0


@dataclass(frozen=True)
class YearSummary:
    year: int
    transaction_count: int
    points: int


@dataclass(frozen=True)
class Snapshot:
    """Everything the store persists, as one consistent value."""

    ledger: LedgerState = field(default_factory=LedgerState)
    archived_years: Tuple[ArchivedYear, ...] = ()
    banner: BannerState = field(default_factory=BannerState)
