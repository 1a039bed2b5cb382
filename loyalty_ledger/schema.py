"""Persisted document schema and the migration applied at load time."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import MalformedPersistedState
from .models import ArchivedYear, BannerState, LedgerState, Snapshot, Transaction, timestamp_year

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2

_LEGACY_KEYS = {
    "totalPoints": "total_points",
    "lastResetYear": "last_reset_year",
    "archivedYears": "archived_years",
    "orderId": "order_id",
    "date": "timestamp",
}


class TransactionRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: str
    points: int = Field(..., gt=0)
    description: str = ""
    order_id: Optional[int] = None

    @field_validator("timestamp")
    @classmethod
    def iso_timestamp(cls, value: str) -> str:
        try:
            timestamp_year(value)
        except ValueError as exc:
            raise ValueError(f"timestamp {value!r} is not ISO-8601") from exc
        return value

    @classmethod
    def from_domain(cls, txn: Transaction) -> "TransactionRecord":
        return cls(
            id=txn.id,
            timestamp=txn.timestamp,
            points=txn.points,
            description=txn.description,
            order_id=txn.order_id,
        )

    def to_domain(self) -> Transaction:
        return Transaction(
            id=self.id,
            timestamp=self.timestamp,
            points=self.points,
            description=self.description,
            order_id=self.order_id,
        )


class ArchivedYearRecord(BaseModel):
    year: int
    total_points: int = Field(..., ge=0)
    transactions: List[TransactionRecord] = Field(default_factory=list)


class BannerRecord(BaseModel):
    visible: bool = False
    previous_points: int = Field(0, ge=0)


class LedgerDocument(BaseModel):
    schema_version: int = SCHEMA_VERSION
    total_points: int = Field(0, ge=0)
    transactions: List[TransactionRecord] = Field(default_factory=list)
    last_reset_year: int = Field(0, ge=0)
    archived_years: List[ArchivedYearRecord] = Field(default_factory=list)
    banner: BannerRecord = Field(default_factory=BannerRecord)

    @field_validator("archived_years")
    @classmethod
    def archive_ascending(cls, value: List[ArchivedYearRecord]) -> List[ArchivedYearRecord]:
        years = [entry.year for entry in value]
        if any(later <= earlier for earlier, later in zip(years, years[1:])):
            raise ValueError("archived years must be strictly ascending")
        return value

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "LedgerDocument":
        ledger = snapshot.ledger
        return cls(
            total_points=ledger.total_points,
            transactions=[TransactionRecord.from_domain(t) for t in ledger.transactions],
            last_reset_year=ledger.last_reset_year,
            archived_years=[
                ArchivedYearRecord(
                    year=entry.year,
                    total_points=entry.total_points,
                    transactions=[TransactionRecord.from_domain(t) for t in entry.transactions],
                )
                for entry in snapshot.archived_years
            ],
            banner=BannerRecord(
                visible=snapshot.banner.visible,
                previous_points=snapshot.banner.previous_points,
            ),
        )

    def to_snapshot(self) -> Snapshot:
        return Snapshot(
            ledger=LedgerState(
                total_points=self.total_points,
                transactions=tuple(t.to_domain() for t in self.transactions),
                last_reset_year=self.last_reset_year,
            ),
            archived_years=tuple(
                ArchivedYear(
                    year=entry.year,
                    total_points=entry.total_points,
                    transactions=tuple(t.to_domain() for t in entry.transactions),
                )
                for entry in self.archived_years
            ),
            banner=BannerState(
                visible=self.banner.visible,
                previous_points=self.banner.previous_points,
            ),
        )


def _rename_legacy(data: Dict[str, Any]) -> Dict[str, Any]:
    return {_LEGACY_KEYS.get(key, key): value for key, value in data.items()}


def _migrate_v1(payload: Dict[str, Any]) -> Dict[str, Any]:
    # storefront app state kept the ledger under "loyalty" next to cart etc.
    source = payload.get("loyalty") if isinstance(payload.get("loyalty"), dict) else payload
    data = _rename_legacy(source)
    data["transactions"] = [_rename_legacy(t) for t in data.get("transactions") or []]
    data["archived_years"] = [
        {
            **_rename_legacy(entry),
            "transactions": [_rename_legacy(t) for t in entry.get("transactions") or []],
        }
        for entry in data.get("archived_years") or []
    ]
    data["last_reset_year"] = data.get("last_reset_year") or 0
    data["banner"] = {
        "visible": bool(payload.get("showNewYearResetBanner", False)),
        "previous_points": payload.get("resetBannerPreviousPoints", 0) or 0,
    }
    data["schema_version"] = SCHEMA_VERSION
    return data


def migrate(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Bring a raw persisted payload up to :data:`SCHEMA_VERSION`.

    Unversioned payloads are the storefront's legacy camelCase shape, where
    ``lastResetYear`` and ``archivedYears`` may be absent. Absent optional
    fields take their defaults; they are never an error.
    """

    if not isinstance(payload, dict):
        raise MalformedPersistedState(f"expected a JSON object, got {type(payload).__name__}")
    version = payload.get("schema_version", 1)
    if isinstance(version, bool) or not isinstance(version, int) or not 1 <= version <= SCHEMA_VERSION:
        raise MalformedPersistedState(f"unsupported schema_version {version!r}")
    if version == 1:
        logger.info("migrating legacy ledger document", extra={"from_version": 1, "to_version": SCHEMA_VERSION})
        payload = _migrate_v1(payload)
    return payload


def parse_document(payload: Dict[str, Any]) -> LedgerDocument:
    """Migrate and validate a raw payload, repairing a stale running total."""

    migrated = migrate(payload)
    try:
        document = LedgerDocument.model_validate(migrated)
    except ValidationError as exc:
        raise MalformedPersistedState(str(exc)) from exc

    recomputed = sum(t.points for t in document.transactions)
    if recomputed != document.total_points:
        logger.warning(
            "ledger total disagrees with its transactions, using transactions",
            extra={"stored_total": document.total_points, "recomputed_total": recomputed},
        )
        document = document.model_copy(update={"total_points": recomputed})
    return document
