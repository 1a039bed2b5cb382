import json

import pytest

from loyalty_ledger.errors import MalformedPersistedState
from loyalty_ledger.ledger import LedgerStore
from loyalty_ledger.models import LedgerState, Snapshot
from loyalty_ledger.schema import SCHEMA_VERSION, LedgerDocument, migrate, parse_document
from loyalty_ledger.storage import JsonFileStorage

from conftest import txn

LEGACY_APP_STATE = {
    "cart": [],
    "deviceId": "device_abc",
    "loyalty": {
        "totalPoints": 750,
        "transactions": [
            {"id": "t2", "date": "2025-11-05T10:00:00Z", "points": 400, "description": "طلب #2", "orderId": 12},
            {"id": "t1", "date": "2025-03-10T10:00:00Z", "points": 350, "description": "طلب #1"},
        ],
    },
}


def test_migrate_legacy_payload_defaults_missing_fields():
    migrated = migrate(LEGACY_APP_STATE)

    assert migrated["schema_version"] == SCHEMA_VERSION
    assert migrated["last_reset_year"] == 0
    assert migrated["archived_years"] == []
    assert migrated["banner"] == {"visible": False, "previous_points": 0}
    assert migrated["transactions"][0]["timestamp"] == "2025-11-05T10:00:00Z"
    assert migrated["transactions"][0]["order_id"] == 12


def test_migrate_legacy_payload_with_archive_and_banner():
    payload = {
        "totalPoints": 0,
        "transactions": [],
        "lastResetYear": 2026,
        "archivedYears": [
            {"year": 2025, "totalPoints": 300, "transactions": [{"id": "t1", "date": "2025-06-15T10:00:00Z", "points": 300, "description": "طلب"}]},
        ],
        "showNewYearResetBanner": True,
        "resetBannerPreviousPoints": 300,
    }

    snapshot = parse_document(payload).to_snapshot()

    assert snapshot.ledger.last_reset_year == 2026
    assert snapshot.archived_years[0].year == 2025
    assert snapshot.archived_years[0].transactions[0].timestamp == "2025-06-15T10:00:00Z"
    assert snapshot.banner.visible is True
    assert snapshot.banner.previous_points == 300


def test_current_documents_pass_through_unchanged():
    payload = LedgerDocument(total_points=10, transactions=[{"id": "a", "timestamp": "2026-01-01T00:00:00+00:00", "points": 10}]).model_dump(mode="json")

    assert migrate(payload) == payload


def test_newer_schema_is_refused():
    with pytest.raises(MalformedPersistedState):
        migrate({"schema_version": SCHEMA_VERSION + 1})


def test_non_object_payload_is_refused():
    with pytest.raises(MalformedPersistedState):
        parse_document([1, 2, 3])


def test_invalid_transaction_is_refused():
    payload = {"totalPoints": 0, "transactions": [{"id": "x", "date": "2025-01-01T00:00:00Z", "points": 0}]}

    with pytest.raises(MalformedPersistedState):
        parse_document(payload)


def test_unordered_archive_is_refused():
    payload = {
        "schema_version": SCHEMA_VERSION,
        "archived_years": [{"year": 2025, "total_points": 0}, {"year": 2024, "total_points": 0}],
    }

    with pytest.raises(MalformedPersistedState):
        parse_document(payload)


def test_stale_total_is_repaired_from_transactions():
    payload = dict(LEGACY_APP_STATE, loyalty=dict(LEGACY_APP_STATE["loyalty"], totalPoints=9999))

    document = parse_document(payload)

    assert document.total_points == 750


def test_storage_round_trip(tmp_path):
    storage = JsonFileStorage(str(tmp_path))
    ledger = LedgerState(total_points=50, transactions=(txn("t1", 50, order_id=5),), last_reset_year=2026)
    storage.save(LedgerDocument.from_snapshot(Snapshot(ledger=ledger)))

    assert storage.load().to_snapshot().ledger == ledger
    assert not list(storage.ledger_dir.glob(".loyalty-*.tmp"))


def test_storage_missing_file_is_empty_ledger(tmp_path):
    store = LedgerStore(JsonFileStorage(str(tmp_path)))

    assert store.ledger == LedgerState()


def test_storage_loads_legacy_file(tmp_path):
    storage = JsonFileStorage(str(tmp_path))
    storage.path.write_text(json.dumps(LEGACY_APP_STATE, ensure_ascii=False), encoding="utf-8")

    store = LedgerStore(storage)

    assert store.ledger.total_points == 750
    assert [t.id for t in store.ledger.transactions] == ["t2", "t1"]
    assert store.ledger.last_reset_year == 0


def test_storage_refuses_corrupt_file(tmp_path):
    storage = JsonFileStorage(str(tmp_path))
    storage.path.write_text("{not json", encoding="utf-8")

    with pytest.raises(MalformedPersistedState):
        storage.load()


@pytest.mark.parametrize("bad_date", ["15/06/2025", "yesterday", ""])
def test_non_iso_timestamp_is_refused(bad_date):
    payload = {"totalPoints": 10, "transactions": [{"id": "x", "date": bad_date, "points": 10}]}

    with pytest.raises(MalformedPersistedState):
        parse_document(payload)


def test_storage_refuses_file_with_non_iso_timestamp(tmp_path):
    storage = JsonFileStorage(str(tmp_path))
    payload = {"totalPoints": 10, "transactions": [{"id": "x", "date": "15/06/2025", "points": 10}]}
    storage.path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(MalformedPersistedState):
        LedgerStore(storage)


@pytest.mark.parametrize("version", [0, -1, True, "2", None])
def test_invalid_schema_version_is_refused(version):
    with pytest.raises(MalformedPersistedState):
        migrate({"schema_version": version, "total_points": 0})
