import pytest

from loyalty_ledger.errors import PersistenceError
from loyalty_ledger.models import LedgerState, Snapshot, Transaction
from loyalty_ledger.schema import LedgerDocument


class MemoryStorage:
    """Keeps the last saved document in memory and counts saves."""

    def __init__(self, document=None):
        self.document = document or LedgerDocument()
        self.saves = 0
        self.fail_next_save = False

    def load(self):
        return self.document

    def save(self, document):
        if self.fail_next_save:
            self.fail_next_save = False
            raise PersistenceError("disk full")
        self.document = document
        self.saves += 1


def txn(txn_id, points, timestamp="2025-06-15T10:00:00Z", description="طلب", order_id=None):
    return Transaction(id=txn_id, timestamp=timestamp, points=points, description=description, order_id=order_id)


def storage_for(ledger, archived_years=()):
    return MemoryStorage(LedgerDocument.from_snapshot(Snapshot(ledger=ledger, archived_years=archived_years)))


@pytest.fixture
def scenario_a_ledger():
    t1 = txn("t1", 200, "2025-09-20T10:00:00Z", "طلب #1")
    t2 = txn("t2", 300, "2025-06-15T10:00:00Z", "طلب #2")
    return LedgerState(total_points=500, transactions=(t1, t2), last_reset_year=2025)
