from loyalty_ledger.banner import BannerCoordinator, banner_for
from loyalty_ledger.ledger import LedgerStore
from loyalty_ledger.models import BannerState, LedgerState
from loyalty_ledger.rollover import execute_rollover
from loyalty_ledger.storage import JsonFileStorage

from conftest import storage_for


def test_banner_visible_after_rollover_with_points(scenario_a_ledger):
    result = execute_rollover(scenario_a_ledger, (), 2026)

    assert banner_for(result) == BannerState(visible=True, previous_points=500)


def test_banner_hidden_after_rollover_from_zero():
    result = execute_rollover(LedgerState(total_points=0, transactions=(), last_reset_year=2025), (), 2026)

    assert banner_for(result) == BannerState(visible=False, previous_points=0)


def test_rollover_persists_banner_with_archive(scenario_a_ledger):
    storage = storage_for(scenario_a_ledger)
    store = LedgerStore(storage)

    store.rollover_if_due(2026, banner_for=banner_for)

    assert store.banner == BannerState(visible=True, previous_points=500)
    assert storage.document.banner.visible is True
    assert storage.document.archived_years[0].year == 2025


def test_dismiss_is_idempotent(scenario_a_ledger):
    storage = storage_for(scenario_a_ledger)
    store = LedgerStore(storage)
    store.rollover_if_due(2026, banner_for=banner_for)
    coordinator = BannerCoordinator(store)
    saves_before = storage.saves

    first = coordinator.dismiss()
    second = coordinator.dismiss()

    assert first == second == BannerState(visible=False, previous_points=500)
    assert storage.saves == saves_before + 1


def test_dismissal_survives_restart(tmp_path, scenario_a_ledger):
    store = LedgerStore(JsonFileStorage(str(tmp_path)))
    for transaction in reversed(scenario_a_ledger.transactions):
        store.append(transaction)
    store.rollover_if_due(2026, banner_for=banner_for)
    BannerCoordinator(store).dismiss()

    reloaded = LedgerStore(JsonFileStorage(str(tmp_path)))

    assert reloaded.banner.visible is False
    assert reloaded.banner.previous_points == 500
    assert reloaded.rollover_if_due(2026, banner_for=banner_for) is None
    assert reloaded.banner.visible is False
