import json
from decimal import Decimal

import pytest

from budget_core.domain import BudgetConfig, Transaction, UserSettings
from budget_core.storage import (
    KeyValueStore,
    default_budget,
    load_budget,
    load_settings,
    load_transactions,
    save_budget,
    save_settings,
    save_transactions,
)


def make_store(tmp_path):
    return KeyValueStore(tmp_path / "data" / "store.json")


def test_store_get_set_delete(tmp_path):
    store = make_store(tmp_path)
    assert store.get("missing") is None
    assert store.get("missing", "fallback") == "fallback"
    store.set("a", "1")
    store.set("b", "2")
    assert store.get("a") == "1"
    store.delete("a")
    assert store.get("a") is None
    assert store.get("b") == "2"


def test_store_ignores_corrupt_file(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{not json", encoding="utf-8")
    store = KeyValueStore(path)
    assert store.get("transactions") is None
    store.set("k", "v")
    assert json.loads(path.read_text(encoding="utf-8")) == {"k": "v"}
    assert (tmp_path / "store.json.corrupt").read_text(encoding="utf-8") == "{not json"


def test_failed_write_keeps_previous_store(tmp_path, monkeypatch):
    store = make_store(tmp_path)
    store.set("transactions", "[]")
    store.set("budget", '{"limit": "100"}')

    def broken_dump(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(json, "dump", broken_dump)
    with pytest.raises(OSError):
        store.set("settings", "{}")
    monkeypatch.undo()

    assert store.get("transactions") == "[]"
    assert store.get("budget") == '{"limit": "100"}'
    assert [p.name for p in store.path.parent.iterdir()] == ["store.json"]


def test_transactions_round_trip(tmp_path):
    store = make_store(tmp_path)
    trans = (
        Transaction("t2", "expense", "0.10", "Food", "2025-09-02T10:00:00", "coffee"),
        Transaction("t1", "income", 2500, "Salary", "2025-09-01T10:00:00"),
    )
    save_transactions(store, trans)
    assert load_transactions(store) == trans


def test_load_transactions_empty_store(tmp_path):
    assert load_transactions(make_store(tmp_path)) == ()


def test_load_transactions_skips_invalid_records(tmp_path):
    store = make_store(tmp_path)
    records = [
        {"id": "ok", "type": "expense", "amount": 12, "category": "Food", "date": "2025-01-01T00:00:00Z"},
        {"id": "neg", "type": "expense", "amount": -12, "category": "Food", "date": "2025-01-01T00:00:00Z"},
        {"id": "kind", "type": "loan", "amount": 12, "category": "Food", "date": "2025-01-01T00:00:00Z"},
        "garbage",
    ]
    store.set("transactions", json.dumps(records))
    loaded = load_transactions(store)
    assert [t.id for t in loaded] == ["ok"]
    assert loaded[0].amount == Decimal(12)


def test_budget_round_trip_and_default(tmp_path):
    store = make_store(tmp_path)
    assert load_budget(store) == default_budget()
    save_budget(store, BudgetConfig(limit="1500.50", alert_threshold_percent=75))
    assert load_budget(store) == BudgetConfig(Decimal("1500.50"), Decimal(75))


def test_invalid_stored_budget_falls_back_to_default(tmp_path):
    store = make_store(tmp_path)
    store.set("budget", json.dumps({"limit": -5, "alertThreshold": 80}))
    assert load_budget(store) == default_budget()
    store.set("budget", "not json")
    assert load_budget(store) == default_budget()


def test_settings_round_trip(tmp_path):
    store = make_store(tmp_path)
    assert load_settings(store) == UserSettings()
    save_settings(store, UserSettings(email="me@example.com", currency="EUR"))
    assert load_settings(store) == UserSettings(email="me@example.com", currency="EUR")
