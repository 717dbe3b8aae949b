import json
from decimal import Decimal

import pytest

from budget_core.alerts import BudgetStatus
from budget_core.domain import BudgetConfig, Transaction
from budget_core.errors import InvalidBudgetConfig, InvalidTransaction
from budget_core.events import EventBus, register_default_handlers
from budget_core.services import AdvisorService, BudgetService, record_notices
from budget_core.storage import KeyValueStore, load_budget, load_transactions


@pytest.fixture
def store(tmp_path):
    return KeyValueStore(tmp_path / "store.json")


@pytest.fixture
def service(store):
    svc = BudgetService(store, bus=register_default_handlers(EventBus()))
    svc.update_budget(limit=100, alert_threshold_percent=80)
    return svc


def test_record_persists_whole_ledger(service, store):
    t, _ = service.record("expense", "50", "Food", "groceries")
    service.record("income", 200, "Salary")
    assert service.transactions[1] == t
    assert load_transactions(store) == service.transactions


def test_record_rejects_invalid_transaction(service, store):
    with pytest.raises(InvalidTransaction):
        service.record("expense", -10, "Food")
    assert service.transactions == ()
    assert load_transactions(store) == ()


def test_dashboard_example_ledger(service):
    service.record("expense", 50, "Food")
    service.record("expense", 30, "Food")
    service.record("income", 200, "Salary")
    summary = service.dashboard()
    assert summary.aggregate.total_income == 200
    assert summary.aggregate.total_expense == 80
    assert summary.aggregate.category_breakdown == {"Food": Decimal(80)}
    assert summary.alert.status is BudgetStatus.NORMAL
    assert summary.transaction_count == 3

    service.update_budget(limit=70)
    assert service.dashboard().alert.status is BudgetStatus.EXCEEDED


def test_record_returns_handler_results(service):
    _, results = service.record("expense", 90, "Rent")
    assert results[0]["status"] is BudgetStatus.WARNING
    assert not any("notified" in r for r in results)


def test_exceeding_budget_queues_notification(service):
    service.update_settings(email="me@example.com")
    _, results = service.record("expense", 150, "Rent")
    assert results[0]["status"] is BudgetStatus.EXCEEDED
    assert results[-1]["notified"] == "me@example.com"


def test_record_notices_survive_as_plain_pairs(service):
    t, results = service.record("expense", 50, "Food")
    assert record_notices(t, results) == [("success", "✅ Saved expense of $50.00 (Food)")]

    service.update_settings(email="me@example.com")
    t, results = service.record("expense", 100, "Rent")
    levels = [level for level, _ in record_notices(t, results, "EUR")]
    assert levels == ["success", "warning", "info"]
    assert record_notices(t, results, "EUR")[0][1] == "✅ Saved expense of €100.00 (Rent)"
    assert record_notices(t, results)[-1] == ("info", "📧 Alert email queued for me@example.com")


def test_remove(service, store):
    t, _ = service.record("expense", 10, "Food")
    assert service.remove(t.id).is_some()
    assert service.transactions == ()
    assert load_transactions(store) == ()
    assert service.remove("missing").is_none()


def test_update_budget_rejects_invalid_and_keeps_old(service, store):
    with pytest.raises(InvalidBudgetConfig):
        service.update_budget(limit=-5)
    assert service.budget == BudgetConfig(100, 80)
    assert load_budget(store) == BudgetConfig(100, 80)


def test_update_settings_ignores_blank_fields(service):
    service.update_settings(email="a@b.c", currency="EUR")
    settings = service.update_settings(email="", currency=None)
    assert settings.email == "a@b.c"
    assert settings.currency == "EUR"


def test_service_reloads_state_from_store(service, store):
    service.record("expense", 10, "Food")
    service.update_settings(currency="GBP")
    reloaded = BudgetService(store, bus=EventBus())
    assert reloaded.transactions == service.transactions
    assert reloaded.budget == service.budget
    assert reloaded.settings.currency == "GBP"


class FakeGenerator:
    def __init__(self, text):
        self.text = text
        self.months = []

    async def generate(self, transactions, budget, month):
        self.months.append(month)
        return self.text


REPORT = {
    "summary": "Fine.",
    "totalIncome": 0,
    "totalExpense": 10,
    "netSavings": -10,
    "breakdown": [],
    "tips": [],
    "status": "Under Budget",
}


@pytest.mark.asyncio
async def test_advisor_monthly_report():
    trans = (Transaction("t1", "expense", 10, "Food"),)
    generator = FakeGenerator(json.dumps(REPORT))
    result = await AdvisorService(generator).monthly_report(trans, BudgetConfig(100, 80), "May 2025")
    assert result.is_some()
    assert generator.months == ["May 2025"]


@pytest.mark.asyncio
async def test_advisor_defaults_to_current_month_and_passes_failure_through():
    generator = FakeGenerator("")
    result = await AdvisorService(generator).monthly_report((), BudgetConfig(100, 80))
    assert result.is_none()
    assert len(generator.months) == 1
    assert generator.months[0].split()[-1].isdigit()
