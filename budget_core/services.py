import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from budget_core.alerts import BudgetAlert, classify, format_money
from budget_core.domain import (
    AggregateResult,
    BudgetConfig,
    Number,
    Transaction,
    UserSettings,
    new_transaction,
    validate_budget,
)
from budget_core.events import (
    BUDGET_ALERT,
    TRANSACTION_ADDED,
    TRANSACTION_DELETED,
    EventBus,
    event_bus,
)
from budget_core.functional import Maybe, safe_transaction
from budget_core.reports import FinancialReport, ReportGenerator, generate_report, month_label
from budget_core.storage import (
    KeyValueStore,
    load_budget,
    load_settings,
    load_transactions,
    save_budget,
    save_settings,
    save_transactions,
)
from budget_core.transforms import add_transaction, aggregate, delete_transaction, update_budget

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardSummary:
    aggregate: AggregateResult
    alert: BudgetAlert
    transaction_count: int


class BudgetService:
    """Facade over the stored ledger.

    The service owns the transaction tuple, the budget and the settings;
    the pure functions only ever see immutable snapshots of them. Every
    change is written back to the store as a whole.
    """

    def __init__(self, store: KeyValueStore, bus: EventBus = event_bus):
        self.store = store
        self.bus = bus
        self._transactions: Tuple[Transaction, ...] = load_transactions(store)
        self._budget: BudgetConfig = load_budget(store)
        self._settings: UserSettings = load_settings(store)

    @property
    def transactions(self) -> Tuple[Transaction, ...]:
        return self._transactions

    @property
    def budget(self) -> BudgetConfig:
        return self._budget

    @property
    def settings(self) -> UserSettings:
        return self._settings

    def snapshot(self) -> Tuple[Tuple[Transaction, ...], BudgetConfig]:
        return self._transactions, self._budget

    def record(self, kind: str, amount: Number, category: str, note: str = "") -> Tuple[Transaction, List[dict]]:
        """Add a new transaction; returns it with the results of the event handlers."""
        t = new_transaction(kind, amount, category, note)
        self._transactions = add_transaction(self._transactions, t)
        save_transactions(self.store, self._transactions)
        logger.info("Recorded %s of %s in %s", t.kind, t.amount, t.category)
        return t, self._publish(TRANSACTION_ADDED, {"transaction": t})

    def remove(self, transaction_id: str) -> Maybe[Transaction]:
        found = safe_transaction(self._transactions, transaction_id)
        if found.is_none():
            logger.warning("No transaction with id %s to delete", transaction_id)
            return found
        self._transactions = delete_transaction(self._transactions, transaction_id)
        save_transactions(self.store, self._transactions)
        logger.info("Deleted transaction %s", transaction_id)
        self._publish(TRANSACTION_DELETED, {"transaction_id": transaction_id})
        return found

    def update_budget(
        self,
        limit: Optional[Number] = None,
        alert_threshold_percent: Optional[Number] = None,
    ) -> BudgetConfig:
        """Replace the budget; raises InvalidBudgetConfig and keeps the old one if invalid."""
        budget = validate_budget(update_budget(self._budget, limit, alert_threshold_percent))
        self._budget = budget
        save_budget(self.store, budget)
        logger.info("Budget updated: limit %s, alert at %s%%", budget.limit, budget.alert_threshold_percent)
        return budget

    def update_settings(self, email: Optional[str] = None, currency: Optional[str] = None) -> UserSettings:
        changes = {k: v for k, v in (("email", email), ("currency", currency)) if v}
        self._settings = replace(self._settings, **changes)
        save_settings(self.store, self._settings)
        return self._settings

    def dashboard(self) -> DashboardSummary:
        transactions, budget = self.snapshot()
        result = aggregate(transactions, budget)
        alert = classify(
            result.total_expense,
            budget,
            currency=self._settings.currency,
            email=self._settings.email,
        )
        return DashboardSummary(aggregate=result, alert=alert, transaction_count=len(transactions))

    def _publish(self, name: str, extra: dict) -> List[dict]:
        transactions, budget = self.snapshot()
        payload = {"transactions": transactions, "budget": budget, "settings": self._settings, **extra}
        results = self.bus.publish(name, payload)
        alerts = [r["budget_alert"] for r in results if r.get("budget_alert") is not None]
        if alerts and alerts[0].requires_notification:
            results.extend(self.bus.publish(BUDGET_ALERT, {**payload, "budget_alert": alerts[0]}))
        return results


def record_notices(t: Transaction, results: List[dict], currency: str = "USD") -> List[Tuple[str, str]]:
    """(level, message) pairs for the UI after ``BudgetService.record``.

    Levels are Streamlit call names: success, warning, info.
    """
    notices = [("success", f"✅ Saved {t.kind} of {format_money(t.amount, currency)} ({t.category})")]
    notices += [("warning", r["alert"]) for r in results if "alert" in r]
    notified = [r for r in results if "notified" in r]
    if notified:
        notices.append(("info", f"📧 Alert email queued for {notified[0]['notified']}"))
    return notices


class AdvisorService:
    """Runs the report generator against a ledger snapshot."""

    def __init__(self, generator: ReportGenerator):
        self.generator = generator

    async def monthly_report(
        self,
        transactions: Sequence[Transaction],
        budget: BudgetConfig,
        month: Optional[str] = None,
    ) -> Maybe[FinancialReport]:
        return await generate_report(self.generator, transactions, budget, month or month_label())
