from decimal import Decimal

import pytest

from budget_core.domain import BudgetConfig, Transaction
from budget_core.errors import InvalidBudgetConfig, InvalidBudgetError
from budget_core.transforms import (
    add_transaction,
    aggregate,
    delete_transaction,
    expense_transactions,
    income_transactions,
    top_categories,
    totals_by_category,
    update_budget,
)


def make_tx(id, kind, amount, category, ts="2025-09-01T10:00:00"):
    return Transaction(id=id, kind=kind, amount=amount, category=category, ts=ts)


def sample():
    return (
        make_tx("t1", "expense", 50, "Food"),
        make_tx("t2", "expense", 30, "Food"),
        make_tx("t3", "income", 200, "Salary"),
    )


def test_aggregate_example_ledger():
    result = aggregate(sample(), BudgetConfig(limit=100, alert_threshold_percent=80))
    assert result.total_income == 200
    assert result.total_expense == 80
    assert result.category_breakdown == {"Food": Decimal(80)}
    assert result.budget_usage_ratio == Decimal("0.8")


def test_aggregate_empty_ledger_is_all_zero():
    result = aggregate((), BudgetConfig(limit=100, alert_threshold_percent=80))
    assert result.total_income == 0
    assert result.total_expense == 0
    assert result.category_breakdown == {}
    assert result.budget_usage_ratio == 0
    assert not result.is_over_budget


@pytest.mark.parametrize("limit", [-5, 0])
def test_aggregate_rejects_non_positive_limit(limit):
    with pytest.raises(InvalidBudgetConfig):
        aggregate(sample(), BudgetConfig(limit=limit, alert_threshold_percent=80))


def test_aggregate_rejects_threshold_out_of_range():
    with pytest.raises(InvalidBudgetError):
        aggregate(sample(), BudgetConfig(limit=100, alert_threshold_percent=120))


def test_aggregate_over_budget_ratio_is_unclamped():
    result = aggregate(sample(), BudgetConfig(limit=40, alert_threshold_percent=80))
    assert result.budget_usage_ratio == 2
    assert result.display_usage_ratio == 1
    assert result.is_over_budget


def test_total_expense_equals_breakdown_sum_with_fractional_amounts():
    amounts = ["0.1", "0.2", "0.3", "19.99", "0.01", "1234.56", "0.07"]
    categories = ["Food", "Transport", "Food", "Rent", "Health", "Rent", "Shopping"]
    trans = tuple(
        make_tx(f"t{i}", "expense", a, c) for i, (a, c) in enumerate(zip(amounts, categories))
    )
    result = aggregate(trans, BudgetConfig(limit=2000, alert_threshold_percent=80))
    assert result.total_expense == sum(result.category_breakdown.values())
    assert result.total_expense == Decimal("1255.23")
    assert result.category_breakdown["Food"] == Decimal("0.4")


def test_breakdown_cannot_be_changed_after_aggregation():
    trans = (make_tx("t1", "expense", 5, "Food"),)
    result = aggregate(trans, BudgetConfig(limit=100, alert_threshold_percent=80))
    with pytest.raises(TypeError):
        result.category_breakdown["Food"] = Decimal(99)
    assert result.total_expense == sum(result.category_breakdown.values()) == Decimal(5)


def test_float_amounts_do_not_drift():
    trans = tuple(make_tx(f"t{i}", "expense", 0.1, "Food") for i in range(10))
    result = aggregate(trans, BudgetConfig(limit=1, alert_threshold_percent=80))
    assert result.total_expense == 1
    assert result.budget_usage_ratio == 1
    assert not result.is_over_budget


def test_aggregate_is_idempotent():
    trans = sample()
    budget = BudgetConfig(limit=100, alert_threshold_percent=80)
    assert aggregate(trans, budget) == aggregate(trans, budget)


def test_aggregate_accepts_generator_input():
    result = aggregate((t for t in sample()), BudgetConfig(limit=100, alert_threshold_percent=80))
    assert result.total_expense == 80
    assert result.total_income == 200


def test_breakdown_is_sorted_by_amount_then_first_seen():
    trans = (
        make_tx("t1", "expense", 10, "Transport"),
        make_tx("t2", "expense", 30, "Food"),
        make_tx("t3", "expense", 10, "Health"),
        make_tx("t4", "income", 500, "Salary"),
        make_tx("t5", "expense", 5, "Rent"),
    )
    assert list(totals_by_category(trans)) == ["Food", "Transport", "Health", "Rent"]


def test_breakdown_ignores_income_categories():
    trans = (make_tx("t1", "income", 10, "Other"), make_tx("t2", "expense", 3, "Other"))
    assert totals_by_category(trans) == {"Other": Decimal(3)}


def test_top_categories_limits_results():
    trans = (
        make_tx("t1", "expense", 300, "Food"),
        make_tx("t2", "expense", 200, "Transport"),
        make_tx("t3", "expense", 700, "Food"),
        make_tx("t4", "expense", 100, "Transport"),
    )
    assert list(top_categories(trans, 1)) == [("Food", Decimal(1000))]
    assert len(list(top_categories(trans, 10))) == 2
    assert list(top_categories(trans, -1)) == []


def test_add_transaction_puts_newest_first():
    trans = sample()
    t = make_tx("t4", "expense", 1, "Food")
    updated = add_transaction(trans, t)
    assert updated[0] is t
    assert len(updated) == 4
    assert len(trans) == 3


def test_delete_transaction():
    trans = sample()
    updated = delete_transaction(trans, "t2")
    assert [t.id for t in updated] == ["t1", "t3"]
    assert delete_transaction(trans, "missing") == trans


def test_income_and_expense_split():
    trans = sample()
    assert [t.id for t in income_transactions(trans)] == ["t3"]
    assert [t.id for t in expense_transactions(trans)] == ["t1", "t2"]


def test_update_budget_replaces_given_fields():
    budget = BudgetConfig(limit=100, alert_threshold_percent=80)
    assert update_budget(budget, limit=250) == BudgetConfig(250, 80)
    assert update_budget(budget, alert_threshold_percent=50) == BudgetConfig(100, 50)
    assert budget.limit == 100
