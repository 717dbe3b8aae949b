from decimal import Decimal
from functools import reduce
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple

from budget_core.domain import (
    AggregateResult,
    BudgetConfig,
    Number,
    Transaction,
    validate_budget,
)

ZERO = Decimal(0)


def add_transaction(
    trans: Tuple[Transaction, ...], t: Transaction
) -> Tuple[Transaction, ...]:
    """Newest first, the order the history view shows."""
    return (t,) + tuple(trans)


def delete_transaction(
    trans: Tuple[Transaction, ...], transaction_id: str
) -> Tuple[Transaction, ...]:
    return tuple(filter(lambda t: t.id != transaction_id, trans))


def update_budget(
    budget: BudgetConfig,
    limit: Optional[Number] = None,
    alert_threshold_percent: Optional[Number] = None,
) -> BudgetConfig:
    return BudgetConfig(
        limit=budget.limit if limit is None else limit,
        alert_threshold_percent=(
            budget.alert_threshold_percent
            if alert_threshold_percent is None
            else alert_threshold_percent
        ),
    )


def income_transactions(trans: Iterable[Transaction]) -> Tuple[Transaction, ...]:
    return tuple(filter(lambda t: t.is_income, trans))


def expense_transactions(trans: Iterable[Transaction]) -> Tuple[Transaction, ...]:
    return tuple(filter(lambda t: t.is_expense, trans))


def total_amount(trans: Iterable[Transaction]) -> Decimal:
    return reduce(lambda acc, t: acc + t.amount, trans, ZERO)


def totals_by_category(trans: Iterable[Transaction]) -> Mapping[str, Decimal]:
    """Sum expense amounts per category, largest first.

    Categories with equal totals keep the order in which they first
    appear in ``trans``.
    """
    totals: Dict[str, Decimal] = {}
    for t in trans:
        if t.is_expense:
            totals[t.category] = totals.get(t.category, ZERO) + t.amount

    # sorted() is stable, so ties stay in first-seen order
    ordered = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return MappingProxyType(dict(ordered))


def top_categories(trans: Iterable[Transaction], k: int) -> Iterator[Tuple[str, Decimal]]:
    for name, total in list(totals_by_category(trans).items())[: max(0, k)]:
        yield name, total


def aggregate(trans: Iterable[Transaction], budget: BudgetConfig) -> AggregateResult:
    """Compute income/expense totals, the expense breakdown and budget usage.

    The budget is validated before anything is summed, so an invalid limit
    raises InvalidBudgetConfig instead of producing an infinite ratio.
    ``budget_usage_ratio`` is unclamped; see
    ``AggregateResult.display_usage_ratio`` for the [0, 1] value.
    """
    validate_budget(budget)
    snapshot = tuple(trans)

    total_income = total_amount(income_transactions(snapshot))
    breakdown = totals_by_category(snapshot)
    # summing the breakdown keeps total_expense equal to it by construction
    total_expense = sum(breakdown.values(), ZERO)

    return AggregateResult(
        total_income=total_income,
        total_expense=total_expense,
        category_breakdown=breakdown,
        budget_usage_ratio=total_expense / budget.limit,
    )
