from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from budget_core.domain import BudgetConfig, Number, to_decimal, validate_budget
from budget_core.errors import InvalidBudgetConfig

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "INR": "₹", "JPY": "¥", "KZT": "₸"}


class BudgetStatus(Enum):
    NORMAL = "normal"
    WARNING = "warning"
    EXCEEDED = "exceeded"


REPORT_STATUS_LABELS = {
    BudgetStatus.NORMAL: "Under Budget",
    BudgetStatus.WARNING: "Near Budget",
    BudgetStatus.EXCEEDED: "Over Budget",
}


@dataclass(frozen=True)
class BudgetAlert:
    status: BudgetStatus
    message: str
    limit: Decimal
    total_expense: Decimal
    threshold_amount: Decimal

    @property
    def requires_notification(self) -> bool:
        """Only an exceeded budget asks the caller to send a notification."""
        return self.status is BudgetStatus.EXCEEDED


def format_money(amount: Number, currency: str = "USD") -> str:
    value = to_decimal(amount)
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol is None:
        return f"{value:,.2f} {currency}"
    return f"{symbol}{value:,.2f}"


def report_status_label(status: BudgetStatus) -> str:
    return REPORT_STATUS_LABELS[status]


def classify(
    total_expense: Number,
    budget: BudgetConfig,
    *,
    currency: str = "USD",
    email: Optional[str] = None,
) -> BudgetAlert:
    """Classify spending against the budget.

    NORMAL while ``total_expense <= limit * threshold / 100``, WARNING up to
    and including the limit, EXCEEDED strictly above it. Each call looks only
    at its arguments; nothing is remembered between calls.
    """
    validate_budget(budget)
    total = to_decimal(total_expense, InvalidBudgetConfig, "total_expense")
    if not total.is_finite() or total < 0:
        raise InvalidBudgetConfig(f"total expense must be a non-negative number, got {total}")

    limit = budget.limit
    threshold_amount = budget.threshold_amount
    percent = f"{budget.alert_threshold_percent.normalize():f}"
    limit_text = format_money(limit, currency)

    if total > limit:
        status = BudgetStatus.EXCEEDED
        recipient = f" to {email}" if email else ""
        message = (
            f"ALERT: You have exceeded your budget of {limit_text}! "
            f"An email alert should be sent{recipient}."
        )
    elif total > threshold_amount:
        status = BudgetStatus.WARNING
        message = f"Warning: You have reached {percent}% of your budget of {limit_text}."
    else:
        status = BudgetStatus.NORMAL
        message = f"Spending is within your budget of {limit_text}."

    return BudgetAlert(
        status=status,
        message=message,
        limit=limit,
        total_expense=total,
        threshold_amount=threshold_amount,
    )
