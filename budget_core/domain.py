from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union
from uuid import uuid4

from budget_core.errors import InvalidBudgetConfig, InvalidTransaction

INCOME = "income"
EXPENSE = "expense"
KINDS = (INCOME, EXPENSE)

CATEGORIES = {
    INCOME: ("Salary", "Freelance", "Investments", "Gift", "Other"),
    EXPENSE: ("Food", "Transport", "Rent", "Utilities", "Entertainment", "Health", "Shopping", "Other"),
}

DEFAULT_LIMIT = Decimal("2000")
DEFAULT_ALERT_THRESHOLD = Decimal("80")

Number = Union[int, float, str, Decimal]


def to_decimal(value: Any, error: type = ValueError, name: str = "value") -> Decimal:
    """Coerce ``value`` to Decimal; floats go through str() so 0.1 stays 0.1."""
    if isinstance(value, bool):
        raise error(f"{name} must be a number, got {value!r}")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(repr(value))
    if isinstance(value, str):
        try:
            return Decimal(value.strip())
        except InvalidOperation:
            raise error(f"{name} is not a number: {value!r}") from None
    raise error(f"{name} must be a number, got {type(value).__name__}")


def parse_ts(value: Union[str, datetime]) -> datetime:
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Transaction:
    id: str
    kind: str               # "income" or "expense"
    amount: Decimal         # always >= 0, the kind carries the sign
    category: str
    ts: datetime = field(default_factory=utcnow)
    note: str = ""

    def __post_init__(self):
        if not isinstance(self.id, str) or not self.id:
            raise InvalidTransaction("transaction id must be a non-empty string")
        if self.kind not in KINDS:
            raise InvalidTransaction(f"unknown transaction kind {self.kind!r}")

        amount = to_decimal(self.amount, InvalidTransaction, "amount")
        if not amount.is_finite():
            raise InvalidTransaction(f"amount must be finite, got {amount}")
        if amount < 0:
            raise InvalidTransaction(f"amount must not be negative, got {amount}")
        object.__setattr__(self, "amount", amount)

        if self.category not in CATEGORIES[self.kind]:
            raise InvalidTransaction(
                f"category {self.category!r} is not a valid {self.kind} category"
            )

        try:
            object.__setattr__(self, "ts", parse_ts(self.ts))
        except (TypeError, ValueError, AttributeError):
            raise InvalidTransaction(f"invalid timestamp {self.ts!r}") from None
        object.__setattr__(self, "note", self.note or "")

    @property
    def is_income(self) -> bool:
        return self.kind == INCOME

    @property
    def is_expense(self) -> bool:
        return self.kind == EXPENSE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.kind,
            "amount": str(self.amount),
            "category": self.category,
            "date": self.ts.isoformat(),
            "note": self.note,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Transaction":
        """Build a transaction from stored key-value data.

        Accepts both the stored key names (``type``/``date``) and the
        attribute names (``kind``/``ts``).
        """
        try:
            return cls(
                id=str(data["id"]),
                kind=data.get("type", data.get("kind")),
                amount=data["amount"],
                category=data["category"],
                ts=data.get("date", data.get("ts")),
                note=data.get("note") or "",
            )
        except KeyError as e:
            raise InvalidTransaction(f"missing field {e.args[0]!r}") from None


def new_transaction(kind: str, amount: Number, category: str, note: str = "",
                    ts: Optional[datetime] = None) -> Transaction:
    """Create a transaction with a fresh id, stamped with the current time."""
    return Transaction(
        id=str(uuid4()),
        kind=kind,
        amount=amount,
        category=category,
        ts=ts or utcnow(),
        note=note,
    )


# Limit and threshold are only coerced here; validate_budget() checks ranges.
@dataclass(frozen=True)
class BudgetConfig:
    limit: Decimal = DEFAULT_LIMIT
    alert_threshold_percent: Decimal = DEFAULT_ALERT_THRESHOLD

    def __post_init__(self):
        object.__setattr__(self, "limit", to_decimal(self.limit, InvalidBudgetConfig, "limit"))
        object.__setattr__(
            self,
            "alert_threshold_percent",
            to_decimal(self.alert_threshold_percent, InvalidBudgetConfig, "alert_threshold_percent"),
        )

    @property
    def threshold_amount(self) -> Decimal:
        return self.limit * self.alert_threshold_percent / 100

    def with_limit(self, limit: Number) -> "BudgetConfig":
        return replace(self, limit=limit)

    def to_dict(self) -> dict:
        return {"limit": str(self.limit), "alertThreshold": str(self.alert_threshold_percent)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BudgetConfig":
        return cls(
            limit=data.get("limit", DEFAULT_LIMIT),
            alert_threshold_percent=data.get(
                "alertThreshold", data.get("alert_threshold_percent", DEFAULT_ALERT_THRESHOLD)
            ),
        )


@dataclass(frozen=True)
class UserSettings:
    email: str = "user@example.com"
    currency: str = "USD"

    def to_dict(self) -> dict:
        return {"email": self.email, "currency": self.currency}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UserSettings":
        defaults = cls()
        return cls(
            email=str(data.get("email") or defaults.email),
            currency=str(data.get("currency") or defaults.currency),
        )


@dataclass(frozen=True)
class AggregateResult:
    total_income: Decimal
    total_expense: Decimal
    category_breakdown: Mapping[str, Decimal]   # category -> summed expense, largest first
    budget_usage_ratio: Decimal                 # unclamped, > 1 means over budget

    def __post_init__(self):
        object.__setattr__(self, "category_breakdown", MappingProxyType(dict(self.category_breakdown)))

    @property
    def display_usage_ratio(self) -> Decimal:
        return min(max(self.budget_usage_ratio, Decimal(0)), Decimal(1))

    @property
    def net_savings(self) -> Decimal:
        return self.total_income - self.total_expense

    @property
    def is_over_budget(self) -> bool:
        return self.budget_usage_ratio > 1

    @property
    def remaining_percent(self) -> Decimal:
        return 100 - self.display_usage_ratio * 100


def validate_budget(budget: BudgetConfig) -> BudgetConfig:
    """Raise InvalidBudgetConfig unless limit > 0 and 0 <= threshold <= 100."""
    limit = budget.limit
    threshold = budget.alert_threshold_percent
    if not limit.is_finite() or limit <= 0:
        raise InvalidBudgetConfig(f"budget limit must be positive, got {limit}")
    if not threshold.is_finite() or not 0 <= threshold <= 100:
        raise InvalidBudgetConfig(
            f"alert threshold must be between 0 and 100 percent, got {threshold}"
        )
    return budget
