from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, Iterable, Mapping, Optional, TypeVar

from budget_core.alerts import BudgetAlert, classify
from budget_core.domain import BudgetConfig, Transaction
from budget_core.errors import InvalidBudgetConfig, InvalidTransaction
from budget_core.transforms import expense_transactions, total_amount

T = TypeVar('T')
U = TypeVar('U')
E = TypeVar('E')


class Maybe(Generic[T], ABC):
    """A value that may be absent, e.g. a report the advisor could not produce."""

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        ...

    @abstractmethod
    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        ...

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        ...

    @abstractmethod
    def is_some(self) -> bool:
        ...

    def is_none(self) -> bool:
        return not self.is_some()


class Some(Maybe[T]):

    def __init__(self, value: T):
        self._value = value

    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        return Some(f(self._value))

    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        return f(self._value)

    def get_or_else(self, default: T) -> T:
        return self._value

    def is_some(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"Some({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Some) and self._value == other._value


class Nothing(Maybe[T]):

    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        return Nothing()

    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        return Nothing()

    def get_or_else(self, default: T) -> T:
        return default

    def is_some(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "Nothing()"

    def __eq__(self, other) -> bool:
        return isinstance(other, Nothing)


class Either(Generic[E, T], ABC):
    """Right carries a result, Left carries a structured error."""

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        ...

    @abstractmethod
    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        ...

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        ...

    @abstractmethod
    def is_right(self) -> bool:
        ...

    @abstractmethod
    def get_error(self) -> E:
        ...

    def is_left(self) -> bool:
        return not self.is_right()


class Right(Either[E, T]):

    def __init__(self, value: T):
        self._value = value

    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        return Right(f(self._value))

    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        return f(self._value)

    def get_or_else(self, default: T) -> T:
        return self._value

    def is_right(self) -> bool:
        return True

    def get_error(self) -> E:
        raise ValueError("Right has no error")

    def __repr__(self) -> str:
        return f"Right({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Right) and self._value == other._value


class Left(Either[E, T]):

    def __init__(self, error: E):
        self._error = error

    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        return Left(self._error)

    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        return Left(self._error)

    def get_or_else(self, default: T) -> T:
        return default

    def is_right(self) -> bool:
        return False

    def get_error(self) -> E:
        return self._error

    def __repr__(self) -> str:
        return f"Left({self._error!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Left) and self._error == other._error


def safe_transaction(trans: Iterable[Transaction], transaction_id: str) -> Maybe[Transaction]:
    for t in trans:
        if t.id == transaction_id:
            return Some(t)
    return Nothing()


def validate_transaction_data(data: Mapping[str, Any]) -> Either[dict, Transaction]:
    """Turn form or storage data into a Transaction, or a Left describing why not."""
    try:
        return Right(Transaction.from_dict(data))
    except InvalidTransaction as e:
        return Left({
            "error": "invalid_transaction",
            "message": str(e),
            "id": data.get("id"),
        })


def check_budget(
    trans: Iterable[Transaction],
    budget: BudgetConfig,
    currency: str = "USD",
    email: Optional[str] = None,
) -> Either[dict, BudgetAlert]:
    spent = total_amount(expense_transactions(trans))
    try:
        return Right(classify(spent, budget, currency=currency, email=email))
    except InvalidBudgetConfig as e:
        return Left({
            "error": "invalid_budget",
            "message": str(e),
            "limit": budget.limit,
            "alert_threshold_percent": budget.alert_threshold_percent,
        })
