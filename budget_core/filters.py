from datetime import datetime
from typing import Callable, Iterable, Iterator, Union

from budget_core.domain import Number, Transaction, parse_ts, to_decimal

Predicate = Callable[[Transaction], bool]


def by_kind(kind: str) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return t.kind == kind

    return _filter


def by_category(category: str) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return t.category == category

    return _filter


def by_month(year: int, month: int) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return t.ts.year == year and t.ts.month == month

    return _filter


def by_date_range(start: Union[str, datetime], end: Union[str, datetime]) -> Predicate:
    """Inclusive on both ends; naive bounds are read as UTC."""
    start, end = parse_ts(start), parse_ts(end)

    def _filter(t: Transaction) -> bool:
        return start <= t.ts <= end

    return _filter


def by_amount_range(low: Number, high: Number) -> Predicate:
    low, high = to_decimal(low), to_decimal(high)

    def _filter(t: Transaction) -> bool:
        return low <= t.amount <= high

    return _filter


def all_of(*preds: Predicate) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return all(p(t) for p in preds)

    return _filter


def iter_transactions(trans: Iterable[Transaction], pred: Predicate) -> Iterator[Transaction]:
    for t in trans:
        if pred(t):
            yield t
