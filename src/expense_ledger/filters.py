"""Transaction filtering by month, type, payment mode and counterparty."""

from collections.abc import Hashable, Iterable
from dataclasses import dataclass, field
from datetime import date
from typing import Generic, TypeVar

from expense_ledger.models import PaymentMode, Transaction, TransactionType
from expense_ledger.utils.dates import end_of_month, start_of_month

T = TypeVar("T", bound=Hashable)


@dataclass(frozen=True)
class Selection(Generic[T]):
    """
    A multi-select filter value: either unrestricted or a set of values.

    An empty selection is never stored; ``Selection.of([])`` and toggling
    off the last value both give the unrestricted selection, so a filter
    can never end up matching nothing.
    """

    values: frozenset[T] | None = None

    @classmethod
    def all(cls) -> "Selection[T]":
        return cls(None)

    @classmethod
    def of(cls, values: Iterable[T]) -> "Selection[T]":
        chosen = frozenset(values)
        return cls(chosen or None)

    @property
    def is_unrestricted(self) -> bool:
        return self.values is None

    def matches(self, value: T) -> bool:
        return self.values is None or value in self.values

    def toggle(self, value: T) -> "Selection[T]":
        """Add a value to the selection, or remove it if already selected."""
        current = self.values or frozenset()
        if value in current:
            return Selection.of(current - {value})
        return Selection.of(current | {value})

    def intersect(self, other: "Selection[T]") -> "Selection[T] | None":
        """
        Combine two selections as if both were applied.

        Returns None when the two selections share no value, because the
        combined filter then matches nothing and cannot be expressed as a
        Selection.
        """
        if self.values is None:
            return other
        if other.values is None:
            return self
        common = self.values & other.values
        return Selection(common) if common else None


@dataclass(frozen=True)
class FilterCriteria:
    """Active filters for the transaction list. ``month`` is always set."""

    month: date
    transaction_types: Selection[TransactionType] = field(default_factory=Selection.all)
    payment_modes: Selection[PaymentMode] = field(default_factory=Selection.all)
    for_whom: Selection[str] = field(default_factory=Selection.all)

    def __post_init__(self) -> None:
        object.__setattr__(self, "month", start_of_month(self.month))

    def matches(self, tx: Transaction) -> bool:
        start, end = month_bounds(self.month)
        return (
            start <= tx.date <= end
            and self.transaction_types.matches(tx.transaction_type)
            and self.payment_modes.matches(tx.payment_mode)
            and self.for_whom.matches(tx.for_whom)
        )


def month_bounds(month: date) -> tuple[date, date]:
    """Return the first and last day of a month, both inclusive."""
    return start_of_month(month), end_of_month(month)


def filter_transactions(
    transactions: Iterable[Transaction], criteria: FilterCriteria
) -> list[Transaction]:
    """Keep the transactions matching every active criterion, in input order."""
    return [tx for tx in transactions if criteria.matches(tx)]


def combine(a: FilterCriteria, b: FilterCriteria) -> FilterCriteria | None:
    """
    Build the criteria equivalent to applying ``a`` and then ``b``.

    Returns None when the combination can match nothing (different months,
    or disjoint selections).
    """
    if a.month != b.month:
        return None

    types = a.transaction_types.intersect(b.transaction_types)
    modes = a.payment_modes.intersect(b.payment_modes)
    people = a.for_whom.intersect(b.for_whom)
    if types is None or modes is None or people is None:
        return None

    return FilterCriteria(
        month=a.month,
        transaction_types=types,
        payment_modes=modes,
        for_whom=people,
    )


def counterparties(transactions: Iterable[Transaction]) -> list[str]:
    """Return the sorted distinct ``for_whom`` values, for filter options."""
    return sorted({tx.for_whom for tx in transactions})
