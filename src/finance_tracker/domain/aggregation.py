from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal

from finance_tracker.models import BalanceAmounts, ClassAmounts, TransactionType

ZERO = Decimal(0)

# Partial store result: only buckets that have data, only classes seen in them.
PartialBuckets = Mapping[str, Mapping[TransactionType, Decimal]]


@dataclass(frozen=True)
class ClassTotals:
    income: Decimal = ZERO
    expense: Decimal = ZERO
    savings: Decimal = ZERO

    @property
    def balance(self) -> Decimal:
        return self.income - self.expense - self.savings

    def __add__(self, other: ClassTotals) -> ClassTotals:
        return ClassTotals(
            income=self.income + other.income,
            expense=self.expense + other.expense,
            savings=self.savings + other.savings,
        )

    @classmethod
    def from_mapping(cls, values: Mapping[TransactionType, Decimal] | None) -> ClassTotals:
        if not values:
            return cls()
        amounts = {TransactionType(kind).value: Decimal(total or 0) for kind, total in values.items()}
        return cls(**amounts)

    def to_amounts(self) -> ClassAmounts:
        return ClassAmounts(income=self.income, expense=self.expense, savings=self.savings)

    def to_balance(self) -> BalanceAmounts:
        return BalanceAmounts(
            income=self.income,
            expense=self.expense,
            savings=self.savings,
            balance=self.balance,
        )


@dataclass(frozen=True)
class SeriesPoint:
    key: str
    totals: ClassTotals


def densify(keys: Sequence[str], partial: PartialBuckets) -> list[SeriesPoint]:
    """One point per expected key, in key order; gaps become zeros.

    Keys in ``partial`` that are not expected are dropped.
    """
    return [SeriesPoint(key, ClassTotals.from_mapping(partial.get(key))) for key in keys]


def sum_points(points: Iterable[SeriesPoint]) -> ClassTotals:
    total = ClassTotals()
    for point in points:
        total = total + point.totals
    return total


def running_balances(points: Iterable[SeriesPoint], carry: ClassTotals | None = None) -> list[Decimal]:
    """Balance at the end of each bucket, starting from ``carry``."""
    running = carry.balance if carry else ZERO
    balances: list[Decimal] = []
    for point in points:
        running += point.totals.balance
        balances.append(running)
    return balances
