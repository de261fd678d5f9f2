"""Month-over-month spending trends."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from expense_ledger.budget import find_budget
from expense_ledger.models import Budget, Transaction
from expense_ledger.summary import summarize_month
from expense_ledger.utils.dates import month_label

MIN_TREND_MONTHS = 2


@dataclass(frozen=True)
class NotEnoughData:
    """Fewer than two months have transactions; no trend can be drawn yet."""

    months_tracked: int

    @property
    def months_needed(self) -> int:
        return MIN_TREND_MONTHS - self.months_tracked

    @property
    def progress(self) -> float:
        """Share of the required months already tracked, 0-100."""
        return self.months_tracked / MIN_TREND_MONTHS * 100


@dataclass(frozen=True)
class TrendPoint:
    """Figures for one month of the trend series."""

    month: date
    total_spent_by_me: Decimal
    net_amount: Decimal
    budget: Decimal | None
    total_spent_for_others: Decimal
    total_received: Decimal
    total_pending: Decimal

    @property
    def label(self) -> str:
        return month_label(self.month)


TrendSeries = list[TrendPoint]


def group_by_month(transactions: Iterable[Transaction]) -> dict[date, list[Transaction]]:
    """Bucket transactions by month, in chronological month order."""
    grouped: dict[date, list[Transaction]] = {}
    for tx in transactions:
        grouped.setdefault(tx.month, []).append(tx)
    return dict(sorted(grouped.items()))


def months_with_data(transactions: Iterable[Transaction]) -> list[date]:
    """Return the sorted distinct months that contain a transaction."""
    return list(group_by_month(transactions))


def build_trend(
    transactions: Iterable[Transaction],
    budgets: Iterable[Budget] = (),
) -> TrendSeries | NotEnoughData:
    """
    Build the monthly trend series.

    Only months that contain at least one transaction appear; gaps are not
    filled in.

    Returns:
        One TrendPoint per month, oldest first, or NotEnoughData when fewer
        than two months have data
    """
    grouped = group_by_month(transactions)
    if len(grouped) < MIN_TREND_MONTHS:
        return NotEnoughData(months_tracked=len(grouped))

    budget_list = list(budgets)
    series: TrendSeries = []
    for month, month_txs in grouped.items():
        summary = summarize_month(month_txs, month)
        budget = find_budget(budget_list, month)
        series.append(
            TrendPoint(
                month=month,
                total_spent_by_me=summary.total_spent_by_me,
                net_amount=summary.net_amount,
                budget=budget.amount if budget else None,
                total_spent_for_others=summary.total_spent_for_others,
                total_received=summary.total_received,
                total_pending=summary.total_pending,
            )
        )
    return series
