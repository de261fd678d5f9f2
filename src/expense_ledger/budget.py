"""Monthly budgets and budget adherence."""

from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum

from expense_ledger.exceptions import ValidationError
from expense_ledger.models import Budget
from expense_ledger.utils.dates import start_of_month
from expense_ledger.utils.parsing import parse_amount

WARNING_THRESHOLD = Decimal(80)
EXCEEDED_THRESHOLD = Decimal(100)


class BudgetTier(str, Enum):
    """How close spending is to the budget."""

    UNSET = "unset"
    SAFE = "safe"
    WARNING = "warning"
    EXCEEDED = "exceeded"

    @property
    def color(self) -> str:
        return {
            BudgetTier.UNSET: "gray",
            BudgetTier.SAFE: "green",
            BudgetTier.WARNING: "yellow",
            BudgetTier.EXCEEDED: "red",
        }[self]


@dataclass(frozen=True)
class BudgetStatus:
    """Spending measured against a month's budget."""

    tier: BudgetTier
    spent: Decimal
    budget_amount: Decimal | None = None
    remaining: Decimal | None = None
    percentage: Decimal | None = None

    @property
    def color(self) -> str:
        return self.tier.color

    @property
    def is_over(self) -> bool:
        """Return True if spending is above the budget."""
        return self.remaining is not None and self.remaining < 0

    @property
    def bar_percentage(self) -> Decimal | None:
        """Percentage capped at 100, for progress bars."""
        if self.percentage is None:
            return None
        return min(self.percentage, EXCEEDED_THRESHOLD)


def classify(percentage: Decimal | None) -> BudgetTier:
    """Map a spent percentage to a tier. Boundaries go to the higher tier."""
    if percentage is None:
        return BudgetTier.UNSET
    if percentage < WARNING_THRESHOLD:
        return BudgetTier.SAFE
    if percentage < EXCEEDED_THRESHOLD:
        return BudgetTier.WARNING
    return BudgetTier.EXCEEDED


def budget_status(budget: Budget | None, net_amount: Decimal) -> BudgetStatus:
    """
    Compare a month's net spending against its budget.

    Args:
        budget: The month's budget, or None if none is set
        net_amount: ``MonthlySummary.net_amount`` for the same month

    Returns:
        BudgetStatus; a zero budget has no percentage and stays unset
    """
    if budget is None:
        return BudgetStatus(tier=BudgetTier.UNSET, spent=net_amount)

    percentage = None
    if budget.amount != 0:
        percentage = net_amount / budget.amount * 100

    return BudgetStatus(
        tier=classify(percentage),
        spent=net_amount,
        budget_amount=budget.amount,
        remaining=budget.amount - net_amount,
        percentage=percentage,
    )


def find_budget(budgets: Iterable[Budget], month: date) -> Budget | None:
    """Return the budget for the month containing ``month``, if any."""
    key = start_of_month(month)
    for budget in budgets:
        if budget.month == key:
            return budget
    return None


def upsert_budget(
    budgets: list[Budget],
    month: date,
    amount: Decimal | str | int | float,
    now: datetime | None = None,
) -> tuple[list[Budget], Budget]:
    """
    Set the budget for a month.

    If the month already has a budget its amount and ``updated_at`` are
    changed; otherwise a new budget is added. The input list is not
    modified.

    Returns:
        (new budget list, the created or updated budget)

    Raises:
        ValidationError: If the amount is not a positive number
    """
    value = parse_amount(amount)
    if value is None or value <= 0:
        raise ValidationError("Please enter a valid budget amount (greater than 0)")

    now = now or datetime.now(timezone.utc)
    key = start_of_month(month)

    existing = find_budget(budgets, key)
    if existing is not None:
        # updated_at stays strictly after created_at even with a coarse clock.
        updated_at = now
        if updated_at <= existing.created_at:
            updated_at = existing.created_at + timedelta(microseconds=1)
        updated = replace(existing, amount=value, updated_at=updated_at)
        return [updated if b is existing else b for b in budgets], updated

    created = Budget(month=key, amount=value, created_at=now, updated_at=now)
    return [*budgets, created], created


def delete_budget(budgets: list[Budget], month: date) -> list[Budget]:
    """Return the budgets without the one for ``month``."""
    key = start_of_month(month)
    return [b for b in budgets if b.month != key]
