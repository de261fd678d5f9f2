"""Monthly rollups of transactions.

``summarize_month`` turns a snapshot of transactions into the figures shown
for one month: what the user spent on themself, what they paid for others
and how much of that is still pending, income, donations, money lent, a
payment-mode breakdown, and who still owes what.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from expense_ledger.exceptions import DataContractViolation
from expense_ledger.models import PaymentMode, Transaction, TransactionType
from expense_ledger.splits import expand_split, self_share
from expense_ledger.utils.dates import start_of_month

ZERO = Decimal(0)


def _total(transactions: Iterable[Transaction]) -> Decimal:
    return sum((tx.amount for tx in transactions), ZERO)


@dataclass
class CounterpartyDues:
    """Money one person still owes the user."""

    person: str
    amount: Decimal
    count: int
    transactions: list[Transaction]


@dataclass
class MonthlySummary:
    """Derived figures for one calendar month."""

    month: date
    total_spent_by_me: Decimal = ZERO
    total_spent_for_others: Decimal = ZERO
    total_received: Decimal = ZERO
    total_pending: Decimal = ZERO
    total_income: Decimal = ZERO
    total_donations: Decimal = ZERO
    total_lent: Decimal = ZERO
    received_lent: Decimal = ZERO
    pending_lent: Decimal = ZERO
    payment_mode_totals: dict[PaymentMode, Decimal] = field(
        default_factory=lambda: {mode: ZERO for mode in PaymentMode}
    )
    money_to_collect: list[CounterpartyDues] = field(default_factory=list)
    transaction_count: int = 0
    self_count: int = 0
    other_count: int = 0
    diagnostics: tuple[DataContractViolation, ...] = ()

    @property
    def net_amount(self) -> Decimal:
        """Out-of-pocket spending used for budget comparison.

        Donations never enter this figure.
        """
        return self.total_spent_by_me + self.total_pending + self.pending_lent - self.total_income

    @property
    def total_to_collect(self) -> Decimal:
        return sum((dues.amount for dues in self.money_to_collect), ZERO)

    @property
    def unparseable_count(self) -> int:
        return len(self.diagnostics)


def _is_type(tx: Transaction, transaction_type: TransactionType) -> bool:
    return tx.transaction_type is transaction_type


def group_money_to_collect(pending: Iterable[Transaction]) -> list[CounterpartyDues]:
    """
    Group pending transactions by counterparty.

    Groups are ordered by amount owed, largest first; each group's
    transactions are ordered newest first.
    """
    by_person: dict[str, list[Transaction]] = {}
    for tx in pending:
        by_person.setdefault(tx.for_whom, []).append(tx)

    groups = [
        CounterpartyDues(
            person=person,
            amount=_total(txs),
            count=len(txs),
            transactions=sorted(txs, key=lambda t: t.date, reverse=True),
        )
        for person, txs in by_person.items()
    ]
    groups.sort(key=lambda g: g.amount, reverse=True)
    return groups


def summarize_month(
    transactions: Iterable[Transaction],
    month: date,
    diagnostics: Sequence[DataContractViolation] = (),
) -> MonthlySummary:
    """
    Compute the monthly summary.

    Args:
        transactions: Transactions; those outside ``month`` are ignored, so
            a pre-filtered list gives the same result
        month: Any date in the month to summarize
        diagnostics: Records flagged at load time, reported with the summary

    Returns:
        MonthlySummary
    """
    month = start_of_month(month)
    month_txs = [tx for tx in transactions if tx.month == month]

    expenses = [tx for tx in month_txs if _is_type(tx, TransactionType.EXPENSE)]

    self_amounts: list[Decimal] = []
    others: list[Transaction] = []
    self_count = 0
    for tx in expenses:
        if tx.is_split:
            self_amounts.append(self_share(tx))
            others.extend(expand_split(tx))
        elif tx.is_self:
            self_amounts.append(tx.amount)
            self_count += 1
        else:
            others.append(tx)

    received = [tx for tx in others if tx.payment_received]
    pending = [tx for tx in others if not tx.payment_received]

    donations = [tx for tx in month_txs if _is_type(tx, TransactionType.DONATION)]
    lent = [tx for tx in month_txs if _is_type(tx, TransactionType.LENT)]
    pending_lent = [tx for tx in lent if not tx.payment_received]

    payment_mode_totals = {mode: ZERO for mode in PaymentMode}
    for tx in expenses:
        payment_mode_totals[tx.payment_mode] += tx.amount

    collectible = (
        pending
        + [tx for tx in donations if not tx.is_self and not tx.payment_received]
        + pending_lent
    )

    return MonthlySummary(
        month=month,
        total_spent_by_me=sum(self_amounts, ZERO),
        total_spent_for_others=_total(others),
        total_received=_total(received),
        total_pending=_total(pending),
        total_income=_total(tx for tx in month_txs if _is_type(tx, TransactionType.INCOME)),
        total_donations=_total(donations),
        total_lent=_total(lent),
        received_lent=_total(tx for tx in lent if tx.payment_received),
        pending_lent=_total(pending_lent),
        payment_mode_totals=payment_mode_totals,
        money_to_collect=group_money_to_collect(collectible),
        transaction_count=len(month_txs),
        self_count=self_count,
        other_count=len(expenses) - self_count,
        diagnostics=tuple(diagnostics),
    )
