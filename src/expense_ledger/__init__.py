"""expense-ledger - Personal expense tracking with splits and monthly budgets."""

from expense_ledger.budget import budget_status, upsert_budget
from expense_ledger.filters import FilterCriteria, Selection, filter_transactions
from expense_ledger.models import Budget, PaymentMode, SplitShare, Transaction, TransactionType
from expense_ledger.summary import MonthlySummary, summarize_month
from expense_ledger.trend import NotEnoughData, build_trend
from expense_ledger.validation import TransactionDraft, validate_transaction

__version__ = "0.1.0"
__all__ = [
    "Budget",
    "FilterCriteria",
    "MonthlySummary",
    "NotEnoughData",
    "PaymentMode",
    "Selection",
    "SplitShare",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "budget_status",
    "build_trend",
    "filter_transactions",
    "summarize_month",
    "upsert_budget",
    "validate_transaction",
]
