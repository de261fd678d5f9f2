"""Utility functions for expense-ledger."""

from expense_ledger.utils.dates import (
    end_of_month,
    month_key,
    month_label,
    parse_month,
    shift_month,
    start_of_month,
)
from expense_ledger.utils.parsing import (
    format_amount,
    parse_amount,
    parse_date,
)

__all__ = [
    "end_of_month",
    "format_amount",
    "month_key",
    "month_label",
    "parse_amount",
    "parse_date",
    "parse_month",
    "shift_month",
    "start_of_month",
]
