"""Calendar-month helpers.

Months are represented as the ``date`` of their first day, so two dates
belong to the same month exactly when their ``start_of_month`` values are
equal.
"""

import calendar
import re
from datetime import date, datetime

_MONTH_RE = re.compile(r"^(\d{4})-(\d{1,2})$")


def start_of_month(value: date | datetime) -> date:
    """Return the first day of the month containing ``value``."""
    if isinstance(value, datetime):
        value = value.date()
    return value.replace(day=1)


def end_of_month(value: date | datetime) -> date:
    """Return the last day of the month containing ``value``."""
    first = start_of_month(value)
    last_day = calendar.monthrange(first.year, first.month)[1]
    return first.replace(day=last_day)


def shift_month(month: date, offset: int) -> date:
    """Move a month forward (positive offset) or backward (negative offset)."""
    first = start_of_month(month)
    index = first.year * 12 + (first.month - 1) + offset
    return date(index // 12, index % 12 + 1, 1)


def month_key(value: date | datetime) -> str:
    """Return the ``YYYY-MM`` key for a date."""
    first = start_of_month(value)
    return f"{first.year}-{first.month:02d}"


def month_label(value: date | datetime) -> str:
    """Return a short display label such as ``Jan 2024``."""
    first = start_of_month(value)
    return f"{calendar.month_abbr[first.month]} {first.year}"


def parse_month(value: str) -> date:
    """
    Parse a ``YYYY-MM`` string (or a full ISO date) into a month.

    Raises:
        ValueError: If the string is not a recognizable month
    """
    value = value.strip()
    match = _MONTH_RE.match(value)
    if match:
        year, month = int(match.group(1)), int(match.group(2))
        if not 1 <= month <= 12:
            raise ValueError(f"Invalid month: {value}")
        return date(year, month, 1)

    try:
        return start_of_month(date.fromisoformat(value))
    except ValueError as err:
        raise ValueError(f"Invalid month: {value}") from err
