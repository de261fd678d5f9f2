"""Parsing and formatting helpers for stored transaction fields."""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any


def parse_date(value: Any) -> date | None:
    """
    Parse a stored date value to a date object.

    Supported inputs:
    - date / datetime objects
    - ISO strings (2024-01-30, 2024-01-30T10:15:00Z)
    - DD/MM/YYYY (30/01/2024)
    - DD MMM YYYY (30 Jan 2024)

    Args:
        value: Date value to parse

    Returns:
        date object if successful, None otherwise
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    date_str = value.strip().strip('"').strip()
    if not date_str:
        return None

    # Timestamps written by other clients carry a time part; only the
    # calendar date matters for month bucketing.
    iso = date_str.replace("Z", "+00:00")
    try:
        return datetime.fromisoformat(iso).date()
    except ValueError:
        pass

    formats = [
        "%d/%m/%Y",  # 30/01/2024
        "%d %b %Y",  # 30 Jan 2024
        "%d-%m-%Y",  # 30-01-2024
        "%d %B %Y",  # 30 January 2024
    ]

    for fmt in formats:
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    return None


def parse_amount(value: Any) -> Decimal | None:
    """
    Parse a stored amount to Decimal.

    Handles:
    - int, float and Decimal values
    - Currency symbols (₹, Rs, $)
    - Thousands separators (commas)

    Args:
        value: Amount to parse

    Returns:
        Decimal if successful, None otherwise
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        # str() keeps the short repr, so 555.96 does not become 555.9599...
        amount = Decimal(str(value))
        return amount if amount.is_finite() else None
    if not isinstance(value, str):
        return None

    amount_str = value.strip().strip('"').strip()
    amount_str = re.sub(r"(₹|Rs\.?|INR|\$|\s)", "", amount_str)
    amount_str = amount_str.replace(",", "")

    if not amount_str:
        return None

    try:
        amount = Decimal(amount_str)
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


def format_amount(value: Decimal | int | float, decimals: int = 2) -> str:
    """
    Format an amount with thousands separators.

    A trailing ``.00`` is dropped, so 1500 prints as ``1,500`` and
    1234.5 as ``1,234.50``.
    """
    formatted = f"{Decimal(str(value)):,.{decimals}f}"
    if decimals > 0 and formatted.endswith("." + "0" * decimals):
        formatted = formatted[: -(decimals + 1)]
    return formatted
