"""Conversion of stored records into fully-populated models.

Records written by older versions of the app lack ``transactionType``,
``paymentReceived`` or the split fields. ``migrate_record`` fills those in
once, at the storage-read boundary, so the rest of the package can assume
every field is present.

Records that cannot be interpreted (an unknown payment mode, a date that
does not parse) are not dropped silently: they are returned as
``DataContractViolation`` diagnostics next to the good transactions.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from expense_ledger.exceptions import DataContractViolation
from expense_ledger.models import (
    SELF,
    SPLIT,
    Budget,
    PaymentMode,
    SplitShare,
    Transaction,
    TransactionType,
)
from expense_ledger.splits import normalize_person
from expense_ledger.utils.parsing import parse_amount, parse_date

logger = logging.getLogger(__name__)


@dataclass
class LoadResult:
    """Transactions read from storage plus any records that were flagged."""

    transactions: list[Transaction] = field(default_factory=list)
    violations: list[DataContractViolation] = field(default_factory=list)

    @property
    def unparseable_count(self) -> int:
        return len(self.violations)


def _violation(record_id: str | None, field_name: str, reason: str) -> DataContractViolation:
    logger.warning("Skipping record %s: %s: %s", record_id, field_name, reason)
    return DataContractViolation(record_id, field_name, reason)


def migrate_record(record: Mapping[str, Any], record_id: str | None = None) -> Transaction:
    """
    Convert one stored expense record into a Transaction.

    Missing optional fields get their backward-compatible defaults:
    ``transactionType`` -> expense, ``paymentReceived`` -> False,
    ``isSplit`` -> False.

    Args:
        record: Stored record (camelCase keys)
        record_id: Store identifier; falls back to ``record["id"]``

    Returns:
        Transaction

    Raises:
        DataContractViolation: If a required field cannot be interpreted
    """
    record_id = record_id or record.get("id")

    amount = parse_amount(record.get("amount"))
    if amount is None:
        raise _violation(record_id, "amount", f"not a number: {record.get('amount')!r}")

    tx_date = parse_date(record.get("date"))
    if tx_date is None:
        raise _violation(record_id, "date", f"unparseable date: {record.get('date')!r}")

    try:
        payment_mode = PaymentMode.parse(record.get("paymentMode", ""))
    except ValueError:
        raise _violation(
            record_id, "paymentMode", f"unknown payment mode: {record.get('paymentMode')!r}"
        ) from None

    raw_type = record.get("transactionType") or TransactionType.EXPENSE.value
    try:
        transaction_type = TransactionType.parse(raw_type)
    except ValueError:
        raise _violation(
            record_id, "transactionType", f"unknown transaction type: {raw_type!r}"
        ) from None

    title = str(record.get("title") or "").strip() or "(No title)"
    for_whom = normalize_person(str(record.get("forWhom") or SELF))

    split_details: tuple[SplitShare, ...] = ()
    raw_shares = record.get("splitDetails") or []
    if record.get("isSplit") and raw_shares:
        if transaction_type is not TransactionType.EXPENSE:
            raise _violation(
                record_id, "isSplit", f"only expenses can be split, not {transaction_type.value}"
            )
        split_details = tuple(_migrate_share(share, record_id) for share in raw_shares)
        for_whom = SPLIT

    received = bool(record.get("paymentReceived", False))
    received_date = parse_date(record.get("paymentReceivedDate")) if received else None

    if split_details or for_whom == SELF or not transaction_type.collectible:
        received = False
        received_date = None

    return Transaction(
        id=record_id,
        title=title,
        amount=amount,
        payment_mode=payment_mode,
        for_whom=for_whom,
        date=tx_date,
        transaction_type=transaction_type,
        payment_received=received,
        payment_received_date=received_date,
        split_details=split_details,
    )


def _migrate_share(share: Mapping[str, Any], record_id: str | None) -> SplitShare:
    amount = parse_amount(share.get("amount"))
    if amount is None:
        raise _violation(
            record_id, "splitDetails.amount", f"not a number: {share.get('amount')!r}"
        )

    person = normalize_person(str(share.get("person") or ""))
    received = bool(share.get("paymentReceived", False)) and person != SELF
    return SplitShare(
        person=person,
        amount=amount,
        payment_received=received,
        payment_received_date=parse_date(share.get("paymentReceivedDate")) if received else None,
    )


def load_transactions(records: Iterable[tuple[str | None, Mapping[str, Any]]]) -> LoadResult:
    """
    Migrate a batch of stored records.

    Args:
        records: ``(record_id, record)`` pairs as returned by a store

    Returns:
        LoadResult with good transactions and flagged records
    """
    result = LoadResult()
    for record_id, record in records:
        try:
            result.transactions.append(migrate_record(record, record_id))
        except DataContractViolation as e:
            result.violations.append(e)
    return result


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, str) and value.strip():
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    # Stored timestamps without an offset were written in UTC.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def migrate_budget(record: Mapping[str, Any], record_id: str | None = None) -> Budget:
    """
    Convert one stored budget record into a Budget.

    Raises:
        DataContractViolation: If the month or amount cannot be interpreted
    """
    record_id = record_id or record.get("id")

    month = parse_date(record.get("month"))
    if month is None:
        raise _violation(record_id, "month", f"unparseable month: {record.get('month')!r}")

    amount = parse_amount(record.get("amount"))
    if amount is None:
        raise _violation(record_id, "amount", f"not a number: {record.get('amount')!r}")

    created_at = _parse_timestamp(record.get("createdAt")) or datetime.now(timezone.utc)
    updated_at = _parse_timestamp(record.get("updatedAt")) or created_at

    return Budget(
        id=record_id,
        month=month,
        amount=amount,
        created_at=created_at,
        updated_at=updated_at,
    )


def load_budgets(
    records: Iterable[tuple[str | None, Mapping[str, Any]]],
) -> tuple[list[Budget], list[DataContractViolation]]:
    """Migrate a batch of stored budget records."""
    budgets: list[Budget] = []
    violations: list[DataContractViolation] = []
    for record_id, record in records:
        try:
            budgets.append(migrate_budget(record, record_id))
        except DataContractViolation as e:
            violations.append(e)
    return budgets, violations
