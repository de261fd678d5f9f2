"""Write-path validation for transactions.

Everything that creates or edits a transaction goes through
``validate_transaction``. It either returns a fully-populated
``Transaction`` or raises ``ValidationError`` without side effects.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Any

from expense_ledger.exceptions import InvalidSplit, ValidationError
from expense_ledger.models import (
    SELF,
    SPLIT,
    PaymentMode,
    SplitShare,
    Transaction,
    TransactionType,
)
from expense_ledger.splits import normalize_person, resolve_splits
from expense_ledger.utils.parsing import parse_amount, parse_date


@dataclass
class TransactionDraft:
    """Unvalidated transaction input, as entered by the user."""

    title: str
    amount: Decimal | str | int | float
    payment_mode: PaymentMode | str
    for_whom: str
    date: date | str
    transaction_type: TransactionType | str = TransactionType.EXPENSE
    payment_received: bool = False
    payment_received_date: date | None = None
    is_split: bool = False
    split_details: Sequence[SplitShare] = field(default_factory=list)
    id: str | None = None

    @classmethod
    def from_transaction(cls, tx: Transaction) -> "TransactionDraft":
        return cls(
            title=tx.title,
            amount=tx.amount,
            payment_mode=tx.payment_mode,
            for_whom=tx.for_whom,
            date=tx.date,
            transaction_type=tx.transaction_type,
            payment_received=tx.payment_received,
            payment_received_date=tx.payment_received_date,
            is_split=tx.is_split,
            split_details=list(tx.split_details),
            id=tx.id,
        )


def tracks_collection(transaction_type: TransactionType, for_whom: str) -> bool:
    """Return True if a payment-received status applies to this combination."""
    return transaction_type.collectible and normalize_person(for_whom) != SELF


def validate_transaction(draft: TransactionDraft, today: date | None = None) -> Transaction:
    """
    Validate and normalize a transaction draft.

    Args:
        draft: User input
        today: Date used when a payment is marked received without a date

    Returns:
        Validated Transaction

    Raises:
        ValidationError: If the draft cannot be accepted
        InvalidSplit: If the split details are inconsistent
    """
    today = today or date.today()

    title = (draft.title or "").strip()
    if not title:
        raise ValidationError("Title is required")

    amount = parse_amount(draft.amount)
    if amount is None:
        raise ValidationError(f"Amount is not a number: {draft.amount!r}")
    if amount <= 0:
        raise ValidationError("Amount must be greater than 0")

    try:
        payment_mode = PaymentMode.parse(draft.payment_mode)
        transaction_type = TransactionType.parse(draft.transaction_type)
    except ValueError as e:
        raise ValidationError(str(e)) from e

    tx_date = parse_date(draft.date)
    if tx_date is None:
        raise ValidationError(f"Invalid date: {draft.date!r}")

    if draft.is_split:
        if transaction_type is not TransactionType.EXPENSE:
            raise ValidationError("Only expenses can be split")
        shares = resolve_splits(draft.split_details, amount)
        return Transaction(
            id=draft.id,
            title=title,
            amount=amount,
            payment_mode=payment_mode,
            for_whom=SPLIT,
            date=tx_date,
            transaction_type=transaction_type,
            split_details=_stamp_received_dates(shares, today),
        )

    for_whom = normalize_person(draft.for_whom or "")
    if not for_whom:
        raise ValidationError("For whom is required")
    if for_whom == SPLIT:
        raise ValidationError(f'"{SPLIT}" is reserved for split expenses')
    if transaction_type is TransactionType.LENT and for_whom == SELF:
        raise ValidationError("Money cannot be lent to Self")

    received = False
    received_date = None
    if tracks_collection(transaction_type, for_whom) and draft.payment_received:
        received = True
        received_date = draft.payment_received_date or today

    return Transaction(
        id=draft.id,
        title=title,
        amount=amount,
        payment_mode=payment_mode,
        for_whom=for_whom,
        date=tx_date,
        transaction_type=transaction_type,
        payment_received=received,
        payment_received_date=received_date,
    )


def _stamp_received_dates(shares: tuple[SplitShare, ...], today: date) -> tuple[SplitShare, ...]:
    return tuple(
        replace(share, payment_received_date=today)
        if share.payment_received and share.payment_received_date is None
        else share
        for share in shares
    )


def build_transaction(today: date | None = None, **fields: Any) -> Transaction:
    """Validate a transaction given as keyword arguments."""
    return validate_transaction(TransactionDraft(**fields), today=today)


def update_transaction(tx: Transaction, today: date | None = None, **changes: Any) -> Transaction:
    """
    Apply edits to an existing transaction and re-validate the result.

    The original transaction is never modified; if validation fails nothing
    changes.
    """
    draft = TransactionDraft.from_transaction(tx)
    if "for_whom" in changes and "is_split" not in changes and tx.is_split:
        # Editing the counterparty of a split expense turns it into a plain one.
        changes["is_split"] = False
    draft = replace(draft, **changes)
    if not draft.is_split:
        draft.split_details = []
    return validate_transaction(draft, today=today)


def mark_received(
    tx: Transaction,
    received: bool,
    person: str | None = None,
    on: date | None = None,
) -> Transaction:
    """
    Set or clear the payment-received status of a transaction.

    For split transactions ``person`` selects the share to update.

    Raises:
        ValidationError: If payment status does not apply to the target
    """
    received_date = (on or date.today()) if received else None

    if tx.is_split:
        if person is None:
            raise ValidationError("Choose whose share of the split was received")
        target = normalize_person(person)
        if target == SELF:
            raise InvalidSplit("The Self share has no payment to collect")

        shares = []
        found = False
        for share in tx.split_details:
            if share.person.lower() == target.lower():
                found = True
                share = replace(
                    share,
                    payment_received=received,
                    payment_received_date=_received_on(share, received, received_date),
                )
            shares.append(share)
        if not found:
            raise ValidationError(f"{person} is not part of this split")
        return replace(tx, split_details=tuple(shares))

    if not tracks_collection(tx.transaction_type, tx.for_whom):
        raise ValidationError(
            f"Payment status does not apply to {tx.transaction_type.value} for {tx.for_whom}"
        )
    return replace(
        tx,
        payment_received=received,
        payment_received_date=_received_on(tx, received, received_date),
    )


def _received_on(
    target: Transaction | SplitShare, received: bool, received_date: date | None
) -> date | None:
    # Re-marking an already received payment keeps the original date.
    if received and target.payment_received and target.payment_received_date:
        return target.payment_received_date
    return received_date
