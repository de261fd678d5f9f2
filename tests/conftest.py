"""Pytest configuration and fixtures."""

from collections.abc import Callable
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

from expense_ledger.models import (
    SELF,
    SPLIT,
    PaymentMode,
    SplitShare,
    Transaction,
    TransactionType,
)
from expense_ledger.storage import JsonLedgerStore

TxFactory = Callable[..., Transaction]


def make_tx(
    amount: str | int = "100",
    for_whom: str = SELF,
    on: date = date(2024, 1, 15),
    transaction_type: TransactionType = TransactionType.EXPENSE,
    payment_mode: PaymentMode = PaymentMode.UPI,
    received: bool = False,
    title: str = "Test",
    **extra: Any,
) -> Transaction:
    """Build an already-valid Transaction without going through validation."""
    return Transaction(
        title=title,
        amount=Decimal(str(amount)),
        payment_mode=payment_mode,
        for_whom=for_whom,
        date=on,
        transaction_type=transaction_type,
        payment_received=received,
        payment_received_date=on if received else None,
        **extra,
    )


def make_split(
    shares: list[tuple[str, str, bool]],
    on: date = date(2024, 1, 20),
    title: str = "Dinner",
) -> Transaction:
    """Build a split expense from (person, amount, received) triples."""
    details = tuple(
        SplitShare(
            person=person,
            amount=Decimal(amount),
            payment_received=received,
            payment_received_date=on if received else None,
        )
        for person, amount, received in shares
    )
    return Transaction(
        title=title,
        amount=sum((s.amount for s in details), Decimal(0)),
        payment_mode=PaymentMode.CREDIT_CARD,
        for_whom=SPLIT,
        date=on,
        split_details=details,
    )


@pytest.fixture
def tx() -> TxFactory:
    """Return the transaction factory."""
    return make_tx


@pytest.fixture
def split_tx() -> Transaction:
    """Split dinner: Self 300, Raj 300 (received), Priya 300 (pending)."""
    return make_split([("Self", "300", False), ("Raj", "300", True), ("Priya", "300", False)])


@pytest.fixture
def data_file(tmp_path: Path) -> Path:
    """Return path to a fresh ledger file."""
    return tmp_path / "ledger.json"


@pytest.fixture
def store(data_file: Path) -> JsonLedgerStore:
    """Return an empty JSON ledger store."""
    return JsonLedgerStore(data_file)


@pytest.fixture
def split() -> Callable[..., Transaction]:
    """Return the split transaction factory."""
    return make_split
