"""Data models for transactions, split shares and budgets."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from expense_ledger.utils.dates import start_of_month

SELF = "Self"
SPLIT = "Split"

# Split shares must add up to the transaction total within this tolerance.
SPLIT_TOLERANCE = Decimal("0.01")


class PaymentMode(str, Enum):
    """How a transaction was paid. Values are the stored strings."""

    CREDIT_CARD = "Credit Card"
    DEBIT_CARD = "Debit Card"
    UPI = "UPI"
    CASH = "Cash"

    @classmethod
    def parse(cls, value: "PaymentMode | str") -> "PaymentMode":
        """Look up a payment mode by stored value or member name.

        Raises:
            ValueError: If the value is not one of the four modes
        """
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for mode in cls:
            if text == mode.value or text.upper() == mode.name:
                return mode
        raise ValueError(f"Unknown payment mode: {value!r}")


class TransactionType(str, Enum):
    """Kind of money movement a transaction records."""

    EXPENSE = "expense"
    INCOME = "income"
    DONATION = "donation"
    LENT = "lent"

    @classmethod
    def parse(cls, value: "TransactionType | str") -> "TransactionType":
        """Look up a transaction type, case-insensitively.

        Raises:
            ValueError: If the value is not a known type
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as err:
            raise ValueError(f"Unknown transaction type: {value!r}") from err

    @property
    def collectible(self) -> bool:
        """Return True if money for this type can be owed back to the user."""
        return self is not TransactionType.INCOME


@dataclass(frozen=True)
class SplitShare:
    """One person's part of a split expense."""

    person: str
    amount: Decimal
    payment_received: bool = False
    payment_received_date: date | None = None

    @property
    def is_self(self) -> bool:
        return self.person == SELF

    def to_record(self) -> dict[str, Any]:
        return {
            "person": self.person,
            "amount": float(self.amount),
            "paymentReceived": self.payment_received,
            "paymentReceivedDate": (
                self.payment_received_date.isoformat() if self.payment_received_date else None
            ),
        }


@dataclass(frozen=True)
class Transaction:
    """A recorded expense, income, donation or loan.

    Instances are expected to be fully populated: records read from storage
    go through ``expense_ledger.records`` and user input goes through
    ``expense_ledger.validation`` before a Transaction is built.
    """

    title: str
    amount: Decimal
    payment_mode: PaymentMode
    for_whom: str
    date: date
    transaction_type: TransactionType = TransactionType.EXPENSE
    payment_received: bool = False
    payment_received_date: date | None = None
    split_details: tuple[SplitShare, ...] = field(default=())
    id: str | None = None

    @property
    def is_split(self) -> bool:
        """Return True if the amount is divided among several people."""
        return bool(self.split_details)

    @property
    def is_self(self) -> bool:
        """Return True if the transaction is for the user themself."""
        return self.for_whom == SELF

    @property
    def month(self) -> date:
        """Return the first day of the transaction's month."""
        return start_of_month(self.date)

    def to_record(self) -> dict[str, Any]:
        """Convert to the stored record shape (without the id)."""
        return {
            "title": self.title,
            "amount": float(self.amount),
            "paymentMode": self.payment_mode.value,
            "forWhom": self.for_whom,
            "date": self.date.isoformat(),
            "transactionType": self.transaction_type.value,
            "paymentReceived": self.payment_received,
            "paymentReceivedDate": (
                self.payment_received_date.isoformat() if self.payment_received_date else None
            ),
            "isSplit": self.is_split,
            "splitDetails": [share.to_record() for share in self.split_details]
            if self.is_split
            else None,
        }


@dataclass
class Budget:
    """Spending limit for one calendar month."""

    month: date
    amount: Decimal
    created_at: datetime
    updated_at: datetime
    id: str | None = None

    def __post_init__(self) -> None:
        """Normalize the month key to the first day of the month."""
        self.month = start_of_month(self.month)

    def to_record(self) -> dict[str, Any]:
        return {
            "month": self.month.isoformat(),
            "amount": float(self.amount),
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }
