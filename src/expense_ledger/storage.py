"""Persistence for transactions and budgets.

Stores hold two collections of records keyed by opaque ids, ``expenses``
and ``budgets``, in the record shape produced by ``Transaction.to_record``
and ``Budget.to_record``. Every write is validated before anything is
changed; reads go through ``expense_ledger.records``.
"""

import json
import logging
import os
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, ClassVar

from expense_ledger.budget import find_budget, upsert_budget
from expense_ledger.exceptions import DataContractViolation, StorageError
from expense_ledger.models import Budget, Transaction
from expense_ledger.records import LoadResult, load_budgets, load_transactions, migrate_record
from expense_ledger.validation import (
    TransactionDraft,
    mark_received,
    update_transaction,
    validate_transaction,
)

logger = logging.getLogger(__name__)

EXPENSES = "expenses"
BUDGETS = "budgets"


@dataclass
class Snapshot:
    """A consistent read of both collections."""

    transactions: list[Transaction] = field(default_factory=list)
    budgets: list[Budget] = field(default_factory=list)
    violations: list[DataContractViolation] = field(default_factory=list)


class LedgerStore(ABC):
    """Base class for ledger stores.

    Subclasses implement raw record access; the transaction and budget
    operations are shared.
    """

    name: ClassVar[str] = "store"

    @abstractmethod
    def list_records(self, collection: str) -> list[tuple[str, dict[str, Any]]]:
        """Return ``(record_id, record)`` pairs for a collection."""

    @abstractmethod
    def get_record(self, collection: str, record_id: str) -> dict[str, Any]:
        """Return one record.

        Raises:
            StorageError: If the record does not exist
        """

    @abstractmethod
    def create_record(self, collection: str, record: dict[str, Any]) -> str:
        """Store a new record and return its id."""

    @abstractmethod
    def replace_record(self, collection: str, record_id: str, record: dict[str, Any]) -> None:
        """Overwrite an existing record."""

    @abstractmethod
    def delete_record(self, collection: str, record_id: str) -> None:
        """Delete a record. Deleting a missing record is an error."""

    # Transactions

    def list_transactions(self) -> LoadResult:
        """Load all transactions, newest first, with any flagged records."""
        result = load_transactions(self.list_records(EXPENSES))
        result.transactions.sort(key=lambda tx: tx.date, reverse=True)
        logger.debug(
            "Loaded %d transactions from %s (%d flagged)",
            len(result.transactions),
            self.name,
            len(result.violations),
        )
        return result

    def get_transaction(self, record_id: str) -> Transaction:
        record = self.get_record(EXPENSES, record_id)
        try:
            return migrate_record(record, record_id)
        except DataContractViolation as e:
            raise StorageError(f"Stored record cannot be read: {e}") from e

    def add_transaction(self, draft: TransactionDraft | Transaction) -> Transaction:
        """Validate and store a new transaction. Returns it with its id."""
        if isinstance(draft, Transaction):
            draft = TransactionDraft.from_transaction(draft)
        tx = validate_transaction(draft)
        record_id = self.create_record(EXPENSES, tx.to_record())
        logger.debug("Added transaction %s (%s)", record_id, tx.title)
        return replace(tx, id=record_id)

    def update_transaction(self, record_id: str, **changes: Any) -> Transaction:
        """Edit a stored transaction. Nothing is written if validation fails."""
        current = self.get_transaction(record_id)
        updated = update_transaction(current, **changes)
        self.replace_record(EXPENSES, record_id, updated.to_record())
        return replace(updated, id=record_id)

    def delete_transaction(self, record_id: str) -> None:
        self.delete_record(EXPENSES, record_id)
        logger.debug("Deleted transaction %s", record_id)

    def mark_payment_received(
        self,
        record_id: str,
        received: bool = True,
        person: str | None = None,
        on: date | None = None,
    ) -> Transaction:
        """Set or clear the received status of a transaction or split share."""
        current = self.get_transaction(record_id)
        updated = mark_received(current, received, person=person, on=on)
        self.replace_record(EXPENSES, record_id, updated.to_record())
        return updated

    # Budgets

    def list_budgets(self) -> tuple[list[Budget], list[DataContractViolation]]:
        budgets, violations = load_budgets(self.list_records(BUDGETS))
        budgets.sort(key=lambda b: b.month)
        return budgets, violations

    def get_budget(self, month: date) -> Budget | None:
        budgets, _ = self.list_budgets()
        return find_budget(budgets, month)

    def set_budget(
        self,
        month: date,
        amount: Decimal | str | int | float,
        now: datetime | None = None,
    ) -> Budget:
        """
        Create or update the budget for a month.

        Reads the current budgets, then writes only the affected record,
        so a month never ends up with two budget records from this store.
        """
        budgets, _ = self.list_budgets()
        _, budget = upsert_budget(budgets, month, amount, now=now)
        if budget.id is None:
            record_id = self.create_record(BUDGETS, budget.to_record())
            budget = replace(budget, id=record_id)
            logger.debug("Created budget %s for %s", record_id, budget.month)
        else:
            self.replace_record(BUDGETS, budget.id, budget.to_record())
            logger.debug("Updated budget %s for %s", budget.id, budget.month)
        return budget

    def delete_budget(self, month: date) -> bool:
        """Delete the budget for a month. Returns False if there was none."""
        budgets, _ = self.list_budgets()
        existing = find_budget(budgets, month)
        if existing is None or existing.id is None:
            return False
        self.delete_record(BUDGETS, existing.id)
        return True

    def snapshot(self) -> Snapshot:
        """Read transactions and budgets together."""
        result = self.list_transactions()
        budgets, budget_violations = self.list_budgets()
        return Snapshot(
            transactions=result.transactions,
            budgets=budgets,
            violations=result.violations + budget_violations,
        )


class JsonLedgerStore(LedgerStore):
    """Ledger kept in a single JSON file.

    The file is read on every operation and rewritten atomically on every
    write. Not safe for concurrent writers.
    """

    name = "json"

    def __init__(self, path: Path) -> None:
        self.path = path

    def _load(self) -> dict[str, dict[str, dict[str, Any]]]:
        if not self.path.exists():
            return {EXPENSES: {}, BUDGETS: {}}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Could not read {self.path}: {e}") from e

        data.setdefault(EXPENSES, {})
        data.setdefault(BUDGETS, {})
        return data  # type: ignore[no-any-return]

    def _save(self, data: dict[str, dict[str, dict[str, Any]]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f"Could not write {self.path}: {e}") from e

    def list_records(self, collection: str) -> list[tuple[str, dict[str, Any]]]:
        return list(self._load()[collection].items())

    def get_record(self, collection: str, record_id: str) -> dict[str, Any]:
        records = self._load()[collection]
        if record_id not in records:
            raise StorageError(f"No {collection} record with id {record_id}")
        return records[record_id]

    def create_record(self, collection: str, record: dict[str, Any]) -> str:
        data = self._load()
        record_id = uuid.uuid4().hex
        data[collection][record_id] = record
        self._save(data)
        return record_id

    def replace_record(self, collection: str, record_id: str, record: dict[str, Any]) -> None:
        data = self._load()
        if record_id not in data[collection]:
            raise StorageError(f"No {collection} record with id {record_id}")
        data[collection][record_id] = record
        self._save(data)

    def delete_record(self, collection: str, record_id: str) -> None:
        data = self._load()
        if record_id not in data[collection]:
            raise StorageError(f"No {collection} record with id {record_id}")
        del data[collection][record_id]
        self._save(data)
