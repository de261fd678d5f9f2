"""Exception types raised by expense-ledger."""


class LedgerError(Exception):
    """Base class for all expense-ledger errors."""


class ValidationError(LedgerError, ValueError):
    """A transaction or budget payload was rejected on the write path."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class InvalidSplit(ValidationError):
    """Split details violate one of the split invariants."""


class StorageError(LedgerError):
    """A persistence collaborator failed to read or write records."""


class DataContractViolation(LedgerError):
    """A stored record does not match the transaction record shape.

    These are collected at the read boundary and reported next to the
    totals; they are not raised out of the aggregation functions.
    """

    def __init__(self, record_id: str | None, field: str, reason: str) -> None:
        super().__init__(f"{record_id or '<no id>'}: {field}: {reason}")
        self.record_id = record_id
        self.field = field
        self.reason = reason
