"""Tests for the Firestore REST store."""

from datetime import date, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import requests

from expense_ledger.exceptions import StorageError
from expense_ledger.firestore import (
    FirestoreClient,
    FirestoreLedgerStore,
    decode_fields,
    decode_value,
    document_id,
    encode_fields,
    encode_value,
)
from expense_ledger.budget import find_budget
from expense_ledger.records import migrate_budget, migrate_record

DOCS = "projects/demo/databases/(default)/documents"
IST = timezone(timedelta(hours=5, minutes=30))


def response(payload: dict | None = None) -> MagicMock:
    mock_response = MagicMock()
    mock_response.content = b"{}" if payload is not None else b""
    mock_response.json.return_value = payload
    return mock_response


class TestEncoding:
    """Tests for Firestore value encoding."""

    def test_scalars(self) -> None:
        """Test scalar values map to typed values."""
        assert encode_value(None) == {"nullValue": None}
        assert encode_value(True) == {"booleanValue": True}
        assert encode_value(3) == {"integerValue": "3"}
        assert encode_value(5.5) == {"doubleValue": 5.5}
        assert encode_value("UPI") == {"stringValue": "UPI"}

    def test_timestamp_fields(self) -> None:
        """Test date keys are stored as timestamps."""
        fields = encode_fields({"date": "2024-01-15", "title": "2024-01-15"})
        assert fields["date"] == {"timestampValue": "2024-01-15T00:00:00Z"}
        assert fields["title"] == {"stringValue": "2024-01-15"}

    def test_aware_datetime_converted_to_utc(self) -> None:
        """Test datetimes with an offset are stored in UTC."""
        fields = encode_fields({"createdAt": "2024-01-15T10:00:00+05:30"})
        assert fields["createdAt"] == {"timestampValue": "2024-01-15T04:30:00Z"}

    def test_nested(self) -> None:
        """Test lists of maps are encoded recursively."""
        value = encode_value([{"person": "Raj", "paymentReceivedDate": None}])
        share = value["arrayValue"]["values"][0]["mapValue"]["fields"]
        assert share["person"] == {"stringValue": "Raj"}
        assert share["paymentReceivedDate"] == {"nullValue": None}

    def test_unsupported_type(self) -> None:
        """Test unsupported values are rejected."""
        with pytest.raises(TypeError):
            encode_value(Decimal("1"))


class TestDecoding:
    """Tests for Firestore value decoding."""

    def test_scalars(self) -> None:
        """Test typed values decode to Python values."""
        assert decode_value({"integerValue": "860"}) == 860
        assert decode_value({"doubleValue": 555.96}) == 555.96
        assert decode_value({"booleanValue": False}) is False
        assert decode_value({"nullValue": None}) is None

    def test_timestamp_precision_trimmed(self) -> None:
        """Test nanosecond timestamps are trimmed to microseconds."""
        value = decode_value({"timestampValue": "2024-01-15T10:00:00.123456789Z"})
        assert value == "2024-01-15T10:00:00.123456Z"

    def test_empty_array(self) -> None:
        """Test an empty array has no values key."""
        assert decode_value({"arrayValue": {}}) == []

    def test_record_round_trip(self, split_tx) -> None:
        """Test a transaction record survives encoding and decoding."""
        decoded = decode_fields(encode_fields(split_tx.to_record()))
        assert migrate_record(decoded) == split_tx

    def test_document_id(self) -> None:
        """Test the id is the last path segment."""
        assert document_id(f"{DOCS}/expenses/abc123") == "abc123"


class TestLocalDates:
    """Tests for calendar dates written by clients in a local timezone."""

    def test_budget_month_written_at_local_midnight(self) -> None:
        """Test a January budget saved at IST midnight stays in January."""
        fields = {
            "month": {"timestampValue": "2023-12-31T18:30:00Z"},
            "amount": {"integerValue": "25000"},
            "createdAt": {"timestampValue": "2023-12-31T18:30:00.123456789Z"},
        }
        budget = migrate_budget(decode_fields(fields, IST), "b1")

        assert budget.month == date(2024, 1, 1)
        assert find_budget([budget], date(2024, 1, 15)) is budget

    def test_utc_default(self) -> None:
        """Test timestamps are read as UTC days when no timezone is given."""
        decoded = decode_fields({"date": {"timestampValue": "2023-12-31T18:30:00Z"}})
        assert decoded["date"] == "2023-12-31"

    def test_dates_written_at_local_midnight(self) -> None:
        """Test calendar dates are encoded as midnight in the ledger timezone."""
        fields = encode_fields(
            {"month": "2024-01-01", "createdAt": "2024-01-01T10:00:00+00:00"}, IST
        )
        assert fields["month"] == {"timestampValue": "2023-12-31T18:30:00Z"}
        assert fields["createdAt"] == {"timestampValue": "2024-01-01T10:00:00Z"}

    def test_split_round_trip(self, split_tx) -> None:
        """Test nested share dates survive a local-timezone round trip."""
        decoded = decode_fields(encode_fields(split_tx.to_record(), IST), IST)
        assert decoded["date"] == "2024-01-20"
        assert decoded["splitDetails"][1]["paymentReceivedDate"] == "2024-01-20"
        assert migrate_record(decoded) == split_tx


class TestFirestoreClient:
    """Tests for FirestoreClient."""

    def test_documents_url(self) -> None:
        """Test the documents URL."""
        client = FirestoreClient("demo", "key")
        assert client.documents_url == f"https://firestore.googleapis.com/v1/{DOCS}"

    @patch("expense_ledger.firestore.requests.Session")
    def test_list_paginates(self, mock_session_class: MagicMock) -> None:
        """Test listing follows page tokens."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        mock_session.request.side_effect = [
            response({"documents": [{"name": f"{DOCS}/expenses/a"}], "nextPageToken": "t1"}),
            response({"documents": [{"name": f"{DOCS}/expenses/b"}]}),
        ]

        client = FirestoreClient("demo", "key")
        docs = client.list_documents("expenses")

        assert [document_id(d["name"]) for d in docs] == ["a", "b"]
        assert mock_session.request.call_count == 2
        second_params = mock_session.request.call_args_list[1].kwargs["params"]
        assert second_params["pageToken"] == "t1"
        assert second_params["key"] == "key"

    @patch("expense_ledger.firestore.requests.Session")
    def test_http_error(self, mock_session_class: MagicMock) -> None:
        """Test HTTP errors become StorageError."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        mock_response = MagicMock()
        mock_response.raise_for_status.side_effect = requests.HTTPError("404 Not Found")
        mock_session.request.return_value = mock_response

        client = FirestoreClient("demo", "key")
        with pytest.raises(StorageError, match="404"):
            client.get_document("expenses", "missing")

    @patch("expense_ledger.firestore.requests.Session")
    def test_connection_error(self, mock_session_class: MagicMock) -> None:
        """Test network failures become StorageError."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        mock_session.request.side_effect = requests.ConnectionError("offline")

        client = FirestoreClient("demo", "key")
        with pytest.raises(StorageError, match="unavailable"):
            client.list_documents("budgets")

    @patch("expense_ledger.firestore.requests.Session")
    def test_patch_requires_existing(self, mock_session_class: MagicMock) -> None:
        """Test patching only updates an existing document."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        mock_session.request.return_value = response({"name": f"{DOCS}/budgets/b1"})

        client = FirestoreClient("demo", "key")
        client.patch_document("budgets", "b1", {"amount": {"doubleValue": 1.0}})

        args, kwargs = mock_session.request.call_args
        assert args[0] == "PATCH"
        assert args[1].endswith("/budgets/b1")
        assert kwargs["params"]["currentDocument.exists"] == "true"
        assert kwargs["json"] == {"fields": {"amount": {"doubleValue": 1.0}}}


class TestFirestoreLedgerStore:
    """Tests for FirestoreLedgerStore."""

    @patch("expense_ledger.firestore.requests.Session")
    def test_list_transactions(self, mock_session_class: MagicMock) -> None:
        """Test documents are read into transactions."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        mock_session.request.return_value = response(
            {
                "documents": [
                    {
                        "name": f"{DOCS}/expenses/doc1",
                        "fields": {
                            "title": {"stringValue": "Recharge"},
                            "amount": {"integerValue": "489"},
                            "paymentMode": {"stringValue": "UPI"},
                            "forWhom": {"stringValue": "Self"},
                            "date": {"timestampValue": "2024-01-15T00:00:00Z"},
                        },
                    },
                    {
                        "name": f"{DOCS}/expenses/doc2",
                        "fields": {"title": {"stringValue": "Broken"}},
                    },
                ]
            }
        )

        store = FirestoreLedgerStore(FirestoreClient("demo", "key"))
        result = store.list_transactions()

        assert len(result.transactions) == 1
        tx = result.transactions[0]
        assert tx.id == "doc1"
        assert tx.amount == Decimal("489")
        assert tx.date == date(2024, 1, 15)
        assert result.violations[0].record_id == "doc2"

    @patch("expense_ledger.firestore.requests.Session")
    def test_add_transaction(self, mock_session_class: MagicMock, tx) -> None:
        """Test adding posts encoded fields and returns the new id."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        mock_session.request.return_value = response({"name": f"{DOCS}/expenses/new1"})

        store = FirestoreLedgerStore(FirestoreClient("demo", "key"))
        added = store.add_transaction(tx("489", title="Recharge"))

        assert added.id == "new1"
        args, kwargs = mock_session.request.call_args
        assert args[0] == "POST"
        assert args[1].endswith("/documents/expenses")
        fields = kwargs["json"]["fields"]
        assert fields["title"] == {"stringValue": "Recharge"}
        assert fields["date"] == {"timestampValue": "2024-01-15T00:00:00Z"}

    @patch("expense_ledger.firestore.requests.Session")
    def test_store_timezone(self, mock_session_class: MagicMock, tx) -> None:
        """Test the store writes and reads dates in its timezone."""
        mock_session = MagicMock()
        mock_session_class.return_value = mock_session
        mock_session.request.return_value = response({"name": f"{DOCS}/expenses/new1"})

        store = FirestoreLedgerStore(FirestoreClient("demo", "key"), tz=IST)
        store.add_transaction(tx("489", title="Recharge"))

        fields = mock_session.request.call_args.kwargs["json"]["fields"]
        assert fields["date"] == {"timestampValue": "2024-01-14T18:30:00Z"}

        mock_session.request.return_value = response(
            {"name": f"{DOCS}/expenses/new1", "fields": fields}
        )
        assert store.get_transaction("new1").date == date(2024, 1, 15)
