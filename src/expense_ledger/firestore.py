"""Cloud Firestore storage over the REST API."""

import logging
import re
from datetime import date, datetime, time, timezone, tzinfo
from typing import Any

import requests

from expense_ledger.exceptions import StorageError
from expense_ledger.storage import LedgerStore

logger = logging.getLogger(__name__)

# Record keys stored as Firestore timestamps rather than strings.
TIMESTAMP_FIELDS = frozenset(
    {"date", "paymentReceivedDate", "month", "createdAt", "updatedAt"}
)

# Timestamp keys that hold a calendar day, written as local midnight.
DATE_FIELDS = frozenset({"date", "paymentReceivedDate", "month"})

_FRACTION_RE = re.compile(r"\.(\d{6})\d+")


def _utc_iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _to_timestamp(value: str, tz: tzinfo = timezone.utc) -> str:
    """Convert an ISO date or datetime string to RFC 3339 UTC.

    A bare date becomes midnight in ``tz``.
    """
    if len(value) == 10:
        return _utc_iso(datetime.combine(date.fromisoformat(value), time(), tzinfo=tz))
    moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return _utc_iso(moment)


def _to_local_date(value: str, tz: tzinfo) -> str:
    """Return the calendar day in ``tz`` of an RFC 3339 timestamp."""
    try:
        moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz).date().isoformat()


def encode_value(
    value: Any, as_timestamp: bool = False, tz: tzinfo = timezone.utc
) -> dict[str, Any]:
    """Encode a Python value as a Firestore typed value."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        if as_timestamp:
            return {"timestampValue": _to_timestamp(value, tz)}
        return {"stringValue": value}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value, tz)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v, tz=tz) for v in value]}}
    raise TypeError(f"Cannot store {type(value).__name__} in Firestore")


def encode_fields(record: dict[str, Any], tz: tzinfo = timezone.utc) -> dict[str, Any]:
    """Encode a record as a Firestore ``fields`` map.

    Calendar dates are written as midnight in ``tz``, the way clients in
    that timezone write them.
    """
    return {
        key: encode_value(value, as_timestamp=key in TIMESTAMP_FIELDS, tz=tz)
        for key, value in record.items()
    }


def decode_value(value: dict[str, Any], tz: tzinfo = timezone.utc) -> Any:
    """Decode a Firestore typed value."""
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return value["booleanValue"]
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "timestampValue" in value:
        # Python's ISO parser accepts at most microseconds.
        return _FRACTION_RE.sub(r".\1", value["timestampValue"])
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}), tz)
    if "arrayValue" in value:
        return [decode_value(v, tz) for v in value["arrayValue"].get("values", [])]
    raise ValueError(f"Unsupported Firestore value: {sorted(value)}")


def decode_fields(fields: dict[str, Any], tz: tzinfo = timezone.utc) -> dict[str, Any]:
    """Decode a Firestore ``fields`` map into a plain record.

    Timestamps under date keys are read back as the calendar day in ``tz``.
    """
    record = {}
    for key, value in fields.items():
        decoded = decode_value(value, tz)
        if key in DATE_FIELDS and "timestampValue" in value:
            decoded = _to_local_date(decoded, tz)
        record[key] = decoded
    return record


def document_id(name: str) -> str:
    """Return the id part of a full document name."""
    return name.rsplit("/", 1)[-1]


class FirestoreClient:
    """Minimal client for the Firestore REST API."""

    BASE_URL = "https://firestore.googleapis.com/v1"
    PAGE_SIZE = 300

    def __init__(self, project_id: str, api_key: str, database: str = "(default)") -> None:
        """Initialize client with project and API key."""
        self.project_id = project_id
        self.api_key = api_key
        self.database = database
        self._session = requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})

    @property
    def documents_url(self) -> str:
        return (
            f"{self.BASE_URL}/projects/{self.project_id}"
            f"/databases/{self.database}/documents"
        )

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an API request."""
        url = f"{self.documents_url}/{path}"
        query = {"key": self.api_key, **(params or {})}
        try:
            response = self._session.request(method, url, params=query, json=json)
            response.raise_for_status()
        except requests.HTTPError as e:
            raise StorageError(f"Firestore {method} {path} failed: {e}") from e
        except requests.RequestException as e:
            raise StorageError(f"Firestore unavailable: {e}") from e

        if not response.content:
            return {}
        return response.json()  # type: ignore[no-any-return]

    def list_documents(self, collection: str) -> list[dict[str, Any]]:
        """List every document in a collection, following pagination."""
        documents: list[dict[str, Any]] = []
        params: dict[str, Any] = {"pageSize": self.PAGE_SIZE}

        while True:
            result = self._request("GET", collection, params=params)
            documents.extend(result.get("documents", []))
            token = result.get("nextPageToken")
            if not token:
                break
            params = {"pageSize": self.PAGE_SIZE, "pageToken": token}

        logger.debug("Fetched %d documents from %s", len(documents), collection)
        return documents

    def get_document(self, collection: str, doc_id: str) -> dict[str, Any]:
        return self._request("GET", f"{collection}/{doc_id}")

    def create_document(self, collection: str, fields: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", collection, json={"fields": fields})

    def patch_document(self, collection: str, doc_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Overwrite an existing document; fails if it does not exist."""
        return self._request(
            "PATCH",
            f"{collection}/{doc_id}",
            params={"currentDocument.exists": "true"},
            json={"fields": fields},
        )

    def delete_document(self, collection: str, doc_id: str) -> None:
        self._request(
            "DELETE",
            f"{collection}/{doc_id}",
            params={"currentDocument.exists": "true"},
        )


class FirestoreLedgerStore(LedgerStore):
    """Ledger stored in the ``expenses`` and ``budgets`` Firestore collections.

    ``tz`` is the timezone the ledger's clients write calendar dates in;
    month and transaction dates are read and written as midnight there.
    """

    name = "firestore"

    def __init__(self, client: FirestoreClient, tz: tzinfo = timezone.utc) -> None:
        self.client = client
        self.tz = tz

    def list_records(self, collection: str) -> list[tuple[str, dict[str, Any]]]:
        return [
            (document_id(doc["name"]), decode_fields(doc.get("fields", {}), self.tz))
            for doc in self.client.list_documents(collection)
        ]

    def get_record(self, collection: str, record_id: str) -> dict[str, Any]:
        doc = self.client.get_document(collection, record_id)
        return decode_fields(doc.get("fields", {}), self.tz)

    def create_record(self, collection: str, record: dict[str, Any]) -> str:
        doc = self.client.create_document(collection, encode_fields(record, self.tz))
        return document_id(doc["name"])

    def replace_record(self, collection: str, record_id: str, record: dict[str, Any]) -> None:
        self.client.patch_document(collection, record_id, encode_fields(record, self.tz))

    def delete_record(self, collection: str, record_id: str) -> None:
        self.client.delete_document(collection, record_id)
