import logging
import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from supabase import create_client, Client

from config import AppConfig, configure_logging, load_config
from utils.dates import coerce_datetime

logger = logging.getLogger(__name__)

PAGE_SIZE = 1000

# Native timestamps are stored as UTC ISO-8601 strings inside the jsonb document
ISO_TIMESTAMP_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d{1,6})?(Z|[+-]\d{2}:\d{2})$"
)

Filter = Tuple[str, str, Any]

_FILTER_METHODS = {
    "==": "eq",
    "!=": "neq",
    ">": "gt",
    ">=": "gte",
    "<": "lt",
    "<=": "lte",
}


class StoreError(Exception):
    pass


def encode_value(value: Any) -> Any:
    """
    Convert a document value into its jsonb form.
    Timezone-naive datetimes are taken as UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat(timespec="microseconds")
    if isinstance(value, dict):
        return {k: encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    return value


def decode_value(value: Any) -> Any:
    if isinstance(value, str) and ISO_TIMESTAMP_RE.match(value):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    if isinstance(value, dict):
        return {k: decode_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [decode_value(v) for v in value]
    return value


def _filter_operand(value: Any) -> str:
    if isinstance(value, datetime):
        return encode_value(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class DocumentStore:
    """
    Collection/document access on top of Supabase.

    Every collection is a table with two columns:
      - id   text primary key
      - data jsonb

    Documents are returned as plain dicts with the key merged in as "id".
    Reads raise StoreError; writes return (ok, message) so that batch
    callers can record a failure and move on.
    """

    def __init__(self, client: Client, schema: str):
        self.client = client
        self.schema = schema

    def _table(self, collection: str):
        return self.client.schema(self.schema).table(collection)

    @staticmethod
    def _to_document(row: Dict[str, Any]) -> Dict[str, Any]:
        data = decode_value(row.get("data") or {})
        return {**data, "id": row["id"]}

    def _fetch_pages(self, collection: str, filters: Sequence[Filter]) -> List[Dict[str, Any]]:
        documents: List[Dict[str, Any]] = []
        start = 0

        while True:
            request = self._table(collection).select("id, data")

            for field, op, value in filters:
                method = _FILTER_METHODS.get(op)
                if method is None:
                    raise StoreError(f"Unsupported filter operator: {op}")
                request = getattr(request, method)(f"data->>{field}", _filter_operand(value))

            try:
                resp = request.order("id").range(start, start + PAGE_SIZE - 1).execute()
            except Exception as e:
                raise StoreError(f"Fetch {collection} failed: {e}") from e

            if getattr(resp, "error", None):
                raise StoreError(f"Fetch {collection} failed: {resp.error}")

            rows = resp.data or []
            documents.extend(self._to_document(row) for row in rows)

            if len(rows) < PAGE_SIZE:
                break
            start += PAGE_SIZE

        return documents

    def fetch_all(self, collection: str) -> List[Dict[str, Any]]:
        """Read every document of a collection, ordered by key."""
        return self._fetch_pages(collection, [])

    def query(self, collection: str, filters: Iterable[Filter]) -> List[Dict[str, Any]]:
        """
        Read documents matching all filters.

        Each filter is (field, op, value) with op one of
        ==, !=, >, >=, <, <=. Datetime values compare as UTC ISO strings;
        use `query_date_window` for date ranges.
        """
        return self._fetch_pages(collection, list(filters))

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        try:
            resp = (
                self._table(collection)
                .select("id, data")
                .eq("id", doc_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise StoreError(f"Fetch {collection}/{doc_id} failed: {e}") from e

        if getattr(resp, "error", None):
            raise StoreError(f"Fetch {collection}/{doc_id} failed: {resp.error}")

        if not resp.data:
            return None
        return self._to_document(resp.data[0])

    def insert(
            self,
            collection: str,
            data: Dict[str, Any],
            doc_id: Optional[str] = None,
    ) -> Tuple[bool, str, Optional[Dict[str, Any]]]:
        """
        Insert a single document.
        Returns (ok, message, inserted_document)
        """
        doc_id = doc_id or data.get("id") or uuid.uuid4().hex
        payload = {k: v for k, v in data.items() if k != "id"}

        try:
            resp = (
                self._table(collection)
                .insert({"id": doc_id, "data": encode_value(payload)})
                .execute()
            )

            if getattr(resp, "error", None):
                return False, f"Insert failed: {resp.error}", None

            inserted = self._to_document(resp.data[0]) if resp.data else None
            return True, "Inserted", inserted

        except Exception as e:
            return False, str(e), None

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> Tuple[bool, str]:
        """
        Merge `fields` into the top level of an existing document.
        Returns (ok, message)
        """
        try:
            current = self.get(collection, doc_id)
            if current is None:
                return False, f"Document {collection}/{doc_id} not found"

            merged = {k: v for k, v in current.items() if k != "id"}
            merged.update({k: v for k, v in fields.items() if k != "id"})

            resp = (
                self._table(collection)
                .update({"data": encode_value(merged)})
                .eq("id", doc_id)
                .execute()
            )

            if getattr(resp, "error", None):
                return False, f"Update failed: {resp.error}"

            return True, "Updated"

        except Exception as e:
            return False, str(e)

    def delete(self, collection: str, doc_id: str) -> Tuple[bool, str]:
        try:
            resp = self._table(collection).delete().eq("id", doc_id).execute()

            if getattr(resp, "error", None):
                return False, f"Delete failed: {resp.error}"

            return True, "Deleted"

        except Exception as e:
            return False, str(e)


def query_date_window(
        store: DocumentStore,
        collection: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        field: str = "date",
) -> List[Dict[str, Any]]:
    """
    Documents whose `field` lies in [start, end]; no bounds reads everything.

    The store only compares text, so it is asked for whole UTC days
    ("YYYY-MM-DD" <= value < next day) and the exact instants are checked
    here. A date saved as a bare "YYYY-MM-DD" counts as midnight UTC.
    Legacy {seconds, nanoseconds} maps never match.
    """
    start = coerce_datetime(start)
    end = coerce_datetime(end)

    filters: List[Filter] = []
    if start is not None:
        filters.append((field, ">=", start.astimezone(timezone.utc).date().isoformat()))
    if end is not None:
        next_day = end.astimezone(timezone.utc).date() + timedelta(days=1)
        filters.append((field, "<", next_day.isoformat()))

    if not filters:
        return store.fetch_all(collection)

    docs = []
    for doc in store.query(collection, filters):
        value = doc.get(field)
        when = coerce_datetime(value)
        if when is None or isinstance(value, dict):
            continue
        if start is not None and when < start:
            continue
        if end is not None and when > end:
            continue
        docs.append(doc)
    return docs


_store: Optional[DocumentStore] = None


def create_store(config: AppConfig) -> DocumentStore:
    if not config.supabase_url or not config.supabase_key:
        raise RuntimeError("Set SUPABASE_URL and SUPABASE_KEY in .env or environment variables")

    client = create_client(config.supabase_url, config.supabase_key)
    return DocumentStore(client, config.schema)


def get_store() -> DocumentStore:
    global _store

    if _store is None:
        config = load_config()
        configure_logging(config)
        _store = create_store(config)
        logger.info("Connected document store (schema=%s)", _store.schema)
    return _store
