import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

import pytest

from data_integrator import StoreError, decode_value, encode_value


def _compare(op: str, left: Any, right: Any) -> bool:
    if op == "==":
        return left == right
    if op == "!=":
        return left != right
    # ordered comparisons only between values of the same kind
    if type(left) is not type(right):
        return False
    if op == ">":
        return left > right
    if op == ">=":
        return left >= right
    if op == "<":
        return left < right
    if op == "<=":
        return left <= right
    raise StoreError(f"Unsupported filter operator: {op}")


class InMemoryStore:
    """
    Stand-in for data_integrator.DocumentStore.

    Values go through the same encode/decode step as the real store, so
    datetimes come back aware and {seconds, nanoseconds} maps stay dicts.
    Writes for ids in `fail_ids` return (False, message).
    """

    def __init__(self, seed: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.fail_ids: Set[str] = set()
        self.fail_reads: Set[str] = set()
        self.updates: List[Tuple[str, str, Dict[str, Any]]] = []
        for collection, docs in (seed or {}).items():
            for doc in docs:
                self.put(collection, doc)

    def put(self, collection: str, doc: Dict[str, Any]) -> None:
        data = {k: v for k, v in doc.items() if k != "id"}
        self.collections.setdefault(collection, {})[doc["id"]] = encode_value(data)

    def raw(self, collection: str, doc_id: str) -> Dict[str, Any]:
        return self.collections[collection][doc_id]

    def _doc(self, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return {**decode_value(copy.deepcopy(data)), "id": doc_id}

    def _rows(self, collection: str):
        if collection in self.fail_reads:
            raise StoreError(f"Fetch {collection} failed: simulated")
        return sorted(self.collections.get(collection, {}).items())

    def fetch_all(self, collection: str) -> List[Dict[str, Any]]:
        return [self._doc(i, d) for i, d in self._rows(collection)]

    def query(self, collection: str, filters: Iterable[Tuple[str, str, Any]]) -> List[Dict[str, Any]]:
        filters = [(f, op, encode_value(v)) for f, op, v in filters]
        return [
            self._doc(i, d)
            for i, d in self._rows(collection)
            if all(_compare(op, d.get(f), v) for f, op, v in filters)
        ]

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        if collection in self.fail_reads:
            raise StoreError(f"Fetch {collection}/{doc_id} failed: simulated")
        data = self.collections.get(collection, {}).get(doc_id)
        return self._doc(doc_id, data) if data is not None else None

    def insert(self, collection: str, data: Dict[str, Any], doc_id: Optional[str] = None):
        doc_id = doc_id or data.get("id") or uuid.uuid4().hex
        if doc_id in self.fail_ids:
            return False, f"Insert {doc_id} failed", None
        self.put(collection, {**data, "id": doc_id})
        return True, "Inserted", self.get(collection, doc_id)

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]):
        if doc_id in self.fail_ids:
            return False, f"Update {doc_id} failed"
        current = self.collections.get(collection, {}).get(doc_id)
        if current is None:
            return False, f"Document {collection}/{doc_id} not found"
        current.update(encode_value({k: v for k, v in fields.items() if k != "id"}))
        self.updates.append((collection, doc_id, fields))
        return True, "Updated"

    def delete(self, collection: str, doc_id: str):
        if doc_id in self.fail_ids:
            return False, f"Delete {doc_id} failed"
        self.collections.get(collection, {}).pop(doc_id, None)
        return True, "Deleted"


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def make_bill(doc_id: str, bill_id: Optional[str] = None, bill_number: Optional[int] = None,
              date: Any = None, **extra) -> Dict[str, Any]:
    doc = {
        "id": doc_id,
        "billId": bill_id,
        "billNumber": bill_number,
        "customerName": extra.pop("customer_name", f"Customer {doc_id}"),
        "date": date,
        "items": [],
        "totalAmount": 0,
        "paidAmount": 0,
        "balance": 0,
    }
    doc.update(extra)
    return doc


def line(source_id: str, item_type: str, amount: float, cost: float, quantity: float = 1, **extra):
    return {
        "id": uuid.uuid4().hex,
        "type": item_type,
        "sourceId": source_id,
        "description": source_id,
        "quantity": quantity,
        "rate": amount / quantity if quantity else amount,
        "cost": cost,
        "amount": amount,
        **extra,
    }


@pytest.fixture
def store():
    return InMemoryStore()
