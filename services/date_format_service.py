# services/date_format_service.py
import logging
from datetime import datetime
from typing import Any, Dict

from data_integrator import DocumentStore
from domain.results import BillDateCheck, DateCheckResult, DateFixDetail, DateFixResult
from utils.dates import is_timestamp_map, timestamp_from_map

logger = logging.getLogger(__name__)

BILLS = "bills"
DATE_FIELDS = ("createdAt", "date", "dueDate", "updatedAt")

TIMESTAMP = "timestamp"
MAP = "map"
STRING = "string"
MISSING = "missing"
UNKNOWN = "unknown"


def classify_date_value(value: Any) -> str:
    if value is None or value == "":
        return MISSING
    if isinstance(value, datetime):
        return TIMESTAMP
    if is_timestamp_map(value):
        return MAP
    if isinstance(value, str):
        return STRING
    return UNKNOWN


def pending_date_fixes(doc: Dict[str, Any]) -> Dict[str, datetime]:
    """Converted values for every field stored as a {seconds, nanoseconds} map."""
    return {
        name: timestamp_from_map(doc[name])
        for name in DATE_FIELDS
        if is_timestamp_map(doc.get(name))
    }


def check_date_formats(store: DocumentStore) -> DateCheckResult:
    docs = store.fetch_all(BILLS)
    bills = []

    for doc in docs:
        field_types = {name: classify_date_value(doc.get(name)) for name in DATE_FIELDS}
        bills.append(
            BillDateCheck(
                id=doc["id"],
                bill_id=doc.get("billId") or doc["id"],
                field_types=field_types,
                needs_fix=MAP in field_types.values(),
                raw={name: doc.get(name) for name in DATE_FIELDS},
            )
        )

    needs_fix = sum(1 for b in bills if b.needs_fix)
    logger.info("Checked %d bills, %d need a date fix", len(bills), needs_fix)

    return DateCheckResult(
        total=len(bills),
        needs_fix=needs_fix,
        correct=len(bills) - needs_fix,
        bills=bills,
    )


def fix_date_formats(store: DocumentStore) -> DateFixResult:
    """
    Rewrite map-shaped date fields as native timestamps.
    Bills with nothing to convert are skipped, not rewritten.
    """
    result = DateFixResult()

    for doc in store.fetch_all(BILLS):
        bill_id = doc.get("billId") or doc["id"]
        updates = pending_date_fixes(doc)

        if not updates:
            result.skipped += 1
            result.details.append(
                DateFixDetail(doc["id"], bill_id, "skipped", "Dates already in correct format")
            )
            continue

        fields = ", ".join(updates)
        ok, msg = store.update(BILLS, doc["id"], updates)

        if ok:
            result.success += 1
            result.details.append(
                DateFixDetail(doc["id"], bill_id, "fixed", f"Converted {fields} to timestamp")
            )
            logger.info("Fixed %s: %s", bill_id, fields)
        else:
            result.failed += 1
            result.details.append(DateFixDetail(doc["id"], bill_id, "failed", msg))
            logger.error("Failed to fix %s: %s", bill_id, msg)

    return result
