# services/bill_numbering.py
"""
Bill identifier assignment and repair.

Canonical identifiers are "Bill" + the bill number zero-padded to three
digits (Bill001, Bill002, ..., Bill1000). Bills are numbered in ascending
`date` order; same-dated bills are ordered by document id, and bills
without a usable date go last.

Pure planning functions (`plan_migration`, `plan_duplicate_fix`) are kept
apart from the store-backed steps so the wizard can preview exactly what
a write step will do.
"""
import logging
import re
from collections import Counter
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from data_integrator import DocumentStore
from domain.models import Bill
from domain.results import (
    BillIdFormat,
    BillSummary,
    DiagnosisResult,
    DocumentOutcome,
    DuplicateFixResult,
    FixResult,
    MigrationChange,
    MigrationPlan,
    MigrationResult,
)
from utils.dates import coerce_datetime

logger = logging.getLogger(__name__)

BILLS = "bills"
MISSING_LABEL = "MISSING"

CANONICAL_ID_RE = re.compile(r"^Bill(\d{3,})$")
TIMESTAMP_ID_RE = re.compile(r"^BILL\d{6}$")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def canonicalize(bill_number: int) -> str:
    if bill_number < 1:
        raise ValueError(f"Bill number must be positive, got {bill_number}")
    return f"Bill{bill_number:03d}"


def parse_bill_number(bill_id: Optional[str]) -> Optional[int]:
    """Numeric suffix of a canonical id, or None."""
    if not bill_id:
        return None
    m = CANONICAL_ID_RE.match(bill_id)
    return int(m.group(1)) if m else None


def classify_bill_id(bill_id: Optional[str], bill_number: Optional[int] = None) -> BillIdFormat:
    """
    Classify a stored billId.

    When `bill_number` is given, a canonical-looking id whose suffix does
    not match it is treated as invalid.
    """
    if not isinstance(bill_id, str) or not bill_id.strip() or bill_id == MISSING_LABEL:
        return BillIdFormat.MISSING

    suffix = parse_bill_number(bill_id)
    if suffix is not None:
        if bill_number is not None and suffix != bill_number:
            return BillIdFormat.MISSING
        return BillIdFormat.CORRECT

    if bill_id.startswith("#"):
        return BillIdFormat.HASH
    if TIMESTAMP_ID_RE.match(bill_id):
        return BillIdFormat.TIMESTAMP
    return BillIdFormat.MISSING


def bill_sort_key(bill: Bill) -> Tuple[bool, datetime, str]:
    dt = coerce_datetime(bill.date)
    return dt is None, dt or _EPOCH, bill.id


def sort_bills(bills: List[Bill]) -> List[Bill]:
    return sorted(bills, key=bill_sort_key)


def read_bills(store: DocumentStore) -> Tuple[List[Bill], List[str]]:
    """
    Fresh full read of the bills collection.

    A bill whose line items or payment records can't be parsed is still
    returned with its label, number and dates so it keeps its place in
    the numbering; its document id is listed in the second element.
    """
    bills: List[Bill] = []
    unreadable: List[str] = []

    for doc in store.fetch_all(BILLS):
        try:
            bills.append(Bill.from_document(doc))
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning("Bill %s read without items or payments: %s", doc["id"], e)
            bills.append(Bill.header_from_document(doc))
            unreadable.append(doc["id"])

    return bills, unreadable


def load_bills(store: DocumentStore) -> List[Bill]:
    return read_bills(store)[0]


def find_duplicate_ids(bills: List[Bill]) -> List[str]:
    """billId values held by more than one bill, in bill order."""
    counts = Counter(b.bill_id for b in bills if b.bill_id)
    seen = set()
    duplicates = []
    for b in bills:
        if b.bill_id and counts[b.bill_id] > 1 and b.bill_id not in seen:
            seen.add(b.bill_id)
            duplicates.append(b.bill_id)
    return duplicates


# ---------------------------------------------------------------------------
# Diagnose
# ---------------------------------------------------------------------------

def summarize_bills(bills: List[Bill]) -> List[BillSummary]:
    return [
        BillSummary(
            id=b.id,
            bill_id=b.bill_id or MISSING_LABEL,
            bill_number=b.bill_number,
            customer=b.customer_name,
            date=b.date,
            format=classify_bill_id(b.bill_id, b.bill_number),
            has_valid_date=coerce_datetime(b.date) is not None,
        )
        for b in bills
    ]


def diagnose_bills(store: DocumentStore) -> DiagnosisResult:
    bills, unreadable = read_bills(store)
    bills = sort_bills(bills)
    summaries = summarize_bills(bills)

    formats = {fmt: 0 for fmt in BillIdFormat}
    for s in summaries:
        formats[s.format] += 1

    result = DiagnosisResult(
        total=len(bills),
        bills=summaries,
        duplicates=find_duplicate_ids(bills),
        formats=formats,
        invalid_dates=[s.id for s in summaries if not s.has_valid_date],
        unreadable=unreadable,
    )

    logger.info(
        "Diagnosed %d bills: %s, %d duplicate id(s), %d invalid date(s), %d unreadable",
        result.total,
        {fmt.value: n for fmt, n in formats.items()},
        len(result.duplicates),
        len(result.invalid_dates),
        len(result.unreadable),
    )
    return result


# ---------------------------------------------------------------------------
# Full renumbering
# ---------------------------------------------------------------------------

def plan_migration(bills: List[Bill]) -> List[MigrationChange]:
    """
    Number every bill 1..N in date order and list the bills whose stored
    billId or billNumber differs from the computed one.
    """
    changes: List[MigrationChange] = []

    for number, bill in enumerate(sort_bills(bills), start=1):
        new_id = canonicalize(number)
        if bill.bill_id == new_id and bill.bill_number == number:
            continue
        changes.append(
            MigrationChange(
                id=bill.id,
                old_bill_id=bill.bill_id or MISSING_LABEL,
                new_bill_id=new_id,
                bill_number=number,
                date=bill.date,
            )
        )

    return changes


def preview_migration(store: DocumentStore) -> MigrationPlan:
    bills = load_bills(store)
    return MigrationPlan(total=len(bills), changes=plan_migration(bills))


def execute_migration(store: DocumentStore) -> MigrationResult:
    """
    Apply the migration plan. A failed write is recorded and the rest of
    the batch still runs.
    """
    plan = preview_migration(store)
    outcomes: List[DocumentOutcome] = []

    for change in plan.changes:
        ok, msg = store.update(
            BILLS,
            change.id,
            {"billId": change.new_bill_id, "billNumber": change.bill_number},
        )
        outcomes.append(DocumentOutcome(id=change.id, ok=ok, message=msg))

        if ok:
            logger.info("Renumbered %s: %s -> %s", change.id, change.old_bill_id, change.new_bill_id)
        else:
            logger.error("Failed to update bill %s: %s", change.id, msg)

    success = sum(1 for o in outcomes if o.ok)
    return MigrationResult(
        success=success,
        failed=len(outcomes) - success,
        changes=plan.changes,
        outcomes=outcomes,
    )


# ---------------------------------------------------------------------------
# Duplicate repair
# ---------------------------------------------------------------------------

def diagnose_duplicates(store: DocumentStore) -> List[BillSummary]:
    """Bills sharing a billId with another bill, in date order."""
    bills = sort_bills(load_bills(store))
    duplicated = set(find_duplicate_ids(bills))
    return [s for s in summarize_bills(bills) if s.bill_id in duplicated]


def plan_duplicate_fix(bills: List[Bill]) -> List[FixResult]:
    """
    For each duplicated billId the earliest bill (by date, then id) keeps
    the label; every later holder gets a fresh number after the highest
    number in use. Bills that are not duplicated are never touched.
    """
    ordered = sort_bills(bills)
    duplicated = set(find_duplicate_ids(ordered))

    keepers = {}
    to_renumber: List[Bill] = []
    for bill in ordered:
        if bill.bill_id not in duplicated:
            continue
        if bill.bill_id in keepers:
            to_renumber.append(bill)
        else:
            keepers[bill.bill_id] = bill

    if not to_renumber:
        return []

    # both the label suffix and billNumber are taken; either may be unset
    in_use: List[int] = []
    for b in ordered:
        if b.bill_id not in duplicated:
            in_use += [parse_bill_number(b.bill_id) or 0, b.bill_number or 0]
    # the kept label stays valid, so its number is taken as well
    for label, bill in keepers.items():
        in_use.append(parse_bill_number(label) or bill.bill_number or 0)

    next_number = max(in_use, default=0) + 1
    plan: List[FixResult] = []

    for bill in to_renumber:
        plan.append(
            FixResult(
                doc_id=bill.id,
                old_bill_id=bill.bill_id,
                new_bill_id=canonicalize(next_number),
                old_bill_number=bill.bill_number,
                new_bill_number=next_number,
                customer_name=bill.customer_name,
            )
        )
        next_number += 1

    return plan


def preview_duplicate_fix(store: DocumentStore) -> List[FixResult]:
    return plan_duplicate_fix(load_bills(store))


def fix_duplicates(store: DocumentStore) -> DuplicateFixResult:
    """
    Renumber the later holders of each duplicated billId. A failed write
    is recorded with its reason and the remaining fixes still run.
    """
    plan = preview_duplicate_fix(store)
    if not plan:
        logger.info("No duplicate bill ids found")
        return DuplicateFixResult(success=0, failed=0, fixes=[], outcomes=[])

    fixed: List[FixResult] = []
    outcomes: List[DocumentOutcome] = []
    now = datetime.now(timezone.utc)

    for fix in plan:
        ok, msg = store.update(
            BILLS,
            fix.doc_id,
            {"billId": fix.new_bill_id, "billNumber": fix.new_bill_number, "updatedAt": now},
        )
        outcomes.append(DocumentOutcome(id=fix.doc_id, ok=ok, message=msg))
        if not ok:
            logger.error("Failed to fix duplicate bill %s (%s): %s", fix.doc_id, fix.old_bill_id, msg)
            continue

        logger.info("Fixed: %s (%s) -> %s", fix.old_bill_id, fix.customer_name, fix.new_bill_id)
        fixed.append(fix)

    return DuplicateFixResult(
        success=len(fixed),
        failed=len(outcomes) - len(fixed),
        fixes=fixed,
        outcomes=outcomes,
    )


def list_bills_by_number(store: DocumentStore) -> List[BillSummary]:
    """Verification listing, highest bill number first; unnumbered bills last."""
    bills = load_bills(store)
    bills.sort(key=lambda b: (b.bill_number is None, -(b.bill_number or 0), b.id))
    return summarize_bills(bills)


def next_bill_number(store: DocumentStore) -> int:
    numbers = [max(parse_bill_number(b.bill_id) or 0, b.bill_number or 0) for b in load_bills(store)]
    return max(numbers, default=0) + 1
