# services/billing_service.py
"""
Bill arithmetic: line item amounts, totals, balance/status, payment
reconciliation, plus the store-backed steps that create a bill and
record a payment against it.
"""
import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from data_integrator import DocumentStore
from domain.models import (
    Bill,
    BillLineItem,
    BillStatus,
    BusinessSettings,
    InventoryItem,
    LineItemType,
    PaymentRecord,
    PaymentType,
    StaffMember,
    WorkDescription,
)
from domain.results import CustomerStats, PaymentTotals
from services.bill_numbering import canonicalize, next_bill_number
from services.share_links import payment_note, upi_link

logger = logging.getLogger(__name__)

BILLS = "bills"


# ---------------------------------------------------------------------------
# Line items
# ---------------------------------------------------------------------------

def line_item_amount(item: BillLineItem) -> float:
    """Sum of sub-item amounts when present, else quantity x rate."""
    if item.sub_items:
        return sum(line_item_amount(s) for s in item.sub_items)
    return item.quantity * item.rate


def recalculate_line_item(item: BillLineItem) -> BillLineItem:
    subs = [replace(s, amount=line_item_amount(s)) for s in item.sub_items]
    parent = replace(item, sub_items=subs)
    parent.amount = line_item_amount(parent)
    return parent


def line_item_from_staff(staff: StaffMember, quantity: float = 1) -> BillLineItem:
    return BillLineItem(
        id=uuid.uuid4().hex,
        type=LineItemType.STAFF,
        source_id=staff.id,
        description=f"{staff.name} - {staff.role}",
        quantity=quantity,
        rate=staff.billing_rate,
        cost=staff.cost_rate,
        amount=quantity * staff.billing_rate,
    )


def line_item_from_inventory(
        item: InventoryItem,
        settings: BusinessSettings,
        quantity: float = 1,
) -> BillLineItem:
    rate = item.effective_selling_price(settings.default_markup_multiplier)
    return BillLineItem(
        id=uuid.uuid4().hex,
        type=LineItemType.INVENTORY,
        source_id=item.id,
        description=f"{item.name} ({item.category})",
        quantity=quantity,
        rate=rate,
        cost=item.cost_per_unit,
        amount=quantity * rate,
    )


def line_item_from_service(service: WorkDescription, quantity: float = 1) -> BillLineItem:
    return BillLineItem(
        id=uuid.uuid4().hex,
        type=LineItemType.SERVICE,
        source_id=service.id,
        description=service.description,
        quantity=quantity,
        rate=service.rate,
        cost=service.cost,
        amount=quantity * service.rate,
    )


# ---------------------------------------------------------------------------
# Totals, balance, status
# ---------------------------------------------------------------------------

def calculate_bill_totals(
        items: List[BillLineItem],
        gst_percent: float,
        discount: float,
        discount_type: str = "amount",
) -> Dict[str, float]:
    subtotal = sum(i.amount for i in items)
    gst_amount = subtotal * gst_percent / 100

    if discount_type == "percentage":
        discount_amount = subtotal * discount / 100
    elif discount_type == "amount":
        discount_amount = discount
    else:
        raise ValueError(f"Unknown discount type: {discount_type}")

    return {
        "subtotal": subtotal,
        "gst_amount": gst_amount,
        "discount_amount": discount_amount,
        "total_amount": max(0, subtotal + gst_amount - discount_amount),
    }


def calculate_balance(total_amount: float, paid_amount: float) -> float:
    # negative when overpaid
    return total_amount - paid_amount


def calculate_bill_status(total_amount: float, paid_amount: float) -> BillStatus:
    if calculate_balance(total_amount, paid_amount) <= 0:
        return BillStatus.PAID
    if paid_amount > 0:
        return BillStatus.PARTIAL
    return BillStatus.UNPAID


def reconcile_payments(records: List[PaymentRecord]) -> PaymentTotals:
    """
    Split payments count towards both the cash and the online total.
    Payments in a mode we don't know only count towards the total paid.
    """
    cash = 0.0
    online = 0.0
    for r in records:
        if r.type == PaymentType.CASH:
            cash += r.amount
        elif r.type == PaymentType.ONLINE:
            online += r.amount
        elif r.type == PaymentType.SPLIT:
            cash += r.cash_amount
            online += r.online_amount

    return PaymentTotals(
        total_paid=sum(r.amount for r in records),
        total_cash_received=cash,
        total_online_received=online,
    )


def new_payment_record(
        payment_type: PaymentType,
        amount: float = 0,
        cash_amount: float = 0,
        online_amount: float = 0,
        notes: str = "",
        payment_date: Optional[datetime] = None,
) -> PaymentRecord:
    payment_type = PaymentType(payment_type)
    if payment_type == PaymentType.SPLIT:
        amount = cash_amount + online_amount
    if amount <= 0:
        raise ValueError("Payment amount must be positive")

    return PaymentRecord(
        id=uuid.uuid4().hex,
        amount=amount,
        type=payment_type,
        cash_amount=cash_amount if payment_type == PaymentType.SPLIT else 0,
        online_amount=online_amount if payment_type == PaymentType.SPLIT else 0,
        payment_date=payment_date or datetime.now(timezone.utc),
        notes=notes,
    )


def apply_totals(bill: Bill) -> Bill:
    """Recompute items, totals, paid amount, balance and status in place."""
    bill.items = [recalculate_line_item(i) for i in bill.items]
    totals = calculate_bill_totals(bill.items, bill.gst_percent, bill.discount, bill.discount_type)

    bill.subtotal = totals["subtotal"]
    bill.gst_amount = totals["gst_amount"]
    bill.total_amount = totals["total_amount"]

    if bill.payment_records:
        bill.paid_amount = reconcile_payments(bill.payment_records).total_paid

    bill.balance = calculate_balance(bill.total_amount, bill.paid_amount)
    bill.status = calculate_bill_status(bill.total_amount, bill.paid_amount)
    return bill


def _payment_fields(bill: Bill) -> Dict[str, object]:
    totals = reconcile_payments(bill.payment_records)
    return {
        "totalCashReceived": totals.total_cash_received,
        "totalOnlineReceived": totals.total_online_received,
    }


# ---------------------------------------------------------------------------
# Store-backed steps
# ---------------------------------------------------------------------------

def create_bill(
        store: DocumentStore,
        bill: Bill,
        settings: BusinessSettings,
        now: Optional[datetime] = None,
) -> Tuple[bool, str, Optional[Bill]]:
    """
    Number, total and insert a new bill.
    Returns (ok, message, bill)
    """
    if not bill.customer_name or bill.customer_name == "Unknown":
        return False, "Customer name is required", None
    if not bill.items:
        return False, "A bill needs at least one line item", None

    now = now or datetime.now(timezone.utc)
    number = next_bill_number(store)

    bill.bill_number = number
    bill.bill_id = canonicalize(number)
    bill.date = bill.date or now
    bill.created_at = now
    apply_totals(bill)

    doc = bill.to_document()
    doc.update(_payment_fields(bill))
    doc["updatedAt"] = now
    doc["upiId"] = settings.upi_id

    if settings.upi_id and bill.balance > 0:
        doc["upiLink"] = upi_link(
            bill.customer_name,
            bill.balance,
            payment_note(bill.bill_id, settings, order_id=bill.order_id),
            settings,
        )

    ok, msg, inserted = store.insert(BILLS, doc, doc_id=bill.id or None)
    if not ok:
        logger.error("Failed to create bill %s: %s", bill.bill_id, msg)
        return False, msg, None

    bill.id = inserted["id"] if inserted else bill.id
    logger.info("Created %s for %s (%s)", bill.bill_id, bill.customer_name, bill.total_amount)
    return True, f"Created {bill.bill_id}", bill


def record_payment(store: DocumentStore, doc_id: str, record: PaymentRecord) -> Tuple[bool, str, Optional[Bill]]:
    """
    Append a payment to a bill and refresh paid amount, balance and status.
    Returns (ok, message, bill)
    """
    doc = store.get(BILLS, doc_id)
    if doc is None:
        return False, f"Bill {doc_id} not found", None

    try:
        bill = Bill.from_document(doc)
    except (AttributeError, TypeError, ValueError) as e:
        logger.error("Bill %s could not be read: %s", doc_id, e)
        return False, f"Bill {doc_id} could not be read: {e}", None
    bill.payment_records.append(record)
    bill.paid_amount = reconcile_payments(bill.payment_records).total_paid
    bill.balance = calculate_balance(bill.total_amount, bill.paid_amount)
    bill.status = calculate_bill_status(bill.total_amount, bill.paid_amount)

    if bill.balance < 0:
        logger.warning("Bill %s is overpaid by %s", bill.bill_id, -bill.balance)

    fields = {
        "paymentRecords": [p.to_dict() for p in bill.payment_records],
        "paidAmount": bill.paid_amount,
        "balance": bill.balance,
        "status": bill.status.value,
        "updatedAt": datetime.now(timezone.utc),
        **_payment_fields(bill),
    }

    ok, msg = store.update(BILLS, doc_id, fields)
    if not ok:
        return False, msg, None
    return True, "Payment recorded", bill


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------

def customer_stats(bills: List[Bill]) -> CustomerStats:
    total_spent = sum(b.total_amount for b in bills)
    outstanding = sum(b.balance for b in bills)

    if outstanding == 0 and total_spent > 0:
        status = BillStatus.PAID.value
    elif 0 < outstanding < total_spent:
        status = BillStatus.PARTIAL.value
    else:
        status = BillStatus.UNPAID.value

    return CustomerStats(
        total_bills=len(bills),
        total_spent=total_spent,
        outstanding_balance=outstanding,
        payment_status=status,
    )


def fetch_customer_bills(
        store: DocumentStore,
        customer_id: str,
        customer_name: str = "",
        customer_phone: str = "",
) -> List[Bill]:
    """
    Bills for a customer, matched by id, then by name, then by phone
    (older bills were written without a customerId).
    """
    for field, value in (
            ("customerId", customer_id),
            ("customerName", customer_name),
            ("customerPhone", customer_phone),
    ):
        if not value:
            continue
        docs = store.query(BILLS, [(field, "==", value)])
        if docs:
            return [Bill.from_document(d) for d in docs]
    return []
