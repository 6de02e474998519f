# couture/domain/models.py

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class LineItemType(str, Enum):
    SERVICE = "service"
    INVENTORY = "inventory"
    STAFF = "staff"


# collection holding the source record for each line item type
SOURCE_COLLECTIONS = {
    LineItemType.SERVICE: "workDescriptions",
    LineItemType.INVENTORY: "inventory",
    LineItemType.STAFF: "staff",
}


class BillStatus(str, Enum):
    PAID = "paid"
    PARTIAL = "partial"
    UNPAID = "unpaid"


class SalaryMode(str, Enum):
    MONTHLY = "monthly"
    DAILY = "daily"
    HOURLY = "hourly"


class PaymentType(str, Enum):
    CASH = "cash"
    ONLINE = "online"
    SPLIT = "split"


def _num(value: Any, default: float = 0) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _line_item_type(value: Any) -> Optional[LineItemType]:
    # stored lines with a tag we don't know are read as untyped
    if value in LineItemType._value2member_map_:
        return LineItemType(value)
    return None


def _payment_type(value: Any) -> Optional[PaymentType]:
    if not value:
        return PaymentType.CASH
    if value in PaymentType._value2member_map_:
        return PaymentType(value)
    return None


@dataclass
class BillLineItem:
    """
    One priced line on a bill.

    `type` tags which collection `source_id` points into. Legacy lines
    written before typed items existed carry no type and match no entity.
    A line may hold sub-items, but sub-items may not hold sub-items.
    """
    id: str
    type: Optional[LineItemType]
    description: str = ""
    source_id: Optional[str] = None
    quantity: float = 1
    rate: float = 0
    cost: float = 0
    amount: float = 0
    sub_items: List["BillLineItem"] = field(default_factory=list)
    parent_id: Optional[str] = None

    def __post_init__(self):
        if self.type is not None and not isinstance(self.type, LineItemType):
            self.type = LineItemType(self.type)

        for sub in self.sub_items:
            if sub.sub_items:
                raise ValueError(
                    f"Line item {sub.id} is a sub-item of {self.id} and cannot have sub-items"
                )
            if sub.parent_id is None:
                sub.parent_id = self.id
            elif sub.parent_id != self.id:
                raise ValueError(f"Sub-item {sub.id} belongs to {sub.parent_id}, not {self.id}")

    @property
    def has_sub_items(self) -> bool:
        return bool(self.sub_items)

    @property
    def margin(self) -> float:
        return self.rate - self.cost

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BillLineItem":
        return cls(
            id=str(data.get("id") or ""),
            type=_line_item_type(data.get("type")),
            description=data.get("description") or "",
            source_id=data.get("sourceId"),
            quantity=_num(data.get("quantity"), 1),
            rate=_num(data.get("rate")),
            cost=_num(data.get("cost")),
            amount=_num(data.get("amount")),
            # nesting decides the parent; a stale stored parentId is dropped
            sub_items=[cls._sub_item(s) for s in data.get("subItems") or []],
            parent_id=data.get("parentId"),
        )

    @classmethod
    def _sub_item(cls, data: Dict[str, Any]) -> "BillLineItem":
        sub = dict(data)
        sub.pop("parentId", None)
        return cls.from_dict(sub)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "type": self.type.value if self.type else None,
            "sourceId": self.source_id,
            "description": self.description,
            "quantity": self.quantity,
            "rate": self.rate,
            "cost": self.cost,
            "amount": self.amount,
        }
        if self.sub_items:
            out["subItems"] = [s.to_dict() for s in self.sub_items]
        if self.parent_id:
            out["parentId"] = self.parent_id
        return out


@dataclass
class PaymentRecord:
    id: str
    amount: float
    type: Optional[PaymentType]  # None for a mode this app does not know
    cash_amount: float = 0
    online_amount: float = 0
    payment_date: Any = None
    notes: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PaymentRecord":
        return cls(
            id=str(data.get("id") or ""),
            amount=_num(data.get("amount")),
            type=_payment_type(data.get("type")),
            cash_amount=_num(data.get("cashAmount")),
            online_amount=_num(data.get("onlineAmount")),
            payment_date=data.get("paymentDate"),
            notes=data.get("notes") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "amount": self.amount,
            "type": self.type.value if self.type else None,
            "cashAmount": self.cash_amount,
            "onlineAmount": self.online_amount,
            "paymentDate": self.payment_date,
            "notes": self.notes,
        }


@dataclass
class Bill:
    """
    A bill document. Date fields keep whatever the store returned
    (native datetime, legacy {seconds, nanoseconds} map, string, or None).
    """
    id: str
    bill_id: Optional[str]
    bill_number: Optional[int]
    customer_name: str
    customer_phone: str = ""
    customer_id: Optional[str] = None
    date: Any = None
    created_at: Any = None
    due_date: Any = None
    items: List[BillLineItem] = field(default_factory=list)
    subtotal: float = 0
    gst_percent: float = 0
    gst_amount: float = 0
    discount: float = 0
    discount_type: str = "amount"
    total_amount: float = 0
    paid_amount: float = 0
    balance: float = 0
    status: Optional[BillStatus] = None
    order_id: Optional[str] = None
    payment_records: List[PaymentRecord] = field(default_factory=list)
    notes: str = ""

    @classmethod
    def header_from_document(cls, doc: Dict[str, Any]) -> "Bill":
        """Everything but the line items and payment records."""
        customer = doc.get("customer") if isinstance(doc.get("customer"), dict) else {}
        bill_number = doc.get("billNumber")
        status = doc.get("status")

        return cls(
            id=doc["id"],
            bill_id=doc.get("billId") or None,
            # bool is an int subclass; a stray True is not a bill number
            bill_number=bill_number if isinstance(bill_number, int) and not isinstance(bill_number, bool) else None,
            customer_name=customer.get("name") or doc.get("customerName") or "Unknown",
            customer_phone=doc.get("customerPhone") or "",
            customer_id=doc.get("customerId"),
            date=doc.get("date"),
            created_at=doc.get("createdAt"),
            due_date=doc.get("dueDate"),
            subtotal=_num(doc.get("subtotal")),
            gst_percent=_num(doc.get("gstPercent")),
            gst_amount=_num(doc.get("gstAmount")),
            discount=_num(doc.get("discount")),
            discount_type=doc.get("discountType") or "amount",
            total_amount=_num(doc.get("totalAmount")),
            paid_amount=_num(doc.get("paidAmount")),
            balance=_num(doc.get("balance")),
            status=BillStatus(status) if status in BillStatus._value2member_map_ else None,
            order_id=doc.get("orderId"),
            notes=doc.get("notes") or "",
        )

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Bill":
        bill = cls.header_from_document(doc)
        bill.items = [BillLineItem.from_dict(i) for i in doc.get("items") or []]
        bill.payment_records = [PaymentRecord.from_dict(p) for p in doc.get("paymentRecords") or []]
        return bill

    def to_document(self) -> Dict[str, Any]:
        return {
            "billId": self.bill_id,
            "billNumber": self.bill_number,
            "customerId": self.customer_id,
            "customerName": self.customer_name,
            "customerPhone": self.customer_phone,
            "date": self.date,
            "createdAt": self.created_at,
            "dueDate": self.due_date,
            "items": [i.to_dict() for i in self.items],
            "subtotal": self.subtotal,
            "gstPercent": self.gst_percent,
            "gstAmount": self.gst_amount,
            "discount": self.discount,
            "discountType": self.discount_type,
            "totalAmount": self.total_amount,
            "paidAmount": self.paid_amount,
            "balance": self.balance,
            "status": self.status.value if self.status else None,
            "orderId": self.order_id,
            "paymentRecords": [p.to_dict() for p in self.payment_records],
            "notes": self.notes,
        }


@dataclass
class StaffMember:
    id: str
    name: str
    role: str = "Staff"
    billing_rate: float = 0  # charged to the customer
    cost_rate: float = 0  # internal cost
    salary_amount: float = 0
    salary_mode: Optional[SalaryMode] = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "StaffMember":
        mode = doc.get("salaryMode")
        return cls(
            id=doc["id"],
            name=doc.get("name") or "Unknown",
            role=doc.get("role") or doc.get("designation") or "Staff",
            billing_rate=_num(doc.get("billingRate")),
            cost_rate=_num(doc.get("costRate")),
            salary_amount=_num(doc.get("salaryAmount")),
            salary_mode=SalaryMode(mode) if mode in SalaryMode._value2member_map_ else None,
        )


@dataclass
class InventoryItem:
    id: str
    name: str
    category: str = "Uncategorized"
    quantity: float = 0
    unit: str = ""
    cost_per_unit: float = 0
    selling_price: Optional[float] = None
    barcode: Optional[str] = None
    barcode_url: Optional[str] = None

    def effective_selling_price(self, markup_multiplier: float) -> float:
        if self.selling_price:
            return self.selling_price
        return self.cost_per_unit * markup_multiplier

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "InventoryItem":
        selling = doc.get("sellingPrice")
        return cls(
            id=doc["id"],
            name=doc.get("name") or "Unknown",
            category=doc.get("category") or "Uncategorized",
            quantity=_num(doc.get("quantity")),
            unit=doc.get("unit") or "",
            cost_per_unit=_num(doc.get("costPerUnit")),
            selling_price=_num(selling) if selling not in (None, "") else None,
            barcode=doc.get("barcode"),
            barcode_url=doc.get("barcodeUrl"),
        )


@dataclass
class WorkDescription:
    id: str
    description: str
    category: str = "Uncategorized"
    rate: float = 0
    cost: float = 0

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "WorkDescription":
        return cls(
            id=doc["id"],
            description=doc.get("description") or "Unknown",
            category=doc.get("category") or "Uncategorized",
            rate=_num(doc.get("rate")),
            cost=_num(doc.get("cost")),
        )


@dataclass
class AttendanceRecord:
    staff_id: str
    date: str  # YYYY-MM-DD
    status: str
    hours_worked: Optional[float] = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "AttendanceRecord":
        hours = doc.get("hoursWorked")
        return cls(
            staff_id=doc.get("staffId") or "",
            date=doc.get("date") or "",
            status=doc.get("status") or "pending",
            hours_worked=_num(hours) if hours not in (None, "") else None,
        )


@dataclass
class LedgerEntry:
    """A manual income or expense entry."""
    id: str
    amount: float
    date: Any = None
    category: str = "Uncategorized"
    payment_mode: str = ""

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "LedgerEntry":
        return cls(
            id=doc["id"],
            amount=_num(doc.get("amount")),
            date=doc.get("date"),
            category=doc.get("category") or "Uncategorized",
            payment_mode=doc.get("paymentMode") or "",
        )


@dataclass
class OrderItem:
    id: str
    status: str = "pending"
    quantity: int = 1
    assigned_staff: List[str] = field(default_factory=list)
    required_materials: List[str] = field(default_factory=list)
    sizes: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrderItem":
        return cls(
            id=str(data.get("id") or ""),
            status=data.get("status") or "pending",
            quantity=int(_num(data.get("quantity"), 1)),
            assigned_staff=list(data.get("assignedStaff") or []),
            required_materials=list(data.get("requiredMaterials") or []),
            sizes=dict(data.get("sizes") or {}),
        )


def _ordered_union(groups: List[List[str]]) -> List[str]:
    seen = set()
    out: List[str] = []
    for group in groups:
        for value in group:
            if value not in seen:
                seen.add(value)
                out.append(value)
    return out


@dataclass
class Order:
    id: str
    customer_id: Optional[str]
    items: List[OrderItem]

    @property
    def quantity(self) -> int:
        return sum(i.quantity for i in self.items)

    @property
    def assigned_staff(self) -> List[str]:
        return _ordered_union([i.assigned_staff for i in self.items])

    @property
    def required_materials(self) -> List[str]:
        return _ordered_union([i.required_materials for i in self.items])

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Order":
        return cls(
            id=doc["id"],
            customer_id=doc.get("customerId"),
            items=[OrderItem.from_dict(i) for i in doc.get("items") or []],
        )


@dataclass
class BankDetails:
    account_name: str = ""
    account_number: str = ""
    ifsc: str = ""
    bank_name: str = ""


@dataclass
class BusinessSettings:
    """
    Shop-wide settings, read once per operation and passed in explicitly.
    """
    business_name: str = "Couture Shop"
    business_address: str = ""
    business_phone: str = ""
    business_email: str = ""
    upi_id: str = ""
    bank_details: BankDetails = field(default_factory=BankDetails)
    default_markup_multiplier: float = 1.25
    country_code: str = "91"
    currency: str = "INR"


@dataclass
class StoredImage:
    file_id: str
    url: str
