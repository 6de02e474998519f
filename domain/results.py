# couture/domain/results.py

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from domain.models import BillLineItem


class BillIdFormat(str, Enum):
    CORRECT = "correct"  # Bill001
    HASH = "hash"  # #101
    TIMESTAMP = "timestamp"  # BILL215896
    MISSING = "missing"  # absent or invalid


@dataclass
class BillSummary:
    id: str
    bill_id: str
    bill_number: Optional[int]
    customer: str
    date: Any
    format: BillIdFormat
    has_valid_date: bool


@dataclass
class DiagnosisResult:
    total: int
    bills: List[BillSummary]
    duplicates: List[str]
    formats: Dict[BillIdFormat, int]
    invalid_dates: List[str]  # document ids
    unreadable: List[str] = field(default_factory=list)  # document ids read as header only


@dataclass
class MigrationChange:
    id: str
    old_bill_id: str
    new_bill_id: str
    bill_number: int
    date: Any


@dataclass
class MigrationPlan:
    total: int
    changes: List[MigrationChange]


@dataclass
class DocumentOutcome:
    id: str
    ok: bool
    message: str


@dataclass
class MigrationResult:
    success: int
    failed: int
    changes: List[MigrationChange]
    outcomes: List[DocumentOutcome]


@dataclass
class FixResult:
    doc_id: str
    old_bill_id: str
    new_bill_id: str
    old_bill_number: Optional[int]
    new_bill_number: int
    customer_name: str


@dataclass
class DuplicateFixResult:
    success: int
    failed: int
    fixes: List[FixResult]
    outcomes: List[DocumentOutcome]


@dataclass
class BillDateCheck:
    id: str
    bill_id: str
    field_types: Dict[str, str]
    needs_fix: bool
    raw: Dict[str, Any]


@dataclass
class DateCheckResult:
    total: int
    needs_fix: int
    correct: int
    bills: List[BillDateCheck]


@dataclass
class DateFixDetail:
    id: str
    bill_id: str
    action: str  # fixed | skipped | failed
    reason: str


@dataclass
class DateFixResult:
    success: int = 0
    failed: int = 0
    skipped: int = 0
    details: List[DateFixDetail] = field(default_factory=list)


@dataclass
class ROIResult:
    entity_id: str
    name: str
    category: str
    total_income: float
    total_cost: float
    net_profit: float
    roi_percentage: float
    item_count: int
    avg_profit: float


@dataclass
class StaffROI(ROIResult):
    services_provided: List[BillLineItem] = field(default_factory=list)
    hourly_rate: float = 0
    salary_cost: float = 0


@dataclass
class InventoryROI(ROIResult):
    units_sold: float = 0
    avg_selling_price: float = 0
    avg_cost_price: float = 0
    turnover_rate: float = 0


@dataclass
class ServiceROI(ROIResult):
    times_provided: int = 0
    avg_rate: float = 0


@dataclass
class PeriodROI:
    start_date: datetime
    end_date: datetime
    total_income: float
    total_cost: float
    net_profit: float
    roi_percentage: float
    staff_roi: List[StaffROI]
    inventory_roi: List[InventoryROI]
    service_roi: List[ServiceROI]


@dataclass
class MonthlySummary:
    total_income: float
    total_expenses: float
    net_profit: float
    profit_margin: float
    trend: str  # up | down | neutral
    salary_expense: float = 0
    cogs: float = 0


@dataclass
class PaymentTotals:
    total_paid: float
    total_cash_received: float
    total_online_received: float


@dataclass
class CustomerStats:
    total_bills: int
    total_spent: float
    outstanding_balance: float
    payment_status: str
