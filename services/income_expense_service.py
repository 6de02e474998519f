# services/income_expense_service.py
import logging
from datetime import datetime
from typing import Iterable, List

from data_integrator import DocumentStore, query_date_window
from domain.models import AttendanceRecord, Bill, LedgerEntry, SalaryMode, StaffMember
from domain.results import MonthlySummary
from utils.dates import month_bounds

logger = logging.getLogger(__name__)

DEFAULT_HOURS_PER_DAY = 8
TREND_UP_MARGIN = 15


def accrued_salary(staff: StaffMember, attendance: Iterable[AttendanceRecord]) -> float:
    """
    Salary attributed to one month.

    monthly: the full salary, whatever the attendance.
    daily:   salary x confirmed days.
    hourly:  salary x hours worked on confirmed days (8 when not recorded).
    """
    if staff.salary_amount <= 0 or staff.salary_mode is None:
        return 0

    if staff.salary_mode == SalaryMode.MONTHLY:
        return staff.salary_amount

    confirmed = [r for r in attendance if r.status == "confirmed"]

    if staff.salary_mode == SalaryMode.DAILY:
        return staff.salary_amount * len(confirmed)

    hours = sum(
        r.hours_worked if r.hours_worked is not None else DEFAULT_HOURS_PER_DAY
        for r in confirmed
    )
    return staff.salary_amount * hours


def summarize(total_income: float, total_expenses: float) -> MonthlySummary:
    net_profit = total_income - total_expenses
    margin = net_profit / total_income * 100 if total_income > 0 else 0

    if margin >= TREND_UP_MARGIN:
        trend = "up"
    elif margin < 0:
        trend = "down"
    else:
        trend = "neutral"

    return MonthlySummary(
        total_income=total_income,
        total_expenses=total_expenses,
        net_profit=net_profit,
        profit_margin=margin,
        trend=trend,
    )


def bills_cogs(bills: List[Bill]) -> float:
    return sum(item.cost * item.quantity for bill in bills for item in bill.items)


def _ledger_total(store: DocumentStore, collection: str, start: datetime, end: datetime) -> float:
    docs = query_date_window(store, collection, start, end)
    return sum(LedgerEntry.from_document(d).amount for d in docs)


def staff_salary_expense(store: DocumentStore, start: datetime, end: datetime) -> float:
    # attendance dates are stored as YYYY-MM-DD strings
    first_day = start.date().isoformat()
    last_day = end.date().isoformat()
    total = 0.0

    for doc in store.fetch_all("staff"):
        staff = StaffMember.from_document(doc)
        if staff.salary_amount <= 0 or staff.salary_mode is None:
            continue

        attendance: List[AttendanceRecord] = []
        if staff.salary_mode != SalaryMode.MONTHLY:
            attendance = [
                AttendanceRecord.from_document(d)
                for d in store.query(
                    "attendance",
                    [
                        ("staffId", "==", staff.id),
                        ("status", "==", "confirmed"),
                        ("date", ">=", first_day),
                        ("date", "<=", last_day),
                    ],
                )
            ]

        total += accrued_salary(staff, attendance)

    return total


def compute_monthly_income_expense(store: DocumentStore, year: int, month: int) -> MonthlySummary:
    """
    Income vs. expenses for one calendar month.

    Income is billed totals plus manual income entries. Expenses are the
    cost of goods on the month's bills, manual expense entries and accrued
    staff salaries. If salaries cannot be computed the summary is still
    returned without them.
    """
    start, end = month_bounds(year, month)

    bills = [Bill.from_document(d) for d in query_date_window(store, "bills", start, end)]

    total_income = sum(b.total_amount for b in bills)
    total_income += _ledger_total(store, "income", start, end)

    cogs = bills_cogs(bills)
    total_expenses = cogs + _ledger_total(store, "expenses", start, end)

    salaries = 0.0
    try:
        salaries = staff_salary_expense(store, start, end)
    except Exception as e:
        logger.error("Error calculating staff salaries for %04d-%02d: %s", year, month, e)

    total_expenses += salaries
    logger.info("Staff salaries included in %04d-%02d expenses: %s", year, month, salaries)

    summary = summarize(total_income, total_expenses)
    summary.salary_expense = salaries
    summary.cogs = cogs
    return summary
