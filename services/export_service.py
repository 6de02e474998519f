# services/export_service.py
import io
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, List, Optional, Tuple

import pandas as pd
from openpyxl.utils import get_column_letter

from domain.models import Bill
from services.billing_service import calculate_bill_status
from utils.formatting import format_date_display

SHEET_NAME = "Bills"


@dataclass
class ExportColumn:
    id: str
    title: str
    accessor: Callable[[Bill], Any]
    width: int
    enabled: bool = True


def default_bill_columns() -> List[ExportColumn]:
    return [
        ExportColumn("billId", "Bill ID", lambda b: b.bill_id or "N/A", 12),
        ExportColumn("customerName", "Customer Name", lambda b: b.customer_name or "N/A", 20),
        ExportColumn("customerPhone", "Phone", lambda b: b.customer_phone or "N/A", 15),
        ExportColumn("billDate", "Bill Date", lambda b: format_date_display(b.date), 12),
        ExportColumn("totalAmount", "Total Amount", lambda b: b.total_amount, 12),
        ExportColumn("paidAmount", "Paid Amount", lambda b: b.paid_amount, 12),
        ExportColumn("balance", "Balance", lambda b: b.balance, 12),
        ExportColumn(
            "paymentStatus",
            "Payment Status",
            lambda b: calculate_bill_status(b.total_amount, b.paid_amount).value.title(),
            15,
        ),
        ExportColumn(
            "workItemsSummary",
            "Work Items Summary",
            lambda b: ", ".join(i.description for i in b.items) or "N/A",
            30,
        ),
        ExportColumn("createdAt", "Created Date", lambda b: format_date_display(b.created_at), 12, False),
        ExportColumn("dueDate", "Due Date", lambda b: format_date_display(b.due_date), 12, False),
        ExportColumn("orderId", "Order ID", lambda b: b.order_id or "N/A", 15, False),
    ]


def export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"bills_{today.strftime('%d-%m-%Y')}.xlsx"


def build_export_frame(bills: List[Bill], columns: List[ExportColumn]) -> pd.DataFrame:
    enabled = [c for c in columns if c.enabled]
    if not enabled:
        raise ValueError("Select at least one column to export")

    rows = [{c.title: c.accessor(b) for c in enabled} for b in bills]
    return pd.DataFrame(rows, columns=[c.title for c in enabled])


def export_bills_xlsx(
        bills: List[Bill],
        columns: Optional[List[ExportColumn]] = None,
        today: Optional[date] = None,
) -> Tuple[str, bytes]:
    """
    Render bills to an .xlsx workbook.
    Returns (filename, content)
    """
    columns = columns if columns is not None else default_bill_columns()
    df = build_export_frame(bills, columns)
    enabled = [c for c in columns if c.enabled]

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=SHEET_NAME, index=False)
        sheet = writer.sheets[SHEET_NAME]
        for idx, column in enumerate(enabled, start=1):
            sheet.column_dimensions[get_column_letter(idx)].width = column.width

    return export_filename(today), buffer.getvalue()
