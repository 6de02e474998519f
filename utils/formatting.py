# utils/formatting.py
from typing import Any

from utils.dates import coerce_datetime


def format_rupee(amount: float) -> str:
    """
    Format an amount with Indian digit grouping.
    Example: 1234567.5 -> "₹12,34,567.50"
    """
    sign = "-" if amount < 0 else ""
    whole, frac = f"{abs(amount):.2f}".split(".")

    head, tail = whole[:-3], whole[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)

    grouped = ",".join(groups + [tail]) if groups else tail
    return f"{sign}₹{grouped}.{frac}"


def format_date_display(value: Any) -> str:
    """DD/MM/YYYY for any stored date shape, or "N/A"."""
    dt = coerce_datetime(value)
    return dt.strftime("%d/%m/%Y") if dt else "N/A"
