import pytest

from conftest import utc
from utils.dates import coerce_datetime, month_bounds
from utils.formatting import format_date_display, format_rupee


@pytest.mark.parametrize("amount, expected", [
    (0, "₹0.00"),
    (999, "₹999.00"),
    (1000, "₹1,000.00"),
    (123456.789, "₹1,23,456.79"),
    (1234567.5, "₹12,34,567.50"),
    (-2500, "-₹2,500.00"),
])
def test_format_rupee(amount, expected):
    assert format_rupee(amount) == expected


def test_format_date_display():
    assert format_date_display(utc(2024, 3, 9, 15)) == "09/03/2024"
    assert format_date_display({"seconds": 1700000000, "nanoseconds": 0}) == "14/11/2023"
    assert format_date_display("2024-12-31") == "31/12/2024"
    assert format_date_display(None) == "N/A"
    assert format_date_display("soon") == "N/A"


def test_coerce_datetime_makes_naive_values_utc():
    assert coerce_datetime("2024-01-02T03:04:05").tzinfo is not None
    assert coerce_datetime(12345) is None


def test_month_bounds():
    start, end = month_bounds(2024, 2)
    assert start == utc(2024, 2, 1)
    assert end == utc(2024, 2, 29, 23, 59, 59, 999999)
