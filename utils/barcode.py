# couture/utils/barcode.py

import io
import re
import time

from barcode import Code128
from barcode.writer import ImageWriter

_CODE128_SAFE = re.compile(r"^[\x20-\x7E]{1,48}$")


def generate_barcode_value(now_ms: int = None) -> str:
    """
    Numeric barcode text from the current time in milliseconds.
    Short numeric values keep the Code128 symbol compact for phone scanners.
    """
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    return str(now_ms)


def is_valid_barcode_value(value: str) -> bool:
    return bool(value) and bool(_CODE128_SAFE.match(value))


def render_barcode_png(value: str) -> bytes:
    """
    Render a Code128 barcode for `value` into PNG bytes.
    """
    if not is_valid_barcode_value(value):
        raise ValueError(f"Cannot encode barcode value: {value!r}")

    buffer = io.BytesIO()
    Code128(value, writer=ImageWriter()).write(buffer, options={"format": "PNG"})
    return buffer.getvalue()
