# services/share_links.py
import re
from typing import Optional
from urllib.parse import quote

from domain.models import BusinessSettings


def normalize_phone(phone: str, country_code: str = "91") -> str:
    """
    Digits only, with the country code in front.
    Example: "98765 43210" -> "919876543210"
    """
    digits = re.sub(r"\D", "", phone or "")
    if not digits:
        raise ValueError("Phone number has no digits")

    if len(digits) == 10:
        return f"{country_code}{digits}"
    if digits.startswith(country_code):
        return digits
    return f"{country_code}{digits}"


def whatsapp_link(phone: str, message: str, settings: BusinessSettings) -> str:
    number = normalize_phone(phone, settings.country_code)
    return f"https://wa.me/{number}?text={quote(message, safe='')}"


def payment_note(
        bill_id: str,
        settings: BusinessSettings,
        order_name: Optional[str] = None,
        made_for: Optional[str] = None,
        order_id: Optional[str] = None,
        delivery_date: Optional[str] = None,
) -> str:
    parts = [f"Bill {bill_id}"]
    if order_name:
        parts.append(order_name)
    if made_for:
        parts.append(f"Made for {made_for}")
    if order_id:
        parts.append(f"Order #{order_id}")
    if delivery_date:
        parts.append(f"Delivery: {delivery_date}")
    parts.append(settings.business_name)
    return " - ".join(parts)


def upi_link(payer_name: str, amount: float, note: str, settings: BusinessSettings) -> str:
    if not settings.upi_id:
        raise ValueError("UPI id is not configured in business settings")

    return (
        f"upi://pay?pa={quote(settings.upi_id, safe='@.')}"
        f"&pn={quote(payer_name, safe='')}"
        f"&am={amount:.2f}"
        f"&cu={settings.currency}"
        f"&tn={quote(note, safe='')}"
    )
