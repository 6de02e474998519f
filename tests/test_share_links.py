import pytest

from domain.models import BusinessSettings
from services.share_links import normalize_phone, payment_note, upi_link, whatsapp_link


@pytest.mark.parametrize("phone, expected", [
    ("98765 43210", "919876543210"),
    ("+91 98765-43210", "919876543210"),
    ("919876543210", "919876543210"),
    ("(044) 2345 678", "910442345678"),
])
def test_normalize_phone(phone, expected):
    assert normalize_phone(phone) == expected


def test_normalize_phone_without_digits():
    with pytest.raises(ValueError):
        normalize_phone("n/a")


def test_whatsapp_link_encodes_message():
    link = whatsapp_link("98765 43210", "Bill001 is ready & paid?", BusinessSettings())
    assert link == "https://wa.me/919876543210?text=Bill001%20is%20ready%20%26%20paid%3F"


def test_whatsapp_link_uses_configured_country_code():
    link = whatsapp_link("4155550100", "hi", BusinessSettings(country_code="1"))
    assert link.startswith("https://wa.me/14155550100?")


def test_payment_note():
    settings = BusinessSettings(business_name="Rang Couture")
    note = payment_note("Bill012", settings, order_name="Lehenga", order_id="77")
    assert note == "Bill Bill012 - Lehenga - Order #77 - Rang Couture"


def test_upi_link():
    settings = BusinessSettings(upi_id="rang.couture@okhdfc")
    link = upi_link("Priya S", 1499.5, "Bill Bill012", settings)
    assert link == "upi://pay?pa=rang.couture@okhdfc&pn=Priya%20S&am=1499.50&cu=INR&tn=Bill%20Bill012"


def test_upi_link_needs_upi_id():
    with pytest.raises(ValueError):
        upi_link("Priya", 10, "note", BusinessSettings())
