# services/settings_service.py
import logging
from dataclasses import replace
from typing import Optional

from data_integrator import DocumentStore, StoreError
from domain.models import BusinessSettings

logger = logging.getLogger(__name__)

# document field -> BusinessSettings attribute
_FIELD_MAP = {
    "businessName": "business_name",
    "businessAddress": "business_address",
    "businessPhone": "business_phone",
    "businessEmail": "business_email",
    "upiId": "upi_id",
    "defaultMarkupMultiplier": "default_markup_multiplier",
    "countryCode": "country_code",
    "currency": "currency",
}

_BANK_MAP = {
    "accountName": "account_name",
    "accountNumber": "account_number",
    "ifsc": "ifsc",
    "bankName": "bank_name",
}


def settings_from_document(doc: dict, defaults: Optional[BusinessSettings] = None) -> BusinessSettings:
    """Merge a settings/business document over the defaults."""
    defaults = defaults or BusinessSettings()

    overrides = {
        attr: doc[key]
        for key, attr in _FIELD_MAP.items()
        if doc.get(key) not in (None, "")
    }
    if "default_markup_multiplier" in overrides:
        overrides["default_markup_multiplier"] = float(overrides["default_markup_multiplier"])

    bank_doc = doc.get("bankDetails") or {}
    bank = replace(
        defaults.bank_details,
        **{attr: bank_doc[key] for key, attr in _BANK_MAP.items() if bank_doc.get(key)},
    )

    return replace(defaults, bank_details=bank, **overrides)


def load_business_settings(store: DocumentStore) -> BusinessSettings:
    """
    Read settings/business, falling back to defaults when the document is
    missing or unreadable.
    """
    try:
        doc = store.get("settings", "business")
    except StoreError as e:
        logger.error("Error fetching business settings: %s", e)
        return BusinessSettings()

    if doc is None:
        return BusinessSettings()
    return settings_from_document(doc)
