"""Access to the ``BILLING`` settings dict with built-in defaults."""

from decimal import Decimal
from typing import Any

from django.conf import settings

DEFAULTS = {
    "DEFAULT_GST_RATE": 18,
    "DEFAULT_TDS_RATE": 10,
    "TDS_AUTO_THRESHOLD": 30000,
    "INVOICE_DUE_DAYS": 15,
    "RECURRING_DUE_DAYS": 15,
    "DEFAULT_USD_TO_INR_RATE": 85,
    "INVOICE_NUMBER_PREFIX": "INV",
    "NOTIFICATION_DISPATCHER": "billing.notifications.EmailNotificationDispatcher",
}

DECIMAL_KEYS = {"DEFAULT_GST_RATE", "DEFAULT_TDS_RATE", "TDS_AUTO_THRESHOLD", "DEFAULT_USD_TO_INR_RATE"}


def billing_setting(name: str) -> Any:
    if name not in DEFAULTS:
        raise KeyError(f"Unknown billing setting: {name}")
    value = getattr(settings, "BILLING", {}).get(name, DEFAULTS[name])
    if name in DECIMAL_KEYS:
        return Decimal(str(value))
    return value
