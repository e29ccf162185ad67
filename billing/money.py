"""
Money helpers.

All amounts are ``Decimal`` and are rounded to paise/cents with
ROUND_HALF_UP, which rounds halves away from zero.
"""

import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from .exceptions import InvalidInputError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

INR = "INR"
USD = "USD"
SUPPORTED_CURRENCIES = (INR, USD)

CURRENCY_SYMBOLS = {
    INR: "₹",
    USD: "$",
}


def to_decimal(value: Any, field: str = "amount") -> Decimal:
    """Parse ``value`` into a finite Decimal or raise InvalidInputError."""
    if isinstance(value, bool) or value is None:
        raise InvalidInputError(f"{field} must be a number", field=field, value=value)

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidInputError(f"{field} must be finite", field=field, value=value)
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise InvalidInputError(f"{field} must be a number", field=field, value=value)
    else:
        raise InvalidInputError(f"{field} must be a number", field=field, value=value)

    if not result.is_finite():
        raise InvalidInputError(f"{field} must be finite", field=field, value=str(value))
    return result


def round_money(value: Any, field: str = "amount") -> Decimal:
    return to_decimal(value, field).quantize(CENT, rounding=ROUND_HALF_UP)


def currency_symbol(currency: str) -> str:
    return CURRENCY_SYMBOLS.get(currency, currency)


def _group_indian(digits: str) -> str:
    # 12345678 -> 1,23,45,678
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_currency(amount: Any, currency: str = INR) -> str:
    """Format an amount the way invoices display it, e.g. ``₹1,18,000.00``."""
    value = round_money(amount)
    sign = "-" if value < 0 else ""
    whole, fraction = f"{abs(value):.2f}".split(".")
    if currency == INR:
        grouped = _group_indian(whole)
    else:
        grouped = f"{int(whole):,}"
    return f"{sign}{currency_symbol(currency)}{grouped}.{fraction}"


def convert_currency(amount: Any, from_currency: str, to_currency: str, rate: Optional[Any] = None) -> Decimal:
    """
    Convert between INR and USD using a USD->INR rate.

    The result is not rounded so that aggregates can be summed before
    rounding once.
    """
    value = to_decimal(amount)
    if from_currency == to_currency:
        return value

    usd_to_inr = to_decimal(rate, "usd_to_inr_rate")
    if usd_to_inr <= 0:
        raise InvalidInputError("usd_to_inr_rate must be greater than zero", rate=str(usd_to_inr))

    if from_currency == USD and to_currency == INR:
        return value * usd_to_inr
    if from_currency == INR and to_currency == USD:
        return value / usd_to_inr
    raise InvalidInputError(
        f"Unsupported conversion {from_currency} -> {to_currency}",
        from_currency=from_currency,
        to_currency=to_currency,
    )
