"""
Tax calculator.

Turns a subtotal and the invoice tax settings into the figures printed on an
invoice. GST and a generic tax are mutually exclusive (GST wins); TDS is a
withholding on the pre-tax subtotal and only reduces the amount payable.
"""

from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Dict

from ..exceptions import InvalidInputError
from ..money import ZERO, round_money, to_decimal

DEFAULT_GST_RATE = Decimal("18")
DEFAULT_TDS_RATE = Decimal("10")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class TaxBreakdown:
    subtotal: Decimal
    tax: Decimal
    gst_amount: Decimal
    tds_amount: Decimal
    total: Decimal
    amount_payable: Decimal

    def as_dict(self) -> Dict[str, Decimal]:
        return asdict(self)


def _non_negative(value: Any, field: str) -> Decimal:
    number = to_decimal(value, field)
    if number < 0:
        raise InvalidInputError(f"{field} cannot be negative", field=field, value=str(number))
    return number


def calculate_tax(
    subtotal: Any,
    tax_percentage: Any = 0,
    is_gst_registered: bool = False,
    gst_rate: Any = DEFAULT_GST_RATE,
    is_tds_applicable: bool = False,
    tds_rate: Any = DEFAULT_TDS_RATE,
) -> TaxBreakdown:
    base = round_money(_non_negative(subtotal, "subtotal"))
    tax_percentage = _non_negative(tax_percentage, "tax_percentage")
    gst_rate = _non_negative(gst_rate, "gst_rate")
    tds_rate = _non_negative(tds_rate, "tds_rate")

    gst_amount = ZERO
    if is_gst_registered and gst_rate > 0:
        tax = round_money(base * gst_rate / HUNDRED)
        gst_amount = tax
    elif tax_percentage > 0:
        tax = round_money(base * tax_percentage / HUNDRED)
    else:
        tax = ZERO

    total = round_money(base + tax)

    tds_amount = ZERO
    if is_tds_applicable and tds_rate > 0:
        tds_amount = round_money(base * tds_rate / HUNDRED)
    amount_payable = round_money(total - tds_amount)

    return TaxBreakdown(
        subtotal=base,
        tax=tax,
        gst_amount=gst_amount,
        tds_amount=tds_amount,
        total=total,
        amount_payable=amount_payable,
    )
