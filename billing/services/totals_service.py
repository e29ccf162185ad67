"""
Invoice totals resolver.

An invoice being edited is represented by an immutable ``InvoiceDraft``. The
engagement model and the tax regime are variant types, so an invoice cannot
carry line items and milestones at the same time, nor GST and a generic tax.

``resolve_invoice_totals`` is pure: callers run it after every edit that can
change the subtotal and display or persist exactly what it returns.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from ..exceptions import InvalidInputError
from ..money import INR, SUPPORTED_CURRENCIES, ZERO, round_money, to_decimal
from .tax_calculator import DEFAULT_GST_RATE, DEFAULT_TDS_RATE, TaxBreakdown, calculate_tax

DEFAULT_TDS_THRESHOLD = Decimal("30000")

SERVICE = "service"
PROJECT = "project"
RETAINERSHIP = "retainership"
MILESTONE = "milestone"
ENGAGEMENT_TYPES = (SERVICE, PROJECT, RETAINERSHIP, MILESTONE)


def _non_negative(value: Any, name: str) -> Decimal:
    number = to_decimal(value, name)
    if number < 0:
        raise InvalidInputError(f"{name} cannot be negative", field=name, value=str(number))
    return number


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


@dataclass(frozen=True)
class LineItemDraft:
    description: str
    quantity: Decimal
    rate: Decimal

    def __post_init__(self):
        object.__setattr__(self, "quantity", _non_negative(self.quantity, "quantity"))
        object.__setattr__(self, "rate", _non_negative(self.rate, "rate"))

    @property
    def amount(self) -> Decimal:
        return round_money(self.quantity * self.rate)


@dataclass(frozen=True)
class FixedFee:
    """Single fixed-price item used by project and retainership billing."""
    description: str
    amount: Decimal

    def __post_init__(self):
        object.__setattr__(self, "amount", _non_negative(self.amount, "amount"))


@dataclass(frozen=True)
class MilestoneDraft:
    name: str
    amount: Decimal

    def __post_init__(self):
        object.__setattr__(self, "amount", _non_negative(self.amount, "milestone amount"))


@dataclass(frozen=True)
class ServicePayload:
    items: Tuple[LineItemDraft, ...] = ()
    engagement_type = SERVICE


@dataclass(frozen=True)
class ProjectPayload:
    item: FixedFee
    engagement_type = PROJECT


@dataclass(frozen=True)
class RetainerPayload:
    item: FixedFee
    period: str = ""
    engagement_type = RETAINERSHIP


@dataclass(frozen=True)
class MilestonePayload:
    milestones: Tuple[MilestoneDraft, ...] = ()
    engagement_type = MILESTONE


EngagementPayload = Union[ServicePayload, ProjectPayload, RetainerPayload, MilestonePayload]


@dataclass(frozen=True)
class NoTax:
    pass


@dataclass(frozen=True)
class GenericTax:
    rate: Decimal
    name: str = "Tax"

    def __post_init__(self):
        object.__setattr__(self, "rate", _non_negative(self.rate, "tax_percentage"))


@dataclass(frozen=True)
class GstTax:
    rate: Decimal = DEFAULT_GST_RATE

    def __post_init__(self):
        object.__setattr__(self, "rate", _non_negative(self.rate, "gst_rate"))


TaxMode = Union[NoTax, GenericTax, GstTax]


@dataclass(frozen=True)
class InvoiceDraft:
    payload: EngagementPayload = field(default_factory=ServicePayload)
    currency: str = INR
    tax_mode: TaxMode = field(default_factory=NoTax)
    # None means the user has not touched the TDS control yet.
    is_tds_applicable: Optional[bool] = None
    tds_rate: Optional[Decimal] = None

    def __post_init__(self):
        if self.currency not in SUPPORTED_CURRENCIES:
            raise InvalidInputError(f"Unsupported currency: {self.currency}", currency=self.currency)
        if self.tds_rate is not None:
            object.__setattr__(self, "tds_rate", _non_negative(self.tds_rate, "tds_rate"))

    @property
    def engagement_type(self) -> str:
        return self.payload.engagement_type


def resolve_subtotal(draft: InvoiceDraft) -> Decimal:
    payload = draft.payload
    if isinstance(payload, MilestonePayload):
        return round_money(sum((m.amount for m in payload.milestones), ZERO))
    if isinstance(payload, (ProjectPayload, RetainerPayload)):
        return round_money(payload.item.amount)
    return round_money(sum((item.amount for item in payload.items), ZERO))


def resolve_tds(
    draft: InvoiceDraft,
    subtotal: Decimal,
    default_rate: Decimal = DEFAULT_TDS_RATE,
    threshold: Decimal = DEFAULT_TDS_THRESHOLD,
) -> Tuple[bool, Decimal]:
    """Return the effective (applicable, rate) pair for this calculation."""
    rate = draft.tds_rate if draft.tds_rate is not None else default_rate
    if draft.is_tds_applicable is None:
        return draft.currency == INR and subtotal > threshold, rate
    return bool(draft.is_tds_applicable), rate


def resolve_invoice_totals(
    draft: InvoiceDraft,
    default_tds_rate: Decimal = DEFAULT_TDS_RATE,
    tds_threshold: Decimal = DEFAULT_TDS_THRESHOLD,
) -> TaxBreakdown:
    subtotal = resolve_subtotal(draft)
    tds_applicable, tds_rate = resolve_tds(draft, subtotal, default_tds_rate, tds_threshold)

    tax_mode = draft.tax_mode
    return calculate_tax(
        subtotal,
        tax_percentage=tax_mode.rate if isinstance(tax_mode, GenericTax) else ZERO,
        is_gst_registered=isinstance(tax_mode, GstTax),
        gst_rate=tax_mode.rate if isinstance(tax_mode, GstTax) else DEFAULT_GST_RATE,
        is_tds_applicable=tds_applicable,
        tds_rate=tds_rate,
    )


# ---------------------------------------------------------------------------
# Raw form state <-> draft
# ---------------------------------------------------------------------------

def _optional_number(value: Any, name: str) -> Decimal:
    return ZERO if _blank(value) else to_decimal(value, name)


def _lenient_amount(value: Any) -> Decimal:
    # Milestone amounts typed halfway count as zero.
    if _blank(value):
        return ZERO
    try:
        return to_decimal(value, "milestone amount")
    except InvalidInputError:
        return ZERO


def _tax_mode_from_form(data: Mapping[str, Any]) -> TaxMode:
    if data.get("is_gst_registered"):
        gst_rate = data.get("gst_rate")
        rate = DEFAULT_GST_RATE if _blank(gst_rate) else to_decimal(gst_rate, "gst_rate")
        if rate > 0:
            return GstTax(rate=rate)
        if rate < 0:
            raise InvalidInputError("gst_rate cannot be negative", field="gst_rate", value=str(rate))

    percentage = _optional_number(data.get("tax_percentage"), "tax_percentage")
    if percentage > 0:
        return GenericTax(rate=percentage, name=data.get("tax_name") or "Tax")
    if percentage < 0:
        raise InvalidInputError("tax_percentage cannot be negative", field="tax_percentage", value=str(percentage))
    return NoTax()


def draft_from_form(data: Mapping[str, Any]) -> InvoiceDraft:
    """
    Build a draft from raw invoice form state.

    Only the data source belonging to ``engagement_type`` is read; stale
    items left behind after switching to milestones (or the reverse) are
    ignored.
    """
    engagement_type = data.get("engagement_type") or SERVICE
    items: List[Mapping[str, Any]] = list(data.get("items") or [])

    if engagement_type == MILESTONE:
        payload: EngagementPayload = MilestonePayload(milestones=tuple(
            MilestoneDraft(name=m.get("name", ""), amount=_lenient_amount(m.get("amount")))
            for m in (data.get("milestones") or [])
        ))
    elif engagement_type in (PROJECT, RETAINERSHIP):
        first = items[0] if items else {}
        fee = FixedFee(
            description=first.get("description", ""),
            amount=_optional_number(first.get("amount"), "amount"),
        )
        if engagement_type == PROJECT:
            payload = ProjectPayload(item=fee)
        else:
            payload = RetainerPayload(item=fee, period=data.get("retainer_period") or "")
    else:
        payload = ServicePayload(items=tuple(
            LineItemDraft(
                description=item.get("description", ""),
                quantity=_optional_number(item.get("quantity"), "quantity"),
                rate=_optional_number(item.get("rate"), "rate"),
            )
            for item in items
        ))

    tds_flag = data.get("is_tds_applicable")
    tds_rate = data.get("tds_rate")
    return InvoiceDraft(
        payload=payload,
        currency=data.get("currency") or INR,
        tax_mode=_tax_mode_from_form(data),
        is_tds_applicable=None if tds_flag is None else bool(tds_flag),
        tds_rate=None if _blank(tds_rate) else to_decimal(tds_rate, "tds_rate"),
    )


def draft_to_snapshot(draft: InvoiceDraft) -> Dict[str, Any]:
    """Serialize a draft into JSON-safe form state; inverse of draft_from_form."""
    payload = draft.payload
    snapshot: Dict[str, Any] = {
        "engagement_type": draft.engagement_type,
        "currency": draft.currency,
        "items": [],
        "milestones": [],
        "is_gst_registered": isinstance(draft.tax_mode, GstTax),
        "gst_rate": str(draft.tax_mode.rate) if isinstance(draft.tax_mode, GstTax) else None,
        "tax_name": draft.tax_mode.name if isinstance(draft.tax_mode, GenericTax) else "",
        "tax_percentage": str(draft.tax_mode.rate) if isinstance(draft.tax_mode, GenericTax) else "0",
        "is_tds_applicable": draft.is_tds_applicable,
        "tds_rate": None if draft.tds_rate is None else str(draft.tds_rate),
    }

    if isinstance(payload, MilestonePayload):
        snapshot["milestones"] = [{"name": m.name, "amount": str(m.amount)} for m in payload.milestones]
    elif isinstance(payload, (ProjectPayload, RetainerPayload)):
        snapshot["items"] = [{
            "description": payload.item.description,
            "quantity": "1",
            "rate": str(payload.item.amount),
            "amount": str(payload.item.amount),
        }]
        if isinstance(payload, RetainerPayload):
            snapshot["retainer_period"] = payload.period
    else:
        snapshot["items"] = [
            {
                "description": item.description,
                "quantity": str(item.quantity),
                "rate": str(item.rate),
                "amount": str(item.amount),
            }
            for item in payload.items
        ]
    return snapshot
