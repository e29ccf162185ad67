from decimal import Decimal

import pytest

from billing.exceptions import InvalidInputError
from billing.services.totals_service import (
    GenericTax,
    GstTax,
    InvoiceDraft,
    LineItemDraft,
    NoTax,
    ServicePayload,
    draft_from_form,
    draft_to_snapshot,
    resolve_invoice_totals,
    resolve_subtotal,
)


def form(**overrides):
    data = {
        "engagement_type": "service",
        "currency": "INR",
        "items": [],
        "milestones": [],
        "is_gst_registered": False,
        "tax_percentage": "0",
    }
    data.update(overrides)
    return data


class TestSubtotalSelection:
    ITEMS = [{"description": "Logo", "quantity": 2, "rate": 500, "amount": 1000}]
    MILESTONES = [{"name": "Kickoff", "amount": 5000}]

    def test_milestone_engagement_reads_only_milestones(self):
        draft = draft_from_form(form(engagement_type="milestone", items=self.ITEMS, milestones=self.MILESTONES))
        assert resolve_subtotal(draft) == Decimal("5000.00")

    def test_service_engagement_reads_only_items(self):
        draft = draft_from_form(form(engagement_type="service", items=self.ITEMS, milestones=self.MILESTONES))
        assert resolve_subtotal(draft) == Decimal("1000.00")

    def test_project_uses_first_item_amount_only(self):
        items = [
            {"description": "Website", "quantity": 5, "rate": 100, "amount": "25000"},
            {"description": "Ignored", "quantity": 1, "rate": 1, "amount": "999"},
        ]
        draft = draft_from_form(form(engagement_type="project", items=items))
        assert resolve_subtotal(draft) == Decimal("25000.00")

    def test_retainership_keeps_period(self):
        draft = draft_from_form(form(
            engagement_type="retainership",
            items=[{"description": "Support", "amount": "40000"}],
            retainer_period="June 2025",
        ))
        assert draft.engagement_type == "retainership"
        assert draft.payload.period == "June 2025"
        assert resolve_subtotal(draft) == Decimal("40000.00")

    def test_unusable_milestone_amounts_count_as_zero(self):
        milestones = [{"amount": "abc"}, {"amount": "1500"}, {"amount": None}, {"name": "No amount"}]
        draft = draft_from_form(form(engagement_type="milestone", milestones=milestones))
        assert resolve_subtotal(draft) == Decimal("1500.00")

    def test_negative_milestone_amount_is_rejected(self):
        with pytest.raises(InvalidInputError):
            draft_from_form(form(engagement_type="milestone", milestones=[{"amount": "-10"}]))

    def test_blank_item_fields_count_as_zero(self):
        draft = draft_from_form(form(items=[{"description": "New row", "quantity": "", "rate": None}]))
        assert resolve_subtotal(draft) == Decimal("0.00")

    @pytest.mark.parametrize("item", [
        {"quantity": "two", "rate": 100},
        {"quantity": 1, "rate": -100},
        {"quantity": -1, "rate": 100},
    ])
    def test_invalid_item_numbers_are_rejected(self, item):
        with pytest.raises(InvalidInputError):
            draft_from_form(form(items=[item]))

    def test_line_item_amount_tracks_quantity_and_rate(self):
        item = LineItemDraft(description="Hours", quantity=Decimal("3"), rate=Decimal("33.333"))
        assert item.amount == Decimal("100.00")


class TestAutoTds:
    def _draft(self, amount, currency="INR", **overrides):
        return draft_from_form(form(currency=currency, items=[{"quantity": 1, "rate": amount}], **overrides))

    def test_applies_above_threshold_when_unset(self):
        result = resolve_invoice_totals(self._draft("30001"))

        assert result.tds_amount == Decimal("3000.10")
        assert result.amount_payable == Decimal("27000.90")

    def test_threshold_is_strictly_greater_than(self):
        result = resolve_invoice_totals(self._draft("30000"))

        assert result.tds_amount == Decimal("0.00")
        assert result.amount_payable == Decimal("30000.00")

    def test_not_applied_for_usd(self):
        result = resolve_invoice_totals(self._draft("50000", currency="USD"))
        assert result.tds_amount == Decimal("0.00")

    def test_explicit_false_opts_out(self):
        result = resolve_invoice_totals(self._draft("50000", is_tds_applicable=False))
        assert result.tds_amount == Decimal("0.00")

    def test_explicit_true_applies_below_threshold(self):
        result = resolve_invoice_totals(self._draft("1000", is_tds_applicable=True))
        assert result.tds_amount == Decimal("100.00")

    def test_supplied_rate_overrides_default(self):
        result = resolve_invoice_totals(self._draft("40000", tds_rate="5"))
        assert result.tds_amount == Decimal("2000.00")

    def test_custom_threshold_and_rate(self):
        result = resolve_invoice_totals(
            self._draft("20000"),
            default_tds_rate=Decimal("2"),
            tds_threshold=Decimal("10000"),
        )
        assert result.tds_amount == Decimal("400.00")


class TestTaxModeFromForm:
    def test_gst_rate_defaults_to_eighteen(self):
        draft = draft_from_form(form(is_gst_registered=True, gst_rate=None))
        assert draft.tax_mode == GstTax(rate=Decimal("18"))

    def test_zero_gst_rate_falls_back_to_generic_tax(self):
        draft = draft_from_form(form(is_gst_registered=True, gst_rate="0", tax_percentage="5", tax_name="VAT"))
        assert draft.tax_mode == GenericTax(rate=Decimal("5"), name="VAT")

    def test_no_tax(self):
        assert draft_from_form(form()).tax_mode == NoTax()

    def test_gst_invoice_totals(self):
        draft = draft_from_form(form(
            is_gst_registered=True,
            gst_rate="18",
            is_tds_applicable=True,
            items=[{"quantity": 2, "rate": "50000"}],
        ))
        result = resolve_invoice_totals(draft)

        assert result.total == Decimal("118000.00")
        assert result.amount_payable == Decimal("108000.00")

    def test_unsupported_currency_is_rejected(self):
        with pytest.raises(InvalidInputError):
            draft_from_form(form(currency="EUR"))


class TestDraftSnapshot:
    def test_snapshot_rebuilds_the_same_draft(self):
        draft = InvoiceDraft(
            payload=ServicePayload(items=(
                LineItemDraft("Design", Decimal("2"), Decimal("500")),
                LineItemDraft("Review", Decimal("1.5"), Decimal("800")),
            )),
            currency="INR",
            tax_mode=GstTax(rate=Decimal("18")),
            is_tds_applicable=False,
            tds_rate=Decimal("10"),
        )

        assert draft_from_form(draft_to_snapshot(draft)) == draft
