from decimal import Decimal

import pytest

from billing.exceptions import InvalidInputError
from billing.services.tax_calculator import calculate_tax


class TestCalculateTax:
    def test_tds_is_computed_on_pre_tax_subtotal(self):
        result = calculate_tax(100000, is_gst_registered=True, gst_rate=18, is_tds_applicable=True, tds_rate=10)

        assert result.tax == Decimal("18000.00")
        assert result.gst_amount == Decimal("18000.00")
        assert result.total == Decimal("118000.00")
        assert result.tds_amount == Decimal("10000.00")
        assert result.amount_payable == Decimal("108000.00")

    def test_gst_takes_precedence_over_generic_tax(self):
        result = calculate_tax(1000, tax_percentage=5, is_gst_registered=True, gst_rate=18)

        assert result.tax == Decimal("180.00")
        assert result.gst_amount == Decimal("180.00")

    def test_generic_tax_when_not_gst_registered(self):
        result = calculate_tax(1000, tax_percentage=5)

        assert result.tax == Decimal("50.00")
        assert result.gst_amount == Decimal("0.00")
        assert result.total == Decimal("1050.00")
        assert result.amount_payable == Decimal("1050.00")

    def test_zero_gst_rate_falls_back_to_generic_tax(self):
        result = calculate_tax(1000, tax_percentage=5, is_gst_registered=True, gst_rate=0)

        assert result.tax == Decimal("50.00")
        assert result.gst_amount == Decimal("0.00")

    def test_tds_is_independent_of_tax_path(self):
        result = calculate_tax(1000, tax_percentage=5, is_tds_applicable=True, tds_rate=10)

        assert result.tds_amount == Decimal("100.00")
        assert result.amount_payable == Decimal("950.00")

    def test_zero_inputs_do_not_raise(self):
        result = calculate_tax(0, tax_percentage=0, is_gst_registered=True, gst_rate=0,
                               is_tds_applicable=True, tds_rate=0)

        assert result.as_dict() == {
            "subtotal": Decimal("0.00"),
            "tax": Decimal("0.00"),
            "gst_amount": Decimal("0.00"),
            "tds_amount": Decimal("0.00"),
            "total": Decimal("0.00"),
            "amount_payable": Decimal("0.00"),
        }

    def test_subtotal_is_rounded_half_up_first(self):
        result = calculate_tax("0.125")
        assert result.subtotal == Decimal("0.13")

    def test_total_is_stable_when_fed_back(self):
        first = calculate_tax("333.333", is_gst_registered=True, gst_rate=18)
        again = calculate_tax(first.total)

        assert first.total == Decimal("393.33")
        assert again.total == first.total

    @pytest.mark.parametrize("kwargs", [
        {"subtotal": -1},
        {"subtotal": 100, "tax_percentage": -5},
        {"subtotal": 100, "gst_rate": -18, "is_gst_registered": True},
        {"subtotal": 100, "tds_rate": -10, "is_tds_applicable": True},
        {"subtotal": float("nan")},
    ])
    def test_rejects_negative_or_non_finite_input(self, kwargs):
        with pytest.raises(InvalidInputError):
            calculate_tax(**kwargs)
