"""Unit tests for financial calculations and money helpers."""

import math

import pytest

from invoice_validation.calculations import (
    calculate_discount,
    calculate_line_item_total,
    calculate_percentage_difference,
    calculate_subtotal,
    calculate_tax,
    calculate_total,
    is_within_tolerance,
)
from invoice_validation.schemas import LineItem
from invoice_validation.utils import apply_rounding, money_difference, parse_currency_value


class TestCalculateTax:
    """Tests for calculate_tax."""

    def test_standard_rate(self):
        result = calculate_tax(100, 10)
        assert result.is_valid
        assert result.tax_amount == 10.0

    def test_rounds_half_up(self):
        """10.05 * 50% = 5.025 rounds up, not to the float-nearest 5.02."""
        assert calculate_tax(10.05, 50).tax_amount == 5.03

    @pytest.mark.parametrize(
        "method,expected",
        [("round", 7.5), ("floor", 7.49), ("ceil", 7.5)],
    )
    def test_rounding_methods(self, method, expected):
        assert calculate_tax(99.99, 7.5, rounding_method=method).tax_amount == expected

    def test_precision(self):
        assert calculate_tax(100, 7.125, precision=3).tax_amount == 7.125

    def test_negative_amount_passes_through(self):
        result = calculate_tax(-100, 10)
        assert result.is_valid
        assert result.tax_amount == -10.0

    @pytest.mark.parametrize("amount,rate", [(math.nan, 10), (100, math.inf), (None, 10), ("abc", 10), (True, 10)])
    def test_invalid_inputs(self, amount, rate):
        result = calculate_tax(amount, rate)
        assert not result.is_valid
        assert result.tax_amount == 0.0
        assert result.error

    def test_unknown_rounding_method_is_invalid(self):
        result = calculate_tax(100, 10, rounding_method="bankers")
        assert not result.is_valid
        assert "rounding" in result.error


class TestCalculateTotal:
    """Tests for calculate_total."""

    def test_amount_plus_tax_minus_discount(self):
        result = calculate_total(100, 10, 5)
        assert result.is_valid
        assert result.value == 105.0
        assert "=" in result.formula

    def test_defaults_to_no_tax_or_discount(self):
        assert calculate_total(42.5).value == 42.5

    def test_non_finite_is_invalid(self):
        result = calculate_total(100, math.nan, 0)
        assert not result.is_valid
        assert result.formula == "Error in calculation"


class TestCalculateDiscount:
    """Tests for calculate_discount."""

    def test_percentage(self):
        result = calculate_discount(200, 10)
        assert result.is_valid
        assert result.discount_amount == 20.0
        assert result.final_amount == 180.0
        assert result.discount_rate == 10.0

    def test_fixed(self):
        result = calculate_discount(200, 50, "fixed")
        assert result.is_valid
        assert result.discount_amount == 50.0
        assert result.discount_rate == 25.0
        assert result.final_amount == 150.0

    def test_fixed_on_zero_amount_has_zero_rate(self):
        result = calculate_discount(0, 5, "fixed")
        assert result.is_valid
        assert result.discount_rate == 0.0

    def test_unknown_mode_is_invalid(self):
        result = calculate_discount(200, 10, "bogus")
        assert not result.is_valid
        assert "bogus" in result.error


class TestLineItemsAndSubtotal:
    """Tests for line item totals and subtotals."""

    def test_line_item_total(self):
        result = calculate_line_item_total(3, 19.99)
        assert result.is_valid
        assert result.value == 59.97

    def test_line_item_missing_quantity(self):
        assert not calculate_line_item_total(None, 5).is_valid

    def test_subtotal_skips_non_numeric(self):
        items = [{"lineTotal": 10}, {"line_total": 20.5}, {"lineTotal": None}, {"description": "no total"}]
        result = calculate_subtotal(items)
        assert result.is_valid
        assert result.value == 30.5
        assert len(result.warnings) == 2
        assert "4 line items" in result.formula


    def test_subtotal_reads_line_item_models(self):
        items = [LineItem(quantity=1, unit_price=9.99, line_total=9.99), LineItem(line_total="$1,000.01")]
        result = calculate_subtotal(items)
        assert result.value == 1010.0
        assert result.warnings == []


class TestPercentageDifference:
    """Tests for calculate_percentage_difference."""

    @pytest.mark.parametrize(
        "actual,expected,percentage",
        [
            (25, 20, 25.0),
            (15, 20, 25.0),
            (110, 100, 10.0),
            (-8, -10, 20.0),
        ],
    )
    def test_relative_to_expected(self, actual, expected, percentage):
        assert calculate_percentage_difference(actual, expected) == pytest.approx(percentage)

    def test_both_zero_is_no_difference(self):
        assert calculate_percentage_difference(0, 0) == 0.0

    def test_zero_expected_is_full_difference(self):
        assert calculate_percentage_difference(5, 0) == 100.0
        assert calculate_percentage_difference(-0.01, 0) == 100.0

    def test_rejects_non_numeric(self):
        with pytest.raises(ValueError):
            calculate_percentage_difference(math.nan, 10)


class TestMoneyHelpers:
    """Tests for tolerance and Decimal helpers."""

    def test_tolerance_boundary_is_inclusive(self):
        assert is_within_tolerance(10.00, 10.01)
        assert not is_within_tolerance(10.00, 10.02)

    def test_money_difference_is_exact(self):
        assert money_difference(11.01, 10.0) == 1.01

    def test_apply_rounding(self):
        assert apply_rounding(2.675) == 2.68
        assert apply_rounding(2.675, method="floor") == 2.67

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("$1,200.50", 1200.5),
            ("€ 99", 99.0),
            ("-15.25", -15.25),
            (12, 12.0),
            ("abc", None),
            ("", None),
            ("nan", None),
            (True, None),
            (None, None),
        ],
    )
    def test_parse_currency_value(self, text, expected):
        assert parse_currency_value(text) == expected


class TestLargeAmounts:
    """Amounts beyond the default Decimal precision still calculate."""

    def test_tax_on_huge_amount(self):
        result = calculate_tax(1e26, 10)
        assert result.is_valid
        assert result.tax_amount == 1e25

    def test_total_on_huge_amount(self):
        result = calculate_total(1e26, 1e25)
        assert result.is_valid
        assert result.value == 1.1e26

    def test_line_item_and_discount_on_huge_amount(self):
        assert calculate_line_item_total(1e20, 1e10).value == 1e30
        assert calculate_discount(1e30, 10).discount_amount == 1e29

    def test_apply_rounding_keeps_places(self):
        assert apply_rounding(123456789012345678901234567.5, precision=0) == 1.2345678901234568e26
