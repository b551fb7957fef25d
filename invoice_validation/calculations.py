"""Pure financial calculations: tax, totals, discounts, line items.

Inputs are plain numbers. Negative amounts are passed through arithmetically
(credit notes are legitimate); a calculation is reported invalid only when an
input is missing, non-numeric, or non-finite. Results are rounded through
``utils.round_decimal`` so every caller rounds the same way.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .schemas import LineItem
from .utils import MONEY_PLACES, approx_equal, round_decimal, to_decimal

DiscountMode = Literal["percentage", "fixed"]

_HUNDRED = Decimal(100)


class CalculationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    value: float = 0.0
    formula: str = ""
    error: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)


class TaxCalculation(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    tax_amount: float = 0.0
    error: Optional[str] = None


class DiscountCalculation(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    discount_amount: float = 0.0
    discount_rate: float = 0.0
    final_amount: float = 0.0
    mode: str = "percentage"
    error: Optional[str] = None


def _operand(value: object, label: str) -> Decimal:
    number = to_decimal(value)
    if number is None:
        raise ValueError(f"{label} must be a finite number, got {value!r}")
    return number


def calculate_tax(
    amount: object,
    tax_rate: object,
    precision: int = MONEY_PLACES,
    rounding_method: str = "round",
) -> TaxCalculation:
    """Tax on ``amount`` at ``tax_rate`` percent."""
    try:
        base = _operand(amount, "Taxable amount")
        rate = _operand(tax_rate, "Tax rate")
        tax = round_decimal(base * rate / _HUNDRED, precision, rounding_method)
    except (ValueError, ArithmeticError) as exc:
        return TaxCalculation(is_valid=False, error=str(exc))
    return TaxCalculation(is_valid=True, tax_amount=float(tax))


def calculate_total(
    amount: object,
    tax_amount: object = 0,
    discount_amount: object = 0,
    precision: int = MONEY_PLACES,
    rounding_method: str = "round",
) -> CalculationResult:
    """``amount + tax_amount - discount_amount``."""
    try:
        base = _operand(amount, "Base amount")
        tax = _operand(tax_amount, "Tax amount")
        discount = _operand(discount_amount, "Discount amount")
        total = round_decimal(base + tax - discount, precision, rounding_method)
    except (ValueError, ArithmeticError) as exc:
        return CalculationResult(is_valid=False, formula="Error in calculation", error=str(exc))
    return CalculationResult(
        is_valid=True,
        value=float(total),
        formula=f"{base} + {tax} - {discount} = {total}",
    )


def calculate_discount(
    amount: object,
    value: object,
    mode: str = "percentage",
    precision: int = MONEY_PLACES,
    rounding_method: str = "round",
) -> DiscountCalculation:
    """Discount on ``amount``; ``value`` is a percent rate or a fixed amount depending on ``mode``."""
    try:
        base = _operand(amount, "Original amount")
        given = _operand(value, "Discount value")
        if mode == "percentage":
            rate = given
            discount = base * given / _HUNDRED
        elif mode == "fixed":
            discount = given
            rate = given / base * _HUNDRED if base else Decimal(0)
        else:
            raise ValueError(f"Invalid discount mode {mode!r}; expected 'percentage' or 'fixed'")
        discount = round_decimal(discount, precision, rounding_method)
        final = round_decimal(base - discount, precision, rounding_method)
        rate = round_decimal(rate, 2, rounding_method)
    except (ValueError, ArithmeticError) as exc:
        return DiscountCalculation(is_valid=False, mode=str(mode), error=str(exc))
    return DiscountCalculation(
        is_valid=True,
        discount_amount=float(discount),
        discount_rate=float(rate),
        final_amount=float(final),
        mode=mode,
    )


def calculate_line_item_total(
    quantity: object,
    unit_price: object,
    precision: int = MONEY_PLACES,
    rounding_method: str = "round",
) -> CalculationResult:
    try:
        qty = _operand(quantity, "Quantity")
        price = _operand(unit_price, "Unit price")
        total = round_decimal(qty * price, precision, rounding_method)
    except (ValueError, ArithmeticError) as exc:
        return CalculationResult(is_valid=False, formula="Error in calculation", error=str(exc))
    return CalculationResult(is_valid=True, value=float(total), formula=f"{qty} x {price} = {total}")


def _line_total(item: object) -> object:
    if isinstance(item, LineItem):
        return item.line_total
    if isinstance(item, Mapping):
        return item.get("lineTotal", item.get("line_total"))
    return None


def calculate_subtotal(
    line_items: Iterable[Union[LineItem, Mapping[str, Any]]],
    precision: int = MONEY_PLACES,
    rounding_method: str = "round",
) -> CalculationResult:
    """Sum of the items' ``line_total``; items without a numeric one are skipped with a warning."""
    subtotal = Decimal(0)
    warnings: List[str] = []
    count = 0
    for index, item in enumerate(line_items):
        count += 1
        line_total = _line_total(item)
        number = to_decimal(line_total)
        if number is None:
            warnings.append(f"Invalid line total for item {index + 1}: {line_total!r}")
            continue
        subtotal += number
    try:
        subtotal = round_decimal(subtotal, precision, rounding_method)
    except (ValueError, ArithmeticError) as exc:
        return CalculationResult(is_valid=False, formula="Error in calculation", error=str(exc), warnings=warnings)
    return CalculationResult(
        is_valid=True,
        value=float(subtotal),
        formula=f"Sum of {count} line items = {subtotal}",
        warnings=warnings,
    )


def calculate_percentage_difference(actual: object, expected: object) -> float:
    """``|actual - expected|`` as a percentage of ``|expected|``.

    A zero ``expected`` has no scale: the result is 0.0 when ``actual`` is
    also zero and 100.0 otherwise.
    """
    stated = _operand(actual, "Actual value")
    reference = _operand(expected, "Expected value")
    difference = abs(stated - reference)
    if reference == 0:
        return 0.0 if difference == 0 else 100.0
    return float(difference / abs(reference) * _HUNDRED)


def is_within_tolerance(a: object, b: object, tolerance: float = 0.01) -> bool:
    return approx_equal(to_decimal(a), to_decimal(b), tolerance=Decimal(str(tolerance)))
