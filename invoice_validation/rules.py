"""Per-field validation rules.

Each evaluator takes one record plus the engine config and returns a finding
or ``None`` (line items return a list). Evaluators do not raise for odd but
present values; failed recalculations become findings with a
``FailedCalculation`` outcome.
"""
from __future__ import annotations

from typing import List, Optional

from .calculations import (
    calculate_discount,
    calculate_line_item_total,
    calculate_percentage_difference,
    calculate_tax,
    calculate_total,
)
from .schemas import (
    DISCOUNT_AMOUNT,
    LINE_ITEM_TOTAL,
    TAX_AMOUNT,
    TOTAL_AMOUNT,
    CalculatedValue,
    FailedCalculation,
    InvoiceRecord,
    Severity,
    ValidationConfig,
    ValidationResult,
)
from .severity import determine_severity
from .utils import MONEY_PLACES, money_difference

# Line item mismatches are reported as HIGH whatever their percentage.
LINE_ITEM_SEVERITY = Severity.HIGH


def _failed(
    record: InvoiceRecord,
    field: str,
    original: Optional[float],
    reason: Optional[str],
    severity: Severity,
    message: str,
) -> ValidationResult:
    return ValidationResult(
        record_id=record.id,
        field=field,
        original_value=original,
        calculated_value=FailedCalculation(reason=reason or message),
        severity=severity,
        message=message,
    )


def _compare(
    record: InvoiceRecord,
    field: str,
    original: float,
    expected: float,
    tolerance: float,
    config: ValidationConfig,
    label: str,
    severity: Optional[Severity] = None,
) -> Optional[ValidationResult]:
    discrepancy = money_difference(original, expected)
    if discrepancy <= tolerance:
        return None
    percentage = calculate_percentage_difference(original, expected)
    return ValidationResult(
        record_id=record.id,
        field=field,
        original_value=original,
        calculated_value=CalculatedValue(value=expected),
        discrepancy=discrepancy,
        discrepancy_percentage=percentage,
        severity=severity or determine_severity(percentage, config.thresholds),
        message=f"{label}: Expected {expected:.2f}, found {original:.2f}",
    )


def evaluate_tax(record: InvoiceRecord, config: ValidationConfig) -> Optional[ValidationResult]:
    if not record.tax_rate:
        return None

    calculation = calculate_tax(record.amount, record.tax_rate, precision=MONEY_PLACES)
    if not calculation.is_valid:
        return _failed(record, TAX_AMOUNT, record.tax_amount, calculation.error, Severity.CRITICAL, "Tax calculation failed")

    return _compare(
        record,
        TAX_AMOUNT,
        record.tax_amount,
        calculation.tax_amount,
        config.tolerances.tax_calculation,
        config,
        "Tax calculation discrepancy",
    )


def evaluate_total(record: InvoiceRecord, config: ValidationConfig) -> Optional[ValidationResult]:
    """Checks the stated total against the record's own tax and discount."""
    calculation = calculate_total(record.amount, record.tax_amount, record.discount_amount, precision=MONEY_PLACES)
    if not calculation.is_valid:
        return _failed(record, TOTAL_AMOUNT, record.total_amount, calculation.error, Severity.CRITICAL, "Total calculation failed")

    return _compare(
        record,
        TOTAL_AMOUNT,
        record.total_amount,
        calculation.value,
        config.tolerances.total_calculation,
        config,
        "Total calculation discrepancy",
    )


def evaluate_discount(record: InvoiceRecord, config: ValidationConfig) -> Optional[ValidationResult]:
    """Self-consistency check: rebuild the discount from its implied rate."""
    if record.discount_amount <= 0:
        return None
    if record.amount == 0:
        return _failed(
            record,
            DISCOUNT_AMOUNT,
            record.discount_amount,
            "Discount given on a zero amount",
            Severity.CRITICAL,
            "Discount calculation failed",
        )

    implied_rate = record.discount_amount / record.amount * 100
    calculation = calculate_discount(record.amount, implied_rate, "percentage", precision=MONEY_PLACES)
    if not calculation.is_valid:
        return _failed(
            record, DISCOUNT_AMOUNT, record.discount_amount, calculation.error, Severity.CRITICAL, "Discount calculation failed"
        )

    return _compare(
        record,
        DISCOUNT_AMOUNT,
        record.discount_amount,
        calculation.discount_amount,
        config.tolerances.discount_calculation,
        config,
        "Discount calculation discrepancy",
    )


def evaluate_line_items(record: InvoiceRecord, config: ValidationConfig) -> List[ValidationResult]:
    findings: List[ValidationResult] = []
    for index, item in enumerate(record.line_items):
        field = f"{LINE_ITEM_TOTAL}_{index}"
        calculation = calculate_line_item_total(item.quantity, item.unit_price, precision=MONEY_PLACES)
        if not calculation.is_valid or item.line_total is None:
            reason = calculation.error if not calculation.is_valid else "Line total is missing"
            findings.append(
                _failed(record, field, item.line_total, reason, LINE_ITEM_SEVERITY, f"Line item {index + 1} calculation failed")
            )
            continue

        finding = _compare(
            record,
            field,
            item.line_total,
            calculation.value,
            config.tolerances.total_calculation,
            config,
            f"Line item {index + 1} total discrepancy",
            severity=LINE_ITEM_SEVERITY,
        )
        if finding is not None:
            findings.append(finding)
    return findings
