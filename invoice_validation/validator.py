"""Validation engine: runs the rule evaluators over records and batches."""
from __future__ import annotations

import asyncio
import logging
import secrets
import string
import time
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from .config import ConfigInput, default_config, merge_config
from .rules import evaluate_discount, evaluate_line_items, evaluate_tax, evaluate_total
from .schemas import (
    GENERAL,
    FailedCalculation,
    FinancialImpact,
    InvoiceRecord,
    PerformanceStats,
    RecordBreakdown,
    Severity,
    SeverityBreakdown,
    ValidationConfig,
    ValidationProgress,
    ValidationResult,
    ValidationStatistics,
    ValidationSummary,
)
from .severity import determine_severity
from .utils import round_decimal

logger = logging.getLogger(__name__)

RecordInput = Union[InvoiceRecord, Mapping[str, Any]]
ProgressCallback = Callable[[ValidationProgress], None]

_BATCH_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits

_SEVERITY_COUNTERS = {
    Severity.CRITICAL: "critical_count",
    Severity.HIGH: "high_severity_count",
    Severity.MEDIUM: "medium_severity_count",
    Severity.LOW: "low_severity_count",
}


class ValidationState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    COMPLETED = "completed"
    FAILED = "failed"


class ValidationCancelled(Exception):
    """Raised when a batch is stopped through its cancel event."""


def generate_batch_id() -> str:
    suffix = "".join(secrets.choice(_BATCH_SUFFIX_ALPHABET) for _ in range(9))
    return f"batch_{int(time.time() * 1000)}_{suffix}"


def _record_id(record: object) -> Optional[Union[int, str]]:
    if isinstance(record, InvoiceRecord):
        return record.id
    if isinstance(record, Mapping):
        value = record.get("id")
        return value if isinstance(value, (int, str)) else None
    return None


def _operation_label(record: object) -> str:
    if isinstance(record, InvoiceRecord):
        return f"Validating record {record.display_id}"
    if isinstance(record, Mapping):
        label = record.get("invoiceNumber") or record.get("invoice_number") or record.get("id")
        if label:
            return f"Validating record {label}"
    return "Validating record"


def _percent(done: int, total: int) -> int:
    return int(round_decimal(Decimal(done * 100) / total, 0))


def _describe_error(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        parts = []
        for error in exc.errors():
            location = ".".join(str(item) for item in error["loc"]) or "record"
            parts.append(f"{location}: {error['msg']}")
        return "; ".join(parts)
    return str(exc)


class ValidationEngine:
    """Recomputes invoice figures and records discrepancies.

    Each instance owns its config plus the results and summary of its most
    recent batch. ``get_results()`` and ``get_summary()`` hand out the live
    objects; they are replaced by the next ``validate_batch`` call, so copy
    them if you need to keep them.
    """

    yield_every = 10

    def __init__(self, config: Optional[ConfigInput] = None) -> None:
        self._config = merge_config(default_config(), config)
        self._results: List[ValidationResult] = []
        self._summary = ValidationSummary()
        self.state = ValidationState.IDLE

    # Configuration
    @property
    def config(self) -> ValidationConfig:
        return self._config

    def update_config(self, update: ConfigInput) -> ValidationConfig:
        """Merge ``update`` group by group; the old config stays if it is invalid."""
        self._config = merge_config(self._config, update)
        return self._config

    @property
    def is_validating(self) -> bool:
        return self.state is ValidationState.VALIDATING

    def determine_severity(self, discrepancy_percentage: float) -> Severity:
        return determine_severity(discrepancy_percentage, self._config.thresholds)

    # Validation
    async def validate_record(self, record: RecordInput) -> List[ValidationResult]:
        """Validate one record outside of a batch, e.g. after a row is edited."""
        return self._check_record(record)

    def _check_record(self, record: RecordInput) -> List[ValidationResult]:
        try:
            invoice = record if isinstance(record, InvoiceRecord) else InvoiceRecord.model_validate(record)
        except ValidationError as exc:
            reason = _describe_error(exc)
            logger.warning("Record %r could not be validated: %s", _record_id(record), reason)
            return [
                ValidationResult(
                    record_id=_record_id(record),
                    field=GENERAL,
                    calculated_value=FailedCalculation(reason=reason),
                    severity=Severity.CRITICAL,
                    message=f"Validation error: {reason}",
                )
            ]

        rules = self._config.rules
        findings: List[ValidationResult] = []

        if rules.validate_tax_calculation:
            tax = evaluate_tax(invoice, self._config)
            if tax is not None:
                findings.append(tax)

        if rules.validate_total_calculation:
            total = evaluate_total(invoice, self._config)
            if total is not None:
                findings.append(total)

        if rules.validate_discount_calculation and invoice.discount_amount > 0:
            discount = evaluate_discount(invoice, self._config)
            if discount is not None:
                findings.append(discount)

        if rules.validate_line_item_totals and invoice.line_items:
            findings.extend(evaluate_line_items(invoice, self._config))

        return findings

    async def validate_batch(
        self,
        records: Sequence[RecordInput],
        on_progress: Optional[ProgressCallback] = None,
        *,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ValidationSummary:
        """Validate ``records`` in order and return the batch summary.

        ``on_progress`` is called before each record and once more on
        completion or failure. Control goes back to the event loop every
        ``yield_every`` records. A record that cannot be validated becomes a
        CRITICAL finding; any other exception marks the batch failed and is
        re-raised, leaving the partial results readable.
        """
        total = len(records)
        batch_id = generate_batch_id()
        started = time.perf_counter()

        self.state = ValidationState.VALIDATING
        self._results = []
        self._summary = ValidationSummary(
            batch_id=batch_id,
            validation_start_time=datetime.now(timezone.utc),
            total_records=total,
        )
        logger.info("Starting batch %s with %d records", batch_id, total)

        try:
            for index, record in enumerate(records):
                if cancel_event is not None and cancel_event.is_set():
                    raise ValidationCancelled(f"Batch {batch_id} cancelled after {index} of {total} records")

                if on_progress is not None:
                    on_progress(
                        ValidationProgress(
                            batch_id=batch_id,
                            total_records=total,
                            processed_records=index,
                            current_record=index + 1,
                            status="processing",
                            progress_percentage=_percent(index, total),
                            current_operation=_operation_label(record),
                        )
                    )

                findings = self._check_record(record)
                self._results.extend(findings)
                self._accumulate(findings)

                if (index + 1) % self.yield_every == 0:
                    await asyncio.sleep(0)
        except Exception as exc:
            self._finalize(started)
            self.state = ValidationState.FAILED
            if isinstance(exc, ValidationCancelled):
                logger.info("%s", exc)
            else:
                logger.exception("Batch %s failed", batch_id)
            if on_progress is not None:
                on_progress(
                    ValidationProgress(
                        batch_id=batch_id,
                        total_records=total,
                        processed_records=self._summary.valid_records + self._summary.invalid_records,
                        status="failed",
                        current_operation=f"Validation failed: {exc}",
                    )
                )
            raise

        self._finalize(started)
        self.state = ValidationState.COMPLETED
        logger.info(
            "Batch %s finished: %d valid, %d invalid, %d discrepancies in %.1f ms",
            batch_id,
            self._summary.valid_records,
            self._summary.invalid_records,
            self._summary.total_discrepancies,
            self._summary.processing_time_ms,
        )
        if on_progress is not None:
            on_progress(
                ValidationProgress(
                    batch_id=batch_id,
                    total_records=total,
                    processed_records=total,
                    current_record=total,
                    status="completed",
                    progress_percentage=100,
                    current_operation="Validation completed",
                )
            )
        return self._summary

    def _accumulate(self, findings: List[ValidationResult]) -> None:
        summary = self._summary
        if not findings:
            summary.valid_records += 1
            return

        summary.invalid_records += 1
        summary.total_discrepancies += len(findings)
        for finding in findings:
            counter = _SEVERITY_COUNTERS[finding.severity]
            setattr(summary, counter, getattr(summary, counter) + 1)
            if finding.discrepancy is not None:
                summary.total_discrepancy_amount += finding.discrepancy

    def _finalize(self, started: float) -> None:
        summary = self._summary
        summary.validation_end_time = datetime.now(timezone.utc)
        summary.processing_time_ms = (time.perf_counter() - started) * 1000
        if summary.total_discrepancies > 0:
            summary.average_discrepancy_amount = summary.total_discrepancy_amount / summary.total_discrepancies
            summary.max_discrepancy_amount = max(
                (finding.discrepancy for finding in self._results if finding.discrepancy is not None),
                default=0.0,
            )

    # Accessors
    def get_results(self) -> List[ValidationResult]:
        return self._results

    def get_summary(self) -> ValidationSummary:
        return self._summary

    def get_results_by_severity(self, severity: Union[Severity, str]) -> List[ValidationResult]:
        wanted = Severity(severity)
        return [result for result in self._results if result.severity is wanted]

    def get_results_by_record(self, record_id: Union[int, str]) -> List[ValidationResult]:
        return [result for result in self._results if result.record_id == record_id]

    def clear_results(self) -> None:
        """Drop results and summary; the config is kept."""
        self._results = []
        self._summary = ValidationSummary()
        self.state = ValidationState.IDLE

    def get_statistics(self) -> ValidationStatistics:
        summary = self._summary
        elapsed = summary.processing_time_ms
        return ValidationStatistics(
            total_validations=len(self._results),
            severity_breakdown=SeverityBreakdown(
                critical=summary.critical_count,
                high=summary.high_severity_count,
                medium=summary.medium_severity_count,
                low=summary.low_severity_count,
            ),
            record_breakdown=RecordBreakdown(
                valid=summary.valid_records,
                invalid=summary.invalid_records,
                total=summary.total_records,
            ),
            financial_impact=FinancialImpact(
                total_discrepancy_amount=summary.total_discrepancy_amount,
                average_discrepancy_amount=summary.average_discrepancy_amount,
                max_discrepancy_amount=summary.max_discrepancy_amount,
            ),
            performance=PerformanceStats(
                processing_time_ms=elapsed,
                records_per_second=round(summary.total_records / elapsed * 1000) if elapsed > 0 else 0,
            ),
        )
