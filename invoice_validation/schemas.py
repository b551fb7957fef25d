"""Data models used across the validation engine, CLI, worker, and API."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .utils import parse_currency_value

# Field identifiers reported on findings. Line items append "_<index>".
TAX_AMOUNT = "taxAmount"
TOTAL_AMOUNT = "totalAmount"
DISCOUNT_AMOUNT = "discountAmount"
LINE_ITEM_TOTAL = "lineItemTotal"
GENERAL = "general"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _coerce_amount(value: Any) -> Any:
    if isinstance(value, str):
        parsed = parse_currency_value(value)
        return value if parsed is None else parsed
    return value


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.LOW: 0, Severity.MEDIUM: 1, Severity.HIGH: 2, Severity.CRITICAL: 3}


# Input records --------------------------------------------------------------


class LineItem(BaseModel):
    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True, allow_inf_nan=False)

    description: Optional[str] = None
    quantity: Optional[float] = None
    unit_price: Optional[float] = None
    line_total: Optional[float] = None

    @field_validator("quantity", "unit_price", "line_total", mode="before")
    @classmethod
    def parse_amounts(cls, value: Any) -> Any:
        return _coerce_amount(value)


class InvoiceRecord(BaseModel):
    """One parsed invoice row. The engine only reads these."""

    model_config = ConfigDict(
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
        allow_inf_nan=False,
        frozen=True,
    )

    id: Union[int, str]
    invoice_number: Optional[str] = None
    customer_name: Optional[str] = None
    amount: float
    tax_rate: Optional[float] = None
    tax_amount: float
    discount_amount: float = 0.0
    total_amount: float
    line_items: List[LineItem] = Field(default_factory=list)
    date: Optional[str] = None

    @field_validator("amount", "tax_rate", "tax_amount", "total_amount", mode="before")
    @classmethod
    def parse_amounts(cls, value: Any) -> Any:
        return _coerce_amount(value)

    @field_validator("discount_amount", mode="before")
    @classmethod
    def default_discount(cls, value: Any) -> Any:
        if value is None or value == "":
            return 0.0
        return _coerce_amount(value)

    @field_validator("line_items", mode="before")
    @classmethod
    def default_line_items(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def display_id(self) -> str:
        """Identifier used in progress messages and logs."""
        return self.invoice_number or str(self.id)


# Configuration --------------------------------------------------------------


class ValidationRules(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    validate_tax_calculation: bool = True
    validate_total_calculation: bool = True
    validate_discount_calculation: bool = True
    validate_line_item_totals: bool = True


class ValidationTolerances(BaseModel):
    """Absolute slack per field; discrepancies at or below it are ignored."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    tax_calculation: float = Field(default=0.01, ge=0)
    total_calculation: float = Field(default=0.01, ge=0)
    discount_calculation: float = Field(default=0.01, ge=0)


class SeverityThresholds(BaseModel):
    """Discrepancy-percentage cut points for severity tiers."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    low: float = 1.0
    medium: float = 5.0
    high: float = 10.0
    critical: float = 20.0

    @model_validator(mode="after")
    def check_ascending(self) -> "SeverityThresholds":
        if not (self.low < self.medium < self.high < self.critical):
            raise ValueError(
                "Severity thresholds must be strictly ascending "
                f"(low={self.low}, medium={self.medium}, high={self.high}, critical={self.critical})"
            )
        return self


class ValidationConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    rules: ValidationRules = Field(default_factory=ValidationRules)
    tolerances: ValidationTolerances = Field(default_factory=ValidationTolerances)
    thresholds: SeverityThresholds = Field(default_factory=SeverityThresholds)


# Findings -------------------------------------------------------------------


class CalculatedValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["calculated"] = "calculated"
    value: float


class FailedCalculation(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["failed"] = "failed"
    reason: str


CalculationOutcome = Annotated[Union[CalculatedValue, FailedCalculation], Field(discriminator="kind")]


class ValidationResult(BaseModel):
    """A single finding: one discrepancy on one field of one record."""

    model_config = ConfigDict(frozen=True)

    record_id: Optional[Union[int, str]] = None
    field: str
    original_value: Optional[float] = None
    calculated_value: CalculationOutcome
    discrepancy: Optional[float] = None
    discrepancy_percentage: float = 0.0
    severity: Severity
    message: str
    validated_at: datetime = Field(default_factory=_utcnow)
    validated_by: str = "system"

    @property
    def failed(self) -> bool:
        return isinstance(self.calculated_value, FailedCalculation)


class ValidationSummary(BaseModel):
    batch_id: str = ""
    validation_start_time: datetime = Field(default_factory=_utcnow)
    validation_end_time: Optional[datetime] = None
    processing_time_ms: float = 0.0
    total_records: int = 0
    valid_records: int = 0
    invalid_records: int = 0
    total_discrepancies: int = 0
    critical_count: int = 0
    high_severity_count: int = 0
    medium_severity_count: int = 0
    low_severity_count: int = 0
    total_discrepancy_amount: float = 0.0
    average_discrepancy_amount: float = 0.0
    max_discrepancy_amount: float = 0.0


class ValidationProgress(BaseModel):
    model_config = ConfigDict(frozen=True)

    batch_id: str
    total_records: int = 0
    processed_records: int = 0
    current_record: int = 0
    status: Literal["processing", "completed", "failed"]
    progress_percentage: int = 0
    current_operation: str = ""


# Statistics -----------------------------------------------------------------


class SeverityBreakdown(BaseModel):
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0


class RecordBreakdown(BaseModel):
    valid: int = 0
    invalid: int = 0
    total: int = 0


class FinancialImpact(BaseModel):
    total_discrepancy_amount: float = 0.0
    average_discrepancy_amount: float = 0.0
    max_discrepancy_amount: float = 0.0


class PerformanceStats(BaseModel):
    processing_time_ms: float = 0.0
    records_per_second: int = 0


class ValidationStatistics(BaseModel):
    total_validations: int
    severity_breakdown: SeverityBreakdown
    record_breakdown: RecordBreakdown
    financial_impact: FinancialImpact
    performance: PerformanceStats


# Transport ------------------------------------------------------------------


class BatchValidationRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # Raw mappings: malformed records surface as findings, not request errors.
    records: List[Dict[str, Any]] = Field(default_factory=list)
    config: Optional[Dict[str, Any]] = None


class BatchValidationResponse(BaseModel):
    summary: ValidationSummary
    results: List[ValidationResult]
