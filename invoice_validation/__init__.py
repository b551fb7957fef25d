"""Invoice validation engine: recompute invoice figures and flag discrepancies."""
from .config import ConfigError, load_config, merge_config
from .schemas import (
    InvoiceRecord,
    LineItem,
    Severity,
    ValidationConfig,
    ValidationProgress,
    ValidationResult,
    ValidationStatistics,
    ValidationSummary,
)
from .validator import ValidationCancelled, ValidationEngine, ValidationState

__all__ = [
    "ConfigError",
    "InvoiceRecord",
    "LineItem",
    "Severity",
    "ValidationCancelled",
    "ValidationConfig",
    "ValidationEngine",
    "ValidationProgress",
    "ValidationResult",
    "ValidationState",
    "ValidationStatistics",
    "ValidationSummary",
    "load_config",
    "merge_config",
]
