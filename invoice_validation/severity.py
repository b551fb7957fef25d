"""Map discrepancy percentages onto severity tiers."""
from __future__ import annotations

from .schemas import Severity, SeverityThresholds


def determine_severity(discrepancy_percentage: float, thresholds: SeverityThresholds) -> Severity:
    """Highest tier whose cut point the percentage reaches; boundaries go up.

    There is no floor below ``low``: anything that got past the tolerance
    check is at least LOW.
    """
    if discrepancy_percentage >= thresholds.critical:
        return Severity.CRITICAL
    if discrepancy_percentage >= thresholds.high:
        return Severity.HIGH
    if discrepancy_percentage >= thresholds.medium:
        return Severity.MEDIUM
    return Severity.LOW
