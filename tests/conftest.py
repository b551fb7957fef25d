"""Shared fixtures for validation engine tests."""

import pytest

from invoice_validation.validator import ValidationEngine


def _record(**overrides):
    record = {
        "id": "INV-1",
        "invoiceNumber": "INV-1",
        "customerName": "Acme Corp",
        "amount": 100.0,
        "taxRate": 10.0,
        "taxAmount": 10.0,
        "discountAmount": 0.0,
        "totalAmount": 110.0,
        "date": "2024-01-15",
    }
    record.update(overrides)
    return record


@pytest.fixture
def make_record():
    """Factory for a consistent invoice record (camelCase, as the parser emits it)."""
    return _record


@pytest.fixture
def engine():
    return ValidationEngine()
