"""Unit tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from invoice_validation.api import app


@pytest.fixture
def client():
    return TestClient(app)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_validate_batch(client, make_record):
    records = [make_record(id="ok"), make_record(id="bad", amount=200, taxAmount=25, totalAmount=225), {}]

    response = client.post("/validate-batch", json={"records": records})

    assert response.status_code == 200
    body = response.json()
    assert body["summary"]["total_records"] == 3
    assert body["summary"]["valid_records"] == 1
    assert body["summary"]["critical_count"] == 2
    fields = [result["field"] for result in body["results"]]
    assert fields == ["taxAmount", "general"]


def test_validate_batch_rejects_bad_config(client, make_record):
    response = client.post(
        "/validate-batch",
        json={"records": [make_record()], "config": {"thresholds": {"low": 50}}},
    )
    assert response.status_code == 422
    assert "Invalid validation config" in response.json()["detail"]


def test_validate_record(client, make_record):
    response = client.post("/validate-record", json=make_record(totalAmount=120))

    assert response.status_code == 200
    findings = response.json()
    assert len(findings) == 1
    assert findings[0]["severity"] == "medium"
    assert findings[0]["calculated_value"]["value"] == 110.0


def test_validate_record_shape_failure(client):
    response = client.post("/validate-record", json={})

    assert response.status_code == 200
    findings = response.json()
    assert findings[0]["field"] == "general"
    assert findings[0]["severity"] == "critical"
    assert findings[0]["calculated_value"]["kind"] == "failed"
