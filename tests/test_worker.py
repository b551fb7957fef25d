"""Unit tests for the worker message envelope."""

import asyncio

from invoice_validation.worker import handle_message


def _send(message):
    posted = []
    asyncio.run(handle_message(message, posted.append))
    return posted


def test_ping():
    assert _send({"type": "ping"}) == [{"type": "pong"}]


def test_unknown_message_type():
    assert _send({"type": "shutdown"}) == [{"type": "error", "error": "Unknown message type: shutdown"}]


def test_validate_posts_progress_then_complete(make_record):
    records = [make_record(id=1), make_record(id=2, totalAmount=120)]

    posted = _send({"type": "validate", "data": {"records": records}})

    assert [message["type"] for message in posted] == ["progress", "progress", "progress", "complete"]
    assert posted[2]["data"]["status"] == "completed"
    complete = posted[-1]["data"]
    assert complete["summary"]["valid_records"] == 1
    assert complete["summary"]["invalid_records"] == 1
    assert complete["results"][0]["field"] == "totalAmount"
    assert complete["results"][0]["calculated_value"] == {"kind": "calculated", "value": 110.0}


def test_validate_with_config(make_record):
    records = [make_record(totalAmount=110.5)]
    posted = _send({"type": "validate", "data": {"records": records, "config": {"tolerances": {"total_calculation": 1}}}})
    assert posted[-1]["data"]["summary"]["valid_records"] == 1


def test_invalid_config_posts_error(make_record):
    posted = _send({"type": "validate", "data": {"records": [make_record()], "config": {"thresholds": {"low": 99}}}})
    assert len(posted) == 1
    assert posted[0]["type"] == "error"
    assert "ascending" in posted[0]["error"]
