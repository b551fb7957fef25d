"""Message-passing front end for running the engine off the main thread.

Messages are plain dicts::

    {"type": "validate", "data": {"records": [...], "config": {...}}}
    {"type": "ping"}

Replies go through ``post``: ``progress`` updates, then ``complete`` with the
summary and findings, ``pong``, or ``error``.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping

from .schemas import BatchValidationResponse, ValidationProgress
from .validator import ValidationEngine

logger = logging.getLogger(__name__)

Post = Callable[[Dict[str, Any]], None]


async def handle_message(message: Mapping[str, Any], post: Post) -> None:
    message_type = message.get("type")
    try:
        if message_type == "validate":
            data = message.get("data") or {}
            engine = ValidationEngine(data.get("config"))

            def on_progress(progress: ValidationProgress) -> None:
                post({"type": "progress", "data": progress.model_dump(mode="json")})

            summary = await engine.validate_batch(data.get("records", []), on_progress=on_progress)
            response = BatchValidationResponse(summary=summary, results=engine.get_results())
            post({"type": "complete", "data": response.model_dump(mode="json")})
        elif message_type == "ping":
            post({"type": "pong"})
        else:
            post({"type": "error", "error": f"Unknown message type: {message_type}"})
    except Exception as exc:
        # The envelope is the only channel back to the caller.
        logger.exception("Worker failed to handle %r message", message_type)
        post({"type": "error", "error": str(exc)})
