"""FastAPI application exposing validation endpoints."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .schemas import BatchValidationRequest, BatchValidationResponse, ValidationResult
from .validator import ValidationEngine

app = FastAPI(title="Invoice Validation Service", version="0.1.0")

# Add CORS middleware to allow browser requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for development
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _engine_for(config: Optional[Dict[str, Any]]) -> ValidationEngine:
    # One engine per request; engines hold the state of their last batch.
    try:
        return ValidationEngine(config)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=f"Invalid validation config: {exc}") from exc


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/validate-batch", response_model=BatchValidationResponse)
async def validate_batch(request: BatchValidationRequest):
    engine = _engine_for(request.config)
    summary = await engine.validate_batch(request.records)
    return BatchValidationResponse(summary=summary, results=engine.get_results())


@app.post("/validate-record", response_model=List[ValidationResult])
async def validate_record(record: Dict[str, Any]):
    engine = _engine_for(None)
    return await engine.validate_record(record)
