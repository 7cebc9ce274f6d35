"""FastAPI router for sectoral classification endpoints."""

from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from citizenly.classification.rules import SectoralFacts

router = APIRouter()


class ClassifyRequest(BaseModel):
    facts: SectoralFacts
    current: dict[str, bool] = Field(default_factory=dict)
    overrides: dict[str, bool] = Field(default_factory=dict)
    as_of: date | None = None


@router.post("/api/sectoral/classify")
async def classify_resident(body: ClassifyRequest, request: Request) -> dict[str, Any]:
    """Compute a resident's sectoral flags."""
    classifier = getattr(request.app.state, "sectoral_classifier", None)
    if classifier is None:
        raise HTTPException(status_code=503, detail="Sectoral classifier not available")

    try:
        result = classifier.classify(
            body.facts, current=body.current, overrides=body.overrides, as_of=body.as_of
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return result.model_dump()


@router.get("/api/sectoral/rules")
async def list_rules(request: Request) -> dict[str, Any]:
    """List the auto-calculated and manual sectoral flags."""
    classifier = getattr(request.app.state, "sectoral_classifier", None)
    if classifier is None:
        raise HTTPException(status_code=503, detail="Sectoral classifier not available")

    return {
        "auto": [
            {"flag": rule.flag, "description": rule.description} for rule in classifier.rules
        ],
        "manual": classifier.manual_flags,
    }
