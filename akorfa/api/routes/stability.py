"""
akorfa.api.routes.stability — Stability calculator
===================================================

An input outside the formula's domain is a normal 200 response with
``valid: false`` and ``score: null``, never a numeric score.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy import Engine

from akorfa.api.deps import get_engine
from akorfa.engine.stability import SLIDER_RANGES, StabilityVector
from akorfa.services import stability_service

router = APIRouter(tags=["stability"])


class StabilityRequest(BaseModel):
    R: float
    L: float
    G: float
    C: float
    A: float
    n: float
    account_id: str | None = Field(default=None, max_length=64)
    persist: bool = False


@router.get("/stability/ranges")
def get_slider_ranges():
    return {
        name: {"min": lo, "max": hi} for name, (lo, hi) in SLIDER_RANGES.items()
    }


@router.post("/stability")
def compute_stability(body: StabilityRequest, engine: Engine = Depends(get_engine)):
    """Compute (and with ``persist: true``, store) a stability score."""
    vector = StabilityVector(R=body.R, L=body.L, G=body.G, C=body.C, A=body.A, n=body.n)
    outcome = stability_service.compute_and_record(
        engine, vector, account_id=body.account_id, persist=body.persist,
    )
    return {"inputs": vector.as_dict(), **outcome.as_dict()}


@router.get("/accounts/{account_id}/stability")
def list_stability_records(
    account_id: str,
    limit: int = Query(50, ge=1, le=200),
    engine: Engine = Depends(get_engine),
):
    return {"records": stability_service.list_records(engine, account_id, limit)}
