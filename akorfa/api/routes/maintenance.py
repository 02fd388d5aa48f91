"""
akorfa.api.routes.maintenance — Maintenance jobs
=================================================

Operator-triggered jobs.  Authentication is handled in front of the API.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import Engine

from akorfa.api.deps import get_engine

router = APIRouter(tags=["maintenance"])


class ReconciliationResult(BaseModel):
    checked: int
    corrected: int
    corrections: list[dict[str, Any]]
    timestamp: str


@router.post("/reconcile", response_model=ReconciliationResult)
def trigger_reconciliation(
    engine: Engine = Depends(get_engine),
    repair: bool = Query(False, description="Correct drifted scores instead of only reporting"),
):
    """Check stored scores against the activity ledger."""
    from akorfa.services.reconciliation_service import reconcile_scores

    return ReconciliationResult(**reconcile_scores(engine, repair=repair))
