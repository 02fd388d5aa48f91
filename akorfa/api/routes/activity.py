"""
akorfa.api.routes.activity — Activity recording & account progress
====================================================================
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy import Engine

from akorfa.api.deps import get_cache, get_engine
from akorfa.engine.cache import ConfigCache
from akorfa.services import activity_service, ledger, progress_service, statistics_service

router = APIRouter(tags=["progress"])
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class ActivityCreate(BaseModel):
    account_id: str = Field(min_length=1, max_length=64)
    kind: str
    points: int | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    source_event_id: str | None = Field(default=None, max_length=100)
    timestamp: datetime | None = None
    display_name: str | None = Field(default=None, max_length=100)


# ---------------------------------------------------------------------------
# POST /activity
# ---------------------------------------------------------------------------
@router.post("/activity", status_code=201)
def record_activity(
    body: ActivityCreate,
    engine: Engine = Depends(get_engine),
    cache: ConfigCache = Depends(get_cache),
):
    """Record one activity; returns the new score, streak and badges earned."""
    result = activity_service.record_activity(
        engine,
        cache,
        body.account_id,
        body.kind,
        body.points,
        body.metadata,
        source_event_id=body.source_event_id,
        timestamp=body.timestamp,
        display_name=body.display_name,
    )
    return result.as_dict()


# ---------------------------------------------------------------------------
# GET /accounts/{account_id}/…
# ---------------------------------------------------------------------------
@router.get("/accounts/{account_id}")
def get_account(account_id: str, engine: Engine = Depends(get_engine)):
    return progress_service.get_account(engine, account_id)


@router.get("/accounts/{account_id}/statistics")
def get_statistics(account_id: str, engine: Engine = Depends(get_engine)):
    return statistics_service.get_statistics(engine, account_id).as_dict()


@router.get("/accounts/{account_id}/streak")
def get_streak(account_id: str, engine: Engine = Depends(get_engine)):
    return progress_service.get_streak(engine, account_id).as_dict()


@router.get("/accounts/{account_id}/activity")
def get_activity(
    account_id: str,
    since: date | None = Query(None),
    engine: Engine = Depends(get_engine),
):
    """Per-day activity counts (heatmap), last 365 days by default."""
    return {"activity": ledger.activity_by_day(engine, account_id, since)}


@router.get("/accounts/{account_id}/events")
def list_events(
    account_id: str,
    limit: int = Query(50, ge=1, le=200),
    engine: Engine = Depends(get_engine),
):
    return {"events": ledger.list_events(engine, account_id, limit)}
