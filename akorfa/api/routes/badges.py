"""
akorfa.api.routes.badges — Badge catalog & awards
==================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import Engine

from akorfa.api.deps import get_cache, get_engine
from akorfa.engine.cache import ConfigCache
from akorfa.services import badge_service

router = APIRouter(tags=["badges"])


@router.get("/badges")
def get_badge_catalog(cache: ConfigCache = Depends(get_cache)):
    return {"badges": [badge_service.badge_dict(b) for b in badge_service.get_badge_catalog(cache)]}


@router.get("/accounts/{account_id}/badges")
def get_account_badges(
    account_id: str,
    engine: Engine = Depends(get_engine),
    cache: ConfigCache = Depends(get_cache),
):
    """Earned and locked badges.  Read-only; see ``…/badges/evaluate``."""
    return badge_service.get_account_badges(engine, cache, account_id)


@router.post("/accounts/{account_id}/badges/evaluate")
def evaluate_badges(
    account_id: str,
    engine: Engine = Depends(get_engine),
    cache: ConfigCache = Depends(get_cache),
):
    awarded = badge_service.evaluate_badges(engine, cache, account_id)
    return {"newly_earned": [b.as_dict() for b in awarded]}
