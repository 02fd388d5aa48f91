"""
akorfa.services.stability_service — Stability Records
======================================================

Runs the pure stability equation and, when asked, stores the result.
Only valid results are ever written; an input outside the formula's
domain is returned to the caller as-is and nothing is persisted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from akorfa.database.engine import get_session
from akorfa.database.models import Account, StabilityRecord
from akorfa.engine.stability import StabilityResult, StabilityVector, compute_stability
from akorfa.errors import AccountNotFoundError, translate_store_errors

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StabilityOutcome:
    """Result plus the id of the stored record (``None`` when not stored)."""

    result: StabilityResult
    record_id: int | None = None

    def as_dict(self) -> dict:
        return {**self.result.as_dict(), "record_id": self.record_id}


@translate_store_errors
def compute_and_record(
    engine: Engine,
    vector: StabilityVector,
    *,
    account_id: str | None = None,
    persist: bool = True,
) -> StabilityOutcome:
    """Compute the stability score, persisting it only if valid and *persist*.

    Raises
    ------
    AccountNotFoundError
        A record would be stored for an account that does not exist.
    """
    result = compute_stability(vector)
    if not result.valid:
        logger.debug("Stability undefined (denominator=%.4f) for %s", result.denominator, vector)
        return StabilityOutcome(result)
    if not persist:
        return StabilityOutcome(result)

    with get_session(engine) as session:
        if account_id is not None and session.get(Account, account_id) is None:
            raise AccountNotFoundError(account_id)
        record = StabilityRecord(
            account_id=account_id,
            r=vector.R,
            l=vector.L,
            g=vector.G,
            c=vector.C,
            a=vector.A,
            n=vector.n,
            score=result.score,
        )
        session.add(record)
        session.flush()
        record_id = record.id
    return StabilityOutcome(result, record_id)


@translate_store_errors
def list_records(engine: Engine, account_id: str, limit: int = 50) -> list[dict]:
    """An account's stored stability results, newest first."""
    with Session(engine) as session:
        rows = session.scalars(
            select(StabilityRecord)
            .where(StabilityRecord.account_id == account_id)
            .order_by(StabilityRecord.created_at.desc(), StabilityRecord.id.desc())
            .limit(limit)
        ).all()
        return [
            {
                "id": r.id,
                "inputs": {"R": r.r, "L": r.l, "G": r.g, "C": r.c, "A": r.a, "n": r.n},
                "score": r.score,
                "created_at": r.created_at.isoformat() if r.created_at else None,
            }
            for r in rows
        ]
