"""
akorfa.services.reconciliation_service — Score Reconciliation
==============================================================

Maintenance job that validates every account's stored score against the
activity ledger and optionally corrects drift.

How it works:
    1. Replay each account's ledger in insertion order (event id), adding
       every event's points and clamping at zero exactly like
       :func:`~akorfa.services.progress_service.apply_delta`.
    2. Compare the replayed total with ``accounts.score``.
    3. With ``repair=True``, shift the stored score by the difference
       using the same atomic increment (so deltas that land mid-repair
       are not lost).
    4. Log all corrections for audit.

Deltas applied through the raw ``apply_score_delta`` (no ledger row) show
up here as drift by construction.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import Engine, select

from akorfa.database.engine import get_session
from akorfa.database.models import Account, ActivityEvent
from akorfa.errors import translate_store_errors
from akorfa.services.progress_service import apply_delta

logger = logging.getLogger(__name__)

# Float noise tolerated before a score counts as drifted
TOLERANCE = 1e-6


def replay_score(points: list[float]) -> float:
    """Fold ledger points into a score, clamping at zero after each step."""
    score = 0.0
    for p in points:
        score = max(0.0, score + p)
    return score


@translate_store_errors
def reconcile_scores(engine: Engine, *, repair: bool = False) -> dict:
    """Validate stored scores against the ledger.

    Returns ``{"checked": N, "corrected": M, "corrections": [...]}``.
    """
    corrections: list[dict] = []

    with get_session(engine) as session:
        accounts = session.execute(select(Account.id, Account.score)).all()
        # Timestamps may be backdated by callers; ids follow the order the
        # deltas were applied to the score
        rows = session.execute(
            select(ActivityEvent.account_id, ActivityEvent.points)
            .order_by(ActivityEvent.account_id, ActivityEvent.id)
        ).all()

        points_by_account: dict[str, list[float]] = {}
        for row in rows:
            points_by_account.setdefault(row.account_id, []).append(row.points)

        for account in accounts:
            expected = replay_score(points_by_account.get(account.id, []))
            stored = float(account.score or 0.0)
            if abs(expected - stored) <= TOLERANCE:
                continue

            corrections.append({
                "account_id": account.id,
                "stored": stored,
                "expected": expected,
                "diff": expected - stored,
            })
            if repair:
                apply_delta(session, account.id, expected - stored)

    if corrections:
        logger.warning(
            "Score reconciliation: %s %d/%d accounts: %s",
            "corrected" if repair else "found drift in",
            len(corrections), len(accounts), corrections,
        )
    else:
        logger.info("Score reconciliation: all %d accounts match", len(accounts))

    return {
        "checked": len(accounts),
        "corrected": len(corrections) if repair else 0,
        "corrections": corrections,
        "timestamp": datetime.now(UTC).isoformat(),
    }
