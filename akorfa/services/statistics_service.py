"""
akorfa.services.statistics_service — Statistics Aggregator
===========================================================

Computes an account's statistics snapshot on demand: one ``GROUP BY kind``
count over the activity ledger plus a point read of the account row.

Nothing here is stored.  Because counters are always recomputed from the
ledger, badge evaluation can be re-run idempotently and counters can be
audited from scratch without touching history.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import Engine, func, select
from sqlalchemy.orm import Session

from akorfa.constants import KIND_TO_COUNTER, SCORE_COUNTER
from akorfa.database.models import Account, ActivityEvent, ActivityKind
from akorfa.errors import translate_store_errors

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StatisticsSnapshot:
    """Derived view of an account's progress.

    ``counters`` holds every event counter (zero when no events) plus the
    streak lengths; ``score`` is the composite score.
    """

    account_id: str
    counters: dict[str, int] = field(default_factory=dict)
    score: float = 0.0

    def values(self) -> dict[str, float]:
        """Flat ``counter → value`` mapping used by badge rules."""
        return {**self.counters, SCORE_COUNTER: self.score}

    def as_dict(self) -> dict:
        return {"account_id": self.account_id, **self.values()}


def get_event_counts(session: Session, account_id: str) -> dict[str, int]:
    """Map of counter name → number of ledger rows of the matching kind."""
    rows = session.execute(
        select(ActivityEvent.kind, func.count().label("cnt"))
        .where(ActivityEvent.account_id == account_id)
        .group_by(ActivityEvent.kind)
    ).all()

    counts = {counter: 0 for counter in KIND_TO_COUNTER.values()}
    for row in rows:
        try:
            counter = KIND_TO_COUNTER.get(ActivityKind(row.kind))
        except ValueError:
            logger.warning("Ledger holds unknown activity kind %r", row.kind)
            continue
        if counter is not None:
            counts[counter] = row.cnt
    return counts


def snapshot(session: Session, account_id: str) -> StatisticsSnapshot:
    """Snapshot using an open session (sees the session's own writes)."""
    counters = get_event_counts(session, account_id)
    row = session.execute(
        select(Account.score, Account.current_streak, Account.longest_streak)
        .where(Account.id == account_id)
    ).first()
    if row is None:
        counters.update(current_streak=0, longest_streak=0)
        return StatisticsSnapshot(account_id=account_id, counters=counters, score=0.0)

    counters.update(
        current_streak=row.current_streak or 0,
        longest_streak=row.longest_streak or 0,
    )
    return StatisticsSnapshot(
        account_id=account_id, counters=counters, score=float(row.score or 0.0),
    )


@translate_store_errors
def get_statistics(engine: Engine, account_id: str) -> StatisticsSnapshot:
    """Compute a fresh snapshot for *account_id*.  Unknown accounts read as zero."""
    with Session(engine) as session:
        return snapshot(session, account_id)
