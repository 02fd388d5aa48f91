"""
akorfa.services.ledger — Activity Ledger
=========================================

Append-only record of scoring-relevant events.  :func:`append` is the only
write path and it never commits: the caller's transaction makes the append
and the score delta it causes one unit, so a failed increment also undoes
the append.

Counting lives in :mod:`akorfa.services.statistics_service`; this module
only writes and lists.
"""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime, timedelta
from typing import Any

from sqlalchemy import Engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from akorfa.constants import to_utc_date
from akorfa.database.models import ActivityEvent, ActivityKind
from akorfa.errors import DuplicateEventError, translate_store_errors

logger = logging.getLogger(__name__)


def append(
    session: Session,
    account_id: str,
    kind: ActivityKind,
    points: int,
    metadata: dict[str, Any] | None = None,
    *,
    source_event_id: str | None = None,
    timestamp: datetime | None = None,
) -> ActivityEvent:
    """Insert one ledger row and flush it so it has an id.

    Raises
    ------
    DuplicateEventError
        If *source_event_id* was already recorded.  Only the SAVEPOINT is
        rolled back; the caller's transaction stays usable.
    """
    event = ActivityEvent(
        account_id=account_id,
        kind=ActivityKind(kind).value,
        points=points,
        source_event_id=source_event_id,
        metadata_=metadata or {},
        timestamp=timestamp or datetime.now(UTC),
    )

    if source_event_id is None:
        session.add(event)
        session.flush()
        return event

    try:
        with session.begin_nested():   # SAVEPOINT
            session.add(event)
            session.flush()
    except IntegrityError:
        existing_id = session.scalar(
            select(ActivityEvent.id).where(ActivityEvent.source_event_id == source_event_id)
        )
        if existing_id is None:
            raise
        raise DuplicateEventError(source_event_id, existing_id) from None
    return event


def find_by_source(session: Session, source_event_id: str) -> ActivityEvent | None:
    """Return the ledger row recorded under *source_event_id*, if any."""
    return session.scalar(
        select(ActivityEvent).where(ActivityEvent.source_event_id == source_event_id)
    )


@translate_store_errors
def list_events(engine: Engine, account_id: str, limit: int = 50) -> list[dict]:
    """Most recent ledger rows for an account, newest first."""
    with Session(engine) as session:
        rows = session.scalars(
            select(ActivityEvent)
            .where(ActivityEvent.account_id == account_id)
            .order_by(ActivityEvent.timestamp.desc(), ActivityEvent.id.desc())
            .limit(limit)
        ).all()
        return [event_dict(e) for e in rows]


@translate_store_errors
def activity_by_day(
    engine: Engine, account_id: str, since: date | None = None,
) -> list[dict]:
    """Number of ledger rows per UTC calendar day (activity heatmap).

    Defaults to the last 365 days.  Manual adjustments are not activity
    and are excluded.
    """
    since = since or (to_utc_date() - timedelta(days=365))
    since_ts = datetime(since.year, since.month, since.day, tzinfo=UTC)

    with Session(engine) as session:
        rows = session.scalars(
            select(ActivityEvent.timestamp)
            .where(
                ActivityEvent.account_id == account_id,
                ActivityEvent.kind != ActivityKind.MANUAL_ADJUSTMENT.value,
                ActivityEvent.timestamp >= since_ts,
            )
        ).all()

    counts: dict[date, int] = {}
    for ts in rows:
        day = to_utc_date(ts)
        counts[day] = counts.get(day, 0) + 1
    return [
        {"date": day.isoformat(), "count": count}
        for day, count in sorted(counts.items())
    ]


def event_dict(event: ActivityEvent) -> dict:
    return {
        "id": event.id,
        "account_id": event.account_id,
        "kind": event.kind,
        "points": event.points,
        "source_event_id": event.source_event_id,
        "metadata": event.metadata_ or {},
        "timestamp": event.timestamp.isoformat() if event.timestamp else None,
    }
