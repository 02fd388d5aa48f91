"""
akorfa.services.activity_service — Activity Pipeline
=====================================================

Entry point for "something happened" (post created, comment made, …).

1. Validate the activity (unknown kind / negative points are rejected).
2. In ONE transaction: get-or-create the account, atomically add the
   points to score and XP, append the ledger row, fold the activity date
   into the streak.
3. After commit: evaluate badges against a fresh statistics snapshot.

If step 2 fails nothing of it is applied.  A ``source_event_id`` makes the
whole call safe to retry: a second call with the same key is reported as a
duplicate and changes no score, ledger or streak.  It does re-run step 3,
so a badge whose award failed the first time is granted on the retry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import Engine

from akorfa.constants import to_utc_date
from akorfa.database.engine import get_session
from akorfa.database.models import ActivityKind
from akorfa.engine.events import ActivityRecord
from akorfa.engine.streaks import StreakState
from akorfa.errors import DuplicateEventError, translate_store_errors
from akorfa.services import ledger, progress_service
from akorfa.services.badge_service import AwardedBadge, evaluate_badges

if TYPE_CHECKING:
    from akorfa.engine.cache import ConfigCache

logger = logging.getLogger(__name__)


@dataclass
class ActivityResult:
    """Everything one recorded activity changed."""

    event_id: int
    points: int
    score: float
    streak: StreakState
    duplicate: bool = False
    badges_earned: list[AwardedBadge] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "event_id": self.event_id,
            "points": self.points,
            "score": self.score,
            "streak": self.streak.as_dict(),
            "duplicate": self.duplicate,
            "badges_earned": [b.as_dict() for b in self.badges_earned],
        }


def _apply(
    engine: Engine, record: ActivityRecord, points: int,
) -> tuple[int, float, StreakState]:
    with get_session(engine) as session:
        progress_service.get_or_create_account(session, record.account_id, record.display_name)
        score = progress_service.apply_delta(
            session, record.account_id, points, xp_delta=points,
        )
        event = ledger.append(
            session,
            record.account_id,
            record.kind,
            points,
            record.metadata,
            source_event_id=record.source_event_id,
            timestamp=record.timestamp,
        )
        streak = progress_service.recompute_streak(
            session, record.account_id, to_utc_date(record.timestamp),
        )
        return event.id, score, streak


def _duplicate_result(
    engine: Engine, cache: ConfigCache, record: ActivityRecord, event_id: int | None,
) -> ActivityResult:
    # A retry after a failed badge award must still get the badge
    badges = evaluate_badges(engine, cache, record.account_id)
    account = progress_service.get_account(engine, record.account_id)
    return ActivityResult(
        event_id=event_id or 0,
        points=0,
        score=account["score"],
        streak=progress_service.get_streak(engine, record.account_id),
        duplicate=True,
        badges_earned=badges,
    )


@translate_store_errors
def process_activity(engine: Engine, cache: ConfigCache, record: ActivityRecord) -> ActivityResult:
    """Run a validated :class:`ActivityRecord` through the full pipeline."""
    points = record.points if record.points is not None else cache.get_point_value(record.kind)

    if record.source_event_id is not None:
        with get_session(engine) as session:
            existing = ledger.find_by_source(session, record.source_event_id)
            existing_id = existing.id if existing is not None else None
        if existing_id is not None:
            logger.info("Duplicate activity %s ignored", record.source_event_id)
            return _duplicate_result(engine, cache, record, existing_id)

    try:
        event_id, score, streak = _apply(engine, record, points)
    except DuplicateEventError as dup:
        # Lost a race with a concurrent call carrying the same key
        logger.info("Duplicate activity %s ignored", dup.source_event_id)
        return _duplicate_result(engine, cache, record, dup.existing_event_id)

    logger.info(
        "Recorded %s for %s: %+d points → score %.2f, streak %d",
        record.kind.value, record.account_id, points, score, streak.current_streak,
    )

    badges = evaluate_badges(engine, cache, record.account_id)
    return ActivityResult(
        event_id=event_id,
        points=points,
        score=score,
        streak=streak,
        badges_earned=badges,
    )


def record_activity(
    engine: Engine,
    cache: ConfigCache,
    account_id: str,
    kind: ActivityKind | str,
    points: int | None = None,
    metadata: dict[str, Any] | None = None,
    *,
    source_event_id: str | None = None,
    timestamp: datetime | None = None,
    display_name: str | None = None,
) -> ActivityResult:
    """Record one activity for *account_id*.

    ``points=None`` uses the configured value for *kind*.

    Raises
    ------
    ValidationError
        Unknown or non-recordable kind, or negative / non-integer points.
    TransientStoreError
        The store is unavailable; only retry with a ``source_event_id``.
    BadgeAwardError
        The activity was recorded but a badge award failed unexpectedly.
    """
    extra: dict[str, Any] = {}
    if timestamp is not None:
        extra["timestamp"] = timestamp
    record = ActivityRecord(
        account_id=account_id,
        kind=kind,
        points=points,
        metadata=metadata or {},
        source_event_id=source_event_id,
        display_name=display_name,
        **extra,
    )
    return process_activity(engine, cache, record)
