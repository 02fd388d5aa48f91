"""
akorfa.constants — Shared Constants & Helpers
==============================================

Single source of truth for counter names, the activity-kind → counter
mapping, default point values, and the UTC calendar-date helper.
Import from here instead of duplicating in services and routes.
"""

from __future__ import annotations

from datetime import UTC, date, datetime

from akorfa.database.models import ActivityKind

# ---------------------------------------------------------------------------
# Statistics counters
# ---------------------------------------------------------------------------
KIND_TO_COUNTER: dict[ActivityKind, str] = {
    ActivityKind.POST_CREATED: "posts_created",
    ActivityKind.COMMENT_MADE: "comments_made",
    ActivityKind.CHALLENGE_JOINED: "challenges_joined",
    ActivityKind.CHALLENGE_COMPLETED: "challenges_completed",
    ActivityKind.ASSESSMENT_COMPLETED: "assessments_completed",
    ActivityKind.REACTION_GIVEN: "reactions_given",
    ActivityKind.REACTION_RECEIVED: "reactions_received",
    ActivityKind.REFERRAL_COMPLETED: "referrals_completed",
}

SCORE_COUNTER = "score"
STREAK_COUNTERS: tuple[str, ...] = ("current_streak", "longest_streak")

# Every key a badge requirement may reference
COUNTER_NAMES: frozenset[str] = frozenset(
    {*KIND_TO_COUNTER.values(), SCORE_COUNTER, *STREAK_COUNTERS}
)

# Kinds a caller may record through the activity pipeline.  Manual
# adjustments go through progress_service.adjust_score instead.
RECORDABLE_KINDS: frozenset[ActivityKind] = frozenset(KIND_TO_COUNTER)


# ---------------------------------------------------------------------------
# Default gameplay tuning (overridable via config.yaml / settings table)
# ---------------------------------------------------------------------------
DEFAULT_POINT_VALUES: dict[ActivityKind, int] = {
    ActivityKind.POST_CREATED: 5,
    ActivityKind.COMMENT_MADE: 2,
    ActivityKind.CHALLENGE_JOINED: 3,
    ActivityKind.CHALLENGE_COMPLETED: 15,
    ActivityKind.ASSESSMENT_COMPLETED: 10,
    ActivityKind.REACTION_GIVEN: 1,
    ActivityKind.REACTION_RECEIVED: 1,
    ActivityKind.REFERRAL_COMPLETED: 25,
}

# Display currency units per composite-score point (1000 points = 1 unit)
DEFAULT_CONVERSION_RATE = 0.001

POINTS_SETTING_PREFIX = "points."
CONVERSION_RATE_SETTING = "wallet.conversion_rate"


def points_setting_key(kind: ActivityKind | str) -> str:
    """Settings-table key holding the point value for *kind*."""
    return f"{POINTS_SETTING_PREFIX}{ActivityKind(kind).value}"


# ---------------------------------------------------------------------------
# Calendar dates
# ---------------------------------------------------------------------------
def to_utc_date(moment: datetime | date | None = None) -> date:
    """Calendar date of *moment* in UTC.

    Naive datetimes are assumed to already be UTC.  ``None`` means now.
    Plain dates pass through unchanged.
    """
    if moment is None:
        return datetime.now(UTC).date()
    if isinstance(moment, datetime):
        if moment.tzinfo is not None:
            moment = moment.astimezone(UTC)
        return moment.date()
    return moment
