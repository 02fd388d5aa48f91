"""
akorfa.engine.events — ActivityRecord envelope
===============================================

Every scoring-relevant action is normalized into an :class:`ActivityRecord`
before the activity pipeline persists it.  Construction validates the
input so the pipeline never sees an unknown kind or a negative award.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from akorfa.constants import RECORDABLE_KINDS
from akorfa.database.models import ActivityKind
from akorfa.errors import ValidationError

__all__ = ["ActivityRecord", "parse_kind"]


def parse_kind(value: ActivityKind | str) -> ActivityKind:
    """Return the recordable :class:`ActivityKind` for *value* or raise."""
    try:
        kind = ActivityKind(value)
    except ValueError:
        raise ValidationError(f"Unknown activity kind: {value!r}") from None
    if kind not in RECORDABLE_KINDS:
        raise ValidationError(f"Activity kind {kind.value!r} cannot be recorded directly")
    return kind


@dataclass(frozen=True, slots=True)
class ActivityRecord:
    """Normalized activity ready for the ledger.

    ``points=None`` means "use the configured value for this kind".
    ``source_event_id`` is the deduplication key of the originating action
    (e.g. ``"post:<uuid>"``); supplying it makes retries safe.
    """

    account_id: str
    kind: ActivityKind
    points: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    source_event_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    display_name: str | None = None

    def __post_init__(self) -> None:
        if not self.account_id:
            raise ValidationError("account_id is required")
        object.__setattr__(self, "kind", parse_kind(self.kind))
        # Ledger timestamps are stored in UTC; naive input is taken as UTC
        if self.timestamp.tzinfo is None:
            object.__setattr__(self, "timestamp", self.timestamp.replace(tzinfo=UTC))
        else:
            object.__setattr__(self, "timestamp", self.timestamp.astimezone(UTC))
        if self.points is not None:
            if isinstance(self.points, bool) or not isinstance(self.points, int):
                raise ValidationError("points must be an integer")
            if self.points < 0:
                raise ValidationError("points must be non-negative")
