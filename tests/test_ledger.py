"""
tests/test_ledger.py — Activity Ledger
=======================================

Append semantics, source-id deduplication, listings and the per-day
activity heatmap.
"""

from __future__ import annotations

from datetime import UTC, date, datetime

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from akorfa.database.models import Account, ActivityEvent, ActivityKind
from akorfa.errors import DuplicateEventError
from akorfa.services import ledger


def _ts(day: int, hour: int = 12) -> datetime:
    return datetime(2026, 3, day, hour, tzinfo=UTC)


@pytest.fixture
def account(db_session):
    db_session.add(Account(id="u1"))
    db_session.flush()
    return "u1"


def _count(session: Session) -> int:
    return session.scalar(select(func.count()).select_from(ActivityEvent))


class TestAppend:
    def test_append_assigns_id(self, db_session, account):
        event = ledger.append(db_session, account, ActivityKind.POST_CREATED, 5, {"post": "p1"})
        assert event.id is not None
        assert event.kind == "post_created"
        assert event.metadata_ == {"post": "p1"}

    def test_metadata_defaults_to_empty(self, db_session, account):
        event = ledger.append(db_session, account, ActivityKind.COMMENT_MADE, 2)
        assert event.metadata_ == {}

    def test_duplicate_source_id_rejected(self, db_session, account):
        first = ledger.append(
            db_session, account, ActivityKind.POST_CREATED, 5, source_event_id="post:1",
        )
        with pytest.raises(DuplicateEventError) as exc_info:
            ledger.append(
                db_session, account, ActivityKind.POST_CREATED, 5, source_event_id="post:1",
            )
        assert exc_info.value.existing_event_id == first.id
        # Only the savepoint was rolled back
        assert _count(db_session) == 1

    def test_events_without_source_id_never_collide(self, db_session, account):
        ledger.append(db_session, account, ActivityKind.REACTION_GIVEN, 1)
        ledger.append(db_session, account, ActivityKind.REACTION_GIVEN, 1)
        assert _count(db_session) == 2

    def test_find_by_source(self, db_session, account):
        event = ledger.append(
            db_session, account, ActivityKind.POST_CREATED, 5, source_event_id="post:9",
        )
        assert ledger.find_by_source(db_session, "post:9").id == event.id
        assert ledger.find_by_source(db_session, "post:10") is None


class TestListings:
    @pytest.fixture
    def history(self, db_engine):
        with Session(db_engine) as session:
            session.add(Account(id="u1"))
            session.flush()
            ledger.append(session, "u1", ActivityKind.POST_CREATED, 5, timestamp=_ts(1))
            ledger.append(session, "u1", ActivityKind.COMMENT_MADE, 2, timestamp=_ts(1, 18))
            ledger.append(session, "u1", ActivityKind.COMMENT_MADE, 2, timestamp=_ts(3))
            ledger.append(session, "u1", ActivityKind.MANUAL_ADJUSTMENT, -3, timestamp=_ts(3))
            session.commit()

    def test_list_events_newest_first(self, db_engine, history):
        events = ledger.list_events(db_engine, "u1")
        assert [e["kind"] for e in events] == [
            "manual_adjustment", "comment_made", "comment_made", "post_created",
        ]
        assert ledger.list_events(db_engine, "u1", limit=1)[0]["points"] == -3

    def test_activity_by_day_groups_by_utc_date(self, db_engine, history):
        days = ledger.activity_by_day(db_engine, "u1", since=date(2026, 3, 1))
        assert days == [
            {"date": "2026-03-01", "count": 2},
            {"date": "2026-03-03", "count": 1},
        ]

    def test_activity_by_day_since_filter(self, db_engine, history):
        days = ledger.activity_by_day(db_engine, "u1", since=date(2026, 3, 2))
        assert days == [{"date": "2026-03-03", "count": 1}]

    def test_unknown_account_empty(self, db_engine, history):
        assert ledger.list_events(db_engine, "ghost") == []
        assert ledger.activity_by_day(db_engine, "ghost", since=date(2026, 1, 1)) == []
