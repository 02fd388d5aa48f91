"""
tests/test_activity_service.py — record_activity Pipeline
==========================================================

End-to-end through the ledger, score, streak and badge evaluation on an
in-memory database, plus deduplication and input validation.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from akorfa.database.models import Account, ActivityEvent, ActivityKind
from akorfa.engine.events import ActivityRecord
from akorfa.errors import BadgeAwardError, ValidationError
from akorfa.services import activity_service, badge_service, progress_service
from akorfa.services.activity_service import record_activity
from akorfa.services.statistics_service import get_statistics


def _ledger_rows(engine) -> int:
    with Session(engine) as session:
        return session.scalar(select(func.count()).select_from(ActivityEvent))


def _at(day: int, hour: int = 9) -> datetime:
    return datetime(2026, 3, day, hour, tzinfo=UTC)


# ===========================================================================
# Happy path
# ===========================================================================
class TestRecordActivity:
    def test_first_post(self, db_engine, cache):
        result = record_activity(db_engine, cache, "u1", "post_created", display_name="Ama")

        assert result.points == 5
        assert result.score == 5.0
        assert result.duplicate is False
        assert result.streak.current_streak == 1
        assert [b.name for b in result.badges_earned] == ["First Post"]

        account = progress_service.get_account(db_engine, "u1")
        assert account["display_name"] == "Ama"
        assert account["xp"] == 5

    def test_explicit_points_override_configured_value(self, db_engine, cache):
        result = record_activity(db_engine, cache, "u1", ActivityKind.COMMENT_MADE, 7)
        assert result.points == 7
        assert result.score == 7.0

    def test_points_accumulate(self, db_engine, cache):
        record_activity(db_engine, cache, "u1", "post_created")
        record_activity(db_engine, cache, "u1", "comment_made")
        result = record_activity(db_engine, cache, "u1", "challenge_completed")
        assert result.score == 5 + 2 + 15

    def test_statistics_reflect_recorded_activity(self, db_engine, cache):
        for _ in range(3):
            record_activity(db_engine, cache, "u1", "comment_made")
        stats = get_statistics(db_engine, "u1")
        assert stats.counters["comments_made"] == 3
        assert stats.score == 6.0

    def test_metadata_persisted(self, db_engine, cache):
        result = record_activity(db_engine, cache, "u1", "post_created", metadata={"post": "p1"})
        with Session(db_engine) as session:
            event = session.get(ActivityEvent, result.event_id)
            assert event.metadata_ == {"post": "p1"}

    def test_configured_point_values_used(self, db_engine):
        cache = MagicMock()
        cache.get_point_value.return_value = 40
        cache.get_badge_catalog.return_value = []
        result = record_activity(db_engine, cache, "u1", "reaction_given")
        assert result.points == 40
        cache.get_point_value.assert_called_once_with(ActivityKind.REACTION_GIVEN)

    def test_as_dict(self, db_engine, cache):
        data = record_activity(db_engine, cache, "u1", "post_created").as_dict()
        assert set(data) == {"event_id", "points", "score", "streak", "duplicate", "badges_earned"}
        assert data["badges_earned"][0]["name"] == "First Post"


class TestStreakThroughPipeline:
    def test_daily_activity_builds_streak(self, db_engine, cache):
        for day in range(1, 8):
            result = record_activity(db_engine, cache, "u1", "comment_made", timestamp=_at(day))
        assert result.streak.current_streak == 7
        assert "Week Warrior" in {b.name for b in result.badges_earned}

    def test_gap_resets_but_keeps_longest(self, db_engine, cache):
        for day in (1, 2, 3):
            record_activity(db_engine, cache, "u1", "comment_made", timestamp=_at(day))
        result = record_activity(db_engine, cache, "u1", "comment_made", timestamp=_at(6))
        assert result.streak.current_streak == 1
        assert result.streak.longest_streak == 3

    def test_two_activities_same_day(self, db_engine, cache):
        record_activity(db_engine, cache, "u1", "comment_made", timestamp=_at(1, 8))
        result = record_activity(db_engine, cache, "u1", "post_created", timestamp=_at(1, 20))
        assert result.streak.current_streak == 1

    def test_day_boundary_is_utc(self, db_engine, cache):
        # 20:00 at UTC-5 on the 1st is 01:00 UTC on the 2nd
        local = datetime(2026, 3, 1, 20, tzinfo=timezone(timedelta(hours=-5)))
        record_activity(db_engine, cache, "u1", "comment_made", timestamp=_at(1))
        result = record_activity(db_engine, cache, "u1", "comment_made", timestamp=local)
        assert result.streak.current_streak == 2


# ===========================================================================
# Deduplication
# ===========================================================================
class TestDeduplication:
    def test_retry_with_same_source_id_is_noop(self, db_engine, cache):
        first = record_activity(db_engine, cache, "u1", "post_created", source_event_id="post:1")
        again = record_activity(db_engine, cache, "u1", "post_created", source_event_id="post:1")

        assert again.duplicate is True
        assert again.event_id == first.event_id
        assert again.points == 0
        assert again.score == 5.0
        assert again.badges_earned == []
        assert _ledger_rows(db_engine) == 1

    def test_distinct_source_ids_both_count(self, db_engine, cache):
        record_activity(db_engine, cache, "u1", "post_created", source_event_id="post:1")
        result = record_activity(db_engine, cache, "u1", "post_created", source_event_id="post:2")
        assert result.score == 10.0

    def test_lost_race_rolls_back_score(self, db_engine, cache, monkeypatch):
        """A duplicate caught by the unique index undoes the score delta."""
        record_activity(db_engine, cache, "u1", "post_created", source_event_id="post:1")
        monkeypatch.setattr(activity_service.ledger, "find_by_source", lambda s, sid: None)

        again = record_activity(db_engine, cache, "u1", "post_created", source_event_id="post:1")

        assert again.duplicate is True
        assert progress_service.get_account(db_engine, "u1")["score"] == 5.0
        assert _ledger_rows(db_engine) == 1

    def test_concurrent_retries_record_once(self, file_engine, file_cache):
        def send(_):
            return record_activity(
                file_engine, file_cache, "u1", "post_created", source_event_id="post:1",
            )

        record_activity(file_engine, file_cache, "u1", "comment_made")
        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(send, range(4)))

        assert sum(not r.duplicate for r in results) == 1
        assert progress_service.get_account(file_engine, "u1")["score"] == 2.0 + 5.0
        assert _ledger_rows(file_engine) == 2


# ===========================================================================
# Validation
# ===========================================================================
class TestValidation:
    @pytest.mark.parametrize("kind", ["post_deleted", "", "manual_adjustment"])
    def test_rejects_unrecordable_kind(self, db_engine, cache, kind):
        with pytest.raises(ValidationError):
            record_activity(db_engine, cache, "u1", kind)
        assert _ledger_rows(db_engine) == 0

    @pytest.mark.parametrize("points", [-1, 2.5, True])
    def test_rejects_bad_points(self, db_engine, cache, points):
        with pytest.raises(ValidationError):
            record_activity(db_engine, cache, "u1", "post_created", points)

    def test_rejects_missing_account_id(self, db_engine, cache):
        with pytest.raises(ValidationError):
            record_activity(db_engine, cache, "", "post_created")

    def test_zero_points_allowed(self, db_engine, cache):
        result = record_activity(db_engine, cache, "u1", "reaction_received", 0)
        assert result.score == 0.0
        assert result.streak.current_streak == 1

    def test_record_timestamp_normalized_to_utc(self):
        naive = ActivityRecord("u1", ActivityKind.POST_CREATED, timestamp=datetime(2026, 3, 1, 12))
        assert naive.timestamp.tzinfo is UTC


class TestBadgeFailureAfterCommit:
    def test_activity_kept_when_badge_award_fails(self, db_engine, cache, monkeypatch):
        def broken(engine, account_id, badge_id):
            raise RuntimeError("boom")

        monkeypatch.setattr(badge_service, "try_award", broken)
        with pytest.raises(BadgeAwardError):
            record_activity(db_engine, cache, "u1", "post_created")

        assert progress_service.get_account(db_engine, "u1")["score"] == 5.0
        assert _ledger_rows(db_engine) == 1

    def test_retry_awards_badge_missed_by_first_call(self, db_engine, cache, monkeypatch):
        real_try_award = badge_service.try_award

        def broken(engine, account_id, badge_id):
            raise RuntimeError("boom")

        monkeypatch.setattr(badge_service, "try_award", broken)
        with pytest.raises(BadgeAwardError):
            record_activity(db_engine, cache, "u1", "post_created", source_event_id="post:1")

        monkeypatch.setattr(badge_service, "try_award", real_try_award)
        again = record_activity(db_engine, cache, "u1", "post_created", source_event_id="post:1")

        assert again.duplicate is True
        assert [b.name for b in again.badges_earned] == ["First Post"]
        assert again.score == 5.0
        assert _ledger_rows(db_engine) == 1


# ===========================================================================
# Concurrent first activity
# ===========================================================================
class TestNewAccountRace:
    def test_first_activities_for_new_account_both_count(
        self, file_engine, file_cache, monkeypatch,
    ):
        """Both calls see no account row before either one inserts it."""
        barrier = threading.Barrier(2, timeout=10)
        seen = threading.local()
        real_get = Session.get

        def get_then_wait(self, entity, ident, **kwargs):
            found = real_get(self, entity, ident, **kwargs)
            if entity is Account and found is None and not getattr(seen, "missing", False):
                seen.missing = True
                barrier.wait()
            return found

        monkeypatch.setattr(Session, "get", get_then_wait)

        with ThreadPoolExecutor(max_workers=2) as pool:
            futures = [
                pool.submit(record_activity, file_engine, file_cache, "new-user", kind)
                for kind in ("post_created", "comment_made")
            ]
            results = [f.result() for f in futures]

        assert sorted(r.points for r in results) == [2, 5]
        assert progress_service.get_account(file_engine, "new-user")["score"] == 7.0
        assert _ledger_rows(file_engine) == 2
