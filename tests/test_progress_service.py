"""
tests/test_progress_service.py — Score & Streak Updater
========================================================

Atomic score deltas (including concurrent writers on a file-backed
database), the zero clamp, manual adjustments and streak persistence.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import date

import pytest
from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from akorfa.database.engine import get_session
from akorfa.database.models import Account, ActivityEvent, ActivityKind
from akorfa.errors import AccountNotFoundError, ValidationError
from akorfa.services import progress_service


def _make_account(engine: Engine, account_id: str = "u1", **fields) -> None:
    with get_session(engine) as session:
        session.add(Account(id=account_id, **fields))


# ===========================================================================
# Score
# ===========================================================================
class TestApplyDelta:
    def test_increments_score(self, db_engine):
        _make_account(db_engine, score=10.0)
        assert progress_service.apply_score_delta(db_engine, "u1", 5) == 15.0

    def test_score_clamped_at_zero(self, db_engine):
        _make_account(db_engine, score=3.0)
        assert progress_service.apply_score_delta(db_engine, "u1", -10) == 0.0

    def test_unknown_account_raises(self, db_engine):
        with pytest.raises(AccountNotFoundError):
            progress_service.apply_score_delta(db_engine, "ghost", 5)

    def test_xp_delta_in_same_statement(self, db_engine):
        _make_account(db_engine)
        with get_session(db_engine) as session:
            progress_service.apply_delta(session, "u1", 7, xp_delta=7)
        account = progress_service.get_account(db_engine, "u1")
        assert account["score"] == 7.0
        assert account["xp"] == 7

    def test_failed_transaction_leaves_score_untouched(self, db_engine):
        _make_account(db_engine, score=10.0)
        with pytest.raises(RuntimeError):
            with get_session(db_engine) as session:
                progress_service.apply_delta(session, "u1", 5)
                raise RuntimeError("boom")
        assert progress_service.get_account(db_engine, "u1")["score"] == 10.0


class TestConcurrentDeltas:
    def test_two_writers_both_land(self, file_engine):
        """+5 and +3 applied concurrently give +8."""
        _make_account(file_engine, score=10.0)
        with ThreadPoolExecutor(max_workers=2) as pool:
            list(pool.map(
                lambda d: progress_service.apply_score_delta(file_engine, "u1", d), [5, 3],
            ))
        assert progress_service.get_account(file_engine, "u1")["score"] == 18.0

    def test_many_writers_no_lost_update(self, file_engine):
        _make_account(file_engine)
        deltas = [1, 2, 3, 4] * 10
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(
                lambda d: progress_service.apply_score_delta(file_engine, "u1", d), deltas,
            ))
        assert progress_service.get_account(file_engine, "u1")["score"] == float(sum(deltas))


class TestAdjustScore:
    def test_adjustment_writes_ledger_row(self, db_engine):
        _make_account(db_engine, score=20.0)
        new_score = progress_service.adjust_score(
            db_engine, "u1", -5, reason="spam cleanup", actor_id="mod-1",
        )
        assert new_score == 15.0

        with Session(db_engine) as session:
            event = session.scalars(select(ActivityEvent)).one()
            assert event.kind == ActivityKind.MANUAL_ADJUSTMENT.value
            assert event.points == -5
            assert event.metadata_ == {"reason": "spam cleanup", "actor_id": "mod-1"}

    def test_rejects_non_integer_delta(self, db_engine):
        _make_account(db_engine)
        with pytest.raises(ValidationError):
            progress_service.adjust_score(db_engine, "u1", 2.5)

    def test_unknown_account_writes_nothing(self, db_engine):
        with pytest.raises(AccountNotFoundError):
            progress_service.adjust_score(db_engine, "ghost", 5)
        with Session(db_engine) as session:
            assert session.scalars(select(ActivityEvent)).all() == []


# ===========================================================================
# Streak
# ===========================================================================
class TestRecordStreak:
    def test_continuation_and_reset(self, db_engine):
        _make_account(
            db_engine, current_streak=4, longest_streak=4,
            last_active_date=date(2026, 3, 10),
        )
        state = progress_service.record_streak(db_engine, "u1", date(2026, 3, 11))
        assert state.current_streak == 5
        assert state.longest_streak == 5

        state = progress_service.record_streak(db_engine, "u1", date(2026, 3, 13))
        assert state.current_streak == 1
        assert state.longest_streak == 5

        stored = progress_service.get_streak(db_engine, "u1")
        assert stored.current_streak == 1
        assert stored.last_active_date == date(2026, 3, 13)

    def test_same_day_repeat_is_idempotent(self, db_engine):
        _make_account(db_engine)
        first = progress_service.record_streak(db_engine, "u1", date(2026, 3, 10))
        second = progress_service.record_streak(db_engine, "u1", date(2026, 3, 10))
        assert first == second
        assert second.current_streak == 1

    def test_unknown_account_has_no_streak(self, db_engine):
        state = progress_service.get_streak(db_engine, "ghost")
        assert (state.current_streak, state.longest_streak, state.last_active_date) == (0, 0, None)

    def test_record_streak_unknown_account_raises(self, db_engine):
        with pytest.raises(AccountNotFoundError):
            progress_service.record_streak(db_engine, "ghost", date(2026, 3, 10))


class TestAccounts:
    def test_get_or_create_updates_display_name(self, db_session):
        progress_service.get_or_create_account(db_session, "u1", "Ama")
        account = progress_service.get_or_create_account(db_session, "u1", "Ama K.")
        assert account.display_name == "Ama K."
        assert db_session.scalars(select(Account)).all() == [account]

    def test_get_or_create_inserts_defaults(self, db_session):
        account = progress_service.get_or_create_account(db_session, "u2", "Kofi")
        assert account.display_name == "Kofi"
        assert account.score == 0.0
        assert account.current_streak == 0
        assert progress_service.get_or_create_account(db_session, "u2") is account

    def test_get_account_unknown_raises(self, db_engine):
        with pytest.raises(AccountNotFoundError):
            progress_service.get_account(db_engine, "ghost")
