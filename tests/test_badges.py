"""
tests/test_badges.py — Badge Rule Evaluation
=============================================

Pure tests of :mod:`akorfa.engine.badges` using plain stand-in rules.
"""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from akorfa.engine.badges import check_badges, is_satisfied


@dataclass
class _Rule:
    id: int
    name: str
    requirement_counter: str
    requirement_threshold: int


FIRST_POST = _Rule(1, "First Post", "posts_created", 1)
STORYTELLER = _Rule(2, "Storyteller", "posts_created", 10)
EXPLORER = _Rule(3, "Explorer", "score", 50)
WEEK_WARRIOR = _Rule(4, "Week Warrior", "longest_streak", 7)
CATALOG = [FIRST_POST, STORYTELLER, EXPLORER, WEEK_WARRIOR]


class TestIsSatisfied:
    @pytest.mark.parametrize("count, expected", [(0, False), (9, False), (10, True), (11, True)])
    def test_threshold_is_inclusive(self, count, expected):
        assert is_satisfied(STORYTELLER, {"posts_created": count}) is expected

    def test_missing_counter_counts_as_zero(self):
        assert is_satisfied(FIRST_POST, {}) is False
        assert is_satisfied(_Rule(9, "Free", "posts_created", 0), {}) is True

    def test_score_threshold_uses_float(self):
        assert is_satisfied(EXPLORER, {"score": 49.99}) is False
        assert is_satisfied(EXPLORER, {"score": 50.0}) is True

    def test_unknown_counter_never_fires(self, caplog):
        rule = _Rule(5, "Mystery", "telepathy_sessions", 0)
        with caplog.at_level("WARNING"):
            assert is_satisfied(rule, {"telepathy_sessions": 100}) is False
        assert "telepathy_sessions" in caplog.text


class TestCheckBadges:
    def test_one_post_earns_only_first_post(self):
        earned = check_badges(CATALOG, {"posts_created": 1, "score": 5}, set())
        assert earned == [FIRST_POST]

    def test_ten_posts_earn_both_post_badges(self):
        earned = check_badges(CATALOG, {"posts_created": 10, "score": 50}, set())
        assert [b.name for b in earned] == ["First Post", "Storyteller", "Explorer"]

    def test_already_earned_are_skipped(self):
        earned = check_badges(CATALOG, {"posts_created": 10}, {FIRST_POST.id})
        assert earned == [STORYTELLER]

    def test_streak_badge(self):
        earned = check_badges(CATALOG, {"longest_streak": 7, "current_streak": 1}, set())
        assert earned == [WEEK_WARRIOR]

    def test_order_independent(self):
        values = {"posts_created": 12, "score": 80, "longest_streak": 8}
        forward = {b.id for b in check_badges(CATALOG, values, set())}
        backward = {b.id for b in check_badges(list(reversed(CATALOG)), values, set())}
        assert forward == backward == {1, 2, 3, 4}

    def test_empty_catalog(self):
        assert check_badges([], {"posts_created": 100}, set()) == []
