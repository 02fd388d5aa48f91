"""
akorfa.engine.badges — Badge Rule Evaluation
=============================================

Every catalog entry is a single threshold rule: the badge is earned once
``values[requirement_counter] >= requirement_threshold``.  Rules are
independent of each other; evaluation order carries no meaning.

This module is pure calculation — no database I/O.  Persisting the awards
(and the exactly-once guarantee) is the job of
:mod:`akorfa.services.badge_service`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Protocol, TypeVar

from akorfa.constants import COUNTER_NAMES

logger = logging.getLogger(__name__)


class BadgeRule(Protocol):
    """What the evaluator needs from a catalog entry."""

    id: int
    name: str
    requirement_counter: str
    requirement_threshold: int


R = TypeVar("R", bound=BadgeRule)


def is_satisfied(rule: BadgeRule, values: Mapping[str, float]) -> bool:
    """True when *values* meet the rule's threshold.

    A counter missing from *values* counts as zero.  A rule that names an
    unknown counter never fires.
    """
    if rule.requirement_counter not in COUNTER_NAMES:
        logger.warning(
            "Badge %r (id=%s) references unknown counter %r — skipped",
            rule.name, rule.id, rule.requirement_counter,
        )
        return False
    return values.get(rule.requirement_counter, 0) >= rule.requirement_threshold


def check_badges(
    catalog: Iterable[R],
    values: Mapping[str, float],
    already_earned: set[int],
) -> list[R]:
    """Return the catalog entries newly satisfied by *values*.

    Parameters
    ----------
    catalog : Every badge definition.
    values : Statistics snapshot as a flat ``counter → value`` mapping
        (including ``score``).
    already_earned : Badge ids the account already holds.
    """
    newly_earned: list[R] = []
    for rule in catalog:
        if rule.id in already_earned:
            continue
        if is_satisfied(rule, values):
            newly_earned.append(rule)
    return newly_earned
