"""
akorfa.services.badge_service — Badge Rule Engine (persistence side)
=====================================================================

Evaluates an account's statistics snapshot against the catalog and
persists newly earned badges exactly once per (account, badge).

The guarantee comes from the ``badge_awards`` primary key, not from the
"already earned" pre-check: two concurrent evaluations may both see a rule
as satisfied, both insert, and the loser's uniqueness violation is the
:attr:`AwardOutcome.ALREADY_AWARDED` outcome, omitted from the result.

Each award attempt is its own transaction.  A non-conflict failure on one
badge does not stop the others; it is re-raised as
:class:`~akorfa.errors.BadgeAwardError` once every rule has been tried.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from akorfa.database.models import BadgeAward, BadgeDefinition
from akorfa.engine.badges import check_badges
from akorfa.errors import BadgeAwardError, is_transient, translate_store_errors
from akorfa.services.statistics_service import get_statistics

if TYPE_CHECKING:
    from akorfa.engine.cache import ConfigCache

logger = logging.getLogger(__name__)


class AwardOutcome(enum.StrEnum):
    """Result of one award attempt."""
    AWARDED = "awarded"
    ALREADY_AWARDED = "already_awarded"   # uniqueness conflict, a no-op


@dataclass(frozen=True, slots=True)
class AwardedBadge:
    """A badge newly granted by one evaluation."""

    badge_id: int
    name: str
    description: str | None
    icon: str | None
    layer: str | None
    earned_at: datetime

    def as_dict(self) -> dict:
        return {
            "id": self.badge_id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "layer": self.layer,
            "earned_at": self.earned_at.isoformat(),
        }


def badge_dict(badge: BadgeDefinition) -> dict:
    return {
        "id": badge.id,
        "name": badge.name,
        "description": badge.description,
        "icon": badge.icon,
        "layer": badge.layer,
        "requirement_counter": badge.requirement_counter,
        "requirement_threshold": badge.requirement_threshold,
    }


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_badge_catalog(cache: ConfigCache) -> list[BadgeDefinition]:
    """Every badge definition, ordered by id."""
    return cache.get_badge_catalog()


def get_awarded_badge_ids(session: Session, account_id: str) -> set[int]:
    """Badge ids the account already holds."""
    rows = session.scalars(
        select(BadgeAward.badge_id).where(BadgeAward.account_id == account_id)
    ).all()
    return set(rows)


@translate_store_errors
def get_account_badges(engine: Engine, cache: ConfigCache, account_id: str) -> dict:
    """Earned badges (with ``earned_at``) and the still-locked rest of the catalog."""
    with Session(engine) as session:
        awards = session.execute(
            select(BadgeAward.badge_id, BadgeAward.earned_at)
            .where(BadgeAward.account_id == account_id)
        ).all()
    earned_at = {row.badge_id: row.earned_at for row in awards}

    earned, locked = [], []
    for badge in get_badge_catalog(cache):
        if badge.id in earned_at:
            ts = earned_at[badge.id]
            earned.append({**badge_dict(badge), "earned_at": ts.isoformat() if ts else None})
        else:
            locked.append(badge_dict(badge))
    return {"earned": earned, "locked": locked}


# ---------------------------------------------------------------------------
# Award attempt — one isolated unit of work
# ---------------------------------------------------------------------------
def try_award(engine: Engine, account_id: str, badge_id: int) -> tuple[AwardOutcome, datetime]:
    """Insert one award row in its own transaction.

    A uniqueness conflict is confirmed by re-reading the row and reported as
    ``ALREADY_AWARDED``.  Any other integrity failure (missing account or
    badge) is re-raised.
    """
    earned_at = datetime.now(UTC)
    with Session(engine) as session:
        try:
            session.add(BadgeAward(account_id=account_id, badge_id=badge_id, earned_at=earned_at))
            session.commit()
            return AwardOutcome.AWARDED, earned_at
        except IntegrityError:
            session.rollback()
            existing = session.get(BadgeAward, (account_id, badge_id))
            if existing is None:
                raise
            return AwardOutcome.ALREADY_AWARDED, existing.earned_at


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------
@translate_store_errors
def evaluate_badges(engine: Engine, cache: ConfigCache, account_id: str) -> list[AwardedBadge]:
    """Award every satisfied, not-yet-held badge and return the new ones.

    Safe to call any number of times: a repeat call with unchanged
    statistics returns ``[]`` and writes nothing.

    Raises
    ------
    BadgeAwardError
        If an award failed for a reason other than a uniqueness conflict.
        Awards that did succeed are committed and carried on the error.
    TransientStoreError
        If the store is unreachable.
    """
    catalog = get_badge_catalog(cache)
    with Session(engine) as session:
        already = get_awarded_badge_ids(session, account_id)
    stats = get_statistics(engine, account_id)

    candidates = check_badges(catalog, stats.values(), already)
    awarded: list[AwardedBadge] = []
    failures: list[tuple[int, Exception]] = []

    for badge in candidates:
        try:
            outcome, earned_at = try_award(engine, account_id, badge.id)
        except Exception as exc:
            if is_transient(exc):
                raise
            logger.exception("Failed to award badge %r to %s", badge.name, account_id)
            failures.append((badge.id, exc))
            continue

        if outcome is AwardOutcome.ALREADY_AWARDED:
            logger.debug("Badge %r already held by %s", badge.name, account_id)
            continue

        awarded.append(AwardedBadge(
            badge_id=badge.id,
            name=badge.name,
            description=badge.description,
            icon=badge.icon,
            layer=badge.layer,
            earned_at=earned_at,
        ))
        logger.info("Badge earned: %s (id=%d) by %s", badge.name, badge.id, account_id)

    if failures:
        raise BadgeAwardError(account_id, awarded, failures)
    return awarded
