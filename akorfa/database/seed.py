"""
akorfa.database.seed — Badge Catalog & Default Settings Seeder
===============================================================

Baseline catalog and tuning values seeded on startup so the engine is
immediately usable.

Defaults are idempotent — only rows that don't already exist are inserted.
Values given explicitly in ``config.yaml`` are written on every startup
(``point_values`` and ``conversion_rate`` overwrite the stored setting,
``badges`` are appended to the catalog by name).  Existing badge
definitions are never modified, since awards already reference them.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from akorfa.config import BadgeSpec
from akorfa.constants import (
    CONVERSION_RATE_SETTING,
    DEFAULT_CONVERSION_RATE,
    DEFAULT_POINT_VALUES,
    points_setting_key,
)
from akorfa.database.models import BadgeDefinition, Setting

if TYPE_CHECKING:
    from akorfa.config import AkorfaConfig

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Default badge catalog
# ---------------------------------------------------------------------------
DEFAULT_BADGES: tuple[BadgeSpec, ...] = (
    BadgeSpec("First Post", "posts_created", 1, "Create your first post", "pencil"),
    BadgeSpec("Storyteller", "posts_created", 10, "Create 10 posts", "book"),
    BadgeSpec("Prolific Writer", "posts_created", 50, "Create 50 posts", "feather"),
    BadgeSpec("Commenter", "comments_made", 5, "Leave 5 comments", "message-circle"),
    BadgeSpec("Active Discusser", "comments_made", 25, "Leave 25 comments", "messages"),
    BadgeSpec("Challenger", "challenges_joined", 1, "Join your first challenge", "trophy"),
    BadgeSpec(
        "Challenge Champion", "challenges_completed", 5, "Complete 5 challenges", "award",
    ),
    BadgeSpec(
        "Self-Aware", "assessments_completed", 1,
        "Complete your first assessment", "clipboard-check",
    ),
    BadgeSpec("Explorer", "score", 50, "Reach a score of 50", "compass"),
    BadgeSpec("Practitioner", "score", 200, "Reach a score of 200", "target"),
    BadgeSpec("Adept", "score", 500, "Reach a score of 500", "zap"),
    BadgeSpec("Master", "score", 1000, "Reach a score of 1000", "crown"),
    BadgeSpec("Week Warrior", "longest_streak", 7, "Stay active 7 days in a row", "flame"),
    BadgeSpec("Monthly Devotee", "longest_streak", 30, "Stay active 30 days in a row", "calendar"),
)


# ---------------------------------------------------------------------------
# Default settings catalogue
# ---------------------------------------------------------------------------
DEFAULT_SETTINGS: dict[str, tuple[object, str, str]] = {
    **{
        points_setting_key(kind): (value, "points", f"Points awarded per {kind.value}")
        for kind, value in DEFAULT_POINT_VALUES.items()
    },
    CONVERSION_RATE_SETTING: (
        DEFAULT_CONVERSION_RATE, "wallet", "Currency units per composite-score point",
    ),
}
"""Each entry maps ``key`` → ``(default_value, category, description)``."""


# ---------------------------------------------------------------------------
# Seeders
# ---------------------------------------------------------------------------
def seed_badges(session: Session, specs: tuple[BadgeSpec, ...]) -> int:
    """Insert catalog entries whose name is not yet present.  Returns count."""
    existing = set(session.scalars(select(BadgeDefinition.name)).all())
    inserted = 0
    for spec in specs:
        if spec.name in existing:
            continue
        session.add(BadgeDefinition(
            name=spec.name,
            description=spec.description,
            icon=spec.icon,
            layer=spec.layer,
            requirement_counter=spec.requirement_counter,
            requirement_threshold=spec.requirement_threshold,
        ))
        existing.add(spec.name)
        inserted += 1
    return inserted


def _upsert_setting(
    session: Session, key: str, value: object, category: str, desc: str, *, overwrite: bool,
) -> bool:
    row = session.get(Setting, key)
    if row is None:
        session.add(Setting(
            key=key, value_json=json.dumps(value), category=category, description=desc,
        ))
        return True
    if overwrite and row.value_json != json.dumps(value):
        row.value_json = json.dumps(value)
        return True
    return False


def seed_settings(session: Session, cfg: AkorfaConfig | None = None) -> int:
    """Insert missing defaults, then apply explicit config values."""
    written = 0
    for key, (value, category, desc) in DEFAULT_SETTINGS.items():
        written += _upsert_setting(session, key, value, category, desc, overwrite=False)

    if cfg is not None:
        for kind, points in cfg.point_values.items():
            key = points_setting_key(kind)
            written += _upsert_setting(
                session, key, points, "points", DEFAULT_SETTINGS[key][2], overwrite=True,
            )
        if cfg.conversion_rate is not None:
            written += _upsert_setting(
                session, CONVERSION_RATE_SETTING, cfg.conversion_rate, "wallet",
                DEFAULT_SETTINGS[CONVERSION_RATE_SETTING][2], overwrite=True,
            )
    return written


def seed_database(engine: Engine, cfg: AkorfaConfig | None = None) -> None:
    """Seed the badge catalog and settings.  Safe to call repeatedly."""
    specs = DEFAULT_BADGES + (cfg.badges if cfg is not None else ())
    session = Session(engine)
    try:
        badges = seed_badges(session, specs)
        settings = seed_settings(session, cfg)
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    if badges or settings:
        logger.info("Seeded %d badge definitions and %d settings.", badges, settings)
