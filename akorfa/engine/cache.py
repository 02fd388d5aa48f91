"""
akorfa.engine.cache — In-Memory Config Cache
=============================================

The badge catalog and gameplay settings are read on every recorded
activity, but they change only at startup (seeding) or on an explicit
admin edit.  They are cached in memory behind a lock and reloaded with
:meth:`ConfigCache.load_all` / :meth:`ConfigCache.reload`.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

from akorfa.constants import (
    CONVERSION_RATE_SETTING,
    DEFAULT_CONVERSION_RATE,
    DEFAULT_POINT_VALUES,
    points_setting_key,
)
from akorfa.database.models import ActivityKind, BadgeDefinition, Setting

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _decode(raw: str | None) -> Any:
    """Settings hold JSON text; a value that is not JSON is kept as the raw string."""
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return raw


class ConfigCache:
    """Thread-safe in-memory cache for the badge catalog and settings.

    Usage:
        cache = ConfigCache(engine)
        cache.load_all()

        catalog = cache.get_badge_catalog()
        points = cache.get_point_value(ActivityKind.POST_CREATED)
        rate = cache.get_float("wallet.conversion_rate", 0.001)
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._lock = threading.Lock()
        self._loaded = False

        # Ordered by id; entries are detached from their session
        self._badges: list[BadgeDefinition] = []
        # key → parsed JSON value
        self._settings: dict[str, Any] = {}

    # -------------------------------------------------------------------
    # Cache loading
    # -------------------------------------------------------------------
    def load_all(self) -> None:
        """Load the catalog and settings from the DB.  Call on startup."""
        self._load_badges()
        self._load_settings()
        with self._lock:
            self._loaded = True
        logger.info(
            "ConfigCache loaded: %d badge definitions, %d settings",
            len(self._badges), len(self._settings),
        )

    def reload(self, table: str) -> None:
        """Reload one cached table after an edit (``badge_definitions`` or ``settings``)."""
        if table == "badge_definitions":
            self._load_badges()
        elif table == "settings":
            self._load_settings()
        else:
            logger.warning("ConfigCache.reload: unknown table %r ignored", table)

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load_all()

    def _load_badges(self) -> None:
        with Session(self._engine) as session:
            rows = session.scalars(
                select(BadgeDefinition).order_by(BadgeDefinition.id)
            ).all()
            for b in rows:
                session.expunge(b)
        with self._lock:
            self._badges = list(rows)

    def _load_settings(self) -> None:
        with Session(self._engine) as session:
            stored = session.execute(select(Setting.key, Setting.value_json)).all()
        values = {key: _decode(raw) for key, raw in stored}
        with self._lock:
            self._settings = values

    # -------------------------------------------------------------------
    # Cache reads (thread-safe)
    # -------------------------------------------------------------------
    def get_badge_catalog(self) -> list[BadgeDefinition]:
        self._ensure_loaded()
        with self._lock:
            return list(self._badges)

    def get_setting(self, key: str, default: Any = None) -> Any:
        self._ensure_loaded()
        with self._lock:
            return self._settings.get(key, default)

    def _coerced(self, key: str, cast: Callable[[Any], T], default: T) -> T:
        """Setting *key* passed through *cast*; *default* if unset or malformed."""
        raw = self.get_setting(key)
        if raw is None or isinstance(raw, bool):
            return default
        try:
            return cast(raw)
        except (TypeError, ValueError):
            logger.warning("Setting %s=%r is not a valid %s", key, raw, cast.__name__)
            return default

    def get_int(self, key: str, default: int = 0) -> int:
        return self._coerced(key, int, default)

    def get_float(self, key: str, default: float = 0.0) -> float:
        return self._coerced(key, float, default)

    def get_point_value(self, kind: ActivityKind) -> int:
        """Configured points for one occurrence of *kind* (0 if unset)."""
        return self.get_int(points_setting_key(kind), DEFAULT_POINT_VALUES.get(kind, 0))

    def get_point_values(self) -> dict[str, int]:
        return {kind.value: self.get_point_value(kind) for kind in DEFAULT_POINT_VALUES}

    def get_conversion_rate(self) -> float:
        return self.get_float(CONVERSION_RATE_SETTING, DEFAULT_CONVERSION_RATE)
