"""
akorfa.config — YAML Configuration Loader
==========================================

Reads ``config.yaml`` at startup.  Infrastructure settings (service name,
API port) are used directly; the gameplay sections (``point_values``,
``conversion_rate``, ``badges``) are seeded into the database, where the
:class:`~akorfa.engine.cache.ConfigCache` serves them at runtime.

Usage::

    from akorfa.config import load_config

    cfg = load_config()              # reads ./config.yaml by default
    print(cfg.app_name)              # "Akorfa"
    print(cfg.point_values)          # {ActivityKind.POST_CREATED: 5, ...}

Example ``config.yaml``::

    app_name: Akorfa
    api_port: 8000
    conversion_rate: 0.001
    point_values:
      post_created: 5
      comment_made: 2
    badges:
      - name: First Post
        description: Create your first post
        icon: pencil
        requirement_counter: posts_created
        requirement_threshold: 1
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from akorfa.constants import COUNTER_NAMES
from akorfa.database.models import ActivityKind
from akorfa.errors import ValidationError


# ---------------------------------------------------------------------------
# Typed settings objects
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class BadgeSpec:
    """One badge catalog entry as supplied by configuration."""

    name: str
    requirement_counter: str
    requirement_threshold: int
    description: str | None = None
    icon: str | None = None
    layer: str | None = None

    def __post_init__(self) -> None:
        if self.requirement_counter not in COUNTER_NAMES:
            raise ValidationError(
                f"Badge {self.name!r} references unknown counter "
                f"{self.requirement_counter!r}"
            )
        if self.requirement_threshold < 0:
            raise ValidationError(f"Badge {self.name!r} has a negative threshold")


@dataclass(frozen=True, slots=True)
class AkorfaConfig:
    """Immutable configuration loaded from ``config.yaml``.

    Empty gameplay sections mean "use the built-in defaults"
    (see :mod:`akorfa.database.seed`).
    """

    # Identity
    app_name: str = "Akorfa"

    # API
    api_port: int = 8000

    # Gameplay overrides
    point_values: dict[ActivityKind, int] = field(default_factory=dict)
    conversion_rate: float | None = None
    badges: tuple[BadgeSpec, ...] = ()


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------
def _parse_point_values(raw: dict | None) -> dict[ActivityKind, int]:
    values: dict[ActivityKind, int] = {}
    for key, value in (raw or {}).items():
        try:
            kind = ActivityKind(key)
        except ValueError:
            raise ValidationError(f"Unknown activity kind in point_values: {key!r}") from None
        points = int(value)
        if points < 0:
            raise ValidationError(f"Point value for {key!r} must be non-negative")
        values[kind] = points
    return values


def _parse_badges(raw: list | None) -> tuple[BadgeSpec, ...]:
    specs = []
    for entry in raw or []:
        specs.append(BadgeSpec(
            name=entry["name"],
            requirement_counter=entry["requirement_counter"],
            requirement_threshold=int(entry["requirement_threshold"]),
            description=entry.get("description"),
            icon=entry.get("icon"),
            layer=entry.get("layer"),
        ))
    return tuple(specs)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path | None = None) -> AkorfaConfig:
    """Read *path* and return an :class:`AkorfaConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.  Defaults to
        ``$AKORFA_CONFIG`` or ``config.yaml`` in the working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    ValidationError
        If a gameplay section names an unknown kind or counter.
    """
    config_path = Path(path or os.getenv("AKORFA_CONFIG", "config.yaml"))
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    rate = raw.get("conversion_rate")
    return AkorfaConfig(
        app_name=raw.get("app_name", "Akorfa"),
        api_port=int(raw.get("api_port", 8000)),
        point_values=_parse_point_values(raw.get("point_values")),
        conversion_rate=float(rate) if rate is not None else None,
        badges=_parse_badges(raw.get("badges")),
    )
