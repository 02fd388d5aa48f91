"""
Akorfa — Progression Engine
============================
Turns user activity (posts, comments, challenges, assessments, reactions,
referrals) into durable account state: a composite score, exactly-once
achievement badges and daily activity streaks.  Also hosts the stability
calculator.

Package layout::

    akorfa/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Counter names, default points, UTC dates
    ├── errors.py          # Exception hierarchy
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + session helper
    │   ├── models.py      # ORM models
    │   └── seed.py        # Badge catalog + default settings
    ├── engine/
    │   ├── events.py      # ActivityRecord envelope
    │   ├── badges.py      # Badge rule evaluation (pure)
    │   ├── streaks.py     # Streak transition rule (pure)
    │   ├── stability.py   # Stability equation (pure)
    │   └── cache.py       # In-memory catalog/settings cache
    ├── services/
    │   ├── ledger.py              # Activity Ledger
    │   ├── statistics_service.py  # Statistics Aggregator
    │   ├── badge_service.py       # Badge awards, exactly once
    │   ├── progress_service.py    # Score/Streak Updater
    │   ├── activity_service.py    # record_activity pipeline
    │   ├── stability_service.py   # Stability records
    │   └── reconciliation_service.py  # Score audit/repair
    └── api/
        ├── main.py        # FastAPI app
        └── routes/        # Thin HTTP handlers

Caller-facing operations::

    activity_service.record_activity(engine, cache, account_id, kind, points, metadata)
    statistics_service.get_statistics(engine, account_id)
    badge_service.evaluate_badges(engine, cache, account_id)
    badge_service.get_badge_catalog(cache)
    stability.compute_stability(StabilityVector(...))
"""

__version__ = "0.1.0"
