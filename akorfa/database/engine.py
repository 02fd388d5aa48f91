"""
akorfa.database.engine — Engine Factory & Unit-of-Work Helper
==============================================================

The engine is synchronous SQLAlchemy.  FastAPI runs the (plain ``def``)
route handlers on its thread pool, so every request is an independent unit
of work with its own session, and any waiting on the database is invisible
to the progression logic.

Example::

    engine = create_db_engine()          # DATABASE_URL from the environment
    init_db(engine)                      # tables + badge catalog + settings

    with get_session(engine) as session:
        progress_service.apply_delta(session, "a1", 5)
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import TYPE_CHECKING

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session

from akorfa.database.models import Base

if TYPE_CHECKING:
    from akorfa.config import AkorfaConfig

logger = logging.getLogger(__name__)

# PostgreSQL pool sizing
POOL_SIZE = 5
MAX_OVERFLOW = 10
POOL_TIMEOUT_S = 10
POOL_RECYCLE_S = 3600

# Seconds a SQLite writer waits for the database lock
SQLITE_BUSY_TIMEOUT_S = 30


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
def create_db_engine(url: str | None = None) -> Engine:
    """Return an :class:`Engine` for *url*, falling back to ``DATABASE_URL``.

    PostgreSQL gets a bounded pool with pre-ping, so a dead connection is
    replaced instead of surfacing as an error, and a pool checkout that
    waits longer than ``POOL_TIMEOUT_S`` fails fast (reported to callers as
    a transient store error).  SQLite URLs are for local runs and tests.
    """
    url = url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "No database configured: pass a URL or set DATABASE_URL "
            "(see .env.example)."
        )

    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT_S},
        )
    else:
        engine = create_engine(
            url,
            pool_size=POOL_SIZE,
            max_overflow=MAX_OVERFLOW,
            pool_timeout=POOL_TIMEOUT_S,
            pool_recycle=POOL_RECYCLE_S,
            pool_pre_ping=True,
        )
    logger.info("Database engine ready → %s", engine.url.render_as_string(hide_password=True))
    return engine


# ---------------------------------------------------------------------------
# Schema + seed
# ---------------------------------------------------------------------------
def init_db(engine: Engine, cfg: AkorfaConfig | None = None) -> None:
    """Create missing tables, then seed the badge catalog and settings.

    Runs on every API startup.  Deployed databases are migrated with
    ``alembic upgrade head`` first, which makes ``create_all`` a no-op.
    """
    Base.metadata.create_all(engine)
    logger.info("Schema checked (%d tables).", len(Base.metadata.tables))

    from akorfa.database.seed import seed_database

    seed_database(engine, cfg)


# ---------------------------------------------------------------------------
# Unit of work
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine):
    """One transaction: commit when the block exits cleanly, roll back if it raises."""
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
