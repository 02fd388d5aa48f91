"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import pytest
from sqlalchemy import Engine, create_engine

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# SQLite doesn't support JSONB natively, but SQLAlchemy's JSON type works.
# We register a custom type compiler so SQLite renders JSONB as TEXT.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from akorfa.database.engine import create_db_engine, init_db
from akorfa.engine.cache import ConfigCache


@compiles(PG_JSONB, "sqlite")
def _compile_jsonb_as_text(type_, compiler, **kw):
    return "TEXT"


@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with every Akorfa table and the seeded catalog.

    Uses StaticPool so every session shares the same in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    return engine


@pytest.fixture
def file_engine(tmp_path) -> Engine:
    """File-backed SQLite engine for tests that use several threads.

    Each thread gets its own connection, so writers really contend for
    the database lock.
    """
    engine = create_db_engine(f"sqlite:///{tmp_path / 'akorfa.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def cache(db_engine: Engine) -> ConfigCache:
    """ConfigCache warmed from the seeded in-memory database."""
    c = ConfigCache(db_engine)
    c.load_all()
    return c


@pytest.fixture
def file_cache(file_engine: Engine) -> ConfigCache:
    c = ConfigCache(file_engine)
    c.load_all()
    return c
