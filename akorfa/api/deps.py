"""
akorfa.api.deps — FastAPI dependency injection
===============================================
"""

from __future__ import annotations

from functools import lru_cache

from sqlalchemy import Engine

from akorfa.config import AkorfaConfig, load_config
from akorfa.database.engine import create_db_engine
from akorfa.engine.cache import ConfigCache


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> AkorfaConfig:
    return load_config()


@lru_cache(maxsize=1)
def get_cache() -> ConfigCache:
    return ConfigCache(get_engine())
