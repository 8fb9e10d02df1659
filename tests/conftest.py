"""
tests/conftest.py — Shared Test Fixtures
=========================================

Every database test runs against a fresh in-memory SQLite database.
Postgres-only JSONB columns are rendered as TEXT there; SQLAlchemy's JSON
processors still serialise the values.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from introvirght.database.models import Base
from introvirght.engine.cache import SettingsCache


@compiles(JSONB, "sqlite")
def _jsonb_as_sqlite_text(type_, compiler, **kw):
    return "TEXT"


@pytest.fixture
def db_engine() -> Engine:
    """In-memory database with the full Introvirght schema.

    StaticPool hands every thread the same connection, so code running
    through ``run_db`` (a worker thread) sees the tables created here.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine: Engine):
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def mock_cache():
    """SettingsCache stand-in that answers every lookup with its default."""
    cache = MagicMock(spec=SettingsCache)
    cache.get_setting.side_effect = lambda key, default=None: default
    cache.get_int.side_effect = lambda key, default=0: default
    cache.get_float.side_effect = lambda key, default=0.0: default
    cache.get_bool.side_effect = lambda key, default=False: default
    return cache
