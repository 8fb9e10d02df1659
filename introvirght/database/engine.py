"""
introvirght.database.engine — Engine, Sessions, and the Async Bridge
=====================================================================

The ORM runs synchronously.  Callers on an ``asyncio`` loop (the web layer,
the embedding worker) go through :func:`run_db`, which pushes the blocking
call onto the default thread pool.

Usage::

    from introvirght.database.engine import create_db_engine, init_db, run_db

    engine = create_db_engine()                  # DATABASE_URL
    init_db(engine)

    state = await run_db(service.get_profile, "user-1")
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session

from introvirght.database.models import Base

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

# Connection pool for server databases; SQLite keeps its default pool.
POOL_OPTIONS = {
    "pool_size": 5,
    "max_overflow": 10,
    "pool_pre_ping": True,
    "pool_timeout": 10,
    "pool_recycle": 3600,
}


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
def create_db_engine(url: str | None = None) -> Engine:
    """Create the application engine for *url* (default ``DATABASE_URL``).

    Raises
    ------
    RuntimeError
        When neither *url* nor ``DATABASE_URL`` is provided.
    """
    url = url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "No database configured: set DATABASE_URL "
            "(see .env.example) or pass a URL explicitly."
        )

    parsed = make_url(url)
    options = {} if parsed.get_backend_name() == "sqlite" else POOL_OPTIONS
    engine = create_engine(parsed, echo=False, **options)
    logger.info(
        "Database engine ready → %s",
        engine.url.render_as_string(hide_password=True),
    )
    return engine


def init_db(engine: Engine) -> None:
    """Ensure the schema exists and the tuning knobs are seeded.

    Idempotent.  Production schemas are owned by Alembic; ``create_all``
    only fills gaps in dev and test databases.
    """
    Base.metadata.create_all(engine)
    logger.info("Schema checked: %d tables", len(Base.metadata.tables))

    from introvirght.database.seed import seed_default_settings

    seed_default_settings(engine)


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine) -> Iterator[Session]:
    """Unit of work: commit when the block exits cleanly, else roll back."""
    with Session(engine) as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise


async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Await a blocking *func* without stalling the event loop."""
    return await asyncio.to_thread(func, *args, **kwargs)
