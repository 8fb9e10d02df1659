"""
introvirght.engine.cache — In-Memory Settings Cache
====================================================

Gameplay tuning lives in the ``settings`` table.  Reading it on every
event would cost a query per knob, so the table is loaded once into
memory and re-read on demand with :meth:`SettingsCache.refresh` (call it
after an admin edit).

Usage::

    cache = SettingsCache(engine)
    cache.load_all()

    base_xp = cache.get_int("xp.post_create", 10)
"""

from __future__ import annotations

import json
import logging
import threading
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from introvirght.database.models import Setting

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


class SettingsCache:
    """Thread-safe in-memory copy of the ``settings`` table."""

    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine
        self._lock = threading.Lock()
        # key → parsed JSON value
        self._settings: dict[str, Any] = {}

    # -------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------
    def load_all(self) -> None:
        """Load every setting from the DB. Call on startup."""
        if self._engine is None:
            return
        with Session(self._engine) as session:
            rows = session.scalars(select(Setting)).all()
            parsed: dict[str, Any] = {}
            for row in rows:
                try:
                    parsed[row.key] = json.loads(row.value_json)
                except (json.JSONDecodeError, TypeError):
                    logger.warning("Setting %s is not valid JSON; using raw text", row.key)
                    parsed[row.key] = row.value_json

        with self._lock:
            self._settings = parsed
        logger.info("SettingsCache loaded: %d settings", len(parsed))

    def refresh(self) -> None:
        """Re-read the settings table."""
        self.load_all()

    def override(self, key: str, value: Any) -> None:
        """Set an in-memory value without touching the DB."""
        with self._lock:
            self._settings[key] = value

    # -------------------------------------------------------------------
    # Typed setting accessors (thread-safe)
    # -------------------------------------------------------------------
    def get_setting(self, key: str, default: Any = None) -> Any:
        """Return the parsed JSON value for *key*, or *default*."""
        with self._lock:
            return self._settings.get(key, default)

    def get_int(self, key: str, default: int = 0) -> int:
        val = self.get_setting(key)
        if val is None:
            return default
        try:
            return int(val)
        except (TypeError, ValueError):
            return default

    def get_float(self, key: str, default: float = 0.0) -> float:
        val = self.get_setting(key)
        if val is None:
            return default
        try:
            return float(val)
        except (TypeError, ValueError):
            return default

    def get_bool(self, key: str, default: bool = False) -> bool:
        val = self.get_setting(key)
        if val is None:
            return default
        return bool(val)

    def __len__(self) -> int:
        with self._lock:
            return len(self._settings)
