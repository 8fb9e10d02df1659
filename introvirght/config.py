"""
introvirght.config — YAML Configuration Loader
===============================================

This module reads ``config.yaml`` for **infrastructure-only** settings
(embedding dimensionality, recall defaults, background queue tuning).
Gameplay tuning values (XP per event, grace periods, bonuses) live in the
``settings`` database table and are read through
:class:`~introvirght.engine.cache.SettingsCache`.

Usage::

    from introvirght.config import load_config

    cfg = load_config()              # reads ./config.yaml by default
    print(cfg.embedding_dimension)   # 384
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object — infrastructure only.
# Gameplay tuning lives in the DB ``settings`` table.
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class IntrovirghtConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    app_name: str

    # Semantic recall
    embedding_dimension: int
    search_limit: int
    search_threshold: float
    companion_context_size: int

    # Engagement
    event_window: int = 100

    # Background embedding queue
    embedding_max_attempts: int = 3
    embedding_retry_backoff: float = 1.0


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> IntrovirghtConfig:
    """Read *path* and return an :class:`IntrovirghtConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return IntrovirghtConfig(
        app_name=raw["app_name"],
        embedding_dimension=int(raw["embedding_dimension"]),
        search_limit=int(raw["search_limit"]),
        search_threshold=float(raw["search_threshold"]),
        companion_context_size=int(raw["companion_context_size"]),
        event_window=min(int(raw.get("event_window", 100)), 100),
        embedding_max_attempts=int(raw.get("embedding_max_attempts", 3)),
        embedding_retry_backoff=float(raw.get("embedding_retry_backoff", 1.0)),
    )
