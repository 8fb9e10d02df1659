"""
introvirght.database.seed — Default Settings Seeder
====================================================

Baseline gameplay tuning seeded on first startup.  Idempotent — only
inserts keys that don't already exist; edited values are never
overwritten.
"""

from __future__ import annotations

import json
import logging

from sqlalchemy import Engine
from sqlalchemy.orm import Session

from introvirght.database.models import Setting

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Default settings catalogue
# ---------------------------------------------------------------------------
DEFAULT_SETTINGS: dict[str, tuple[object, str, str]] = {
    "xp.post_create": (10, "xp", "Base XP for publishing a post"),
    "xp.diary_entry": (15, "xp", "Base XP for writing a diary entry"),
    "xp.comment": (5, "xp", "Base XP for a meaningful comment"),
    "xp.like": (2, "xp", "Base XP for a like"),
    "xp.share": (1, "xp", "Base XP for sharing a post"),
    "xp.login": (3, "xp", "Base XP for showing up (community participation)"),
    "bonus.post_quality_threshold": (
        1.5, "bonus", "Quality score at which a post earns the quality multiplier",
    ),
    "bonus.post_quality_multiplier": (1.5, "bonus", "XP multiplier for high-quality posts"),
    "bonus.diary_emotional_context": (
        5, "bonus", "Flat XP bonus for diary entries with mood/reflection context",
    ),
    "bonus.comment_contribution_threshold": (
        1.2, "bonus", "Comment quality score that counts as a community contribution",
    ),
    "streak.grace_periods_allowed": (
        3, "streak", "Grace periods a streak may consume before it must reset",
    ),
    "streak.grace_max_gap_days": (
        2, "streak", "Largest gap in calendar days a grace period can bridge",
    ),
    "engagement.event_window": (
        100, "engagement", "Recent events visible to badge / achievement rules",
    ),
}
"""Each entry maps ``key`` → ``(default_value, category, description)``."""


# ---------------------------------------------------------------------------
# Seeder
# ---------------------------------------------------------------------------
def seed_default_settings(engine: Engine) -> None:
    """Insert default settings that don't yet exist."""
    session = Session(engine)
    inserted = 0
    try:
        for key, (value, category, desc) in DEFAULT_SETTINGS.items():
            existing = session.get(Setting, key)
            if existing is None:
                session.add(Setting(
                    key=key,
                    value_json=json.dumps(value),
                    category=category,
                    description=desc,
                ))
                inserted += 1
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    if inserted:
        logger.info("Seeded %d default settings.", inserted)
