"""
introvirght.constants — Shared Constants
=========================================

Single source of truth for the level table, streak milestones and
presentation constants.  Import from here instead of duplicating in the
engine and services.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Rarity presentation (used in celebration payloads)
# ---------------------------------------------------------------------------
RARITY_EMOJI: dict[str, str] = {
    "common": "\u26aa",        # ⚪
    "rare": "\U0001f535",      # 🔵
    "epic": "\U0001f7e3",      # 🟣
    "legendary": "\U0001f7e1", # 🟡
}


# ---------------------------------------------------------------------------
# Leveling — ascending XP thresholds; level = 1 + index of largest ≤ XP
# ---------------------------------------------------------------------------
LEVEL_THRESHOLDS: tuple[int, ...] = (0, 100, 300, 600, 1000, 1500, 2500)

LEVEL_TITLES: tuple[str, ...] = (
    "Thoughtful Beginner",
    "Reflective Explorer",
    "Mindful Contributor",
    "Community Connector",
    "Wisdom Keeper",
    "Mindful Sage",
)
DEFAULT_LEVEL_TITLE = "Mindful Master"

# Features granted on reaching each level.
LEVEL_UNLOCKS: dict[int, tuple[str, ...]] = {
    2: ("custom_themes",),
    3: ("advanced_diary_templates",),
    4: ("priority_feed",),
    5: ("beta_features",),
    6: ("premium_features", "mentor_badge"),
}

# Every new profile starts with these.
STARTER_FEATURES: tuple[str, ...] = ("basic_themes",)


# ---------------------------------------------------------------------------
# Streaks
# ---------------------------------------------------------------------------
STREAK_MILESTONES: tuple[int, ...] = (7, 14, 30, 60, 100, 365)
MILESTONE_STEP_AFTER_TABLE = 100
GRACE_PERIODS_ALLOWED = 3
GRACE_MAX_GAP_DAYS = 2


# ---------------------------------------------------------------------------
# Event log window read by badge / achievement rules
# ---------------------------------------------------------------------------
EVENT_WINDOW = 100
