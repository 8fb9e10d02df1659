"""
introvirght.engine.leveling — Leveling Engine
==============================================

Level is a pure function of cumulative experience over the ascending
``LEVEL_THRESHOLDS`` table.  Feature unlocks are looked up per level.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass

from introvirght.constants import (
    DEFAULT_LEVEL_TITLE,
    LEVEL_THRESHOLDS,
    LEVEL_TITLES,
    LEVEL_UNLOCKS,
    STARTER_FEATURES,
)

MAX_LEVEL = len(LEVEL_THRESHOLDS)


def level_for(experience: int) -> int:
    """1 + index of the largest threshold ≤ *experience*.

    >>> [level_for(x) for x in (0, 99, 100, 299, 300, 2500, 2501)]
    [1, 1, 2, 2, 3, 7, 7]
    """
    return max(1, bisect_right(LEVEL_THRESHOLDS, max(0, experience)))


def unlocks_for(level: int) -> set[str]:
    """Features granted on reaching *level* (level 1 gets the starter set)."""
    if level <= 1:
        return set(STARTER_FEATURES)
    return set(LEVEL_UNLOCKS.get(level, ()))


def unlocks_between(old_level: int, new_level: int) -> list[str]:
    """Every unlock for levels in ``(old_level, new_level]``, in level order."""
    features: list[str] = []
    for level in range(old_level + 1, new_level + 1):
        for feature in LEVEL_UNLOCKS.get(level, ()):
            if feature not in features:
                features.append(feature)
    return features


def level_title(level: int) -> str:
    if 1 <= level <= len(LEVEL_TITLES):
        return LEVEL_TITLES[level - 1]
    return DEFAULT_LEVEL_TITLE


@dataclass(frozen=True, slots=True)
class LevelProgress:
    level: int
    title: str
    experience: int
    xp_into_level: int
    xp_for_next_level: int | None  # None at max level


def level_progress(experience: int) -> LevelProgress:
    level = level_for(experience)
    floor = LEVEL_THRESHOLDS[level - 1]
    needed = None
    if level < MAX_LEVEL:
        needed = LEVEL_THRESHOLDS[level] - experience
    return LevelProgress(
        level=level,
        title=level_title(level),
        experience=experience,
        xp_into_level=experience - floor,
        xp_for_next_level=needed,
    )
