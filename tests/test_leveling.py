"""
tests/test_leveling.py — Leveling Engine
=========================================
"""

from __future__ import annotations

import pytest

from introvirght.engine.leveling import (
    MAX_LEVEL,
    level_for,
    level_progress,
    level_title,
    unlocks_between,
    unlocks_for,
)


class TestLevelFor:
    @pytest.mark.parametrize("xp, level", [
        (0, 1), (99, 1), (100, 2), (299, 2), (300, 3), (2500, 7), (2501, 7),
    ])
    def test_threshold_table(self, xp, level):
        assert level_for(xp) == level

    def test_negative_clamps_to_one(self):
        assert level_for(-50) == 1

    def test_monotonic(self):
        levels = [level_for(x) for x in range(0, 3000, 7)]
        assert levels == sorted(levels)


class TestUnlocks:
    def test_level_one_starter(self):
        assert unlocks_for(1) == {"basic_themes"}

    def test_level_two(self):
        assert unlocks_for(2) == {"custom_themes"}

    def test_level_six_grants_two(self):
        assert unlocks_for(6) == {"premium_features", "mentor_badge"}

    def test_between_unions_crossed_levels(self):
        assert unlocks_between(1, 3) == ["custom_themes", "advanced_diary_templates"]

    def test_between_same_level_is_empty(self):
        assert unlocks_between(4, 4) == []


class TestTitlesAndProgress:
    def test_titles(self):
        assert level_title(1) == "Thoughtful Beginner"
        assert level_title(6) == "Mindful Sage"
        assert level_title(7) == "Mindful Master"

    def test_progress_mid_level(self):
        p = level_progress(150)
        assert p.level == 2
        assert p.xp_into_level == 50
        assert p.xp_for_next_level == 150

    def test_progress_at_max(self):
        p = level_progress(9000)
        assert p.level == MAX_LEVEL
        assert p.xp_for_next_level is None
