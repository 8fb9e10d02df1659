"""
tests/test_badges.py — Badge Catalog & Evaluator
=================================================

Badges are one-way: re-running the evaluator never duplicates or removes.
"""

from __future__ import annotations

from datetime import UTC, datetime

from introvirght.database.models import BadgeCategory, Rarity
from introvirght.engine.badges import (
    BADGE_CATALOG,
    BADGES_BY_ID,
    badge_progress,
    badge_progress_description,
    check_and_award_badges,
)
from introvirght.engine.state import AchievementProgress, EngagementState

NOW = datetime(2026, 5, 1, tzinfo=UTC)


class TestCatalog:
    def test_ids_unique(self):
        ids = [b.id for b in BADGE_CATALOG]
        assert len(ids) == len(set(ids))

    def test_every_achievement_has_reward_badge(self):
        from introvirght.engine.achievements import ACHIEVEMENT_CATALOG

        for a in ACHIEVEMENT_CATALOG:
            for badge_id in a.rewards.badges:
                assert badge_id in BADGES_BY_ID


class TestCheckAndAward:
    def test_fresh_profile_earns_nothing(self):
        state = EngagementState(user_id="u1")
        assert check_and_award_badges(state, [], NOW) == []

    def test_streak_badge_from_any_streak(self):
        state = EngagementState(user_id="u1")
        state.diary.longest_streak = 7
        awarded = check_and_award_badges(state, [], NOW)
        assert [b.id for b in awarded] == ["first_week_streak"]
        badge = awarded[0]
        assert badge.category == BadgeCategory.STREAK
        assert badge.rarity == Rarity.COMMON
        assert badge.unlocked_at == NOW

    def test_rerun_does_not_duplicate(self):
        state = EngagementState(user_id="u1")
        state.social_impact.community_contributions = 10
        check_and_award_badges(state, [], NOW)
        assert check_and_award_badges(state, [], NOW) == []
        assert [b.id for b in state.badges] == ["community_helper"]

    def test_badges_never_removed(self):
        state = EngagementState(user_id="u1")
        state.posting.longest_streak = 30
        check_and_award_badges(state, [], NOW)
        state.posting.current_streak = 0
        check_and_award_badges(state, [], NOW)
        assert {"first_week_streak", "month_warrior"} <= state.badge_ids

    def test_counter_thresholds(self):
        state = EngagementState(user_id="u1")
        state.level = 5
        state.experience = 2000
        state.content_created = 100
        ids = {b.id for b in check_and_award_badges(state, [], NOW)}
        assert {"level_5_achiever", "experience_master", "content_creator"} <= ids

    def test_achievement_reward_badge(self):
        state = EngagementState(user_id="u1")
        state.achievements["daily_writer"] = AchievementProgress(
            id="daily_writer", name="Daily Writer", description="",
            category="writing", progress=30, max_progress=30, completed=True,
        )
        ids = {b.id for b in check_and_award_badges(state, [], NOW)}
        assert "daily_writer_badge" in ids


class TestProgress:
    def test_streak_progress_string(self):
        state = EngagementState(user_id="u1")
        state.posting.longest_streak = 4
        text = badge_progress_description(BADGES_BY_ID["first_week_streak"], state)
        assert text == "4/7 days"

    def test_contribution_progress_string(self):
        state = EngagementState(user_id="u1")
        state.social_impact.community_contributions = 3
        text = badge_progress_description(BADGES_BY_ID["community_helper"], state)
        assert text == "3/10 contributions"

    def test_reward_badge_has_generic_hint(self):
        state = EngagementState(user_id="u1")
        text = badge_progress_description(BADGES_BY_ID["daily_writer_badge"], state)
        assert text == "Keep engaging to unlock!"

    def test_summary_splits_earned_and_available(self):
        state = EngagementState(user_id="u1")
        state.posting.longest_streak = 7
        check_and_award_badges(state, [], NOW)
        summary = badge_progress(state, [])
        assert [b["id"] for b in summary["earned"]] == ["first_week_streak"]
        available_ids = {a["badge_id"] for a in summary["available"]}
        assert "first_week_streak" not in available_ids
        assert len(available_ids) == len(BADGE_CATALOG) - 1
