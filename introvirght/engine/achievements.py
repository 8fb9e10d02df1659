"""
introvirght.engine.achievements — Achievement Progress Pipeline
================================================================

Handler-registry implementation of progress-tracked achievements.  Each
catalog entry pairs a target with a pure progress calculator
``(state, recent_events) → int``.

Progress only moves forward and completion is one-shot: callers credit
``rewards.experience`` for exactly the records returned by
:func:`update_achievement_progress`.

This module is pure calculation — no database I/O.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from introvirght.database.models import EventType
from introvirght.engine.events import RecentEvent
from introvirght.engine.state import (
    AchievementProgress,
    AchievementRewards,
    EngagementState,
)

logger = logging.getLogger(__name__)

Calculator = Callable[[EngagementState, Sequence[RecentEvent]], int]

# Activity kinds counted by ``well_rounded``
ACTIVITY_KINDS: frozenset[str] = frozenset({
    EventType.POST_CREATE,
    EventType.DIARY_ENTRY,
    EventType.COMMENT,
    EventType.LIKE,
    EventType.SHARE,
    EventType.LOGIN,
})


@dataclass(frozen=True, slots=True)
class AchievementDefinition:
    id: str
    name: str
    description: str
    category: str
    max_progress: int
    calculator: Calculator
    rewards: AchievementRewards


# ---------------------------------------------------------------------------
# Progress calculators — pure functions (state, events) → int
# ---------------------------------------------------------------------------

def _diary_streak(state: EngagementState, _events) -> int:
    return state.diary.current_streak


def _positive_interactions(state: EngagementState, _events) -> int:
    return state.social_impact.positive_interactions


def _emotional_awareness(state: EngagementState, _events) -> int:
    return int(state.emotional_growth.emotional_awareness)


def _all_streaks_active(state: EngagementState, _events) -> int:
    """Combined streak, counted only while posting, diary and community
    streaks are all running."""
    if all(s.current_streak > 0 for s in (state.posting, state.diary, state.community)):
        return state.combined.current_streak
    return 0


def _posts_inspired(state: EngagementState, _events) -> int:
    return state.social_impact.posts_inspired


def _distinct_activity_kinds(_state, events: Sequence[RecentEvent]) -> int:
    return len({e.event_type for e in events if e.event_type in ACTIVITY_KINDS})


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------
ACHIEVEMENT_CATALOG: tuple[AchievementDefinition, ...] = (
    AchievementDefinition(
        id="daily_writer",
        name="Daily Writer",
        description="Write diary entries for consecutive days",
        category="writing",
        max_progress=30,
        calculator=_diary_streak,
        rewards=AchievementRewards(100, ("daily_writer_badge",), ("advanced_diary_templates",)),
    ),
    AchievementDefinition(
        id="social_butterfly",
        name="Social Butterfly",
        description="Engage with community members through likes and comments",
        category="social",
        max_progress=100,
        calculator=_positive_interactions,
        rewards=AchievementRewards(150, ("social_butterfly_badge",), ("community_features",)),
    ),
    AchievementDefinition(
        id="mindful_explorer",
        name="Mindful Explorer",
        description="Explore different aspects of mindfulness and self-reflection",
        category="growth",
        max_progress=50,
        calculator=_emotional_awareness,
        rewards=AchievementRewards(200, ("mindful_explorer_badge",), ("mood_insights",)),
    ),
    AchievementDefinition(
        id="streak_master",
        name="Streak Master",
        description="Maintain multiple types of streaks simultaneously",
        category="consistency",
        max_progress=21,
        calculator=_all_streaks_active,
        rewards=AchievementRewards(300, ("streak_master_badge",), ("premium_themes",)),
    ),
    AchievementDefinition(
        id="inspiration_giver",
        name="Inspiration Giver",
        description="Inspire others through your thoughtful posts and interactions",
        category="impact",
        max_progress=100,
        calculator=_posts_inspired,
        rewards=AchievementRewards(250, ("inspiration_giver_badge",), ("featured_content",)),
    ),
    AchievementDefinition(
        id="well_rounded",
        name="Well Rounded",
        description="Post, write, comment and connect across the app",
        category="exploration",
        max_progress=4,
        calculator=_distinct_activity_kinds,
        rewards=AchievementRewards(50, ("well_rounded_badge",), ()),
    ),
)

ACHIEVEMENTS_BY_ID: dict[str, AchievementDefinition] = {a.id: a for a in ACHIEVEMENT_CATALOG}


# ---------------------------------------------------------------------------
# Main update function
# ---------------------------------------------------------------------------
def update_achievement_progress(
    state: EngagementState,
    events: Sequence[RecentEvent],
    now: datetime | None = None,
    catalog: Sequence[AchievementDefinition] = ACHIEVEMENT_CATALOG,
) -> list[AchievementProgress]:
    """Advance every achievement in ``state.achievements``.

    Returns the records that completed during this call.  Already
    completed records are never touched again.
    """
    now = now or datetime.now(UTC)
    newly_completed: list[AchievementProgress] = []

    for definition in catalog:
        progress = min(definition.calculator(state, events), definition.max_progress)
        record = state.achievements.get(definition.id)

        if record is None:
            record = AchievementProgress(
                id=definition.id,
                name=definition.name,
                description=definition.description,
                category=definition.category,
                progress=max(progress, 0),
                max_progress=definition.max_progress,
                rewards=definition.rewards,
            )
            state.achievements[definition.id] = record
        elif record.completed or progress <= record.progress:
            continue
        else:
            record.progress = progress

        if record.progress >= record.max_progress and not record.completed:
            record.completed = True
            record.completed_at = now
            newly_completed.append(record)
            logger.info(
                "Achievement completed: %s for user %s", record.id, state.user_id,
            )

    return newly_completed
