"""
introvirght.engine.badges — Badge Catalog & Evaluator
======================================================

Registry of declarative badge definitions.  Each carries a pure unlock
predicate ``(state, recent_events) → bool`` over cumulative counters, so a
badge that was earned once would still qualify if re-checked.

This module is pure calculation — no database I/O.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from introvirght.database.models import BadgeCategory, Rarity
from introvirght.engine.events import RecentEvent
from introvirght.engine.state import Badge, EngagementState

logger = logging.getLogger(__name__)

Condition = Callable[[EngagementState, Sequence[RecentEvent]], bool]


@dataclass(frozen=True, slots=True)
class BadgeDefinition:
    """Catalog entry.

    ``progress`` (optional) reports the counter the condition reads so the
    dashboard can render ``"<current>/<target> <unit>"``.
    """

    id: str
    name: str
    description: str
    category: BadgeCategory
    rarity: Rarity
    condition: Condition
    progress: Callable[[EngagementState], float] | None = None
    target: int = 0
    unit: str = ""
    icon_url: str = ""

    def snapshot(self, unlocked_at: datetime) -> Badge:
        return Badge(
            id=self.id,
            name=self.name,
            description=self.description,
            category=self.category,
            rarity=self.rarity,
            unlocked_at=unlocked_at,
            icon_url=self.icon_url,
        )


# ---------------------------------------------------------------------------
# Counter readers
# ---------------------------------------------------------------------------
def _longest_streak(state: EngagementState) -> int:
    return max(s.longest_streak for s in state.all_streaks())


def _streak_badge(badge_id, name, description, rarity, days) -> BadgeDefinition:
    return BadgeDefinition(
        id=badge_id,
        name=name,
        description=description,
        category=BadgeCategory.STREAK,
        rarity=rarity,
        condition=lambda state, _events: _longest_streak(state) >= days,
        progress=_longest_streak,
        target=days,
        unit="days",
    )


def _threshold_badge(
    badge_id, name, description, category, rarity, reader, target, unit,
) -> BadgeDefinition:
    return BadgeDefinition(
        id=badge_id,
        name=name,
        description=description,
        category=category,
        rarity=rarity,
        condition=lambda state, _events: reader(state) >= target,
        progress=reader,
        target=target,
        unit=unit,
    )


def _achievement_badge(achievement_id, name, description, rarity) -> BadgeDefinition:
    """Reward badge unlocked by completing *achievement_id*."""

    def _completed(state: EngagementState, _events) -> bool:
        record = state.achievements.get(achievement_id)
        return record is not None and record.completed

    return BadgeDefinition(
        id=f"{achievement_id}_badge",
        name=name,
        description=description,
        category=BadgeCategory.ACHIEVEMENT,
        rarity=rarity,
        condition=_completed,
    )


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------
BADGE_CATALOG: tuple[BadgeDefinition, ...] = (
    # Streak
    _streak_badge("first_week_streak", "First Steps",
                  "Maintained a 7-day streak in any activity", Rarity.COMMON, 7),
    _streak_badge("month_warrior", "Month Warrior",
                  "Achieved a 30-day streak - true dedication!", Rarity.RARE, 30),
    _streak_badge("century_master", "Century Master",
                  "Incredible! 100 days of consistent mindful practice", Rarity.EPIC, 100),
    _streak_badge("year_legend", "Year Legend",
                  "Legendary achievement: 365 days of mindful engagement",
                  Rarity.LEGENDARY, 365),
    # Social
    _threshold_badge("community_helper", "Community Helper",
                     "Helped others through meaningful interactions",
                     BadgeCategory.SOCIAL, Rarity.COMMON,
                     lambda s: s.social_impact.community_contributions, 10, "contributions"),
    _threshold_badge("inspiration_source", "Inspiration Source",
                     "Your posts have inspired 50+ people to reflect",
                     BadgeCategory.SOCIAL, Rarity.RARE,
                     lambda s: s.social_impact.posts_inspired, 50, "posts inspired"),
    _threshold_badge("connection_catalyst", "Connection Catalyst",
                     "Facilitated meaningful connections in the community",
                     BadgeCategory.SOCIAL, Rarity.EPIC,
                     lambda s: s.social_impact.connections_formed, 25, "connections"),
    # Growth
    _threshold_badge("self_aware", "Self Aware",
                     "Demonstrated growing emotional awareness",
                     BadgeCategory.GROWTH, Rarity.COMMON,
                     lambda s: s.emotional_growth.emotional_awareness, 50, "awareness"),
    _threshold_badge("mindful_sage", "Mindful Sage",
                     "Achieved high levels of mindful reflection",
                     BadgeCategory.GROWTH, Rarity.RARE,
                     lambda s: s.emotional_growth.reflection_depth, 75, "depth"),
    _threshold_badge("gratitude_master", "Gratitude Master",
                     "Mastered the practice of daily gratitude",
                     BadgeCategory.GROWTH, Rarity.EPIC,
                     lambda s: s.emotional_growth.gratitude_practice, 90, "gratitude entries"),
    # Achievement
    _threshold_badge("level_5_achiever", "Wisdom Keeper",
                     "Reached Level 5 - Wisdom Keeper status",
                     BadgeCategory.ACHIEVEMENT, Rarity.RARE,
                     lambda s: s.level, 5, "levels"),
    _threshold_badge("experience_master", "Experience Master",
                     "Accumulated over 2000 experience points",
                     BadgeCategory.ACHIEVEMENT, Rarity.EPIC,
                     lambda s: s.experience, 2000, "XP"),
    _threshold_badge("content_creator", "Content Creator",
                     "Created 100+ pieces of mindful content",
                     BadgeCategory.ACHIEVEMENT, Rarity.RARE,
                     lambda s: s.content_created, 100, "posts"),
    # Achievement rewards
    _achievement_badge("daily_writer", "Daily Writer",
                       "Wrote in the diary for 30 days in a row", Rarity.RARE),
    _achievement_badge("social_butterfly", "Social Butterfly",
                       "Shared 100 positive interactions with the community", Rarity.RARE),
    _achievement_badge("mindful_explorer", "Mindful Explorer",
                       "Explored mindfulness and self-reflection in depth", Rarity.EPIC),
    _achievement_badge("streak_master", "Streak Master",
                       "Kept every streak alive for three weeks", Rarity.EPIC),
    _achievement_badge("inspiration_giver", "Inspiration Giver",
                       "Inspired others through thoughtful posts", Rarity.LEGENDARY),
    _achievement_badge("well_rounded", "Well Rounded",
                       "Took part in every corner of Introvirght", Rarity.COMMON),
)

BADGES_BY_ID: dict[str, BadgeDefinition] = {b.id: b for b in BADGE_CATALOG}


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------
def check_and_award_badges(
    state: EngagementState,
    events: Sequence[RecentEvent],
    now: datetime | None = None,
    catalog: Sequence[BadgeDefinition] = BADGE_CATALOG,
) -> list[Badge]:
    """Append every newly satisfied badge to ``state.badges``.

    Badges already held are skipped, so re-running never duplicates.
    Returns the newly awarded badges.
    """
    now = now or datetime.now(UTC)
    held = state.badge_ids
    awarded: list[Badge] = []

    for definition in catalog:
        if definition.id in held:
            continue
        if definition.condition(state, events):
            badge = definition.snapshot(now)
            state.badges.append(badge)
            held.add(badge.id)
            awarded.append(badge)
            logger.info("Badge unlocked: %s for user %s", badge.id, state.user_id)

    return awarded


def badge_progress_description(definition: BadgeDefinition, state: EngagementState) -> str:
    if definition.progress is None:
        return "Keep engaging to unlock!"
    current = definition.progress(state)
    if isinstance(current, float):
        current = int(current)
    return f"{min(current, definition.target)}/{definition.target} {definition.unit}"


def badge_progress(
    state: EngagementState,
    events: Sequence[RecentEvent],
) -> dict:
    """Earned badges plus, per unearned badge, ``can_earn`` and a progress string."""
    held = state.badge_ids
    available = [
        {
            "badge_id": definition.id,
            "name": definition.name,
            "description": definition.description,
            "category": definition.category.value,
            "rarity": definition.rarity.value,
            "can_earn": definition.condition(state, events),
            "progress": badge_progress_description(definition, state),
        }
        for definition in BADGE_CATALOG
        if definition.id not in held
    ]
    return {
        "earned": [b.to_dict() for b in state.badges],
        "available": available,
    }
