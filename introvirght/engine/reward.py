"""
introvirght.engine.reward — Reward Calculation & Celebrations
==============================================================

Pure calculation helpers used by the engagement pipeline:

  ActivityEvent → Base XP → Bonus → RewardResult
                → Aggregate counters
                → Celebration payloads

No DB I/O inside the engine; tuning is read from the settings cache.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from introvirght.constants import RARITY_EMOJI
from introvirght.database.models import EventType
from introvirght.engine.events import BASE_XP, SETTING_KEYS, ActivityEvent
from introvirght.engine.leveling import level_title

if TYPE_CHECKING:
    from introvirght.engine.cache import SettingsCache
    from introvirght.engine.state import AchievementProgress, Badge, EngagementState
    from introvirght.engine.streaks import StreakUpdate

logger = logging.getLogger(__name__)

# Defaults mirrored in database/seed.py
POST_QUALITY_THRESHOLD = 1.5
POST_QUALITY_MULTIPLIER = 1.5
DIARY_EMOTIONAL_BONUS = 5
COMMENT_CONTRIBUTION_THRESHOLD = 1.2

# Sentiment swing (on the [-1, 1] scale) that flips growth_trend
TREND_SENSITIVITY = 0.1


# ---------------------------------------------------------------------------
# Celebration & RewardResult
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Celebration:
    """Client-facing celebration payload."""

    type: str
    title: str
    description: str
    animation_type: str

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "animation_type": self.animation_type,
        }


@dataclass
class RewardResult:
    """Everything one processed event earned."""

    experience: int = 0
    badges: list[str] = field(default_factory=list)
    unlocks: list[str] = field(default_factory=list)
    celebrations: list[Celebration] = field(default_factory=list)
    achievements: list[str] = field(default_factory=list)
    # (streak_type, milestone) pairs reached by this event
    milestones: list[tuple[str, int]] = field(default_factory=list)
    streak_impact: bool = False
    old_level: int = 1
    new_level: int = 1

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.old_level

    def rewards_dict(self) -> dict:
        return {
            "experience": self.experience,
            "badges": list(self.badges),
            "unlocks": list(self.unlocks),
            "celebrations": [c.to_dict() for c in self.celebrations],
        }

    def to_dict(self) -> dict:
        return {
            "rewards": self.rewards_dict(),
            "celebrations": [c.to_dict() for c in self.celebrations],
        }


# ---------------------------------------------------------------------------
# Stage 1: Experience
# ---------------------------------------------------------------------------
def base_experience(event_type: EventType, cache: SettingsCache | None = None) -> int:
    default = BASE_XP.get(event_type, 0)
    key = SETTING_KEYS.get(event_type)
    if cache is None or key is None:
        return default
    return cache.get_int(key, default)


def _quality(metadata: dict) -> float:
    try:
        return float(metadata.get("quality_score") or 0.0)
    except (TypeError, ValueError):
        return 0.0


def calculate_experience(event: ActivityEvent, cache: SettingsCache | None = None) -> int:
    """XP for *event* after per-type bonuses.

    Posts scoring at or above the quality threshold get the multiplier;
    diary entries carrying an emotional context get a flat bonus.
    """
    xp: float = base_experience(event.event_type, cache)

    if event.event_type == EventType.POST_CREATE:
        threshold = POST_QUALITY_THRESHOLD
        multiplier = POST_QUALITY_MULTIPLIER
        if cache is not None:
            threshold = cache.get_float("bonus.post_quality_threshold", threshold)
            multiplier = cache.get_float("bonus.post_quality_multiplier", multiplier)
        if _quality(event.metadata) >= threshold:
            xp *= multiplier

    elif event.event_type == EventType.DIARY_ENTRY and event.metadata.get("emotional_context"):
        bonus = DIARY_EMOTIONAL_BONUS
        if cache is not None:
            bonus = cache.get_int("bonus.diary_emotional_context", bonus)
        xp += bonus

    return max(0, round(xp))


# ---------------------------------------------------------------------------
# Stage 2: Aggregate counters
# ---------------------------------------------------------------------------
def _update_sentiment(state: EngagementState, sentiment: float) -> None:
    growth = state.emotional_growth
    sentiment = max(-1.0, min(1.0, sentiment))
    previous = growth.average_sentiment
    growth.sentiment_samples += 1
    n = growth.sentiment_samples
    growth.average_sentiment = previous + (sentiment - previous) / n

    # 1.0 when a sample matches the running mean, 0.0 at maximum swing
    steadiness = 1.0 - abs(sentiment - previous) / 2.0
    growth.mood_stability += (steadiness - growth.mood_stability) / n

    if n == 1:
        growth.growth_trend = "stable"
    elif sentiment > previous + TREND_SENSITIVITY:
        growth.growth_trend = "improving"
    elif sentiment < previous - TREND_SENSITIVITY:
        growth.growth_trend = "declining"
    else:
        growth.growth_trend = "stable"


def apply_counters(
    state: EngagementState,
    event: ActivityEvent,
    cache: SettingsCache | None = None,
) -> None:
    """Incrementally update the aggregate counters for *event*."""
    meta = event.metadata
    kind = event.event_type
    social = state.social_impact
    growth = state.emotional_growth

    if kind in (EventType.POST_CREATE, EventType.DIARY_ENTRY):
        state.content_created += 1

    if kind == EventType.COMMENT:
        threshold = COMMENT_CONTRIBUTION_THRESHOLD
        if cache is not None:
            threshold = cache.get_float("bonus.comment_contribution_threshold", threshold)
        if _quality(meta) > threshold:
            social.community_contributions += 1
            social.helpfulness_score = round(social.helpfulness_score + _quality(meta) - 1.0, 4)

    if kind == EventType.LIKE:
        social.positive_interactions += 1

    if kind == EventType.SHARE and meta.get("own_content"):
        social.posts_inspired += 1

    if meta.get("connection_formed"):
        social.connections_formed += 1

    if kind == EventType.DIARY_ENTRY:
        if meta.get("emotional_context"):
            growth.emotional_awareness += 0.1
            growth.reflection_depth += 0.05
        if meta.get("gratitude"):
            growth.gratitude_practice += 1
        if meta.get("sentiment") is not None:
            try:
                _update_sentiment(state, float(meta["sentiment"]))
            except (TypeError, ValueError):
                logger.warning("Ignoring non-numeric sentiment %r", meta["sentiment"])

    if kind == EventType.LOGIN:
        state.total_sessions += 1
        duration = meta.get("session_duration")
        if duration is not None:
            n = state.total_sessions
            state.average_session_duration += (
                float(duration) - state.average_session_duration
            ) / n


# ---------------------------------------------------------------------------
# Stage 3: Celebrations
# ---------------------------------------------------------------------------
def level_up_celebration(old_level: int, new_level: int) -> Celebration:
    return Celebration(
        type=EventType.LEVEL_UP.value,
        title=f"Level Up! You're now a {level_title(new_level)}",
        description=f"You've reached level {new_level} and unlocked new features!",
        animation_type="level_animation",
    )


def streak_celebrations(updates: Iterable[StreakUpdate]) -> list[Celebration]:
    celebrations = []
    for update in updates:
        if update.milestone is None:
            continue
        kind = update.streak_type.value
        celebrations.append(Celebration(
            type=EventType.STREAK_MILESTONE.value,
            title=f"{update.milestone} Day {kind.title()} Streak!",
            description=(
                f"Amazing dedication! You've maintained your {kind} streak "
                f"for {update.milestone} days."
            ),
            animation_type="confetti",
        ))
    return celebrations


def badge_celebration(badge: Badge) -> Celebration:
    emoji = RARITY_EMOJI.get(badge.rarity.value, "")
    return Celebration(
        type=EventType.BADGE_UNLOCK.value,
        title=f"{emoji} Badge Unlocked: {badge.name}".strip(),
        description=badge.description,
        animation_type="badge_reveal",
    )


def achievement_celebration(record: AchievementProgress) -> Celebration:
    return Celebration(
        type=EventType.ACHIEVEMENT.value,
        title=f"Achievement Complete: {record.name}",
        description=f"{record.description} (+{record.rewards.experience} XP)",
        animation_type="particles",
    )
