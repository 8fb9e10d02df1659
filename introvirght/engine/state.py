"""
introvirght.engine.state — In-memory engagement state
======================================================

Plain dataclasses the pure engine operates on.  The service layer loads
an :class:`EngagementState` from an ``engagement_profiles`` row, runs the
pipeline against it and writes it back; nothing in here touches the DB.

``to_dict`` / ``from_dict`` define the JSONB document shape.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import UTC, datetime

from introvirght.constants import STARTER_FEATURES, STREAK_MILESTONES
from introvirght.database.models import BadgeCategory, Rarity, StreakType


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    ts = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


# ---------------------------------------------------------------------------
# Streaks
# ---------------------------------------------------------------------------
@dataclass
class StreakState:
    """Continuation state of one activity category.

    ``last_activity`` is None until the first qualifying activity.
    """

    streak_type: StreakType
    current_streak: int = 0
    longest_streak: int = 0
    last_activity: datetime | None = None
    next_milestone: int = STREAK_MILESTONES[0]
    grace_periods_used: int = 0

    def to_dict(self) -> dict:
        return {
            "streak_type": self.streak_type.value,
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "last_activity": _iso(self.last_activity),
            "next_milestone": self.next_milestone,
            "grace_periods_used": self.grace_periods_used,
        }

    @classmethod
    def from_dict(cls, data: dict | None, streak_type: StreakType) -> StreakState:
        if not data:
            return cls(streak_type=streak_type)
        return cls(
            streak_type=StreakType(data.get("streak_type", streak_type)),
            current_streak=int(data.get("current_streak", 0)),
            longest_streak=int(data.get("longest_streak", 0)),
            last_activity=parse_timestamp(data.get("last_activity")),
            next_milestone=int(data.get("next_milestone", STREAK_MILESTONES[0])),
            grace_periods_used=int(data.get("grace_periods_used", 0)),
        )


# ---------------------------------------------------------------------------
# Badges & achievements
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Badge:
    """Immutable snapshot copied into a profile at unlock time."""

    id: str
    name: str
    description: str
    category: BadgeCategory
    rarity: Rarity
    unlocked_at: datetime
    icon_url: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "rarity": self.rarity.value,
            "unlocked_at": _iso(self.unlocked_at),
            "icon_url": self.icon_url,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Badge:
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            category=BadgeCategory(data["category"]),
            rarity=Rarity(data["rarity"]),
            unlocked_at=parse_timestamp(data.get("unlocked_at")) or datetime.now(UTC),
            icon_url=data.get("icon_url", ""),
        )


@dataclass(frozen=True, slots=True)
class AchievementRewards:
    experience: int = 0
    badges: tuple[str, ...] = ()
    unlocks: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "experience": self.experience,
            "badges": list(self.badges),
            "unlocks": list(self.unlocks),
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> AchievementRewards:
        data = data or {}
        return cls(
            experience=int(data.get("experience", 0)),
            badges=tuple(data.get("badges", ())),
            unlocks=tuple(data.get("unlocks", ())),
        )


@dataclass
class AchievementProgress:
    """Tracked progress toward one catalog achievement.

    ``progress`` never decreases; ``completed`` is one-way.
    """

    id: str
    name: str
    description: str
    category: str
    progress: int
    max_progress: int
    completed: bool = False
    completed_at: datetime | None = None
    rewards: AchievementRewards = field(default_factory=AchievementRewards)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "progress": self.progress,
            "max_progress": self.max_progress,
            "completed": self.completed,
            "completed_at": _iso(self.completed_at),
            "rewards": self.rewards.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> AchievementProgress:
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            description=data.get("description", ""),
            category=data.get("category", ""),
            progress=int(data.get("progress", 0)),
            max_progress=int(data["max_progress"]),
            completed=bool(data.get("completed", False)),
            completed_at=parse_timestamp(data.get("completed_at")),
            rewards=AchievementRewards.from_dict(data.get("rewards")),
        )


# ---------------------------------------------------------------------------
# Aggregate counters
# ---------------------------------------------------------------------------
@dataclass
class SocialImpact:
    posts_inspired: int = 0
    connections_formed: int = 0
    helpfulness_score: float = 0.0
    community_contributions: int = 0
    positive_interactions: int = 0

    def to_dict(self) -> dict:
        return {
            "posts_inspired": self.posts_inspired,
            "connections_formed": self.connections_formed,
            "helpfulness_score": self.helpfulness_score,
            "community_contributions": self.community_contributions,
            "positive_interactions": self.positive_interactions,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> SocialImpact:
        data = data or {}
        return cls(
            posts_inspired=int(data.get("posts_inspired", 0)),
            connections_formed=int(data.get("connections_formed", 0)),
            helpfulness_score=float(data.get("helpfulness_score", 0.0)),
            community_contributions=int(data.get("community_contributions", 0)),
            positive_interactions=int(data.get("positive_interactions", 0)),
        )


@dataclass
class EmotionalGrowth:
    """Incrementally maintained emotional-growth indicators.

    ``average_sentiment`` and ``sentiment_samples`` back the running
    ``mood_stability`` / ``growth_trend`` figures.
    """

    emotional_awareness: float = 0.0
    mood_stability: float = 0.0
    reflection_depth: float = 0.0
    gratitude_practice: float = 0.0
    growth_trend: str = "stable"
    average_sentiment: float = 0.0
    sentiment_samples: int = 0

    def to_dict(self) -> dict:
        return {
            "emotional_awareness": round(self.emotional_awareness, 4),
            "mood_stability": round(self.mood_stability, 4),
            "reflection_depth": round(self.reflection_depth, 4),
            "gratitude_practice": round(self.gratitude_practice, 4),
            "growth_trend": self.growth_trend,
            "average_sentiment": round(self.average_sentiment, 4),
            "sentiment_samples": self.sentiment_samples,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> EmotionalGrowth:
        data = data or {}
        return cls(
            emotional_awareness=float(data.get("emotional_awareness", 0.0)),
            mood_stability=float(data.get("mood_stability", 0.0)),
            reflection_depth=float(data.get("reflection_depth", 0.0)),
            gratitude_practice=float(data.get("gratitude_practice", 0.0)),
            growth_trend=data.get("growth_trend", "stable"),
            average_sentiment=float(data.get("average_sentiment", 0.0)),
            sentiment_samples=int(data.get("sentiment_samples", 0)),
        )


# ---------------------------------------------------------------------------
# EngagementState — the whole profile
# ---------------------------------------------------------------------------
@dataclass
class EngagementState:
    user_id: str
    posting: StreakState = field(default_factory=lambda: StreakState(StreakType.POSTING))
    diary: StreakState = field(default_factory=lambda: StreakState(StreakType.DIARY))
    community: StreakState = field(default_factory=lambda: StreakState(StreakType.ENGAGEMENT))
    combined: StreakState = field(default_factory=lambda: StreakState(StreakType.COMBINED))
    level: int = 1
    experience: int = 0
    badges: list[Badge] = field(default_factory=list)
    achievements: dict[str, AchievementProgress] = field(default_factory=dict)
    unlocked_features: list[str] = field(default_factory=lambda: list(STARTER_FEATURES))
    total_sessions: int = 0
    average_session_duration: float = 0.0
    content_created: int = 0
    social_impact: SocialImpact = field(default_factory=SocialImpact)
    emotional_growth: EmotionalGrowth = field(default_factory=EmotionalGrowth)

    def streak(self, streak_type: StreakType) -> StreakState:
        return {
            StreakType.POSTING: self.posting,
            StreakType.DIARY: self.diary,
            StreakType.ENGAGEMENT: self.community,
            StreakType.COMBINED: self.combined,
        }[streak_type]

    def all_streaks(self) -> tuple[StreakState, ...]:
        return (self.posting, self.diary, self.community, self.combined)

    @property
    def badge_ids(self) -> set[str]:
        return {b.id for b in self.badges}

    def unlock_features(self, features) -> list[str]:
        """Union *features* into the profile; return the newly added ones."""
        added = []
        for feature in features:
            if feature not in self.unlocked_features:
                self.unlocked_features.append(feature)
                added.append(feature)
        return added

    def copy(self) -> EngagementState:
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "posting_streak": self.posting.to_dict(),
            "diary_streak": self.diary.to_dict(),
            "community_streak": self.community.to_dict(),
            "combined_streak": self.combined.to_dict(),
            "level": self.level,
            "experience": self.experience,
            "badges": [b.to_dict() for b in self.badges],
            "achievements": {k: v.to_dict() for k, v in self.achievements.items()},
            "unlocked_features": list(self.unlocked_features),
            "total_sessions": self.total_sessions,
            "average_session_duration": self.average_session_duration,
            "content_created": self.content_created,
            "social_impact": self.social_impact.to_dict(),
            "emotional_growth": self.emotional_growth.to_dict(),
        }
