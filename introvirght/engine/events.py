"""
introvirght.engine.events — ActivityEvent and per-type tables
==============================================================

Every activity reported by the post, diary, social and login handlers is
normalised into an :class:`ActivityEvent` before the engagement pipeline
processes it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from introvirght.database.models import EventType, StreakType
from introvirght.errors import InvalidEventType

__all__ = [
    "ActivityEvent",
    "BASE_XP",
    "RecentEvent",
    "SETTING_KEYS",
    "STREAKS_FOR_EVENT",
    "parse_event_type",
]

# ---------------------------------------------------------------------------
# Base XP per event type.  Derived events earn nothing on their own.
# ---------------------------------------------------------------------------
BASE_XP: dict[EventType, int] = {
    EventType.POST_CREATE: 10,
    EventType.DIARY_ENTRY: 15,
    EventType.COMMENT: 5,
    EventType.LIKE: 2,
    EventType.SHARE: 1,
    EventType.LOGIN: 3,
    EventType.ACHIEVEMENT: 0,
    EventType.STREAK_MILESTONE: 0,
    EventType.LEVEL_UP: 0,
    EventType.BADGE_UNLOCK: 0,
}

# ``settings`` keys overriding BASE_XP
SETTING_KEYS: dict[EventType, str] = {
    EventType.POST_CREATE: "xp.post_create",
    EventType.DIARY_ENTRY: "xp.diary_entry",
    EventType.COMMENT: "xp.comment",
    EventType.LIKE: "xp.like",
    EventType.SHARE: "xp.share",
    EventType.LOGIN: "xp.login",
}

# Streaks touched by each event type (combined always rides along)
STREAKS_FOR_EVENT: dict[EventType, tuple[StreakType, ...]] = {
    EventType.POST_CREATE: (StreakType.POSTING, StreakType.COMBINED),
    EventType.DIARY_ENTRY: (StreakType.DIARY, StreakType.COMBINED),
    EventType.COMMENT: (StreakType.ENGAGEMENT, StreakType.COMBINED),
    EventType.LIKE: (StreakType.ENGAGEMENT, StreakType.COMBINED),
    EventType.SHARE: (StreakType.ENGAGEMENT, StreakType.COMBINED),
}


def parse_event_type(value: EventType | str) -> EventType:
    """Coerce *value* to an :class:`EventType` or raise InvalidEventType."""
    if isinstance(value, EventType):
        return value
    try:
        return EventType(value)
    except ValueError:
        raise InvalidEventType(value) from None


# ---------------------------------------------------------------------------
# ActivityEvent — the event envelope
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ActivityEvent:
    """Normalised activity from any collaborator.

    Source-specific details (``quality_score``, ``emotional_context``,
    ``session_duration`` …) travel in ``metadata``.
    """

    user_id: str
    event_type: EventType
    metadata: dict = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


# ---------------------------------------------------------------------------
# RecentEvent — read-only view of an engagement_events row
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class RecentEvent:
    """What badge / achievement rules see of the event log."""

    event_type: str
    timestamp: datetime
    metadata: dict = field(default_factory=dict)

    @classmethod
    def from_activity(cls, event: ActivityEvent) -> RecentEvent:
        return cls(event.event_type.value, event.timestamp, dict(event.metadata))
