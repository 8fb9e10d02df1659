"""
introvirght.engine.streaks — Streak Tracker
============================================

Per-category continuation state machine.  One qualifying activity per UTC
calendar day extends a streak; a short gap may be bridged by a grace
period; anything longer resets it.

Pure calculation: mutates the :class:`StreakState` objects it is handed and
returns what changed.  No database I/O.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

from introvirght.constants import (
    GRACE_MAX_GAP_DAYS,
    GRACE_PERIODS_ALLOWED,
    MILESTONE_STEP_AFTER_TABLE,
    STREAK_MILESTONES,
)
from introvirght.database.models import EventType, StreakType
from introvirght.engine.events import STREAKS_FOR_EVENT

if TYPE_CHECKING:
    from introvirght.engine.cache import SettingsCache
    from introvirght.engine.state import EngagementState, StreakState

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StreakUpdate:
    """Outcome of one activity against one streak.

    ``impacted`` is False for the same-day no-op.
    """

    streak_type: StreakType
    new_streak_value: int
    milestone: int | None = None
    impacted: bool = False
    grace_used: bool = False
    reset: bool = False


def next_milestone(current: int) -> int:
    """First milestone strictly greater than *current*.

    Past the end of the table milestones continue every 100 days.
    """
    for value in STREAK_MILESTONES:
        if value > current:
            return value
    value = STREAK_MILESTONES[-1]
    while value <= current:
        value += MILESTONE_STEP_AFTER_TABLE
    return value


def is_milestone(value: int) -> bool:
    if value in STREAK_MILESTONES:
        return True
    last = STREAK_MILESTONES[-1]
    return value > last and (value - last) % MILESTONE_STEP_AFTER_TABLE == 0


def _utc_date(ts: datetime) -> date:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC).date()


def update_streak(
    streak: StreakState,
    now: datetime,
    cache: SettingsCache | None = None,
) -> StreakUpdate:
    """Apply one activity at *now* to *streak*."""
    grace_allowed = GRACE_PERIODS_ALLOWED
    grace_max_gap = GRACE_MAX_GAP_DAYS
    if cache is not None:
        grace_allowed = cache.get_int("streak.grace_periods_allowed", GRACE_PERIODS_ALLOWED)
        grace_max_gap = cache.get_int("streak.grace_max_gap_days", GRACE_MAX_GAP_DAYS)

    # First ever activity in this category
    if streak.last_activity is None:
        streak.current_streak = 1
        streak.longest_streak = max(streak.longest_streak, 1)
        streak.last_activity = now
        streak.next_milestone = next_milestone(1)
        streak.grace_periods_used = 0
        return StreakUpdate(streak.streak_type, 1, impacted=True)

    days = (_utc_date(now) - _utc_date(streak.last_activity)).days

    # Same day (or a late-arriving earlier event): nothing to do
    if days <= 0:
        return StreakUpdate(streak.streak_type, streak.current_streak)

    if days == 1:
        streak.current_streak += 1
        streak.longest_streak = max(streak.longest_streak, streak.current_streak)
        streak.last_activity = now
        milestone = None
        if is_milestone(streak.current_streak):
            milestone = streak.current_streak
            logger.info(
                "Streak milestone: %s streak reached %d",
                streak.streak_type, milestone,
            )
        streak.next_milestone = next_milestone(streak.current_streak)
        return StreakUpdate(
            streak.streak_type, streak.current_streak,
            milestone=milestone, impacted=True,
        )

    if days <= grace_max_gap and streak.grace_periods_used < grace_allowed:
        streak.grace_periods_used += 1
        streak.last_activity = now
        logger.debug(
            "Grace period %d/%d used on %s streak (gap %d days)",
            streak.grace_periods_used, grace_allowed, streak.streak_type, days,
        )
        return StreakUpdate(
            streak.streak_type, streak.current_streak,
            impacted=True, grace_used=True,
        )

    streak.current_streak = 1
    streak.longest_streak = max(streak.longest_streak, 1)
    streak.grace_periods_used = 0
    streak.next_milestone = next_milestone(1)
    streak.last_activity = now
    return StreakUpdate(streak.streak_type, 1, impacted=True, reset=True)


def record_activity(
    state: EngagementState,
    event_type: EventType,
    now: datetime,
    cache: SettingsCache | None = None,
) -> list[StreakUpdate]:
    """Run every streak implicated by *event_type*.

    Event types with no streak (login, derived events) return ``[]``.
    """
    return [
        update_streak(state.streak(streak_type), now, cache)
        for streak_type in STREAKS_FOR_EVENT.get(event_type, ())
    ]
