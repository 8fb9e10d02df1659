"""
introvirght.services.engagement_service — Engagement Orchestrator
==================================================================

Receives a raw activity event, fans it out to the streak tracker, the
leveling engine and the badge/achievement evaluator, and persists the
updated profile together with its event-log rows in one transaction.

Concurrency: events for one user are serialised in-process by a per-user
lock, and across processes by the ``version`` column on
``engagement_profiles`` (a stale write raises StaleDataError and the whole
read-modify-write is retried).
"""

from __future__ import annotations

import copy
import logging
import threading
import weakref
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from introvirght.constants import EVENT_WINDOW
from introvirght.database.models import (
    EngagementEventRecord,
    EngagementProfile,
    EventType,
    StreakType,
)
from introvirght.engine.achievements import update_achievement_progress
from introvirght.engine.badges import badge_progress, check_and_award_badges
from introvirght.engine.events import ActivityEvent, RecentEvent, parse_event_type
from introvirght.engine.leveling import level_for, level_title, unlocks_between
from introvirght.engine.reward import (
    RewardResult,
    achievement_celebration,
    apply_counters,
    badge_celebration,
    calculate_experience,
    level_up_celebration,
    streak_celebrations,
)
from introvirght.engine.state import (
    AchievementProgress,
    Badge,
    EmotionalGrowth,
    EngagementState,
    SocialImpact,
    StreakState,
)
from introvirght.engine.streaks import record_activity
from introvirght.errors import ConcurrentModification, ProfileNotFound

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from introvirght.engine.cache import SettingsCache

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3


# ---------------------------------------------------------------------------
# Per-user lock registry
# ---------------------------------------------------------------------------
class UserLockRegistry:
    """Hands out one :class:`threading.Lock` per user id.  Thread-safe.

    Locks are held weakly: once no caller references a user's lock it is
    dropped, so the registry only tracks users with work in flight.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = (
            weakref.WeakValueDictionary()
        )

    def lock_for(self, user_id: str) -> threading.Lock:
        with self._lock:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = self._locks[user_id] = threading.Lock()
            return lock

    def __len__(self) -> int:
        with self._lock:
            return len(self._locks)


# ---------------------------------------------------------------------------
# Row ↔ state mapping
# ---------------------------------------------------------------------------
def load_state(profile: EngagementProfile) -> EngagementState:
    """Build an :class:`EngagementState` from a profile row."""
    return EngagementState(
        user_id=profile.user_id,
        posting=StreakState.from_dict(profile.posting_streak, StreakType.POSTING),
        diary=StreakState.from_dict(profile.diary_streak, StreakType.DIARY),
        community=StreakState.from_dict(profile.community_streak, StreakType.ENGAGEMENT),
        combined=StreakState.from_dict(profile.combined_streak, StreakType.COMBINED),
        level=profile.level or 1,
        experience=profile.experience or 0,
        badges=[Badge.from_dict(b) for b in (profile.badges or [])],
        achievements={
            key: AchievementProgress.from_dict(value)
            for key, value in (profile.achievements or {}).items()
        },
        unlocked_features=list(profile.unlocked_features or []),
        total_sessions=profile.total_sessions or 0,
        average_session_duration=profile.average_session_duration or 0.0,
        content_created=profile.content_created or 0,
        social_impact=SocialImpact.from_dict(profile.social_impact),
        emotional_growth=EmotionalGrowth.from_dict(profile.emotional_growth),
    )


def store_state(profile: EngagementProfile, state: EngagementState) -> None:
    """Write *state* back onto *profile*.

    JSONB columns are reassigned wholesale so SQLAlchemy sees the change.
    """
    profile.posting_streak = state.posting.to_dict()
    profile.diary_streak = state.diary.to_dict()
    profile.community_streak = state.community.to_dict()
    profile.combined_streak = state.combined.to_dict()
    profile.level = state.level
    profile.experience = state.experience
    profile.badges = [b.to_dict() for b in state.badges]
    profile.achievements = {k: v.to_dict() for k, v in state.achievements.items()}
    profile.unlocked_features = list(state.unlocked_features)
    profile.total_sessions = state.total_sessions
    profile.average_session_duration = state.average_session_duration
    profile.content_created = state.content_created
    profile.social_impact = state.social_impact.to_dict()
    profile.emotional_growth = state.emotional_growth.to_dict()


def new_profile(user_id: str) -> EngagementProfile:
    profile = EngagementProfile(user_id=user_id)
    store_state(profile, EngagementState(user_id=user_id))
    return profile


def get_or_create_profile(session: Session, user_id: str) -> EngagementProfile:
    """Fetch or insert the profile row for *user_id*."""
    profile = session.scalar(
        select(EngagementProfile).where(EngagementProfile.user_id == user_id)
    )
    if profile is not None:
        return profile

    profile = new_profile(user_id)
    try:
        with session.begin_nested():   # SAVEPOINT
            session.add(profile)
            session.flush()
    except IntegrityError:
        # Another writer created it first; use theirs.
        profile = session.scalar(
            select(EngagementProfile).where(EngagementProfile.user_id == user_id)
        )
        if profile is None:
            raise
    else:
        logger.info("Engagement profile created for user %s", user_id)
    return profile


def load_recent_events(session: Session, user_id: str, limit: int) -> list[RecentEvent]:
    """The newest *limit* journal rows for *user_id*, newest first."""
    rows = session.scalars(
        select(EngagementEventRecord)
        .where(EngagementEventRecord.user_id == user_id)
        .order_by(EngagementEventRecord.timestamp.desc(), EngagementEventRecord.id.desc())
        .limit(limit)
    ).all()
    return [RecentEvent(r.event_type, r.timestamp, r.metadata_ or {}) for r in rows]


# ---------------------------------------------------------------------------
# The pipeline (pure, operates on EngagementState)
# ---------------------------------------------------------------------------
def apply_event(
    state: EngagementState,
    event: ActivityEvent,
    recent_events: list[RecentEvent],
    cache: SettingsCache | None = None,
) -> RewardResult:
    """Run one event through the pipeline, mutating *state*.

    Steps:
      1. Base XP with bonuses
      2. Streaks (milestones)
      3. Aggregate counters
      4. Level
      5. Achievements, then badges — failure here is isolated: their
         partial effects are reverted and the event keeps its XP/streaks
      6. One level-up celebration spanning every crossed level
    """
    now = event.timestamp
    result = RewardResult(old_level=state.level)
    window = [RecentEvent.from_activity(event), *recent_events][:EVENT_WINDOW]

    # 1–4. Core mutation
    xp = calculate_experience(event, cache)
    updates = record_activity(state, event.event_type, now, cache)
    state.experience += xp
    result.experience = xp
    result.streak_impact = any(u.impacted for u in updates)
    result.milestones = [(u.streak_type.value, u.milestone) for u in updates if u.milestone]
    apply_counters(state, event, cache)
    state.level = max(state.level, level_for(state.experience))

    # 5. Achievements & badges
    saved = (
        copy.deepcopy(state.achievements),
        list(state.badges),
        list(state.unlocked_features),
        state.experience,
        state.level,
    )
    achievement_celebrations = []
    badge_celebrations = []
    try:
        for record in update_achievement_progress(state, window, now):
            state.experience += record.rewards.experience
            result.experience += record.rewards.experience
            result.achievements.append(record.id)
            result.unlocks.extend(state.unlock_features(record.rewards.unlocks))
            achievement_celebrations.append(achievement_celebration(record))
        state.level = max(state.level, level_for(state.experience))

        for badge in check_and_award_badges(state, window, now):
            result.badges.append(badge.id)
            badge_celebrations.append(badge_celebration(badge))
    except Exception:
        logger.exception(
            "Badge/achievement evaluation failed for user %s; no new awards this cycle",
            state.user_id,
        )
        (state.achievements, state.badges, state.unlocked_features,
         state.experience, state.level) = saved
        result.experience = xp
        result.achievements = []
        result.badges = []
        result.unlocks = []
        achievement_celebrations = []
        badge_celebrations = []

    # 6. Level-up
    result.new_level = state.level
    if result.leveled_up:
        level_unlocks = state.unlock_features(unlocks_between(result.old_level, state.level))
        result.unlocks = level_unlocks + result.unlocks
        result.celebrations.append(level_up_celebration(result.old_level, state.level))
        logger.info(
            "Level up: user %s %d → %d (%s)",
            state.user_id, result.old_level, state.level, level_title(state.level),
        )

    result.celebrations.extend(streak_celebrations(updates))
    result.celebrations.extend(achievement_celebrations)
    result.celebrations.extend(badge_celebrations)
    return result


def _journal_rows(event: ActivityEvent, result: RewardResult) -> list[EngagementEventRecord]:
    """Primary event row plus the derived rows (zero XP, processed)."""
    quality = event.metadata.get("quality_score", 1.0)
    rows = [EngagementEventRecord(
        user_id=event.user_id,
        event_type=event.event_type.value,
        timestamp=event.timestamp,
        metadata_={
            **event.metadata,
            "experience_gained": result.experience,
            "streak_impact": result.streak_impact,
            "quality_score": quality,
        },
        rewards=result.rewards_dict(),
        processed=True,
    )]

    def derived(event_type: EventType, metadata: dict) -> EngagementEventRecord:
        return EngagementEventRecord(
            user_id=event.user_id,
            event_type=event_type.value,
            timestamp=event.timestamp,
            metadata_={**metadata, "experience_gained": 0, "source_event": event.event_type.value},
            rewards={"experience": 0, "badges": [], "unlocks": [], "celebrations": []},
            processed=True,
        )

    for streak_type, milestone in result.milestones:
        rows.append(derived(
            EventType.STREAK_MILESTONE, {"streak_type": streak_type, "milestone": milestone},
        ))
    if result.leveled_up:
        rows.append(derived(
            EventType.LEVEL_UP,
            {"old_level": result.old_level, "new_level": result.new_level},
        ))
    for achievement_id in result.achievements:
        rows.append(derived(EventType.ACHIEVEMENT, {"achievement_id": achievement_id}))
    for badge_id in result.badges:
        rows.append(derived(EventType.BADGE_UNLOCK, {"badge_id": badge_id}))
    return rows


# ---------------------------------------------------------------------------
# EngagementService
# ---------------------------------------------------------------------------
class EngagementService:
    """Transactional façade over the engagement pipeline."""

    def __init__(
        self,
        engine: Engine,
        cache: SettingsCache | None = None,
        *,
        locks: UserLockRegistry | None = None,
        max_attempts: int = MAX_ATTEMPTS,
    ) -> None:
        self._engine = engine
        self._cache = cache
        self._locks = locks if locks is not None else UserLockRegistry()
        self._max_attempts = max_attempts

    @property
    def event_window(self) -> int:
        if self._cache is None:
            return EVENT_WINDOW
        return max(1, min(self._cache.get_int("engagement.event_window", EVENT_WINDOW), EVENT_WINDOW))

    # -------------------------------------------------------------------
    # Write path
    # -------------------------------------------------------------------
    def process_event(
        self,
        user_id: str,
        event_type: EventType | str,
        metadata: dict | None = None,
        *,
        timestamp: datetime | None = None,
    ) -> RewardResult:
        """Process one activity for *user_id*.

        Raises InvalidEventType before any state is read, and
        ConcurrentModification when every attempt lost a write race.
        """
        kind = parse_event_type(event_type)
        event = ActivityEvent(
            user_id=user_id,
            event_type=kind,
            metadata=dict(metadata or {}),
            timestamp=timestamp or datetime.now(UTC),
        )

        with self._locks.lock_for(user_id):
            for attempt in range(1, self._max_attempts + 1):
                try:
                    return self._process_once(event)
                except (StaleDataError, IntegrityError) as exc:
                    logger.warning(
                        "Concurrent update of profile %s (attempt %d/%d): %s",
                        user_id, attempt, self._max_attempts, exc.__class__.__name__,
                    )
        raise ConcurrentModification(user_id, self._max_attempts)

    def _process_once(self, event: ActivityEvent) -> RewardResult:
        with Session(self._engine) as session:
            profile = get_or_create_profile(session, event.user_id)
            state = load_state(profile)
            recent = load_recent_events(session, event.user_id, self.event_window - 1)

            result = apply_event(state, event, recent, self._cache)

            store_state(profile, state)
            session.add_all(_journal_rows(event, result))
            session.commit()

        logger.debug(
            "Processed %s for %s: +%d XP, %d celebrations",
            event.event_type, event.user_id, result.experience, len(result.celebrations),
        )
        return result

    # -------------------------------------------------------------------
    # Read path
    # -------------------------------------------------------------------
    def get_profile(self, user_id: str) -> EngagementState:
        """Raises ProfileNotFound; read paths never create profiles."""
        with Session(self._engine) as session:
            profile = session.scalar(
                select(EngagementProfile).where(EngagementProfile.user_id == user_id)
            )
            if profile is None:
                raise ProfileNotFound(user_id)
            return load_state(profile)

    def get_or_create_profile(self, user_id: str) -> EngagementState:
        with Session(self._engine) as session:
            profile = get_or_create_profile(session, user_id)
            state = load_state(profile)
            session.commit()
            return state

    def get_recent_events(self, user_id: str, limit: int = 50) -> list[dict]:
        """Newest first; *limit* is capped at the event window."""
        limit = max(1, min(limit, EVENT_WINDOW))
        with Session(self._engine) as session:
            rows = session.scalars(
                select(EngagementEventRecord)
                .where(EngagementEventRecord.user_id == user_id)
                .order_by(EngagementEventRecord.timestamp.desc(), EngagementEventRecord.id.desc())
                .limit(limit)
            ).all()
            return [
                {
                    "id": r.id,
                    "event_type": r.event_type,
                    "timestamp": r.timestamp,
                    "metadata": r.metadata_ or {},
                    "rewards": r.rewards or {},
                    "processed": r.processed,
                }
                for r in rows
            ]

    def get_leaderboard(self, limit: int = 10) -> list[dict]:
        with Session(self._engine) as session:
            rows = session.scalars(
                select(EngagementProfile)
                .order_by(EngagementProfile.experience.desc(), EngagementProfile.id)
                .limit(limit)
            ).all()
            return [
                {
                    "rank": rank,
                    "user_id": p.user_id,
                    "level": p.level,
                    "title": level_title(p.level),
                    "experience": p.experience,
                    "badge_count": len(p.badges or []),
                }
                for rank, p in enumerate(rows, start=1)
            ]

    def get_badge_progress(self, user_id: str) -> dict:
        """Earned badges plus progress toward the rest.

        Users with no profile yet get empty lists.
        """
        with Session(self._engine) as session:
            profile = session.scalar(
                select(EngagementProfile).where(EngagementProfile.user_id == user_id)
            )
            if profile is None:
                return {"earned": [], "available": []}
            state = load_state(profile)
            recent = load_recent_events(session, user_id, self.event_window)
        return badge_progress(state, recent)
