"""
tests/test_engagement_service.py — Engagement Orchestrator Integration Tests
=============================================================================
Service-level tests for EngagementService.process_event(): lazy profile
creation, streaks over several days, level-ups, one-shot achievement XP,
isolation of badge failures, concurrency retries and the read models.

Uses an in-memory SQLite database via the shared conftest fixtures.
"""

from __future__ import annotations

import gc
import threading
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from introvirght.database.models import (
    EngagementEventRecord,
    EngagementProfile,
    EventType,
)
from introvirght.errors import ConcurrentModification, InvalidEventType, ProfileNotFound
from introvirght.services import engagement_service
from introvirght.services.engagement_service import (
    EngagementService,
    UserLockRegistry,
    get_or_create_profile,
)

DAY0 = datetime(2026, 3, 1, 10, 0, tzinfo=UTC)


@pytest.fixture
def engine(db_engine):
    """Re-use the shared conftest db_engine (SQLite, StaticPool)."""
    return db_engine


@pytest.fixture
def service(engine, mock_cache):
    return EngagementService(engine, mock_cache)


def _seed_profile(engine, user_id: str, **fields) -> None:
    with Session(engine) as session:
        profile = get_or_create_profile(session, user_id)
        for key, value in fields.items():
            setattr(profile, key, value)
        session.commit()


def _rows(engine, user_id: str) -> list[EngagementEventRecord]:
    with Session(engine) as session:
        return list(session.scalars(
            select(EngagementEventRecord)
            .where(EngagementEventRecord.user_id == user_id)
            .order_by(EngagementEventRecord.id)
        ).all())


class TestProcessEvent:
    def test_first_event_creates_profile(self, service, engine):
        result = service.process_event("u1", "post_create", {}, timestamp=DAY0)
        assert result.experience == 10

        state = service.get_profile("u1")
        assert state.experience == 10
        assert state.posting.current_streak == 1
        assert state.combined.current_streak == 1
        assert state.content_created == 1
        assert "basic_themes" in state.unlocked_features

    def test_primary_event_row_written(self, service, engine):
        service.process_event("u1", EventType.POST_CREATE, {"quality_score": 1.6}, timestamp=DAY0)
        rows = _rows(engine, "u1")
        assert rows[0].event_type == "post_create"
        assert rows[0].processed is True
        assert rows[0].metadata_["experience_gained"] == 15
        assert rows[0].metadata_["streak_impact"] is True
        assert rows[0].metadata_["quality_score"] == 1.6
        assert rows[0].rewards["experience"] == 15

    def test_seven_consecutive_days(self, service):
        results = [
            service.process_event("u1", "post_create", timestamp=DAY0 + timedelta(days=d))
            for d in range(7)
        ]
        state = service.get_profile("u1")
        assert state.posting.current_streak == 7
        assert state.combined.current_streak == 7

        day7 = [c for c in results[-1].celebrations if c.type == "streak_milestone"]
        assert "7 Day Posting Streak!" in [c.title for c in day7]
        assert all(
            c.type != "streak_milestone" for r in results[:-1] for c in r.celebrations
        )
        assert "first_week_streak" in results[-1].badges

    def test_same_day_events_do_not_inflate_streak(self, service):
        service.process_event("u1", "post_create", timestamp=DAY0)
        result = service.process_event("u1", "post_create", timestamp=DAY0 + timedelta(hours=2))
        assert result.streak_impact is False
        assert service.get_profile("u1").posting.current_streak == 1

    def test_level_up_from_95_xp(self, service, engine):
        _seed_profile(engine, "u1", experience=95)

        result = service.process_event(
            "u1", "diary_entry", {"emotional_context": {"mood": "hopeful"}}, timestamp=DAY0,
        )

        state = service.get_profile("u1")
        assert state.experience == 115
        assert state.level == 2
        assert result.old_level == 1
        assert result.new_level == 2
        level_ups = [c for c in result.celebrations if c.type == "level_up"]
        assert len(level_ups) == 1
        assert "custom_themes" in state.unlocked_features
        assert "custom_themes" in result.unlocks

        level_rows = [r for r in _rows(engine, "u1") if r.event_type == "level_up"]
        assert len(level_rows) == 1
        assert level_rows[0].metadata_["experience_gained"] == 0

    def test_multi_level_jump_single_celebration(self, service, engine):
        _seed_profile(engine, "u1", experience=295)
        result = service.process_event("u1", "diary_entry", {"emotional_context": "x"}, timestamp=DAY0)
        assert result.new_level == 3
        assert len([c for c in result.celebrations if c.type == "level_up"]) == 1
        state = service.get_profile("u1")
        assert {"custom_themes", "advanced_diary_templates"} <= set(state.unlocked_features)

    def test_achievement_xp_credited_once(self, service, engine):
        yesterday = DAY0 - timedelta(days=1)
        _seed_profile(engine, "u1", diary_streak={
            "streak_type": "diary",
            "current_streak": 29,
            "longest_streak": 29,
            "last_activity": yesterday.isoformat(),
            "next_milestone": 30,
            "grace_periods_used": 0,
        })

        first = service.process_event("u1", "diary_entry", timestamp=DAY0)
        assert "daily_writer" in first.achievements
        assert first.experience == 15 + 100
        assert "daily_writer_badge" in first.badges
        assert "advanced_diary_templates" in service.get_profile("u1").unlocked_features

        second = service.process_event("u1", "diary_entry", timestamp=DAY0 + timedelta(days=1))
        assert second.achievements == []
        assert second.experience == 15

        state = service.get_profile("u1")
        assert state.experience == 15 + 100 + 15
        assert state.achievements["daily_writer"].completed is True

    def test_well_rounded_from_recent_events(self, service):
        for kind in ("post_create", "like", "comment"):
            service.process_event("u1", kind, timestamp=DAY0)
        result = service.process_event("u1", "diary_entry", timestamp=DAY0)
        assert "well_rounded" in result.achievements

    def test_badge_failure_keeps_xp_and_streaks(self, service, engine):
        with patch.object(
            engagement_service, "check_and_award_badges", side_effect=RuntimeError("boom"),
        ):
            result = service.process_event("u1", "post_create", timestamp=DAY0)

        assert result.experience == 10
        assert result.badges == []
        state = service.get_profile("u1")
        assert state.experience == 10
        assert state.posting.current_streak == 1
        assert state.badges == []
        assert state.achievements == {}

    def test_invalid_event_type_touches_nothing(self, service, engine):
        with pytest.raises(InvalidEventType):
            service.process_event("u1", "teleport")
        with Session(engine) as session:
            assert session.scalar(select(EngagementProfile)) is None

    def test_experience_never_decreases(self, service):
        seen = []
        for d, kind in enumerate(["post_create", "like", "login", "diary_entry", "share"] * 3):
            service.process_event("u1", kind, timestamp=DAY0 + timedelta(days=d))
            seen.append(service.get_profile("u1").experience)
        assert seen == sorted(seen)


class TestConcurrency:
    def test_retry_then_succeed(self, service):
        real = service._process_once
        calls = {"n": 0}

        def flaky(event):
            calls["n"] += 1
            if calls["n"] == 1:
                raise StaleDataError("stale")
            return real(event)

        with patch.object(service, "_process_once", side_effect=flaky):
            result = service.process_event("u1", "like", timestamp=DAY0)
        assert result.experience == 2
        assert calls["n"] == 2

    def test_gives_up_after_max_attempts(self, service):
        with patch.object(service, "_process_once", side_effect=StaleDataError("stale")) as m:
            with pytest.raises(ConcurrentModification) as exc_info:
                service.process_event("u1", "like")
        assert m.call_count == 3
        assert exc_info.value.code == "CONCURRENT_MODIFICATION"

    def test_parallel_events_same_user_all_counted(self, service):
        threads = [
            threading.Thread(target=service.process_event, args=("u1", "like"))
            for _ in range(8)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert service.get_profile("u1").social_impact.positive_interactions == 8

    def test_lock_registry_one_lock_per_user(self):
        registry = UserLockRegistry()
        lock_a = registry.lock_for("a")
        lock_b = registry.lock_for("b")
        assert registry.lock_for("a") is lock_a
        assert lock_a is not lock_b
        assert len(registry) == 2

        del lock_a
        gc.collect()
        assert len(registry) == 1

        del lock_b
        gc.collect()
        assert len(registry) == 0

    def test_idle_users_locks_released_after_processing(self, service):
        for user_id in ("u1", "u2", "u3"):
            service.process_event(user_id, EventType.LIKE)
        gc.collect()
        assert len(service._locks) == 0


class TestReadModels:
    def test_get_profile_missing(self, service):
        with pytest.raises(ProfileNotFound) as exc_info:
            service.get_profile("ghost")
        assert exc_info.value.to_dict()["code"] == "PROFILE_NOT_FOUND"

    def test_get_or_create_profile(self, service):
        state = service.get_or_create_profile("new")
        assert state.level == 1
        assert service.get_profile("new").user_id == "new"

    def test_recent_events_newest_first_and_capped(self, service):
        for d in range(3):
            service.process_event("u1", "login", timestamp=DAY0 + timedelta(days=d))
        events = service.get_recent_events("u1", limit=2)
        assert len(events) == 2
        assert events[0]["timestamp"] > events[1]["timestamp"]
        assert len(service.get_recent_events("u1", limit=10_000)) == 3

    def test_leaderboard_by_experience(self, service, engine):
        _seed_profile(engine, "low", experience=10)
        _seed_profile(engine, "high", experience=900)
        _seed_profile(engine, "mid", experience=300)
        board = service.get_leaderboard(limit=2)
        assert [row["user_id"] for row in board] == ["high", "mid"]
        assert board[0]["rank"] == 1

    def test_badge_progress_unknown_user(self, service):
        assert service.get_badge_progress("ghost") == {"earned": [], "available": []}

    def test_badge_progress_known_user(self, service):
        service.process_event("u1", "post_create", timestamp=DAY0)
        progress = service.get_badge_progress("u1")
        first_week = next(a for a in progress["available"] if a["badge_id"] == "first_week_streak")
        assert first_week["progress"] == "1/7 days"
        assert first_week["can_earn"] is False
