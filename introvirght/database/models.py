"""
introvirght.database.models — SQLAlchemy 2.0 Data Models
=========================================================

Tables:
- engagement_profiles    — One gamification profile per user (lazy upsert)
- engagement_events      — Append-only journal of processed activity
- diary_vectors          — One embedding per diary entry (unique entry_id)
- embedding_dead_letters — Background embedding jobs that exhausted retries
- settings               — Admin-configurable gameplay tuning

Users, posts, follows and diary entries are owned by the surrounding
application; this schema only references them by string id.
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Introvirght ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class EventType(enum.StrEnum):
    """Every event type accepted by the engagement pipeline."""
    POST_CREATE = "post_create"
    DIARY_ENTRY = "diary_entry"
    LIKE = "like"
    COMMENT = "comment"
    SHARE = "share"
    LOGIN = "login"
    ACHIEVEMENT = "achievement"
    STREAK_MILESTONE = "streak_milestone"
    LEVEL_UP = "level_up"
    BADGE_UNLOCK = "badge_unlock"


class StreakType(enum.StrEnum):
    POSTING = "posting"
    DIARY = "diary"
    ENGAGEMENT = "engagement"
    COMBINED = "combined"


class BadgeCategory(enum.StrEnum):
    STREAK = "streak"
    ACHIEVEMENT = "achievement"
    SOCIAL = "social"
    GROWTH = "growth"


class Rarity(enum.StrEnum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


# ---------------------------------------------------------------------------
# EngagementProfile — one row per user
# ---------------------------------------------------------------------------
class EngagementProfile(Base):
    """Gamification state for a single user.

    Streaks, badges and achievements are stored as JSONB documents and are
    always replaced wholesale by the service layer (never mutated in place).
    ``version`` is the optimistic-concurrency counter: a stale write raises
    :class:`sqlalchemy.orm.exc.StaleDataError`.
    """
    __tablename__ = "engagement_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    posting_streak: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    diary_streak: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    community_streak: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    combined_streak: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    experience: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    badges: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    achievements: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    unlocked_features: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)

    total_sessions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_session_duration: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    content_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    social_impact: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    emotional_growth: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_engagement_profiles_experience", "experience"),
        Index("ix_engagement_profiles_level", "level"),
    )

    def __repr__(self) -> str:
        return (
            f"<EngagementProfile user={self.user_id!r} "
            f"lvl={self.level} xp={self.experience}>"
        )


# ---------------------------------------------------------------------------
# EngagementEventRecord — append-only event journal
# ---------------------------------------------------------------------------
class EngagementEventRecord(Base):
    """Immutable audit row for every processed activity.

    Derived events (level_up, streak_milestone, badge_unlock, achievement)
    are journaled too, with zero experience of their own.
    """
    __tablename__ = "engagement_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("engagement_profiles.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    event_type: Mapped[str] = mapped_column(String(32), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSONB, nullable=True)
    rewards: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("ix_engagement_events_user_time", "user_id", "timestamp"),
        Index("ix_engagement_events_type_time", "event_type", "timestamp"),
    )

    def __repr__(self) -> str:
        return (
            f"<EngagementEventRecord id={self.id} user={self.user_id!r} "
            f"type={self.event_type}>"
        )


# ---------------------------------------------------------------------------
# DiaryVector — one embedding per diary entry
# ---------------------------------------------------------------------------
class DiaryVector(Base):
    """Embedding of a diary entry's text, owned 1:1 by the entry.

    ``content`` is denormalised so recall can run without the diary table.
    ``embedding`` is a unit-normalised float list of fixed dimensionality.
    """
    __tablename__ = "diary_vectors"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    entry_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    embedding: Mapped[list] = mapped_column(JSONB, nullable=False)
    metadata_: Mapped[dict] = mapped_column("metadata", JSONB, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("ix_diary_vectors_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<DiaryVector id={self.id} entry={self.entry_id!r} user={self.user_id!r}>"


# ---------------------------------------------------------------------------
# EmbeddingDeadLetter — background jobs that exhausted their retries
# ---------------------------------------------------------------------------
class EmbeddingDeadLetter(Base):
    __tablename__ = "embedding_dead_letters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    operation: Mapped[str] = mapped_column(String(16), nullable=False)
    entry_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payload: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    error: Mapped[str] = mapped_column(Text, nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False)
    failed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("ix_embedding_dead_letters_entry", "entry_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<EmbeddingDeadLetter id={self.id} op={self.operation} "
            f"entry={self.entry_id!r}>"
        )


# ---------------------------------------------------------------------------
# Setting — admin-configurable key-value store
# ---------------------------------------------------------------------------
class Setting(Base):
    """Key-value configuration store.

    Every gameplay tuning knob (XP per event, bonuses, grace periods) lives
    here so it can be adjusted without redeploying.  Values are stored as
    JSON strings; typed accessors live in
    :class:`~introvirght.engine.cache.SettingsCache`.
    """
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value_json: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="general")
    description: Mapped[str | None] = mapped_column(Text, default=None)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_settings_category", "category"),
    )

    def __repr__(self) -> str:
        return f"<Setting key={self.key!r} category={self.category!r}>"
