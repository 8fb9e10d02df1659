"""Create engagement and diary vector tables

Revision ID: 3c5e0a7d9b21
Revises:
Create Date: 2026-10-18 09:12:41.118305

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '3c5e0a7d9b21'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create profiles, event journal, diary vectors, dead letters and settings."""

    # --- engagement_profiles ---
    op.create_table(
        "engagement_profiles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False, unique=True),
        sa.Column("posting_streak", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("diary_streak", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("community_streak", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("combined_streak", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("level", sa.Integer, nullable=False, server_default="1"),
        sa.Column("experience", sa.Integer, nullable=False, server_default="0"),
        sa.Column("badges", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("achievements", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("unlocked_features", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("total_sessions", sa.Integer, nullable=False, server_default="0"),
        sa.Column("average_session_duration", sa.Float, nullable=False, server_default="0"),
        sa.Column("content_created", sa.Integer, nullable=False, server_default="0"),
        sa.Column("social_impact", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("emotional_growth", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("version", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_engagement_profiles_experience", "engagement_profiles", ["experience"])
    op.create_index("ix_engagement_profiles_level", "engagement_profiles", ["level"])

    # --- engagement_events ---
    op.create_table(
        "engagement_events",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.String(64),
            sa.ForeignKey("engagement_profiles.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("event_type", sa.String(32), nullable=False),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("metadata", postgresql.JSONB, nullable=True),
        sa.Column("rewards", postgresql.JSONB, nullable=True),
        sa.Column("processed", sa.Boolean, nullable=False, server_default=sa.true()),
    )
    op.create_index(
        "ix_engagement_events_user_time", "engagement_events", ["user_id", "timestamp"],
    )
    op.create_index(
        "ix_engagement_events_type_time", "engagement_events", ["event_type", "timestamp"],
    )

    # --- diary_vectors ---
    op.create_table(
        "diary_vectors",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("entry_id", sa.String(64), nullable=False, unique=True),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("embedding", postgresql.JSONB, nullable=False),
        sa.Column("metadata", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_diary_vectors_user_created", "diary_vectors", ["user_id", "created_at"],
    )

    # --- embedding_dead_letters ---
    op.create_table(
        "embedding_dead_letters",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("operation", sa.String(16), nullable=False),
        sa.Column("entry_id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("payload", postgresql.JSONB, nullable=True),
        sa.Column("error", sa.Text, nullable=False),
        sa.Column("attempts", sa.Integer, nullable=False),
        sa.Column("failed_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_embedding_dead_letters_entry", "embedding_dead_letters", ["entry_id"],
    )

    # --- settings ---
    op.create_table(
        "settings",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value_json", sa.Text, nullable=False),
        sa.Column("category", sa.String(50), nullable=False, server_default="general"),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_settings_category", "settings", ["category"])


def downgrade() -> None:
    """Drop every table created above."""
    op.drop_index("ix_settings_category", table_name="settings")
    op.drop_table("settings")
    op.drop_index("ix_embedding_dead_letters_entry", table_name="embedding_dead_letters")
    op.drop_table("embedding_dead_letters")
    op.drop_index("ix_diary_vectors_user_created", table_name="diary_vectors")
    op.drop_table("diary_vectors")
    op.drop_index("ix_engagement_events_type_time", table_name="engagement_events")
    op.drop_index("ix_engagement_events_user_time", table_name="engagement_events")
    op.drop_table("engagement_events")
    op.drop_index("ix_engagement_profiles_level", table_name="engagement_profiles")
    op.drop_index("ix_engagement_profiles_experience", table_name="engagement_profiles")
    op.drop_table("engagement_profiles")
