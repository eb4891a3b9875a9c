"""Initial schema — developers, matches and messages.

Revision ID: 001_initial
Revises:
Create Date: 2025-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── 1. developers ───────────────────────────────────────────────
    op.create_table(
        "developers",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String, unique=True, index=True, nullable=False),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("password_hash", sa.String, nullable=False),
        sa.Column(
            "skills",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
            comment="Array of skill names",
        ),
        sa.Column(
            "tech_stacks",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "project_interests",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("experience", sa.Text, nullable=True),
        sa.Column("github_link", sa.String, nullable=True),
        sa.Column("profile_picture", sa.String, nullable=True),
        sa.Column(
            "is_active",
            sa.Boolean,
            server_default="true",
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )

    # ── 2. matches (one row per unordered developer pair) ───────────
    op.create_table(
        "matches",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "participant_low_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("developers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "participant_high_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("developers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "action_low",
            sa.String,
            server_default="none",
            nullable=False,
            comment="none / liked / disliked",
        ),
        sa.Column(
            "action_high",
            sa.String,
            server_default="none",
            nullable=False,
            comment="none / liked / disliked",
        ),
        sa.Column("status", sa.String, server_default="none", nullable=False),
        sa.Column("matched_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("version", sa.Integer, nullable=False),
        sa.UniqueConstraint(
            "participant_low_id", "participant_high_id", name="uq_match_pair"
        ),
        sa.CheckConstraint(
            "participant_low_id < participant_high_id", name="ck_match_pair_order"
        ),
    )
    op.create_index(
        "ix_matches_participant_high_id", "matches", ["participant_high_id"]
    )

    # ── 3. messages ─────────────────────────────────────────────────
    op.create_table(
        "messages",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "match_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("matches.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "sender_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("developers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "read_by",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
            comment="Array of developer ids",
        ),
    )
    op.create_index(
        "ix_messages_match_id_timestamp", "messages", ["match_id", "timestamp"]
    )


def downgrade() -> None:
    # Drop in reverse order (children / dependents first).
    op.drop_index("ix_messages_match_id_timestamp", table_name="messages")
    op.drop_table("messages")

    op.drop_index("ix_matches_participant_high_id", table_name="matches")
    op.drop_table("matches")

    op.drop_table("developers")
