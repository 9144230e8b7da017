"""Create obligations, reminders, and nudges tables.

Revision ID: 0001_initial
Revises:
Create Date: 2026-02-01 00:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create reminder engine tables with constraints and indexes."""
    op.create_table(
        "obligations",
        sa.Column("obligation_id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=200), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("source_document", sa.Text(), nullable=True),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "risk_level",
            sa.Enum("low", "medium", "high", name="risk_level", native_enum=False),
            nullable=False,
            server_default="medium",
        ),
        sa.Column(
            "status",
            sa.Enum(
                "not-started",
                "in-progress",
                "completed",
                name="obligation_status",
                native_enum=False,
            ),
            nullable=False,
            server_default="not-started",
        ),
        sa.Column("consequence", sa.Text(), nullable=True),
        sa.Column("steps", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_obligations_user_id", "obligations", ["user_id"])

    op.create_table(
        "reminders",
        sa.Column("reminder_id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=200), nullable=False),
        sa.Column(
            "obligation_id",
            sa.String(length=36),
            sa.ForeignKey("obligations.obligation_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("reminder_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "type",
            sa.Enum("pre_due", "day_of", "overdue", name="reminder_type", native_enum=False),
            nullable=False,
        ),
        sa.Column(
            "channel",
            sa.Enum("in_app", name="reminder_channel", native_enum=False),
            nullable=False,
            server_default="in_app",
        ),
        sa.Column("sent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_reminders_user_id", "reminders", ["user_id"])
    op.create_index("ix_reminders_obligation_id", "reminders", ["obligation_id"])
    op.create_index("ix_reminders_pending", "reminders", ["sent", "reminder_time"])

    op.create_table(
        "nudges",
        sa.Column("nudge_id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=200), nullable=False),
        sa.Column("obligation_id", sa.String(length=36), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column(
            "tone",
            sa.Enum("gentle", "firm", "urgent", name="nudge_tone", native_enum=False),
            nullable=False,
            server_default="gentle",
        ),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_nudges_obligation_id", "nudges", ["obligation_id"])
    op.create_index("ix_nudges_user_created", "nudges", ["user_id", "created_at"])


def downgrade() -> None:
    """Drop reminder engine tables and indexes."""
    op.drop_index("ix_nudges_user_created", table_name="nudges")
    op.drop_index("ix_nudges_obligation_id", table_name="nudges")
    op.drop_table("nudges")
    op.drop_index("ix_reminders_pending", table_name="reminders")
    op.drop_index("ix_reminders_obligation_id", table_name="reminders")
    op.drop_index("ix_reminders_user_id", table_name="reminders")
    op.drop_table("reminders")
    op.drop_index("ix_obligations_user_id", table_name="obligations")
    op.drop_table("obligations")
