"""Data models for the life-admin reminder engine."""

from datetime import datetime, timezone
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base

# SQLAlchemy base
Base = declarative_base()

RISK_LEVELS = ("low", "medium", "high")
OBLIGATION_STATUSES = ("not-started", "in-progress", "completed")
REMINDER_TYPES = ("pre_due", "day_of", "overdue")
NUDGE_TONES = ("gentle", "firm", "urgent")

RiskLevelEnum = Enum(*RISK_LEVELS, name="risk_level", native_enum=False)
ObligationStatusEnum = Enum(*OBLIGATION_STATUSES, name="obligation_status", native_enum=False)
ReminderTypeEnum = Enum(*REMINDER_TYPES, name="reminder_type", native_enum=False)
ReminderChannelEnum = Enum("in_app", name="reminder_channel", native_enum=False)
NudgeToneEnum = Enum(*NUDGE_TONES, name="nudge_tone", native_enum=False)


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Obligation(Base):
    """A tracked responsibility extracted from a user's document."""

    __tablename__ = "obligations"

    obligation_id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(200), nullable=False, index=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    source_document = Column(Text, nullable=True)
    deadline = Column(DateTime(timezone=True), nullable=True)
    risk_level = Column(RiskLevelEnum, nullable=False, default="medium")
    status = Column(ObligationStatusEnum, nullable=False, default="not-started")
    consequence = Column(Text, nullable=True)
    steps = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class Reminder(Base):
    """A scheduled instant at which an obligation may produce a nudge."""

    __tablename__ = "reminders"
    __table_args__ = (Index("ix_reminders_pending", "sent", "reminder_time"),)

    reminder_id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(200), nullable=False, index=True)
    obligation_id = Column(
        String(36),
        ForeignKey("obligations.obligation_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    reminder_time = Column(DateTime(timezone=True), nullable=False)
    type = Column(ReminderTypeEnum, nullable=False)
    channel = Column(ReminderChannelEnum, nullable=False, default="in_app")
    sent = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class Nudge(Base):
    """A user-facing message generated when a reminder fires.

    ``obligation_id`` is not a foreign key: nudge history
    outlives the obligation it was about.
    """

    __tablename__ = "nudges"
    __table_args__ = (Index("ix_nudges_user_created", "user_id", "created_at"),)

    nudge_id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(200), nullable=False)
    obligation_id = Column(String(36), nullable=False, index=True)
    message = Column(Text, nullable=False)
    tone = Column(NudgeToneEnum, nullable=False, default="gentle")
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
