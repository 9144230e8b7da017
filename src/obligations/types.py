"""Shared value types for obligation, reminder, and nudge processing."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from models import Obligation, Reminder
from time_utils import from_storage

RiskLevel = Literal["low", "medium", "high"]
ObligationStatus = Literal["not-started", "in-progress", "completed"]
ReminderType = Literal["pre_due", "day_of", "overdue"]
NudgeTone = Literal["gentle", "firm", "urgent"]


@dataclass(frozen=True)
class ObligationSnapshot:
    """Read-only view of an obligation used by the pure aggregators."""

    obligation_id: str
    user_id: str
    title: str
    deadline: datetime | None
    risk_level: RiskLevel
    status: ObligationStatus
    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        """Return True while the obligation still needs attention."""
        return self.status != "completed"

    @classmethod
    def from_record(cls, record: Obligation) -> "ObligationSnapshot":
        """Build a snapshot from a persisted obligation row."""
        return cls(
            obligation_id=record.obligation_id,
            user_id=record.user_id,
            title=record.title,
            deadline=from_storage(record.deadline),
            risk_level=record.risk_level,
            status=record.status,
            updated_at=from_storage(record.updated_at),
        )


@dataclass(frozen=True)
class ReminderSnapshot:
    """Read-only view of a pending reminder row."""

    reminder_id: str
    user_id: str
    obligation_id: str
    reminder_time: datetime
    type: ReminderType

    @classmethod
    def from_record(cls, record: Reminder) -> "ReminderSnapshot":
        """Build a snapshot from a persisted reminder row."""
        return cls(
            reminder_id=record.reminder_id,
            user_id=record.user_id,
            obligation_id=record.obligation_id,
            reminder_time=from_storage(record.reminder_time),
            type=record.type,
        )


__all__ = [
    "NudgeTone",
    "ObligationSnapshot",
    "ObligationStatus",
    "ReminderSnapshot",
    "ReminderType",
    "RiskLevel",
]
