"""Due-date urgency classification for obligations.

Only calendar dates matter: both the deadline and the reference day are
reduced to local dates before subtracting, so hour-of-day and offset drift
never shift an obligation across a status boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Literal

from time_utils import local_date

DueDateStatus = Literal["overdue", "due-soon", "upcoming", "no-date"]

DUE_SOON_WINDOW_DAYS = 7


@dataclass(frozen=True)
class DueDateClassification:
    """Urgency category, day distance, and display label for a deadline."""

    status: DueDateStatus
    days_until: int | None
    label: str


def days_until_due(deadline: date | datetime | None, today: date) -> int | None:
    """Return whole calendar days from today until the deadline."""
    if deadline is None:
        return None
    return (local_date(deadline) - today).days


def get_due_date_status(deadline: date | datetime | None, today: date) -> DueDateStatus:
    """Return the urgency category for a deadline."""
    return _status_for(days_until_due(deadline, today))


def format_due_status(deadline: date | datetime | None, today: date) -> str:
    """Return a human-readable due label for a deadline."""
    return _label_for(days_until_due(deadline, today))


def classify_due_date(
    deadline: date | datetime | None,
    today: date,
) -> DueDateClassification:
    """Classify a deadline relative to today."""
    days = days_until_due(deadline, today)
    return DueDateClassification(
        status=_status_for(days),
        days_until=days,
        label=_label_for(days),
    )


def _status_for(days: int | None) -> DueDateStatus:
    if days is None:
        return "no-date"
    if days < 0:
        return "overdue"
    if days <= DUE_SOON_WINDOW_DAYS:
        return "due-soon"
    return "upcoming"


def _label_for(days: int | None) -> str:
    if days is None:
        return "No due date"
    if days < 0:
        overdue_days = abs(days)
        return f"{overdue_days} {pluralize_days(overdue_days)} overdue"
    if days == 0:
        return "Due today"
    if days == 1:
        return "Due tomorrow"
    return f"Due in {days} days"


def pluralize_days(count: int) -> str:
    """Return 'day' or 'days' for a count."""
    return "day" if count == 1 else "days"


__all__ = [
    "DUE_SOON_WINDOW_DAYS",
    "DueDateClassification",
    "DueDateStatus",
    "classify_due_date",
    "days_until_due",
    "format_due_status",
    "get_due_date_status",
    "pluralize_days",
]
