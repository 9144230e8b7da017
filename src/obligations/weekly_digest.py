"""Weekly digest aggregation over a user's obligations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
import logging
from typing import Any, Callable, Iterable

from sqlalchemy.orm import Session

from obligations.repository import ObligationRepository
from obligations.types import ObligationSnapshot
from time_utils import at_local_time, to_local, to_utc

logger = logging.getLogger(__name__)

UPCOMING_LIMIT = 5


@dataclass(frozen=True)
class WeekWindow:
    """Half-open UTC boundaries of the current and following local weeks."""

    start: datetime
    next_start: datetime
    next_end: datetime

    @property
    def end(self) -> datetime:
        """Last displayable instant of the current week."""
        return self.next_start - timedelta(milliseconds=1)

    def in_current(self, value: datetime) -> bool:
        return self.start <= value < self.next_start

    def in_next(self, value: datetime) -> bool:
        return self.next_start <= value < self.next_end


@dataclass(frozen=True)
class DigestStats:
    """Headline counters for a digest."""

    total_active: int
    overdue_count: int
    due_this_week_count: int
    due_next_week_count: int
    completed_this_week_count: int
    high_priority_count: int


@dataclass(frozen=True)
class DigestSections:
    """Obligations grouped by digest bucket."""

    overdue: list[ObligationSnapshot] = field(default_factory=list)
    due_this_week: list[ObligationSnapshot] = field(default_factory=list)
    due_next_week: list[ObligationSnapshot] = field(default_factory=list)
    completed_this_week: list[ObligationSnapshot] = field(default_factory=list)
    upcoming: list[ObligationSnapshot] = field(default_factory=list)


@dataclass(frozen=True)
class WeeklyDigest:
    """A weekly summary with stats, sections, and an encouraging message."""

    generated_at: datetime
    week_start: datetime
    week_end: datetime
    stats: DigestStats
    sections: DigestSections
    message: str

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly representation."""
        return {
            "generated_at": self.generated_at.isoformat(),
            "week_start": self.week_start.isoformat(),
            "week_end": self.week_end.isoformat(),
            "stats": {
                "total_active": self.stats.total_active,
                "overdue_count": self.stats.overdue_count,
                "due_this_week_count": self.stats.due_this_week_count,
                "due_next_week_count": self.stats.due_next_week_count,
                "completed_this_week_count": self.stats.completed_this_week_count,
                "high_priority_count": self.stats.high_priority_count,
            },
            "sections": {
                name: [_snapshot_dict(item) for item in getattr(self.sections, name)]
                for name in (
                    "overdue",
                    "due_this_week",
                    "due_next_week",
                    "completed_this_week",
                    "upcoming",
                )
            },
            "message": self.message,
        }


def week_window(now: datetime) -> WeekWindow:
    """Return the Sunday-to-Saturday local week containing now."""
    today = to_local(now).date()
    # date.weekday() is Monday=0; weeks start on Sunday.
    start_day: date = today - timedelta(days=(today.weekday() + 1) % 7)
    midnight = time(0, 0)
    return WeekWindow(
        start=at_local_time(start_day, midnight),
        next_start=at_local_time(start_day + timedelta(days=7), midnight),
        next_end=at_local_time(start_day + timedelta(days=14), midnight),
    )


def build_weekly_digest(
    obligations: Iterable[ObligationSnapshot],
    now: datetime,
) -> WeeklyDigest:
    """Bucket obligations into digest sections and summarize them."""
    timestamp = to_utc(now)
    window = week_window(timestamp)
    items = list(obligations)
    sections = DigestSections()

    for item in items:
        if not item.is_active:
            if item.updated_at is not None and window.in_current(item.updated_at):
                sections.completed_this_week.append(item)
            continue
        if item.deadline is None:
            sections.upcoming.append(item)
        elif item.deadline < timestamp:
            sections.overdue.append(item)
        elif window.in_current(item.deadline):
            sections.due_this_week.append(item)
        elif window.in_next(item.deadline):
            sections.due_next_week.append(item)
        else:
            sections.upcoming.append(item)

    for bucket in (sections.overdue, sections.due_this_week, sections.due_next_week):
        bucket.sort(key=lambda item: item.deadline)
    del sections.upcoming[UPCOMING_LIMIT:]

    active = [item for item in items if item.is_active]
    stats = DigestStats(
        total_active=len(active),
        overdue_count=len(sections.overdue),
        due_this_week_count=len(sections.due_this_week),
        due_next_week_count=len(sections.due_next_week),
        completed_this_week_count=len(sections.completed_this_week),
        high_priority_count=sum(1 for item in active if item.risk_level == "high"),
    )
    return WeeklyDigest(
        generated_at=timestamp,
        week_start=window.start,
        week_end=window.end,
        stats=stats,
        sections=sections,
        message=digest_message(stats),
    )


def digest_message(stats: DigestStats) -> str:
    """Pick the digest's headline message."""
    if stats.overdue_count > 0:
        count = stats.overdue_count
        pronoun = "it" if count == 1 else "them"
        return f"You have {count} {_items(count)} past due. Let's tackle {pronoun} first."
    if stats.completed_this_week_count > 0 and stats.due_this_week_count == 0:
        count = stats.completed_this_week_count
        return (
            f"Great progress! You completed {count} {_items(count)} this week. "
            "Take a moment to appreciate that."
        )
    if stats.due_this_week_count > 0:
        count = stats.due_this_week_count
        return f"You have {count} {_items(count)} due this week. You've got this."
    return "You're all caught up. Nice work staying on top of things."


def load_weekly_digest(
    session_factory: Callable[[], Session],
    user_id: str,
    *,
    now: datetime | None = None,
) -> WeeklyDigest:
    """Load a user's obligations and build their digest."""
    snapshots = ObligationRepository(session_factory).list_snapshots_for_user(user_id)
    digest = build_weekly_digest(snapshots, now or datetime.now(timezone.utc))
    logger.info(
        "Weekly digest built: user_id=%s total_active=%s overdue=%s",
        user_id,
        digest.stats.total_active,
        digest.stats.overdue_count,
    )
    return digest


def _items(count: int) -> str:
    return "item" if count == 1 else "items"


def _snapshot_dict(item: ObligationSnapshot) -> dict[str, Any]:
    return {
        "obligation_id": item.obligation_id,
        "title": item.title,
        "deadline": item.deadline.isoformat() if item.deadline else None,
        "risk_level": item.risk_level,
        "status": item.status,
    }


__all__ = [
    "DigestSections",
    "DigestStats",
    "UPCOMING_LIMIT",
    "WeekWindow",
    "WeeklyDigest",
    "build_weekly_digest",
    "digest_message",
    "load_weekly_digest",
    "week_window",
]
