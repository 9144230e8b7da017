"""Risk-tiered reminder policy and pure reminder-instant computation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from config import settings
from obligations.types import ReminderType, RiskLevel
from time_utils import at_local_time, local_date, to_utc


@dataclass(frozen=True)
class PolicyEntry:
    """A single reminder slot expressed relative to the deadline date."""

    days_before: int
    type: ReminderType


REMINDER_POLICY: dict[str, tuple[PolicyEntry, ...]] = {
    "high": (
        PolicyEntry(7, "pre_due"),
        PolicyEntry(3, "pre_due"),
        PolicyEntry(1, "pre_due"),
        PolicyEntry(0, "day_of"),
    ),
    "medium": (
        PolicyEntry(3, "pre_due"),
        PolicyEntry(1, "pre_due"),
        PolicyEntry(0, "day_of"),
    ),
    "low": (
        PolicyEntry(1, "pre_due"),
        PolicyEntry(0, "day_of"),
    ),
}


@dataclass(frozen=True)
class ScheduledReminder:
    """A reminder instant computed from the policy table."""

    obligation_id: str
    reminder_time: datetime
    type: ReminderType
    days_before: int


def parse_anchor_time(value: str) -> time:
    """Parse HH:MM anchor strings into a time value."""
    return datetime.strptime(value.strip(), "%H:%M").time()


def configured_anchor_time() -> time:
    """Return the configured daily reminder anchor."""
    return parse_anchor_time(settings.reminders.anchor_time)


def policy_for(risk_level: RiskLevel | str) -> tuple[PolicyEntry, ...]:
    """Return the policy entries for a risk tier."""
    try:
        return REMINDER_POLICY[risk_level]
    except KeyError as exc:
        raise ValueError(f"Unsupported risk level: {risk_level}") from exc


def schedule_reminders(
    obligation_id: str,
    deadline: date | datetime,
    risk_level: RiskLevel | str,
    now: datetime,
    *,
    anchor_time: time | None = None,
) -> list[ScheduledReminder]:
    """Compute the future reminder instants for an obligation.

    Each slot lands on the anchor time of ``deadline date - days_before`` in
    the configured timezone. Slots at or before ``now`` are dropped, so a
    past deadline yields no reminders. Overdue reminders are never produced
    here.
    """
    anchor = anchor_time or configured_anchor_time()
    deadline_date = local_date(deadline)
    timestamp = to_utc(now)
    reminders: list[ScheduledReminder] = []
    for entry in policy_for(risk_level):
        candidate = at_local_time(deadline_date - timedelta(days=entry.days_before), anchor)
        if candidate <= timestamp:
            continue
        reminders.append(
            ScheduledReminder(
                obligation_id=obligation_id,
                reminder_time=candidate,
                type=entry.type,
                days_before=entry.days_before,
            )
        )
    return reminders


@dataclass(frozen=True)
class OverdueFollowUpPolicy:
    """Recurring "still not done" slots after a missed deadline.

    The first slot falls the day after the deadline; later slots follow every
    ``interval_days`` days, up to ``max_followups`` slots in total.
    """

    interval_days: int = 3
    max_followups: int = 2

    @classmethod
    def from_settings(cls) -> "OverdueFollowUpPolicy":
        """Build the policy from configured reminder settings."""
        return cls(
            interval_days=settings.reminders.overdue_followup_interval_days,
            max_followups=settings.reminders.overdue_followup_max,
        )

    def latest_due_slot(
        self,
        deadline: date | datetime,
        now: datetime,
        *,
        anchor_time: time | None = None,
    ) -> datetime | None:
        """Return the most recent follow-up instant at or before now, if any."""
        if self.max_followups <= 0:
            return None
        anchor = anchor_time or configured_anchor_time()
        deadline_date = local_date(deadline)
        timestamp = to_utc(now)
        latest: datetime | None = None
        for index in range(1, self.max_followups + 1):
            slot_date = deadline_date + timedelta(days=1 + (index - 1) * self.interval_days)
            slot = at_local_time(slot_date, anchor)
            if slot > timestamp:
                break
            latest = slot
        return latest


__all__ = [
    "OverdueFollowUpPolicy",
    "PolicyEntry",
    "REMINDER_POLICY",
    "ScheduledReminder",
    "configured_anchor_time",
    "parse_anchor_time",
    "policy_for",
    "schedule_reminders",
]
