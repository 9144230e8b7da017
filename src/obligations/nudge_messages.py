"""Tone selection and message templates for reminder nudges.

Messages stay calm on purpose: even overdue nudges offer help rather than
blame. Text is deterministic for a given reminder type, risk tier, and day
distance.
"""

from __future__ import annotations

from obligations.due_dates import DueDateStatus, pluralize_days
from obligations.types import NudgeTone, ReminderType, RiskLevel


def select_tone(reminder_type: ReminderType | str, risk_level: RiskLevel | str, days_until: int) -> NudgeTone:
    """Return the dispatch tone for a fired reminder.

    The dispatch job only emits ``gentle`` or ``firm``; ``urgent`` is a
    display derivation (see ``display_tone``).
    """
    if reminder_type == "overdue" or (risk_level == "high" and days_until <= 1):
        return "firm"
    return "gentle"


def display_tone(
    tone: NudgeTone | str,
    risk_level: RiskLevel | str,
    due_status: DueDateStatus,
) -> NudgeTone:
    """Return the tone used to style a nudge, escalating high-risk overdue items."""
    if risk_level == "high" and due_status == "overdue":
        return "urgent"
    return tone


def render_reminder_message(
    reminder_type: ReminderType | str,
    risk_level: RiskLevel | str,
    title: str,
    days_until: int,
) -> str:
    """Render the nudge text for a fired reminder."""
    if reminder_type == "overdue":
        days_ago = abs(days_until)
        return (
            f'"{title}" was due {days_ago} {pluralize_days(days_ago)} ago. '
            "Would you like help getting this sorted?"
        )

    if reminder_type == "day_of":
        return f"\"{title}\" is due today. You've got this."

    if risk_level == "high":
        if days_until == 7:
            return f'Just a heads up: "{title}" is coming up in a week. Plenty of time to prepare.'
        if days_until == 3:
            return f"\"{title}\" is due in 3 days. A good time to start if you haven't already."
        return f"\"{title}\" is due tomorrow. You're nearly there."

    if risk_level == "medium":
        if days_until == 3:
            return f'"{title}" is coming up in 3 days. No rush, just keeping you in the loop.'
        return f"\"{title}\" is due tomorrow. You've got this."

    return f'Friendly reminder: "{title}" is due soon. Take your time.'


__all__ = [
    "display_tone",
    "render_reminder_message",
    "select_tone",
]
