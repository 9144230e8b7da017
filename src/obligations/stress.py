"""Stress-level assessment and the ranked "focus today" list.

The assessment looks only at active obligations. It counts high-risk
items, deadlines within three days, and calendar days holding more than
one deadline. Those counts pick a level, and the level decides how many
focus items to show and how gently to phrase them.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
import random
import re
from typing import Iterable, Literal, Sequence

from obligations.due_dates import DueDateStatus, classify_due_date
from obligations.types import ObligationSnapshot
from time_utils import local_date, to_local

StressLevel = Literal["calm", "moderate", "elevated"]

URGENT_WINDOW_DAYS = 3

REASSURANCE_MESSAGES: dict[StressLevel, tuple[str, ...]] = {
    "calm": (
        "You're on track. One step at a time.",
        "Everything's manageable. You've got this.",
        "No rush. Take things at your own pace.",
    ),
    "moderate": (
        "You have a few things coming up. Let's focus on what matters most.",
        "It's a busy period, but you're handling it well.",
        "A few priorities need attention. We'll tackle them together.",
    ),
    "elevated": (
        "I know things feel overwhelming right now. Let's take this step by step.",
        "You're not late. There's still time. Let's focus on just one thing.",
        "Take a breath. We'll work through this together, one task at a time.",
        "You're doing better than you think. Let's simplify what's on your plate.",
    ),
}

CALM_LANGUAGE: tuple[tuple[str, str], ...] = (
    ("Urgent", "Needs attention soon"),
    ("Overdue", "Past due date"),
    ("Immediately", "When you can"),
    ("Right now", "Soon"),
    ("You missed", "This is past the due date"),
    ("Failed to", "Not yet completed"),
    ("Warning", "Note"),
    ("Alert", "Reminder"),
    ("Critical", "Important"),
)


class ReassurancePicker:
    """Pick reassurance text from a level's pool; seed it for repeatable output."""

    def __init__(self, seed: int | None = None, *, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random(seed)

    def pick(self, level: StressLevel) -> str:
        return self._rng.choice(REASSURANCE_MESSAGES[level])


@dataclass(frozen=True)
class FocusItem:
    """An obligation chosen for the focus list."""

    obligation_id: str
    title: str
    risk_level: str
    due_status: DueDateStatus
    days_until: int | None
    label: str


@dataclass(frozen=True)
class StressAssessment:
    """Aggregated stress signals for one user's obligations."""

    level: StressLevel
    high_priority_count: int
    urgent_count: int
    overlapping_days: int
    reassurance: str
    focus: list[FocusItem] = field(default_factory=list)

    @property
    def is_stressed(self) -> bool:
        return self.level != "calm"


def stress_level_for(high_priority: int, urgent: int, overlapping: int) -> StressLevel:
    """Map the three stress counts to a level."""
    if high_priority >= 3 or urgent >= 2 or overlapping >= 2:
        return "elevated"
    if high_priority >= 2 or urgent >= 1 or overlapping >= 1:
        return "moderate"
    return "calm"


def assess_stress(
    obligations: Iterable[ObligationSnapshot],
    now: datetime,
    *,
    picker: ReassurancePicker | None = None,
) -> StressAssessment:
    """Assess stress for a set of obligations at the given instant."""
    today = to_local(now).date()
    active = [item for item in obligations if item.is_active]

    high_priority = sum(1 for item in active if item.risk_level == "high")
    urgent = 0
    per_day: Counter = Counter()
    for item in active:
        if item.deadline is None:
            continue
        days = classify_due_date(item.deadline, today).days_until
        if days is not None and 0 <= days <= URGENT_WINDOW_DAYS:
            urgent += 1
        per_day[local_date(item.deadline)] += 1
    overlapping = sum(1 for count in per_day.values() if count >= 2)

    level = stress_level_for(high_priority, urgent, overlapping)
    chooser = picker or ReassurancePicker()
    return StressAssessment(
        level=level,
        high_priority_count=high_priority,
        urgent_count=urgent,
        overlapping_days=overlapping,
        reassurance=chooser.pick(level),
        focus=select_focus_items(active, today, is_stressed=level != "calm"),
    )


def select_focus_items(
    obligations: Sequence[ObligationSnapshot],
    today: date,
    *,
    is_stressed: bool,
) -> list[FocusItem]:
    """Rank active obligations that are urgent or high risk.

    Order: overdue first, then high risk, then soonest deadline with
    undated items last, then obligation id. Stressed users see two items,
    calm users three.
    """
    ranked: list[tuple[tuple, FocusItem]] = []
    for item in obligations:
        if not item.is_active:
            continue
        classification = classify_due_date(item.deadline, today)
        urgent = classification.status in ("overdue", "due-soon")
        if not urgent and item.risk_level != "high":
            continue
        deadline_key = (
            (0, item.deadline.timestamp()) if item.deadline is not None else (1, 0.0)
        )
        sort_key = (
            0 if classification.status == "overdue" else 1,
            0 if item.risk_level == "high" else 1,
            deadline_key,
            item.obligation_id,
        )
        ranked.append(
            (
                sort_key,
                FocusItem(
                    obligation_id=item.obligation_id,
                    title=item.title,
                    risk_level=item.risk_level,
                    due_status=classification.status,
                    days_until=classification.days_until,
                    label=priority_label(
                        item.risk_level,
                        classification.status,
                        classification.label,
                        is_stressed=is_stressed,
                    ),
                ),
            )
        )
    ranked.sort(key=lambda entry: entry[0])
    limit = 2 if is_stressed else 3
    return [focus for _, focus in ranked[:limit]]


def priority_label(
    risk_level: str,
    due_status: DueDateStatus,
    due_label: str,
    *,
    is_stressed: bool,
) -> str:
    """Return the short label shown beside a focus item."""
    if due_status == "overdue":
        return "Past due date" if is_stressed else "Overdue"
    if risk_level == "high":
        return "Needs attention" if is_stressed else "High priority"
    return due_label


def focus_headline(assessment: StressAssessment) -> str:
    """Return the heading shown above the focus list."""
    count = len(assessment.focus)
    if count == 0:
        return "You're all caught up"
    if assessment.level == "elevated":
        if count == 1:
            return "Let's focus on just this one thing today:"
        return "Here's what matters most right now:"
    if count == 1:
        return "Today, focus on this:"
    return f"Today, focus on these {count} things:"


def focus_footer(assessment: StressAssessment) -> str:
    """Return the closing line under the focus list."""
    if not assessment.focus:
        return "Nothing needs your attention right now. Take a moment for yourself."
    if assessment.level == "elevated":
        return assessment.reassurance
    if assessment.level == "moderate":
        return "You're doing great. Take it one step at a time."
    return "Take it one step at a time. You've got this."


def calm_language(text: str, is_stressed: bool) -> str:
    """Soften alarming words for stressed users; unchanged otherwise."""
    if not is_stressed:
        return text
    result = text
    for alarming, calm in CALM_LANGUAGE:
        result = re.sub(re.escape(alarming), calm, result, flags=re.IGNORECASE)
    return result



__all__ = [
    "CALM_LANGUAGE",
    "FocusItem",
    "REASSURANCE_MESSAGES",
    "ReassurancePicker",
    "StressAssessment",
    "StressLevel",
    "assess_stress",
    "calm_language",
    "focus_footer",
    "focus_headline",
    "priority_label",
    "select_focus_items",
    "stress_level_for",
]
