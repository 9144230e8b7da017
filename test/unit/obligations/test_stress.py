"""Unit tests for stress assessment and the focus list."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from obligations.stress import (
    REASSURANCE_MESSAGES,
    ReassurancePicker,
    assess_stress,
    calm_language,
    focus_footer,
    focus_headline,
    stress_level_for,
)
from obligations.types import ObligationSnapshot

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
TODAY = date(2026, 3, 10)


def _snapshot(
    obligation_id: str,
    days_out: int | None,
    *,
    risk_level: str = "low",
    status: str = "in-progress",
) -> ObligationSnapshot:
    deadline = None
    if days_out is not None:
        deadline = datetime.combine(
            TODAY + timedelta(days=days_out),
            time(23, 59, 59),
            tzinfo=timezone.utc,
        )
    return ObligationSnapshot(
        obligation_id=obligation_id,
        user_id="user-1",
        title=f"Task {obligation_id}",
        deadline=deadline,
        risk_level=risk_level,
        status=status,
    )


def _assess(obligations: list[ObligationSnapshot]):
    return assess_stress(obligations, NOW, picker=ReassurancePicker(7))


def test_empty_list_is_calm() -> None:
    """No obligations means a calm, empty focus list."""
    assessment = _assess([])

    assert assessment.level == "calm"
    assert assessment.is_stressed is False
    assert assessment.focus == []
    assert focus_headline(assessment) == "You're all caught up"
    assert focus_footer(assessment) == (
        "Nothing needs your attention right now. Take a moment for yourself."
    )


def test_level_thresholds() -> None:
    """Each signal crosses into moderate and elevated at its own count."""
    assert stress_level_for(0, 0, 0) == "calm"
    assert stress_level_for(2, 0, 0) == "moderate"
    assert stress_level_for(3, 0, 0) == "elevated"
    assert stress_level_for(0, 1, 0) == "moderate"
    assert stress_level_for(0, 2, 0) == "elevated"
    assert stress_level_for(0, 0, 1) == "moderate"
    assert stress_level_for(0, 0, 2) == "elevated"


def test_urgent_window_is_zero_to_three_days() -> None:
    """Deadlines three days out count as urgent; four days and overdue do not."""
    assert _assess([_snapshot("a", 3)]).urgent_count == 1
    assert _assess([_snapshot("a", 4)]).urgent_count == 0
    assert _assess([_snapshot("a", -1)]).urgent_count == 0
    assert _assess([_snapshot("a", 0)]).level == "moderate"


def test_overlapping_days_count_shared_dates() -> None:
    """Two active deadlines on one date make one overlapping day."""
    one_overlap = _assess([_snapshot("a", 20), _snapshot("b", 20)])
    two_overlaps = _assess(
        [_snapshot("a", 20), _snapshot("b", 20), _snapshot("c", 30), _snapshot("d", 30)]
    )

    assert one_overlap.overlapping_days == 1
    assert one_overlap.level == "moderate"
    assert two_overlaps.level == "elevated"


def test_completed_obligations_are_ignored() -> None:
    """Completed items never raise the stress level."""
    assessment = _assess(
        [_snapshot(name, 1, risk_level="high", status="completed") for name in "abc"]
    )

    assert assessment.level == "calm"
    assert assessment.high_priority_count == 0


def test_calm_focus_list_ranking() -> None:
    """Calm users see three items: overdue, then high risk, then soonest."""
    assessment = _assess(
        [
            _snapshot("soon-medium", 6, risk_level="medium"),
            _snapshot("high-later", 10, risk_level="high"),
            _snapshot("soon-low", 5),
            _snapshot("overdue", -2, risk_level="medium"),
            _snapshot("far-low", 30),
        ]
    )

    assert assessment.level == "calm"
    assert [item.obligation_id for item in assessment.focus] == [
        "overdue",
        "high-later",
        "soon-low",
    ]
    assert [item.label for item in assessment.focus] == [
        "Overdue",
        "High priority",
        "Due in 5 days",
    ]
    assert focus_headline(assessment) == "Today, focus on these 3 things:"
    assert focus_footer(assessment) == "Take it one step at a time. You've got this."


def test_stressed_focus_list_is_shorter_and_softer() -> None:
    """Elevated stress trims the list to two items with gentler labels."""
    assessment = _assess(
        [
            _snapshot("a", 12, risk_level="high"),
            _snapshot("b", -1, risk_level="high"),
            _snapshot("c", 9, risk_level="high"),
        ]
    )

    assert assessment.level == "elevated"
    assert [item.obligation_id for item in assessment.focus] == ["b", "c"]
    assert [item.label for item in assessment.focus] == ["Past due date", "Needs attention"]
    assert focus_headline(assessment) == "Here's what matters most right now:"
    assert focus_footer(assessment) == assessment.reassurance
    assert assessment.reassurance in REASSURANCE_MESSAGES["elevated"]


def test_undated_items_sort_after_dated_ones() -> None:
    """High-risk items without a deadline rank behind dated ones."""
    assessment = _assess(
        [_snapshot("undated", None, risk_level="high"), _snapshot("dated", 20, risk_level="high")]
    )

    assert [item.obligation_id for item in assessment.focus] == ["dated", "undated"]


def test_seeded_picker_is_repeatable() -> None:
    """Pickers with the same seed choose the same reassurance."""
    first = [ReassurancePicker(42).pick("moderate") for _ in range(3)]
    second = [ReassurancePicker(42).pick("moderate") for _ in range(3)]

    assert first == second
    assert set(first) <= set(REASSURANCE_MESSAGES["moderate"])


def test_calm_language_only_when_stressed() -> None:
    """Alarming words are softened for stressed users only."""
    text = "URGENT: Overdue payment needs action right now"

    assert calm_language(text, False) == text
    assert calm_language(text, True) == (
        "Needs attention soon: Past due date payment needs action Soon"
    )
