"""Unit tests for the reminder dispatch batch job."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest
from sqlalchemy.orm import sessionmaker

from models import Reminder
from obligations.nudges import NudgeRepository
from obligations.reminder_dispatch import ReminderDispatchJob, process_due_reminders
from obligations.reminder_policy import OverdueFollowUpPolicy
from obligations.repository import ObligationCreateInput, ObligationRepository

CREATED_AT = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _utc(month: int, day: int, hour: int = 0) -> datetime:
    return datetime(2026, month, day, hour, tzinfo=timezone.utc)


def _create(
    factory: sessionmaker,
    *,
    title: str = "Renew passport",
    deadline: date = date(2026, 3, 20),
    risk_level: str = "high",
    now: datetime = CREATED_AT,
):
    return ObligationRepository(factory).create(
        ObligationCreateInput(
            user_id="user-1",
            title=title,
            deadline=deadline,
            risk_level=risk_level,
        ),
        now=now,
    )


def _job(factory: sessionmaker, *, max_followups: int = 2) -> ReminderDispatchJob:
    return ReminderDispatchJob(
        factory,
        overdue_policy=OverdueFollowUpPolicy(interval_days=3, max_followups=max_followups),
    )


def _unsent(factory: sessionmaker) -> list[Reminder]:
    with factory() as session:
        return list(session.query(Reminder).filter(Reminder.sent.is_(False)).all())


def test_due_reminders_become_nudges(sqlite_session_factory: sessionmaker) -> None:
    """Each due reminder produces a nudge and is marked sent."""
    _create(sqlite_session_factory)

    result = _job(sqlite_session_factory).process_due(_utc(3, 17, 10))

    assert result.processed_count == 2
    assert result.nudges_created == 2
    assert result.resolved_count == 0
    assert result.deferred_count == 0
    nudges = NudgeRepository(sqlite_session_factory).list_for_user("user-1")
    assert [nudge.message for nudge in nudges] == [
        "\"Renew passport\" is due in 3 days. A good time to start if you haven't already.",
    ] * 2
    assert {nudge.tone for nudge in nudges} == {"gentle"}
    assert len(_unsent(sqlite_session_factory)) == 2


def test_second_run_is_idempotent(sqlite_session_factory: sessionmaker) -> None:
    """Running twice over the same window processes nothing the second time."""
    _create(sqlite_session_factory)
    job = _job(sqlite_session_factory)

    job.process_due(_utc(3, 17, 10))
    second = job.process_due(_utc(3, 17, 10))

    assert second.processed_count == 0
    assert second.nudges_created == 0
    assert len(NudgeRepository(sqlite_session_factory).list_for_user("user-1")) == 2


def test_high_risk_day_before_is_firm(sqlite_session_factory: sessionmaker) -> None:
    """High-risk reminders one day out use the firm tone."""
    _create(sqlite_session_factory)

    _job(sqlite_session_factory).process_due(_utc(3, 19, 10))

    nudges = NudgeRepository(sqlite_session_factory).list_for_user("user-1")
    assert len(nudges) == 3
    assert {nudge.tone for nudge in nudges} == {"firm"}
    assert nudges[0].message == "\"Renew passport\" is due tomorrow. You're nearly there."


def test_completed_obligation_is_marked_without_nudge(
    sqlite_session_factory: sessionmaker,
) -> None:
    """Reminders for completed obligations are resolved silently."""
    obligation = _create(sqlite_session_factory)
    ObligationRepository(sqlite_session_factory).set_status(
        obligation.obligation_id,
        "completed",
        now=_utc(3, 5),
    )

    result = _job(sqlite_session_factory).process_due(_utc(3, 17, 10))

    assert result.processed_count == 0
    assert result.resolved_count == 2
    assert NudgeRepository(sqlite_session_factory).list_for_user("user-1") == []
    assert len(_unsent(sqlite_session_factory)) == 2


def test_missing_obligation_is_marked_without_nudge(
    sqlite_session_factory: sessionmaker,
) -> None:
    """Orphaned reminders are marked sent and produce no nudge."""
    with sqlite_session_factory() as session:
        session.add(
            Reminder(
                user_id="user-1",
                obligation_id="ghost",
                reminder_time=_utc(3, 10, 9),
                type="pre_due",
                created_at=CREATED_AT,
            )
        )
        session.commit()

    result = _job(sqlite_session_factory).process_due(_utc(3, 10, 10))

    assert result.resolved_count == 1
    assert _unsent(sqlite_session_factory) == []


def test_obligation_load_failure_is_isolated(
    monkeypatch,
    sqlite_session_factory: sessionmaker,
) -> None:
    """A failing obligation leaves its reminders unsent while others proceed."""
    broken = _create(sqlite_session_factory, title="Broken")
    healthy = _create(sqlite_session_factory, title="Healthy", risk_level="medium")
    job = _job(sqlite_session_factory)
    original = job._load_obligation

    def _load(obligation_id: str):
        if obligation_id == broken.obligation_id:
            raise RuntimeError("read failed")
        return original(obligation_id)

    monkeypatch.setattr(job, "_load_obligation", _load)

    result = job.process_due(_utc(3, 17, 10))

    assert result.deferred_count == 2
    assert result.processed_count == 1
    unsent_ids = {item.obligation_id for item in _unsent(sqlite_session_factory)}
    assert broken.obligation_id in unsent_ids
    nudges = NudgeRepository(sqlite_session_factory).list_for_user("user-1")
    assert [nudge.obligation_id for nudge in nudges] == [healthy.obligation_id]


def test_nudge_write_failure_leaves_reminders_unsent(
    monkeypatch,
    sqlite_session_factory: sessionmaker,
) -> None:
    """If nudges cannot be written the batch fails and nothing is marked sent."""
    _create(sqlite_session_factory)

    def _fail(self, drafts, *, created_at):
        raise RuntimeError("insert failed")

    monkeypatch.setattr(NudgeRepository, "create_many", _fail)

    with pytest.raises(RuntimeError, match="insert failed"):
        _job(sqlite_session_factory).process_due(_utc(3, 17, 10))

    assert len(_unsent(sqlite_session_factory)) == 4


def test_mark_sent_failure_keeps_written_nudges(
    monkeypatch,
    sqlite_session_factory: sessionmaker,
) -> None:
    """Nudges committed before a mark-sent failure survive; reminders retry."""
    _create(sqlite_session_factory)

    def _fail(self, reminder_ids):
        raise RuntimeError("update failed")

    monkeypatch.setattr(ReminderDispatchJob, "_mark_sent", _fail)

    with pytest.raises(RuntimeError, match="update failed"):
        _job(sqlite_session_factory).process_due(_utc(3, 17, 10))

    assert len(NudgeRepository(sqlite_session_factory).list_for_user("user-1")) == 2
    assert len(_unsent(sqlite_session_factory)) == 4


def test_overdue_followup_is_enqueued_and_dispatched(
    sqlite_session_factory: sessionmaker,
) -> None:
    """Missed deadlines get a firm overdue nudge the day after."""
    _create(sqlite_session_factory, deadline=date(2026, 3, 10), now=_utc(3, 11))

    result = _job(sqlite_session_factory).process_due(_utc(3, 12, 10))

    assert result.overdue_enqueued == 1
    assert result.processed_count == 1
    nudge = NudgeRepository(sqlite_session_factory).list_for_user("user-1")[0]
    assert nudge.tone == "firm"
    assert nudge.message == (
        "\"Renew passport\" was due 2 days ago. Would you like help getting this sorted?"
    )


def test_overdue_followup_is_not_duplicated(sqlite_session_factory: sessionmaker) -> None:
    """Each follow-up slot is enqueued at most once, up to the cap."""
    _create(sqlite_session_factory, deadline=date(2026, 3, 10), now=_utc(3, 11))
    job = _job(sqlite_session_factory)

    first = job.process_due(_utc(3, 12, 10))
    repeat = job.process_due(_utc(3, 12, 11))
    second_slot = job.process_due(_utc(3, 15, 10))
    past_cap = job.process_due(_utc(3, 30, 10))

    assert [first.overdue_enqueued, repeat.overdue_enqueued] == [1, 0]
    assert second_slot.overdue_enqueued == 1
    assert past_cap.overdue_enqueued == 0
    assert len(NudgeRepository(sqlite_session_factory).list_for_user("user-1")) == 2


def test_overdue_followups_can_be_disabled(sqlite_session_factory: sessionmaker) -> None:
    """A zero follow-up cap never enqueues overdue reminders."""
    _create(sqlite_session_factory, deadline=date(2026, 3, 10), now=_utc(3, 11))

    result = _job(sqlite_session_factory, max_followups=0).process_due(_utc(3, 20))

    assert result.overdue_enqueued == 0
    assert result.processed_count == 0


def test_completed_obligations_get_no_overdue_followups(
    sqlite_session_factory: sessionmaker,
) -> None:
    """Completed obligations are never chased after their deadline."""
    obligation = _create(sqlite_session_factory, deadline=date(2026, 3, 10), now=_utc(3, 11))
    ObligationRepository(sqlite_session_factory).set_status(
        obligation.obligation_id,
        "completed",
        now=_utc(3, 11),
    )

    result = _job(sqlite_session_factory).process_due(_utc(3, 20))

    assert result.overdue_enqueued == 0


def test_module_entry_point_uses_default_settings(
    sqlite_session_factory: sessionmaker,
) -> None:
    """process_due_reminders runs a pass with configured policy."""
    _create(sqlite_session_factory, risk_level="low")

    result = process_due_reminders(sqlite_session_factory, now=_utc(3, 19, 10))

    assert result.processed_count == 1
    assert result.to_dict()["nudges_created"] == 1
