"""Periodic batch job that turns due reminders into nudges."""

from __future__ import annotations

from contextlib import closing
from dataclasses import dataclass
from datetime import date, datetime, timezone
import logging
from typing import Callable

from sqlalchemy.orm import Session

from config import settings
from logging_setup import log_context
from models import Obligation, Reminder
from obligations.due_dates import classify_due_date
from obligations.nudge_messages import render_reminder_message, select_tone
from obligations.nudges import NudgeDraft, NudgeRepository
from obligations.reminder_policy import OverdueFollowUpPolicy
from obligations.types import ObligationSnapshot, ReminderSnapshot
from time_utils import from_storage, to_local, to_utc

logger = logging.getLogger(__name__)

JOB_NAME = "reminders.process_due"


@dataclass(frozen=True)
class ReminderDispatchResult:
    """Counters describing one dispatch run."""

    processed_count: int
    nudges_created: int
    resolved_count: int
    deferred_count: int
    overdue_enqueued: int = 0

    def to_dict(self) -> dict[str, int]:
        """Return the counters as a plain mapping."""
        return {
            "processed_count": self.processed_count,
            "nudges_created": self.nudges_created,
            "resolved_count": self.resolved_count,
            "deferred_count": self.deferred_count,
            "overdue_enqueued": self.overdue_enqueued,
        }


class ReminderDispatchJob:
    """Select due reminders, write nudges, then mark reminders sent.

    Nudges are committed before the sent flags. A crash between the two
    writes re-sends on the next run rather than losing a nudge.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        overdue_policy: OverdueFollowUpPolicy | None = None,
        now_provider: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the job with persistence and clock dependencies."""
        self._session_factory = session_factory
        self._overdue_policy = overdue_policy or OverdueFollowUpPolicy.from_settings()
        self._now_provider = now_provider or (lambda: datetime.now(timezone.utc))
        self._nudges = NudgeRepository(session_factory)

    def process_due(self, now: datetime | None = None) -> ReminderDispatchResult:
        """Process every unsent reminder whose time is at or before now."""
        timestamp = to_utc(now or self._now_provider())
        with log_context({"job": JOB_NAME}):
            overdue_enqueued = self._enqueue_overdue_followups(timestamp)
            pending = self._load_pending(timestamp)
            if not pending:
                logger.info("No due reminders: overdue_enqueued=%s", overdue_enqueued)
                return ReminderDispatchResult(
                    processed_count=0,
                    nudges_created=0,
                    resolved_count=0,
                    deferred_count=0,
                    overdue_enqueued=overdue_enqueued,
                )

            today = to_local(timestamp).date()
            obligations: dict[str, ObligationSnapshot | None] = {}
            failed: set[str] = set()
            drafts: list[NudgeDraft] = []
            handled_ids: list[str] = []
            resolved = 0
            deferred = 0

            for reminder in pending:
                obligation_id = reminder.obligation_id
                if obligation_id in failed:
                    deferred += 1
                    continue
                if obligation_id not in obligations:
                    try:
                        obligations[obligation_id] = self._load_obligation(obligation_id)
                    except Exception:
                        logger.exception(
                            "Obligation load failed; reminders deferred: obligation_id=%s",
                            obligation_id,
                        )
                        failed.add(obligation_id)
                        deferred += 1
                        continue

                obligation = obligations[obligation_id]
                handled_ids.append(reminder.reminder_id)
                if obligation is None or not obligation.is_active:
                    resolved += 1
                    continue
                drafts.append(build_nudge_draft(reminder, obligation, today))

            created = self._write_nudges(drafts, timestamp)
            self._mark_sent(handled_ids)

        result = ReminderDispatchResult(
            processed_count=len(drafts),
            nudges_created=created,
            resolved_count=resolved,
            deferred_count=deferred,
            overdue_enqueued=overdue_enqueued,
        )
        logger.info(
            "Reminder dispatch complete: processed=%s resolved=%s deferred=%s overdue_enqueued=%s",
            result.processed_count,
            result.resolved_count,
            result.deferred_count,
            result.overdue_enqueued,
        )
        return result

    def _load_pending(self, timestamp: datetime) -> list[ReminderSnapshot]:
        """Return unsent reminders due at or before the timestamp."""

        def handler(session: Session) -> list[ReminderSnapshot]:
            rows = (
                session.query(Reminder)
                .filter(Reminder.sent.is_(False), Reminder.reminder_time <= timestamp)
                .order_by(Reminder.reminder_time.asc(), Reminder.reminder_id.asc())
                .all()
            )
            return [ReminderSnapshot.from_record(row) for row in rows]

        return self._execute(handler)

    def _load_obligation(self, obligation_id: str) -> ObligationSnapshot | None:
        """Return a snapshot of the obligation, or None when it no longer exists."""

        def handler(session: Session) -> ObligationSnapshot | None:
            record = session.get(Obligation, obligation_id)
            if record is None:
                return None
            return ObligationSnapshot.from_record(record)

        return self._execute(handler)

    def _write_nudges(self, drafts: list[NudgeDraft], timestamp: datetime) -> int:
        """Insert all nudges in one unit of work, re-raising on failure."""
        try:
            created = self._nudges.create_many(drafts, created_at=timestamp)
        except Exception:
            logger.exception("Nudge insert failed: count=%s", len(drafts))
            raise
        return len(created)

    def _mark_sent(self, reminder_ids: list[str]) -> None:
        """Flag handled reminders as sent in one unit of work."""
        if not reminder_ids:
            return

        def handler(session: Session) -> int:
            return (
                session.query(Reminder)
                .filter(Reminder.reminder_id.in_(reminder_ids))
                .update({Reminder.sent: True}, synchronize_session=False)
            )

        try:
            self._execute(handler)
        except Exception:
            logger.exception("Marking reminders sent failed: count=%s", len(reminder_ids))
            raise

    def _enqueue_overdue_followups(self, timestamp: datetime) -> int:
        """Insert the latest due overdue follow-up for each missed obligation."""
        if not settings.reminders.enabled or self._overdue_policy.max_followups <= 0:
            return 0

        def handler(session: Session) -> int:
            candidates = (
                session.query(Obligation)
                .filter(
                    Obligation.status != "completed",
                    Obligation.deadline.isnot(None),
                    Obligation.deadline < timestamp,
                )
                .all()
            )
            enqueued = 0
            for obligation in candidates:
                slot = self._overdue_policy.latest_due_slot(
                    from_storage(obligation.deadline),
                    timestamp,
                )
                if slot is None:
                    continue
                existing = (
                    session.query(Reminder.reminder_id)
                    .filter(
                        Reminder.obligation_id == obligation.obligation_id,
                        Reminder.type == "overdue",
                        Reminder.reminder_time >= slot,
                    )
                    .first()
                )
                if existing is not None:
                    continue
                session.add(
                    Reminder(
                        user_id=obligation.user_id,
                        obligation_id=obligation.obligation_id,
                        reminder_time=slot,
                        type="overdue",
                        channel="in_app",
                        sent=False,
                        created_at=timestamp,
                    )
                )
                enqueued += 1
            session.flush()
            return enqueued

        try:
            return self._execute(handler)
        except Exception:
            logger.exception("Overdue follow-up enqueue failed")
            return 0

    def _execute(self, handler):
        """Execute job work inside a managed session."""
        with closing(self._session_factory()) as session:
            session.expire_on_commit = False
            try:
                result = handler(session)
                session.commit()
            except Exception:
                session.rollback()
                raise
        return result


def build_nudge_draft(
    reminder: ReminderSnapshot,
    obligation: ObligationSnapshot,
    today: date,
) -> NudgeDraft:
    """Compute tone and message for a fired reminder."""
    days_until = classify_due_date(obligation.deadline, today).days_until
    if days_until is None:
        days_until = 0
    return NudgeDraft(
        user_id=obligation.user_id,
        obligation_id=obligation.obligation_id,
        message=render_reminder_message(
            reminder.type,
            obligation.risk_level,
            obligation.title,
            days_until,
        ),
        tone=select_tone(reminder.type, obligation.risk_level, days_until),
    )


def process_due_reminders(
    session_factory: Callable[[], Session],
    *,
    now: datetime | None = None,
) -> ReminderDispatchResult:
    """Run one dispatch pass with default settings."""
    return ReminderDispatchJob(session_factory).process_due(now)


__all__ = [
    "JOB_NAME",
    "ReminderDispatchJob",
    "ReminderDispatchResult",
    "build_nudge_draft",
    "process_due_reminders",
]
