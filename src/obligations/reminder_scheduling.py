"""Persistence of policy-derived reminders for obligations."""

from __future__ import annotations

from contextlib import closing
from datetime import datetime, timezone
import logging
from typing import Callable

from sqlalchemy.orm import Session

from config import settings
from models import Obligation, Reminder
from obligations.reminder_policy import schedule_reminders
from time_utils import from_storage, to_utc

logger = logging.getLogger(__name__)


def create_reminder_records(
    session: Session,
    obligation: Obligation,
    *,
    now: datetime,
) -> list[Reminder]:
    """Insert the policy reminder set for an obligation within a session."""
    if not settings.reminders.enabled or obligation.deadline is None:
        return []
    planned = schedule_reminders(
        obligation.obligation_id,
        from_storage(obligation.deadline),
        obligation.risk_level,
        now,
    )
    records = [
        Reminder(
            user_id=obligation.user_id,
            obligation_id=obligation.obligation_id,
            reminder_time=item.reminder_time,
            type=item.type,
            channel="in_app",
            sent=False,
            created_at=to_utc(now),
        )
        for item in planned
    ]
    session.add_all(records)
    session.flush()
    return records


def delete_unsent_reminders(session: Session, obligation_id: str) -> int:
    """Delete unsent reminders for an obligation; sent rows stay as audit log."""
    return (
        session.query(Reminder)
        .filter(Reminder.obligation_id == obligation_id, Reminder.sent.is_(False))
        .delete(synchronize_session=False)
    )


def delete_reminders_for_obligation(session: Session, obligation_id: str) -> int:
    """Delete every reminder for an obligation, sent or not."""
    return (
        session.query(Reminder)
        .filter(Reminder.obligation_id == obligation_id)
        .delete(synchronize_session=False)
    )


def replace_unsent_reminders(
    session: Session,
    obligation: Obligation,
    *,
    now: datetime,
) -> list[Reminder]:
    """Drop unsent reminders and recreate them from the current policy."""
    removed = delete_unsent_reminders(session, obligation.obligation_id)
    created = create_reminder_records(session, obligation, now=now)
    logger.debug(
        "Rescheduled reminders: obligation_id=%s removed=%s created=%s",
        obligation.obligation_id,
        removed,
        len(created),
    )
    return created


class ReminderScheduleService:
    """Service to create, refresh, and remove reminders for an obligation."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        now_provider: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the service with a session factory and clock."""
        self._session_factory = session_factory
        self._now_provider = now_provider or (lambda: datetime.now(timezone.utc))

    def schedule(self, obligation_id: str) -> list[Reminder]:
        """Ensure the obligation's unsent reminders match its current policy.

        Safe to call repeatedly: existing unsent reminders are replaced
        rather than duplicated.
        """
        return self.reschedule(obligation_id)

    def reschedule(self, obligation_id: str) -> list[Reminder]:
        """Atomically replace unsent reminders after a deadline or risk change."""

        def handler(session: Session) -> list[Reminder]:
            obligation = session.get(Obligation, obligation_id)
            if obligation is None:
                raise ValueError(f"Obligation not found: {obligation_id}")
            return replace_unsent_reminders(session, obligation, now=self._now_provider())

        return self._execute(handler)

    def delete_all(self, obligation_id: str) -> int:
        """Remove all reminders for an obligation."""

        def handler(session: Session) -> int:
            return delete_reminders_for_obligation(session, obligation_id)

        return self._execute(handler)

    def _execute(self, handler):
        """Execute scheduling work inside a managed session."""
        with closing(self._session_factory()) as session:
            session.expire_on_commit = False
            try:
                result = handler(session)
                session.commit()
            except Exception:
                session.rollback()
                raise
        return result


__all__ = [
    "ReminderScheduleService",
    "create_reminder_records",
    "delete_reminders_for_obligation",
    "delete_unsent_reminders",
    "replace_unsent_reminders",
]
