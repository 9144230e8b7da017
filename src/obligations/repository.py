"""Repository helpers for obligation persistence."""

from __future__ import annotations

from contextlib import closing
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
import logging
from typing import Callable

from sqlalchemy.orm import Session

from models import OBLIGATION_STATUSES, RISK_LEVELS, Obligation
from obligations.reminder_scheduling import (
    create_reminder_records,
    delete_reminders_for_obligation,
    replace_unsent_reminders,
)
from obligations.types import ObligationSnapshot
from time_utils import from_storage, get_local_timezone, to_utc

UNSET = object()
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ObligationCreateInput:
    """Input payload for creating an obligation record."""

    user_id: str
    title: str
    description: str = ""
    source_document: str | None = None
    deadline: date | datetime | None = None
    risk_level: str = "medium"
    status: str = "not-started"
    consequence: str | None = None
    steps: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ObligationUpdateInput:
    """Input payload for updating obligation fields."""

    title: str | object = UNSET
    description: str | object = UNSET
    source_document: str | None | object = UNSET
    deadline: date | datetime | None | object = UNSET
    risk_level: str | object = UNSET
    status: str | object = UNSET
    consequence: str | None | object = UNSET
    steps: list[str] | object = UNSET


class ObligationRepository:
    """Repository for obligation CRUD operations with reminder upkeep."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        """Initialize repository with a SQLAlchemy session factory."""
        self._session_factory = session_factory

    def create(
        self,
        payload: ObligationCreateInput,
        *,
        now: datetime | None = None,
    ) -> Obligation:
        """Create an obligation and schedule its reminders in one unit of work."""

        def handler(session: Session) -> Obligation:
            timestamp = _normalize_timestamp(now or datetime.now(timezone.utc))
            _validate_risk_level(payload.risk_level)
            _validate_status(payload.status)
            obligation = Obligation(
                user_id=payload.user_id,
                title=payload.title,
                description=payload.description,
                source_document=payload.source_document,
                deadline=normalize_deadline(payload.deadline),
                risk_level=payload.risk_level,
                status=payload.status,
                consequence=payload.consequence,
                steps=list(payload.steps),
                created_at=timestamp,
                updated_at=timestamp,
            )
            session.add(obligation)
            session.flush()
            create_reminder_records(session, obligation, now=timestamp)
            return obligation

        return self._execute(handler)

    def get_by_id(self, obligation_id: str) -> Obligation | None:
        """Fetch an obligation by its primary key."""

        def handler(session: Session) -> Obligation | None:
            return session.get(Obligation, obligation_id)

        return self._execute(handler)

    def get_for_user(self, user_id: str, obligation_id: str) -> Obligation | None:
        """Fetch an obligation only when it belongs to the given user."""

        def handler(session: Session) -> Obligation | None:
            return (
                session.query(Obligation)
                .filter(
                    Obligation.obligation_id == obligation_id,
                    Obligation.user_id == user_id,
                )
                .one_or_none()
            )

        return self._execute(handler)

    def list_for_user(self, user_id: str) -> list[Obligation]:
        """Return all obligations owned by a user."""

        def handler(session: Session) -> list[Obligation]:
            return list(
                session.query(Obligation)
                .filter(Obligation.user_id == user_id)
                .order_by(Obligation.created_at.asc(), Obligation.obligation_id.asc())
                .all()
            )

        return self._execute(handler)

    def list_snapshots_for_user(self, user_id: str) -> list[ObligationSnapshot]:
        """Return read-only snapshots of a user's obligations."""
        return [ObligationSnapshot.from_record(row) for row in self.list_for_user(user_id)]

    def update(
        self,
        obligation_id: str,
        updates: ObligationUpdateInput,
        *,
        now: datetime | None = None,
    ) -> Obligation:
        """Update an obligation, rescheduling reminders on deadline or risk change."""

        def handler(session: Session) -> Obligation:
            obligation = _fetch_obligation(session, obligation_id)
            affects_reminders = _updates_affect_reminders(obligation, updates)
            _apply_updates(obligation, updates)
            timestamp = _normalize_timestamp(now or datetime.now(timezone.utc))
            obligation.updated_at = timestamp
            session.flush()
            if affects_reminders:
                replace_unsent_reminders(session, obligation, now=timestamp)
            return obligation

        return self._execute(handler)

    def set_status(
        self,
        obligation_id: str,
        status: str,
        *,
        now: datetime | None = None,
    ) -> Obligation:
        """Change an obligation's status."""
        return self.update(obligation_id, ObligationUpdateInput(status=status), now=now)

    def delete(self, obligation_id: str) -> None:
        """Delete an obligation and every reminder attached to it.

        Nudges are kept: they are the user's message history.
        """

        def handler(session: Session) -> None:
            obligation = _fetch_obligation(session, obligation_id)
            removed = delete_reminders_for_obligation(session, obligation_id)
            session.delete(obligation)
            session.flush()
            logger.info(
                "Obligation deleted: obligation_id=%s reminders_removed=%s",
                obligation_id,
                removed,
            )
            return None

        self._execute(handler)

    def _execute(self, handler):
        """Execute repository work inside a managed session."""
        with closing(self._session_factory()) as session:
            session.expire_on_commit = False
            try:
                result = handler(session)
                session.commit()
            except Exception:
                session.rollback()
                raise
        return result


def _fetch_obligation(session: Session, obligation_id: str) -> Obligation:
    """Return an obligation or raise when missing."""
    obligation = session.get(Obligation, obligation_id)
    if obligation is None:
        raise ValueError(f"Obligation not found: {obligation_id}")
    return obligation


def _apply_updates(obligation: Obligation, updates: ObligationUpdateInput) -> None:
    """Apply updates to an obligation instance."""
    if updates.title is not UNSET:
        obligation.title = updates.title
    if updates.description is not UNSET:
        obligation.description = updates.description
    if updates.source_document is not UNSET:
        obligation.source_document = updates.source_document
    if updates.deadline is not UNSET:
        obligation.deadline = normalize_deadline(updates.deadline)
    if updates.risk_level is not UNSET:
        _validate_risk_level(updates.risk_level)
        obligation.risk_level = updates.risk_level
    if updates.status is not UNSET:
        _validate_status(updates.status)
        obligation.status = updates.status
    if updates.consequence is not UNSET:
        obligation.consequence = updates.consequence
    if updates.steps is not UNSET:
        obligation.steps = list(updates.steps)


def _updates_affect_reminders(obligation: Obligation, updates: ObligationUpdateInput) -> bool:
    """Return True when the update changes the deadline or the risk tier."""
    if updates.deadline is not UNSET:
        current = from_storage(obligation.deadline)
        if normalize_deadline(updates.deadline) != current:
            return True
    if updates.risk_level is not UNSET and updates.risk_level != obligation.risk_level:
        return True
    return False


def normalize_deadline(value: date | datetime | None) -> datetime | None:
    """Normalize a deadline to UTC, converting date-only values to local 23:59:59."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return _normalize_timestamp(value)
    local_deadline = datetime.combine(value, time(23, 59, 59), tzinfo=get_local_timezone())
    return local_deadline.astimezone(timezone.utc)


def _validate_risk_level(value: str) -> None:
    if value not in RISK_LEVELS:
        raise ValueError(f"risk_level must be one of {', '.join(RISK_LEVELS)}")


def _validate_status(value: str) -> None:
    if value not in OBLIGATION_STATUSES:
        raise ValueError(f"status must be one of {', '.join(OBLIGATION_STATUSES)}")


def _normalize_timestamp(value: datetime) -> datetime:
    """Normalize a datetime value to UTC."""
    return to_utc(value)


__all__ = [
    "ObligationCreateInput",
    "ObligationRepository",
    "ObligationUpdateInput",
    "UNSET",
    "normalize_deadline",
]
