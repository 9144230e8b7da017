"""Nudge persistence with read/dismiss semantics."""

from __future__ import annotations

from contextlib import closing
from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Callable, Iterable

from sqlalchemy.orm import Session

from models import Nudge
from obligations.types import NudgeTone
from time_utils import to_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NudgeDraft:
    """A nudge computed by the dispatch job, not yet persisted."""

    user_id: str
    obligation_id: str
    message: str
    tone: NudgeTone


def create_nudge_records(
    session: Session,
    drafts: Iterable[NudgeDraft],
    *,
    created_at: datetime,
) -> list[Nudge]:
    """Insert nudge rows for the given drafts within a session."""
    timestamp = to_utc(created_at)
    records = [
        Nudge(
            user_id=draft.user_id,
            obligation_id=draft.obligation_id,
            message=draft.message,
            tone=draft.tone,
            read=False,
            created_at=timestamp,
        )
        for draft in drafts
    ]
    session.add_all(records)
    session.flush()
    return records


class NudgeRepository:
    """Repository for listing and dismissing a user's nudges."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        """Initialize repository with a SQLAlchemy session factory."""
        self._session_factory = session_factory

    def list_for_user(self, user_id: str) -> list[Nudge]:
        """Return a user's nudges, newest first."""

        def handler(session: Session) -> list[Nudge]:
            return list(
                session.query(Nudge)
                .filter(Nudge.user_id == user_id)
                .order_by(Nudge.created_at.desc(), Nudge.nudge_id.desc())
                .all()
            )

        return self._execute(handler)

    def unread_count(self, user_id: str) -> int:
        """Return the number of unread nudges for a user."""

        def handler(session: Session) -> int:
            return (
                session.query(Nudge)
                .filter(Nudge.user_id == user_id, Nudge.read.is_(False))
                .count()
            )

        return self._execute(handler)

    def create_many(self, drafts: Iterable[NudgeDraft], *, created_at: datetime) -> list[Nudge]:
        """Insert a batch of nudges in a single unit of work."""
        pending = list(drafts)
        if not pending:
            return []

        def handler(session: Session) -> list[Nudge]:
            return create_nudge_records(session, pending, created_at=created_at)

        return self._execute(handler)

    def dismiss(self, nudge_id: str, *, user_id: str) -> bool:
        """Mark a nudge read; missing or already-read nudges are a no-op.

        Returns True only when a nudge actually changed state.
        """

        def handler(session: Session) -> bool:
            nudge = (
                session.query(Nudge)
                .filter(Nudge.nudge_id == nudge_id, Nudge.user_id == user_id)
                .one_or_none()
            )
            if nudge is None or nudge.read:
                return False
            nudge.read = True
            session.flush()
            return True

        changed = self._execute(handler)
        if not changed:
            logger.debug("Nudge dismiss ignored: nudge_id=%s", nudge_id)
        return changed

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


__all__ = [
    "NudgeDraft",
    "NudgeRepository",
    "create_nudge_records",
]
