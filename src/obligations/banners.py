"""Urgent banner selection and the client-local dismissal cache."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
from typing import Iterable, Mapping

from config import settings
from obligations.due_dates import DUE_SOON_WINDOW_DAYS, classify_due_date
from obligations.types import ObligationSnapshot
from time_utils import to_local, to_utc

logger = logging.getLogger(__name__)

DEFAULT_DISMISSAL_TTL = timedelta(hours=24)


class DismissalStore:
    """Obligation id to dismissal timestamp, with expiry.

    Expired entries are pruned lazily when they are read.
    """

    def __init__(
        self,
        ttl: timedelta = DEFAULT_DISMISSAL_TTL,
        entries: Mapping[str, datetime] | None = None,
    ) -> None:
        self._ttl = ttl
        self._entries: dict[str, datetime] = {
            key: to_utc(value) for key, value in (entries or {}).items()
        }

    @classmethod
    def from_settings(cls, entries: Mapping[str, datetime] | None = None) -> "DismissalStore":
        """Build a store using the configured dismissal window."""
        return cls(
            ttl=timedelta(hours=settings.reminders.banner_dismissal_hours),
            entries=entries,
        )

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def dismiss(self, obligation_id: str, now: datetime) -> None:
        """Record a dismissal at the given instant."""
        self._entries[obligation_id] = to_utc(now)

    def is_dismissed(self, obligation_id: str, now: datetime) -> bool:
        """Return True while a dismissal is younger than the TTL."""
        dismissed_at = self._entries.get(obligation_id)
        if dismissed_at is None:
            return False
        if to_utc(now) - dismissed_at >= self._ttl:
            del self._entries[obligation_id]
            return False
        return True

    def __len__(self) -> int:
        return len(self._entries)

    def to_dict(self) -> dict[str, str]:
        """Serialize entries as ISO-8601 strings."""
        return {key: value.isoformat() for key, value in self._entries.items()}

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, str],
        *,
        ttl: timedelta = DEFAULT_DISMISSAL_TTL,
    ) -> "DismissalStore":
        """Restore a store from ``to_dict`` output, skipping unreadable entries."""
        entries: dict[str, datetime] = {}
        for key, value in data.items():
            try:
                entries[key] = datetime.fromisoformat(value)
            except (TypeError, ValueError):
                logger.warning("Ignoring malformed dismissal entry: obligation_id=%s", key)
        return cls(ttl=ttl, entries=entries)


@dataclass(frozen=True)
class UrgentBanner:
    """A dismissible banner for a high-risk obligation."""

    obligation_id: str
    title: str
    message: str
    label: str
    days_until: int


def banner_message(title: str) -> str:
    """Return the banner text for an obligation title."""
    return f"Heads up: {title.lower()} is coming up soon."


def select_urgent_banners(
    obligations: Iterable[ObligationSnapshot],
    dismissals: DismissalStore,
    now: datetime,
    *,
    limit: int | None = None,
) -> list[UrgentBanner]:
    """Return the most urgent undismissed high-risk obligations."""
    max_banners = settings.reminders.banner_limit if limit is None else limit
    today = to_local(now).date()
    candidates: list[tuple[int, str, UrgentBanner]] = []
    for obligation in obligations:
        if not obligation.is_active or obligation.risk_level != "high":
            continue
        classification = classify_due_date(obligation.deadline, today)
        days = classification.days_until
        if days is None or days > DUE_SOON_WINDOW_DAYS:
            continue
        if dismissals.is_dismissed(obligation.obligation_id, now):
            continue
        candidates.append(
            (
                days,
                obligation.obligation_id,
                UrgentBanner(
                    obligation_id=obligation.obligation_id,
                    title=obligation.title,
                    message=banner_message(obligation.title),
                    label=classification.label,
                    days_until=days,
                ),
            )
        )
    candidates.sort(key=lambda item: (item[0], item[1]))
    return [banner for _, _, banner in candidates[: max(max_banners, 0)]]


__all__ = [
    "DEFAULT_DISMISSAL_TTL",
    "DismissalStore",
    "UrgentBanner",
    "banner_message",
    "select_urgent_banners",
]
