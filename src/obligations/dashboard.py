"""At-a-glance dashboard counters."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Iterable

from obligations.due_dates import get_due_date_status
from obligations.types import ObligationSnapshot
from time_utils import to_local, to_utc

COMPLETED_WINDOW = timedelta(days=7)


@dataclass(frozen=True)
class DashboardStats:
    needs_attention: int
    coming_up: int
    completed_this_week: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def dashboard_stats(obligations: Iterable[ObligationSnapshot], now: datetime) -> DashboardStats:
    """Count overdue, due-soon, and recently completed obligations.

    "This week" is a rolling seven days ending at now, not the calendar week
    used by the weekly digest.
    """
    timestamp = to_utc(now)
    today = to_local(timestamp).date()
    cutoff = timestamp - COMPLETED_WINDOW
    needs_attention = 0
    coming_up = 0
    completed = 0
    for item in obligations:
        if not item.is_active:
            if item.updated_at is not None and item.updated_at >= cutoff:
                completed += 1
            continue
        status = get_due_date_status(item.deadline, today)
        if status == "overdue":
            needs_attention += 1
        elif status == "due-soon":
            coming_up += 1
    return DashboardStats(
        needs_attention=needs_attention,
        coming_up=coming_up,
        completed_this_week=completed,
    )


__all__ = ["DashboardStats", "dashboard_stats"]
