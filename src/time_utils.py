"""Time zone helpers for UTC storage and local calendar semantics."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from config import settings


def get_local_timezone() -> ZoneInfo:
    """Return the configured local timezone."""
    timezone_name = settings.user.timezone
    try:
        return ZoneInfo(timezone_name)
    except ZoneInfoNotFoundError as exc:
        raise ValueError(f"Invalid timezone: {timezone_name}") from exc


def to_local(value: datetime) -> datetime:
    """Convert a datetime to the configured local timezone."""
    local_tz = get_local_timezone()
    if value.tzinfo is None:
        return value.replace(tzinfo=local_tz)
    return value.astimezone(local_tz)


def to_utc(value: datetime) -> datetime:
    """Convert a datetime to UTC."""
    local_value = to_local(value)
    return local_value.astimezone(timezone.utc)


def from_storage(value: datetime | None) -> datetime | None:
    """Attach UTC to naive timestamps read back from storage.

    SQLite drops offsets on round-trip; every stored timestamp is UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_date(value: date | datetime) -> date:
    """Return the local calendar date of a date or datetime value."""
    if isinstance(value, datetime):
        return to_local(value).date()
    return value


def at_local_time(day: date, at: time) -> datetime:
    """Return the UTC instant of a local wall-clock time on the given date."""
    local_value = datetime.combine(day, at, tzinfo=get_local_timezone())
    return local_value.astimezone(timezone.utc)


def local_now() -> datetime:
    """Return the current time in the configured local timezone."""
    return datetime.now(get_local_timezone())
