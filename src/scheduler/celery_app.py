"""Celery entry point for the periodic reminder dispatch job."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any, Callable

from celery import Celery
from celery.signals import setup_logging
from sqlalchemy.orm import Session

from config import settings
from logging_setup import configure_from_settings
from obligations.reminder_dispatch import JOB_NAME, ReminderDispatchJob
from services.database import get_sync_session

LOGGER = logging.getLogger(__name__)

celery_app = Celery("lifeadmin.reminders")
celery_app.conf.broker_url = settings.celery.broker_url
celery_app.conf.result_backend = settings.celery.result_backend
celery_app.conf.task_default_queue = settings.celery.queue_name
celery_app.conf.task_serializer = "json"
celery_app.conf.result_serializer = "json"
celery_app.conf.accept_content = ["json"]
celery_app.conf.enable_utc = True
celery_app.conf.timezone = "UTC"

beat_schedule = celery_app.conf.get("beat_schedule")
if beat_schedule is None:
    beat_schedule = {}
if settings.reminders.enabled:
    beat_schedule[JOB_NAME] = {
        "task": JOB_NAME,
        "schedule": float(settings.reminders.dispatch_interval_seconds),
    }
celery_app.conf.beat_schedule = beat_schedule


def _session_factory() -> Session:
    """Return a new synchronous SQLAlchemy session for reminder tasks."""
    return get_sync_session()


def run_dispatch(
    *,
    session_factory: Callable[[], Session],
    now: datetime | None = None,
) -> dict[str, Any]:
    """Run one dispatch pass and return its counters."""
    timestamp = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    result = ReminderDispatchJob(session_factory).process_due(timestamp)
    LOGGER.info(
        "Reminder task completed: processed=%s resolved=%s deferred=%s",
        result.processed_count,
        result.resolved_count,
        result.deferred_count,
    )
    return result.to_dict()


@celery_app.task(name=JOB_NAME, acks_late=True)
def process_due_reminders_task() -> dict[str, Any]:
    """Celery beat job that turns due reminders into nudges."""
    return run_dispatch(session_factory=_session_factory)


@setup_logging.connect
def _configure_logging(**_: Any) -> None:
    """Route worker and beat logs through the shared stdout configuration."""
    configure_from_settings(service="lifeadmin-worker")


__all__ = [
    "celery_app",
    "process_due_reminders_task",
    "run_dispatch",
]
