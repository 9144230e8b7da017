"""Operator CLI for the reminder engine, implemented with Typer."""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable

import typer
from sqlalchemy.orm import Session

from logging_setup import configure_from_settings
from obligations.banners import DismissalStore, select_urgent_banners
from obligations.dashboard import dashboard_stats
from obligations.nudges import NudgeRepository
from obligations.reminder_dispatch import ReminderDispatchJob
from obligations.repository import ObligationRepository
from obligations.stress import (
    ReassurancePicker,
    assess_stress,
    calm_language,
    focus_footer,
    focus_headline,
)
from obligations.weekly_digest import load_weekly_digest
from services.database import get_sync_session, run_migrations_sync

SUCCESS_EXIT_CODE = 0
DOMAIN_ERROR_EXIT_CODE = 3


@dataclass(frozen=True)
class CliConfig:
    """Global CLI options shared by every command."""

    as_json: bool
    now: datetime | None


def _session_factory() -> Session:
    return get_sync_session()


def _serialize(value: Any) -> Any:
    """Convert result objects to JSON-serializable structures."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if hasattr(value, "to_dict"):
        return _serialize(value.to_dict())
    if dataclasses.is_dataclass(value):
        return _serialize(dataclasses.asdict(value))
    if isinstance(value, dict):
        return {str(key): _serialize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_serialize(item) for item in value]
    return str(value)


def _emit_output(result: Any, as_json: bool) -> None:
    """Render command output as compact JSON or indented text."""
    data = _serialize(result)
    if as_json:
        typer.echo(json.dumps(data, sort_keys=True, separators=(",", ":")))
        return
    typer.echo(json.dumps(data, indent=2, sort_keys=True))


def _emit_error(exc: Exception, as_json: bool) -> None:
    if as_json:
        typer.echo(json.dumps({"error": str(exc)}), err=True)
        return
    typer.echo(f"error: {exc}", err=True)


def _run_command(cfg: CliConfig, invoke: Callable[[], Any]) -> None:
    """Execute one command and map its result or error to an exit code."""
    try:
        result = invoke()
    except ValueError as exc:
        _emit_error(exc, cfg.as_json)
        raise typer.Exit(code=DOMAIN_ERROR_EXIT_CODE) from exc
    _emit_output(result, cfg.as_json)
    raise typer.Exit(code=SUCCESS_EXIT_CODE)


def _require_config(ctx: typer.Context) -> CliConfig:
    config = ctx.obj
    if not isinstance(config, CliConfig):
        raise RuntimeError("CLI configuration not initialized")
    return config


def _resolve_now(cfg: CliConfig) -> datetime:
    return cfg.now or datetime.now(timezone.utc)


def _parse_now(value: str | None) -> datetime | None:
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid ISO-8601 timestamp: {value}") from exc


app = typer.Typer(no_args_is_help=True, help="Life-admin reminder engine CLI")


@app.callback()
def main(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Emit compact JSON output"),
    now: str | None = typer.Option(
        None,
        "--now",
        help="Evaluate as of this ISO-8601 instant instead of the current time",
    ),
) -> None:
    """Store global options for all commands."""
    configure_from_settings(service="lifeadmin-cli")
    ctx.obj = CliConfig(as_json=as_json, now=_parse_now(now))


@app.command("process-reminders")
def process_reminders_command(ctx: typer.Context) -> None:
    """Run one reminder dispatch pass."""
    cfg = _require_config(ctx)
    _run_command(
        cfg,
        lambda: ReminderDispatchJob(_session_factory).process_due(_resolve_now(cfg)),
    )


@app.command("digest")
def digest_command(
    ctx: typer.Context,
    user_id: str = typer.Argument(..., help="Owner of the obligations"),
) -> None:
    """Print the weekly digest for a user."""
    cfg = _require_config(ctx)
    _run_command(
        cfg,
        lambda: load_weekly_digest(_session_factory, user_id, now=_resolve_now(cfg)),
    )


@app.command("stress")
def stress_command(
    ctx: typer.Context,
    user_id: str = typer.Argument(..., help="Owner of the obligations"),
    seed: int | None = typer.Option(None, help="Seed for reassurance selection"),
) -> None:
    """Print the stress assessment and focus list for a user."""
    cfg = _require_config(ctx)

    def invoke() -> dict[str, Any]:
        snapshots = ObligationRepository(_session_factory).list_snapshots_for_user(user_id)
        assessment = assess_stress(
            snapshots,
            _resolve_now(cfg),
            picker=ReassurancePicker(seed),
        )
        return {
            "level": assessment.level,
            "is_stressed": assessment.is_stressed,
            "high_priority_count": assessment.high_priority_count,
            "urgent_count": assessment.urgent_count,
            "overlapping_days": assessment.overlapping_days,
            "headline": focus_headline(assessment),
            "focus": assessment.focus,
            "footer": calm_language(focus_footer(assessment), assessment.is_stressed),
        }

    _run_command(cfg, invoke)


@app.command("dashboard")
def dashboard_command(
    ctx: typer.Context,
    user_id: str = typer.Argument(..., help="Owner of the obligations"),
) -> None:
    """Print at-a-glance counters and urgent banners for a user."""
    cfg = _require_config(ctx)

    def invoke() -> dict[str, Any]:
        now = _resolve_now(cfg)
        snapshots = ObligationRepository(_session_factory).list_snapshots_for_user(user_id)
        return {
            "stats": dashboard_stats(snapshots, now),
            "banners": select_urgent_banners(snapshots, DismissalStore.from_settings(), now),
        }

    _run_command(cfg, invoke)


@app.command("nudges")
def nudges_command(
    ctx: typer.Context,
    user_id: str = typer.Argument(..., help="Owner of the nudges"),
) -> None:
    """List a user's nudges, newest first."""
    cfg = _require_config(ctx)

    def invoke() -> dict[str, Any]:
        repository = NudgeRepository(_session_factory)
        return {
            "unread_count": repository.unread_count(user_id),
            "nudges": [
                {
                    "nudge_id": nudge.nudge_id,
                    "obligation_id": nudge.obligation_id,
                    "message": nudge.message,
                    "tone": nudge.tone,
                    "read": nudge.read,
                    "created_at": nudge.created_at,
                }
                for nudge in repository.list_for_user(user_id)
            ],
        }

    _run_command(cfg, invoke)


@app.command("dismiss-nudge")
def dismiss_nudge_command(
    ctx: typer.Context,
    user_id: str = typer.Argument(..., help="Owner of the nudge"),
    nudge_id: str = typer.Argument(..., help="Nudge to mark read"),
) -> None:
    """Mark a nudge as read."""
    cfg = _require_config(ctx)
    _run_command(
        cfg,
        lambda: {"dismissed": NudgeRepository(_session_factory).dismiss(nudge_id, user_id=user_id)},
    )


@app.command("migrate")
def migrate_command(ctx: typer.Context) -> None:
    """Apply database migrations up to head."""
    cfg = _require_config(ctx)

    def invoke() -> dict[str, str]:
        run_migrations_sync()
        return {"status": "ok"}

    _run_command(cfg, invoke)


if __name__ == "__main__":
    app()
