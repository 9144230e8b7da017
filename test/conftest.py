"""Pytest configuration for the reminder engine test suite."""

import os
import sys
from pathlib import Path
from typing import Generator

import pytest


def _ensure_test_env() -> None:
    """Seed environment variables so settings resolve deterministically."""
    os.environ["USER_TIMEZONE"] = "UTC"
    os.environ["REMINDER_ANCHOR_TIME"] = "09:00"
    os.environ["REMINDERS_ENABLED"] = "true"
    os.environ.setdefault("DATABASE_URL", "sqlite://")
    os.environ.setdefault("LOG_JSON", "false")


_ensure_test_env()

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from config import UserConfig, settings  # noqa: E402
from models import Base  # noqa: E402


@pytest.fixture()
def sqlite_session_factory(tmp_path: Path) -> Generator[sessionmaker, None, None]:
    """Provide a sqlite session factory backed by a temp file."""
    db_path = tmp_path / "lifeadmin.db"
    engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture()
def local_timezone(monkeypatch):
    """Return a setter that switches the configured user timezone."""

    def _set(name: str) -> None:
        monkeypatch.setattr(settings, "user", UserConfig(timezone=name))

    return _set
