"""
Shared test fixtures for the todoapp test suite.

Provides an isolated SQLite database per test via a temporary file,
a controllable clock for limiter tests, and helpers for building
settings and bearer headers.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, Optional

import pytest

from todoapp.auth.tokens import issue_token
from todoapp.config.settings import (
    READ_SECTION,
    WRITE_SECTION,
    AuthSettings,
    RateLimitSettings,
    Settings,
)
from todoapp.storage.connection import close_connection, get_connection
from todoapp.storage.item_store import TodoItemStore
from todoapp.storage.schema import initialize_database


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeWallClock:
    """UTC wall clock for the item store, stepping one minute per call."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.current = start or datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        value = self.current
        self.current += timedelta(minutes=1)
        return value


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Temporary SQLite database path, cleaned up by tmp_path."""
    return tmp_path / "test_todoapp.db"


@pytest.fixture
def db(db_path: Path):
    """Initialized database connection; closed after the test."""
    initialize_database(db_path)
    conn = get_connection(db_path)
    yield conn
    close_connection(db_path)


@pytest.fixture
def item_store(db, db_path: Path) -> TodoItemStore:
    """TodoItemStore on the test database with a deterministic clock."""
    return TodoItemStore(db_path, clock=FakeWallClock())


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def make_policy(**kwargs) -> RateLimitSettings:
    """RateLimitSettings with small, test-friendly defaults."""
    defaults = dict(
        token_limit=5,
        tokens_per_period=1,
        replenishment_period=10.0,
        auto_replenishment=True,
        queue_limit=0,
    )
    defaults.update(kwargs)
    return RateLimitSettings(**defaults)


def make_settings(
    tmp_path: Path,
    read: Optional[RateLimitSettings] = None,
    write: Optional[RateLimitSettings] = None,
    **kwargs,
) -> Settings:
    """Settings rooted in tmp_path; rate limits default to generous buckets."""
    rate_limits = {
        READ_SECTION: read or make_policy(token_limit=1000, tokens_per_period=1000),
        WRITE_SECTION: write or make_policy(token_limit=1000, tokens_per_period=1000),
    }
    settings = Settings(project_root=tmp_path, rate_limits=rate_limits, **kwargs)
    settings.ensure_dirs()
    return settings


def bearer(user_id: str, scopes: Iterable[str] = (), name: Optional[str] = None) -> dict[str, str]:
    """Authorization header for a token signed with the default AuthSettings."""
    token = issue_token(user_id, name=name, scopes=scopes, settings=AuthSettings())
    return {"Authorization": f"Bearer {token}"}
