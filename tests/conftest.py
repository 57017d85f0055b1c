"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from docsync.db.session import DatabaseSessionManager
from tests.fakes import SyncHarness, make_harness


@pytest.fixture
def bookmarks() -> SyncHarness:
    return make_harness("bookmark")


@pytest.fixture
def comments() -> SyncHarness:
    return make_harness("comment")


@pytest.fixture
def libraries() -> SyncHarness:
    return make_harness("library")


@pytest.fixture
def db_session(tmp_path) -> DatabaseSessionManager:
    """File-backed SQLite database with all tables created."""
    session = DatabaseSessionManager(path=str(tmp_path / "docsync.db"), operation_timeout=10.0)
    session.migrate()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep tests independent of the developer's environment and .env file."""
    for name in (
        "DB_PATH",
        "LOG_LEVEL",
        "LOG_FILE",
        "DB_OPERATION_TIMEOUT",
        "DB_MAX_RETRIES",
        "SYNC_MAX_ATTEMPTS",
        "SYNC_REPLAY_INTERVAL_SEC",
        "SYNC_COMPLETED_RETENTION_DAYS",
        "SYNC_RETAIN_COMPLETED_JOBS",
        "REMOTE_API_URL",
        "REMOTE_API_TOKEN",
        "REMOTE_TIMEOUT_SEC",
        "REMOTE_MAX_RETRIES",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
