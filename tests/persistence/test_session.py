"""DatabaseSessionManager: migration, threading, timeouts and lock retries."""

from __future__ import annotations

import time

import peewee
import pytest

from docsync.db.models import ALL_MODELS, SyncJob
from docsync.db.session import DatabaseSessionManager


def test_migrate_creates_every_table(tmp_path):
    session = DatabaseSessionManager(path=str(tmp_path / "nested" / "app.db"))
    try:
        session.migrate()
        session.migrate()
        with session.database.connection_context():
            tables = set(session.database.get_tables())
    finally:
        session.close()

    assert {model._meta.table_name for model in ALL_MODELS} <= tables


@pytest.mark.asyncio
async def test_run_returns_operation_result(db_session):
    result = await db_session.run(lambda a, b: a + b, 2, 3, read_only=True)

    assert result == 5


@pytest.mark.asyncio
async def test_run_times_out(db_session):
    with pytest.raises(TimeoutError):
        await db_session.run(time.sleep, 0.3, timeout=0.05, operation_name="slow")


@pytest.mark.asyncio
async def test_locked_database_is_retried(tmp_path):
    session = DatabaseSessionManager(path=str(tmp_path / "retry.db"), max_retries=2)
    calls = 0

    def flaky() -> str:
        nonlocal calls
        calls += 1
        if calls < 3:
            raise peewee.OperationalError("database is locked")
        return "ok"

    try:
        assert await session.run(flaky) == "ok"
    finally:
        session.close()
    assert calls == 3


@pytest.mark.asyncio
async def test_other_operational_errors_are_not_retried(db_session):
    calls = 0

    def broken() -> None:
        nonlocal calls
        calls += 1
        raise peewee.OperationalError("no such table: nope")

    with pytest.raises(peewee.OperationalError):
        await db_session.run(broken)
    assert calls == 1


@pytest.mark.asyncio
async def test_transaction_rolls_back_on_error(db_session):
    def insert_then_fail() -> None:
        SyncJob.create(job_id="job_tx", type="createBookmark", payload={})
        raise peewee.IntegrityError("forced")

    with pytest.raises(peewee.IntegrityError):
        await db_session.transaction(insert_then_fail)

    count = await db_session.run(lambda: SyncJob.select().count(), read_only=True)
    assert count == 0
