from __future__ import annotations

import asyncio
import io
import json
import logging
from datetime import timedelta

import pytest

from docsync.application.job_queue import JobQueue
from docsync.cli.jobs import main, parse_args, run_jobs_cli
from docsync.core.time_utils import utc_now
from docsync.db.models import SyncJob
from docsync.db.session import DatabaseSessionManager
from docsync.domain.models.job import JobStatus, JobType
from docsync.infrastructure.persistence.sqlite.repositories import SqliteJobRepository


@pytest.fixture
def db_path(tmp_path) -> str:
    """Database holding two pending jobs and one failed job."""
    path = str(tmp_path / "cli.db")
    session = DatabaseSessionManager(path=path)
    session.migrate()
    queue = JobQueue(SqliteJobRepository(session))

    async def seed() -> None:
        await queue.enqueue(JobType.CREATE_BOOKMARK, {"entity_id": "b-1", "parent_id": "doc-1"})
        await queue.enqueue(JobType.UPDATE_COMMENT, {"entity_id": "c-1", "fields": {}})
        failed = await queue.enqueue(JobType.DELETE_LIBRARY, {"entity_id": "lib-1"})
        await queue.fail(failed, "server rejected delete")

    asyncio.run(seed())
    session.close()
    return path


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _run(db_path: str, *argv: str) -> str:
    out = io.StringIO()
    code = asyncio.run(run_jobs_cli(parse_args(["--db-path", db_path, *argv]), out=out))
    assert code == 0
    return out.getvalue()


def test_status_reports_counts(db_path):
    output = _run(db_path, "--json", "status")

    assert json.loads(output) == {
        "pending": 2,
        "processing": 0,
        "failed": 1,
        "completed": 0,
        "has_work": True,
        "has_errors": True,
    }


def test_status_text_output(db_path):
    output = _run(db_path, "status")

    assert "pending: 2" in output.splitlines()
    assert "failed: 1" in output.splitlines()


def test_list_filters_by_status(db_path):
    jobs = json.loads(_run(db_path, "--json", "list", "--status", "failed"))

    assert len(jobs) == 1
    assert jobs[0]["type"] == "delete_library"
    assert jobs[0]["last_error"] == "server rejected delete"


def test_list_text_is_in_enqueue_order(db_path):
    lines = _run(db_path, "list", "--limit", "2").splitlines()

    assert len(lines) == 2
    assert "create_bookmark" in lines[0]
    assert "update_comment" in lines[1]


def test_retry_failed_rearms_jobs(db_path):
    assert json.loads(_run(db_path, "--json", "retry-failed")) == {"rearmed": 1}

    status = json.loads(_run(db_path, "--json", "status"))
    assert (status["pending"], status["failed"]) == (3, 0)


def test_clear_old_removes_aged_terminal_jobs(db_path):
    session = DatabaseSessionManager(path=db_path)
    with session.database.connection_context():
        SyncJob.update({SyncJob.updated_at: utc_now() - timedelta(days=30)}).execute()
    session.close()

    assert json.loads(_run(db_path, "--json", "clear-old", "--days", "14")) == {"cleared": 1}
    assert json.loads(_run(db_path, "--json", "list", "--status", JobStatus.FAILED.value)) == []


def test_main_returns_zero_and_prints(db_path, capsys):
    assert main(["--db-path", db_path, "--log-level", "ERROR", "status"]) == 0

    assert "pending: 2" in capsys.readouterr().out


def test_unknown_command_exits():
    with pytest.raises(SystemExit):
        parse_args(["explode"])
