"""SQLite job repository: FIFO listing, conditional transitions and maintenance."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from docsync.application.job_queue import JobQueue
from docsync.core.time_utils import utc_now
from docsync.db.models import SyncJob
from docsync.domain.models.entities import EntityKind
from docsync.domain.models.job import Job, JobStatus, JobType
from docsync.infrastructure.persistence.sqlite.repositories import SqliteJobRepository


def _job(job_id: str, job_type: JobType = JobType.CREATE_BOOKMARK, entity_id: str = "e") -> Job:
    return Job(
        job_id=job_id,
        type=job_type,
        payload={"entity_id": entity_id, "parent_id": "doc-1", "fields": {"note": "n"}},
    )


@pytest.fixture
def repo(db_session) -> SqliteJobRepository:
    return SqliteJobRepository(db_session)


@pytest.mark.asyncio
async def test_insert_assigns_sequence_and_round_trips(repo):
    first = await repo.insert(_job("job_a"))
    second = await repo.insert(_job("job_b"))

    assert second.seq > first.seq
    loaded = await repo.get("job_a")
    assert loaded.to_wire() == first.to_wire()
    assert loaded.payload["fields"] == {"note": "n"}
    assert await repo.get("job_missing") is None


@pytest.mark.asyncio
async def test_list_jobs_is_fifo_and_filterable(repo):
    await repo.insert(_job("job_1", JobType.CREATE_BOOKMARK))
    await repo.insert(_job("job_2", JobType.CREATE_COMMENT))
    await repo.insert(_job("job_3", JobType.DELETE_BOOKMARK))

    assert [j.job_id for j in await repo.list_jobs()] == ["job_1", "job_2", "job_3"]
    bookmark_jobs = await repo.list_jobs(types=JobType.for_kind(EntityKind.BOOKMARK))
    assert [j.job_id for j in bookmark_jobs] == ["job_1", "job_3"]
    assert [j.job_id for j in await repo.list_jobs(limit=1)] == ["job_1"]
    assert await repo.list_jobs(status=JobStatus.FAILED) == []


@pytest.mark.asyncio
async def test_transition_is_conditional_on_current_status(repo):
    await repo.insert(_job("job_1"))

    claimed = await repo.transition("job_1", JobStatus.PROCESSING)
    assert claimed.status is JobStatus.PROCESSING
    assert await repo.transition("job_1", JobStatus.PROCESSING) is None

    retried = await repo.transition(
        "job_1", JobStatus.PENDING, last_error="boom", increment_attempts=True
    )
    assert retried.attempts == 1
    assert retried.last_error == "boom"

    assert await repo.transition("job_1", JobStatus.COMPLETED) is None
    assert await repo.transition("job_missing", JobStatus.PROCESSING) is None


@pytest.mark.asyncio
async def test_concurrent_claims_have_exactly_one_winner(repo):
    await repo.insert(_job("job_1"))

    results = await asyncio.gather(
        *(repo.transition("job_1", JobStatus.PROCESSING) for _ in range(5))
    )

    assert sum(result is not None for result in results) == 1


@pytest.mark.asyncio
async def test_delete_only_in_expected_status(repo):
    await repo.insert(_job("job_1"))

    assert not await repo.delete("job_1", only_status=JobStatus.PROCESSING)
    assert await repo.delete("job_1")
    assert not await repo.delete("job_1")


@pytest.mark.asyncio
async def test_counts_resets_and_purge(db_session, repo):
    for job_id in ("job_1", "job_2", "job_3", "job_4"):
        await repo.insert(_job(job_id))
    await repo.transition("job_1", JobStatus.PROCESSING)
    await repo.transition("job_2", JobStatus.FAILED, last_error="x")
    await repo.transition("job_3", JobStatus.PROCESSING)
    await repo.transition("job_3", JobStatus.COMPLETED)

    counts = await repo.count_by_status()
    assert counts == {
        JobStatus.PENDING: 1,
        JobStatus.PROCESSING: 1,
        JobStatus.COMPLETED: 1,
        JobStatus.FAILED: 1,
    }

    with db_session.database.connection_context():
        SyncJob.update({SyncJob.updated_at: utc_now() - timedelta(days=30)}).where(
            SyncJob.job_id.in_(["job_3", "job_4"])
        ).execute()

    assert await repo.purge_terminal(utc_now() - timedelta(days=7)) == 1
    assert await repo.get("job_3") is None
    assert await repo.get("job_4") is not None

    assert await repo.reset_processing() == 1
    assert await repo.reset_failed() == 1
    job = await repo.get("job_2")
    assert (job.status, job.attempts, job.last_error) == (JobStatus.PENDING, 0, None)


@pytest.mark.asyncio
async def test_rewrite_entity_id_updates_matching_pending_payloads(repo):
    await repo.insert(_job("job_1", JobType.UPDATE_BOOKMARK, "local"))
    await repo.insert(_job("job_2", JobType.UPDATE_COMMENT, "local"))
    await repo.insert(_job("job_3", JobType.DELETE_BOOKMARK, "other"))

    count = await repo.rewrite_entity_id(
        JobType.for_kind(EntityKind.BOOKMARK), "local", "srv-1"
    )

    assert count == 1
    assert (await repo.get("job_1")).entity_id == "srv-1"
    assert (await repo.get("job_2")).entity_id == "local"
    assert (await repo.get("job_3")).entity_id == "other"


@pytest.mark.asyncio
async def test_queue_over_sqlite_reaches_failed_after_three_attempts(repo):
    queue = JobQueue(repo, max_attempts=3)
    job_id = await queue.enqueue(JobType.CREATE_LIBRARY, {"entity_id": "lib-1"})

    for _ in range(3):
        assert await queue.mark_processing(job_id) is not None
        job = await queue.record_attempt_failure(job_id, "offline")
    await queue.abandon(job)

    failed = await queue.get(job_id)
    assert failed.status is JobStatus.FAILED
    assert failed.attempts == 3
    assert await queue.mark_processing(job_id) is None
