"""Property-based tests for the job queue."""

from __future__ import annotations

import asyncio

from hypothesis import given, settings, strategies as st

from docsync.application.job_queue import JobQueue
from docsync.domain.models.job import JobStatus, JobType
from tests.fakes import InMemoryJobStore

job_types = st.lists(st.sampled_from(list(JobType)), min_size=1, max_size=20)


class TestJobQueueProperties:
    """FIFO and retry-ceiling properties."""

    @given(types=job_types, data=st.data())
    @settings(max_examples=50, deadline=None)
    def test_pending_order_survives_partial_completion(self, types, data) -> None:
        completed = data.draw(st.sets(st.integers(min_value=0, max_value=len(types) - 1)))

        async def scenario() -> tuple[list[str], list[str]]:
            queue = JobQueue(InMemoryJobStore())
            ids = [await queue.enqueue(t, {"entity_id": f"e-{i}"}) for i, t in enumerate(types)]
            for index in sorted(completed):
                await queue.mark_processing(ids[index])
                await queue.complete(ids[index])
            remaining = [job_id for i, job_id in enumerate(ids) if i not in completed]
            return remaining, [job.job_id for job in await queue.pending_jobs()]

        expected, pending = asyncio.run(scenario())

        assert pending == expected

    @given(max_attempts=st.integers(min_value=1, max_value=8))
    @settings(max_examples=20, deadline=None)
    def test_job_fails_exactly_at_the_attempt_budget(self, max_attempts: int) -> None:
        async def scenario() -> list[JobStatus]:
            queue = JobQueue(InMemoryJobStore(), max_attempts=max_attempts)
            job_id = await queue.enqueue(JobType.CREATE_COMMENT, {"entity_id": "c-1"})
            seen = []
            for attempt in range(max_attempts):
                await queue.mark_processing(job_id)
                job = await queue.record_attempt_failure(job_id, f"error {attempt + 1}")
                if queue.is_exhausted(job):
                    await queue.abandon(job)
                seen.append((await queue.get(job_id)).status)
            return seen

        statuses = asyncio.run(scenario())

        assert statuses[:-1] == [JobStatus.PENDING] * (max_attempts - 1)
        assert statuses[-1] is JobStatus.FAILED
