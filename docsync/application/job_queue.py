"""Durable job queue.

The queue is the only component that changes a job's status. Coordinators
enqueue jobs and drive replay through this API; they never touch the job
store directly.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import timedelta
from typing import Any, NoReturn

from docsync.config.sync import DEFAULT_MAX_ATTEMPTS
from docsync.core.identifiers import generate_job_id
from docsync.core.time_utils import utc_now
from docsync.domain.exceptions.domain_exceptions import (
    InvalidStateTransitionError,
    MaxAttemptsExceededError,
    ResourceNotFoundError,
)
from docsync.domain.models.job import Job, JobQueueStatus, JobStatus, JobType
from docsync.protocols import JobStore

logger = logging.getLogger(__name__)

DEFAULT_RETENTION = timedelta(days=7)


class JobQueue:
    """FIFO queue of mutation intents with bounded retries.

    Args:
        store: Persistence for job rows.
        max_attempts: Attempt ceiling; a job is failed once its attempt
            count reaches this value.
        retain_completed: Keep completed jobs with status ``completed``
            instead of deleting them.
    """

    def __init__(
        self,
        store: JobStore,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retain_completed: bool = False,
        retention: timedelta = DEFAULT_RETENTION,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._store = store
        self.max_attempts = max_attempts
        self.retain_completed = retain_completed
        self.retention = retention

    async def enqueue(self, job_type: JobType, payload: dict[str, Any]) -> str:
        """Durably record a new pending job and return its id."""
        job = await self._store.insert(
            Job(job_id=generate_job_id(), type=job_type, payload=dict(payload))
        )
        logger.info(
            "job_enqueued",
            extra={
                "job_id": job.job_id,
                "job_type": job.type.value,
                "entity_id": job.entity_id,
            },
        )
        return job.job_id

    async def pending_jobs(self, types: Sequence[JobType] | None = None) -> list[Job]:
        """Pending jobs in creation order."""
        return await self._store.list_jobs(status=JobStatus.PENDING, types=types)

    async def mark_processing(self, job_id: str) -> Job | None:
        """Claim a pending job.

        Returns:
            The claimed job, or None if it was not pending (another pass
            claimed it first, or it no longer exists).
        """
        job = await self._store.transition(job_id, JobStatus.PROCESSING)
        if job is None:
            logger.debug("job_claim_lost", extra={"job_id": job_id})
        return job

    async def complete(self, job_id: str) -> None:
        if self.retain_completed:
            job = await self._store.transition(job_id, JobStatus.COMPLETED)
            if job is None:
                await self._raise_rejected(job_id, JobStatus.COMPLETED)
        elif not await self._store.delete(job_id, only_status=JobStatus.PROCESSING):
            await self._raise_rejected(job_id, JobStatus.COMPLETED)
        logger.debug("job_completed", extra={"job_id": job_id})

    async def fail(self, job_id: str, reason: str) -> None:
        """Move a job to the terminal ``failed`` status."""
        job = await self._store.transition(job_id, JobStatus.FAILED, last_error=reason)
        if job is None:
            await self._raise_rejected(job_id, JobStatus.FAILED)
        logger.error(
            "job_failed",
            extra={
                "job_id": job_id,
                "job_type": job.type.value,
                "attempts": job.attempts,
                "max_attempts": self.max_attempts,
                "error": reason,
            },
        )

    async def record_attempt_failure(self, job_id: str, error: str) -> Job:
        """Count a failed attempt and return the job to ``pending``.

        Whether the job is then abandoned is the caller's decision; see
        :meth:`is_exhausted`.
        """
        job = await self._store.transition(
            job_id, JobStatus.PENDING, last_error=error, increment_attempts=True
        )
        if job is None:
            await self._raise_rejected(job_id, JobStatus.PENDING)
        logger.warning(
            "job_attempt_failed",
            extra={
                "job_id": job_id,
                "job_type": job.type.value,
                "attempts": job.attempts,
                "max_attempts": self.max_attempts,
                "error": error,
            },
        )
        return job

    def is_exhausted(self, job: Job) -> bool:
        return job.has_exhausted(self.max_attempts)

    async def abandon(self, job: Job) -> None:
        """Fail a job whose attempts reached the ceiling."""
        reason = MaxAttemptsExceededError(job.job_id, job.attempts, job.last_error).message
        await self.fail(job.job_id, reason)

    async def get(self, job_id: str) -> Job | None:
        return await self._store.get(job_id)

    async def jobs_by_type(self, job_type: JobType) -> list[Job]:
        return await self._store.list_jobs(types=[job_type])

    async def list_jobs(
        self, *, status: JobStatus | None = None, limit: int | None = None
    ) -> list[Job]:
        return await self._store.list_jobs(status=status, limit=limit)

    async def job_count(self, status: JobStatus) -> int:
        counts = await self._store.count_by_status()
        return counts.get(status, 0)

    async def has_pending_jobs(self) -> bool:
        return await self.job_count(JobStatus.PENDING) > 0

    async def has_jobs_for_entity(
        self,
        types: Sequence[JobType],
        entity_id: str,
        *,
        statuses: Iterable[JobStatus] = (JobStatus.PENDING, JobStatus.PROCESSING),
        exclude_job_id: str | None = None,
    ) -> bool:
        """True if any unfinished job of ``types`` targets ``entity_id``."""
        for status in statuses:
            for job in await self._store.list_jobs(status=status, types=types):
                if job.job_id != exclude_job_id and job.entity_id == entity_id:
                    return True
        return False

    async def entity_ids_with_jobs(
        self,
        types: Sequence[JobType],
        *,
        statuses: Iterable[JobStatus] = (JobStatus.PENDING, JobStatus.PROCESSING),
    ) -> set[str]:
        ids: set[str] = set()
        for status in statuses:
            for job in await self._store.list_jobs(status=status, types=types):
                if job.entity_id is not None:
                    ids.add(job.entity_id)
        return ids

    async def rewrite_entity_id(self, types: Sequence[JobType], old_id: str, new_id: str) -> int:
        rewritten = await self._store.rewrite_entity_id(types, old_id, new_id)
        if rewritten:
            logger.info(
                "job_entity_id_rewritten",
                extra={"local_id": old_id, "server_id": new_id, "count": rewritten},
            )
        return rewritten

    async def retry_failed_jobs(self) -> int:
        """Re-arm every failed job with a fresh attempt budget."""
        count = await self._store.reset_failed()
        logger.info("failed_jobs_rearmed", extra={"count": count})
        return count

    async def clear_old_jobs(self, age: timedelta | None = None) -> int:
        """Delete terminal jobs that reached their final status before ``age`` ago."""
        cutoff = utc_now() - (age if age is not None else self.retention)
        count = await self._store.purge_terminal(cutoff)
        logger.info("old_jobs_cleared", extra={"count": count, "cutoff": cutoff.isoformat()})
        return count

    async def recover_stale_processing(self) -> int:
        """Return jobs stuck in ``processing`` after a crash to ``pending``."""
        count = await self._store.reset_processing()
        if count:
            logger.warning("stale_processing_jobs_recovered", extra={"count": count})
        return count

    async def status_snapshot(self) -> JobQueueStatus:
        counts = await self._store.count_by_status()
        return JobQueueStatus(
            pending=counts.get(JobStatus.PENDING, 0),
            processing=counts.get(JobStatus.PROCESSING, 0),
            failed=counts.get(JobStatus.FAILED, 0),
            completed=counts.get(JobStatus.COMPLETED, 0),
        )

    async def _raise_rejected(self, job_id: str, target: JobStatus) -> NoReturn:
        job = await self._store.get(job_id)
        if job is None:
            raise ResourceNotFoundError(f"Job {job_id} not found", {"job_id": job_id})
        raise InvalidStateTransitionError(
            f"Cannot move job {job_id} from {job.status.value} to {target.value}",
            {"job_id": job_id, "from": job.status.value, "to": target.value},
        )
