"""SQLite implementation of the job store.

Every status change is a single conditional UPDATE keyed on the job's current
status, so two replay passes can never both claim the same job.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

import peewee

from docsync.core.time_utils import utc_now
from docsync.db.models import SyncJob
from docsync.domain.models.job import ENTITY_ID_KEY, Job, JobStatus, JobType, allowed_sources
from docsync.infrastructure.persistence.sqlite.base import SqliteBaseRepository


def _to_domain(record: SyncJob) -> Job:
    return Job(
        job_id=record.job_id,
        type=JobType(record.type),
        payload=dict(record.payload or {}),
        status=JobStatus(record.status),
        attempts=record.attempts,
        last_error=record.last_error,
        created_at=record.created_at,
        seq=record.seq,
    )


class SqliteJobRepository(SqliteBaseRepository):
    """Adapter for sync_jobs table operations."""

    async def insert(self, job: Job) -> Job:
        def _insert() -> Job:
            record = SyncJob.create(
                job_id=job.job_id,
                type=job.type.value,
                payload=job.payload,
                status=job.status.value,
                attempts=job.attempts,
                last_error=job.last_error,
                created_at=job.created_at,
                updated_at=utc_now(),
            )
            return _to_domain(record)

        return await self._execute(_insert, operation_name="insert_job")

    async def get(self, job_id: str) -> Job | None:
        def _query() -> Job | None:
            record = SyncJob.get_or_none(SyncJob.job_id == job_id)
            return _to_domain(record) if record is not None else None

        return await self._execute(_query, operation_name="get_job", read_only=True)

    async def list_jobs(
        self,
        *,
        status: JobStatus | None = None,
        types: Sequence[JobType] | None = None,
        limit: int | None = None,
    ) -> list[Job]:
        def _query() -> list[Job]:
            query = SyncJob.select()
            if status is not None:
                query = query.where(SyncJob.status == status.value)
            if types is not None:
                query = query.where(SyncJob.type.in_([t.value for t in types]))
            query = query.order_by(SyncJob.seq.asc())
            if limit is not None:
                query = query.limit(limit)
            return [_to_domain(record) for record in query]

        return await self._execute(_query, operation_name="list_jobs", read_only=True)

    async def transition(
        self,
        job_id: str,
        target: JobStatus,
        *,
        last_error: str | None = None,
        increment_attempts: bool = False,
    ) -> Job | None:
        """Move a job to ``target`` only if it currently sits in an allowed source status.

        The conditional UPDATE runs in the store's exclusive section, so two
        passes claiming the same job are serialized and exactly one sees
        ``updated == 1``. Returns None when the job was missing or elsewhere.
        """
        sources = [status.value for status in allowed_sources(target)]

        def _transition() -> Job | None:
            changes: dict[Any, Any] = {
                SyncJob.status: target.value,
                SyncJob.updated_at: utc_now(),
            }
            if last_error is not None:
                changes[SyncJob.last_error] = last_error
            if increment_attempts:
                changes[SyncJob.attempts] = SyncJob.attempts + 1
            updated = (
                SyncJob.update(changes)
                .where((SyncJob.job_id == job_id) & (SyncJob.status.in_(sources)))
                .execute()
            )
            if updated != 1:
                return None
            return _to_domain(SyncJob.get(SyncJob.job_id == job_id))

        return await self._execute_atomic(_transition, operation_name=f"job_to_{target.value}")

    async def delete(self, job_id: str, *, only_status: JobStatus | None = None) -> bool:
        def _delete() -> bool:
            query = SyncJob.delete().where(SyncJob.job_id == job_id)
            if only_status is not None:
                query = query.where(SyncJob.status == only_status.value)
            return query.execute() > 0

        return await self._execute(_delete, operation_name="delete_job")

    async def count_by_status(self) -> dict[JobStatus, int]:
        def _query() -> dict[JobStatus, int]:
            counts = {status: 0 for status in JobStatus}
            rows = (
                SyncJob.select(SyncJob.status, peewee.fn.COUNT(SyncJob.seq).alias("n"))
                .group_by(SyncJob.status)
                .tuples()
            )
            for status, n in rows:
                counts[JobStatus(status)] = n
            return counts

        return await self._execute(_query, operation_name="count_jobs", read_only=True)

    async def reset_failed(self) -> int:
        """Re-arm failed jobs with a fresh attempt budget."""

        def _reset() -> int:
            return (
                SyncJob.update(
                    {
                        SyncJob.status: JobStatus.PENDING.value,
                        SyncJob.attempts: 0,
                        SyncJob.last_error: None,
                        SyncJob.updated_at: utc_now(),
                    }
                )
                .where(SyncJob.status == JobStatus.FAILED.value)
                .execute()
            )

        return await self._execute(_reset, operation_name="reset_failed_jobs")

    async def reset_processing(self) -> int:
        def _reset() -> int:
            return (
                SyncJob.update(
                    {SyncJob.status: JobStatus.PENDING.value, SyncJob.updated_at: utc_now()}
                )
                .where(SyncJob.status == JobStatus.PROCESSING.value)
                .execute()
            )

        return await self._execute(_reset, operation_name="reset_processing_jobs")

    async def purge_terminal(self, older_than: datetime) -> int:
        def _purge() -> int:
            return (
                SyncJob.delete()
                .where(
                    SyncJob.status.in_([JobStatus.COMPLETED.value, JobStatus.FAILED.value])
                    & (SyncJob.updated_at < older_than)
                )
                .execute()
            )

        return await self._execute(_purge, operation_name="purge_terminal_jobs")

    async def rewrite_entity_id(self, types: Sequence[JobType], old_id: str, new_id: str) -> int:
        """Point pending jobs of ``types`` that reference ``old_id`` at ``new_id``."""

        def _rewrite() -> int:
            query = SyncJob.select().where(
                SyncJob.status == JobStatus.PENDING.value,
                SyncJob.type.in_([t.value for t in types]),
            )
            rewritten = 0
            for record in query:
                payload = dict(record.payload or {})
                if payload.get(ENTITY_ID_KEY) != old_id:
                    continue
                payload[ENTITY_ID_KEY] = new_id
                SyncJob.update({SyncJob.payload: payload, SyncJob.updated_at: utc_now()}).where(
                    SyncJob.seq == record.seq
                ).execute()
                rewritten += 1
            return rewritten

        return await self._execute_atomic(_rewrite, operation_name="rewrite_job_entity_id")
