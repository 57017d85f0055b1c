"""Generic local-first coordinator, instantiated once per entity kind.

Every mutation is written to the local store before anything else happens.
When the device is online the matching remote call is attempted inline; when
it is offline, or the remote call fails, the intent is queued as a job and
replayed later in strict FIFO order.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from docsync.application.job_queue import JobQueue
from docsync.application.operations.base import CHANGES_KEY, EntityOperations
from docsync.core.identifiers import generate_local_id
from docsync.core.time_utils import utc_now
from docsync.domain.events.entity_events import DomainEvent, EntityEvent, EntityListRefreshed
from docsync.domain.exceptions.domain_exceptions import (
    RemoteServiceError,
    ResourceNotFoundError,
    StorageFaultError,
)
from docsync.domain.models.entities import Bookmark, Comment, EntityKind, SyncTracked
from docsync.domain.models.job import Job, JobOperation, JobStatus
from docsync.domain.services.reconciliation import reconcile_identity
from docsync.infrastructure.messaging.event_bus import EventBus
from docsync.protocols import ConnectivityOracle, LocalStore, SearchableRemoteClient

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=SyncTracked)


@dataclass
class ReplayReport:
    """Outcome counts of one replay pass."""

    processed: int = 0
    completed: int = 0
    retried: int = 0
    failed: int = 0

    def __add__(self, other: ReplayReport) -> ReplayReport:
        return ReplayReport(
            processed=self.processed + other.processed,
            completed=self.completed + other.completed,
            retried=self.retried + other.retried,
            failed=self.failed + other.failed,
        )


class EntitySyncCoordinator(Generic[E]):
    """Local-first writes, opportunistic sync and job replay for one entity kind.

    Local store errors propagate to the caller. Remote errors never do: they
    are logged and turned into queued jobs.
    """

    def __init__(
        self,
        operations: EntityOperations[E],
        queue: JobQueue,
        connectivity: ConnectivityOracle,
        *,
        events: EventBus | None = None,
    ) -> None:
        self._ops = operations
        self._queue = queue
        self._connectivity = connectivity
        self.events = events or EventBus(name=operations.kind.value)
        self._replay_lock = asyncio.Lock()

    @property
    def kind(self) -> EntityKind:
        return self._ops.kind

    @property
    def store(self) -> LocalStore[E]:
        return self._ops.store

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(self, **fields: Any) -> E:
        entity = self._ops.build(generate_local_id(), fields)
        await self._ops.local_create(entity)

        if not self._connectivity.is_online():
            await self._enqueue(JobOperation.CREATE, self._ops.create_payload(entity), "offline")
            await self._emit(EntityEvent.created(entity))
            return entity

        try:
            server_entity = await self._ops.remote_create(entity)
        except Exception as e:
            await self._enqueue(
                JobOperation.CREATE, self._ops.create_payload(entity), "remote_failed", e
            )
            await self._emit(EntityEvent.created(entity))
            return entity

        result = await reconcile_identity(self._ops.store, entity.id, server_entity)
        stored = result.entity if result.entity is not None else server_entity
        await self._emit(EntityEvent.created(stored))
        return stored

    async def update(self, entity_id: str, **changes: Any) -> E:
        current = await self._ops.store.get(entity_id)
        if current is None:
            raise ResourceNotFoundError(
                f"{self.kind.value} {entity_id} not found",
                {"kind": self.kind.value, "entity_id": entity_id},
            )
        changes = self._ops.validate_changes(changes)
        updated = self._ops.apply_changes(current, changes)
        await self._ops.local_update(updated)
        payload = self._ops.update_payload(updated, changes)

        if not self._connectivity.is_online():
            await self._enqueue(JobOperation.UPDATE, payload, "offline")
            await self._emit(EntityEvent.updated(updated))
            return updated

        if await self._has_unfinished_jobs(entity_id):
            # Earlier intents for this entity are still queued; keep FIFO.
            await self._enqueue(JobOperation.UPDATE, payload, "queued_behind")
            await self._emit(EntityEvent.updated(updated))
            return updated

        try:
            server_entity = await self._ops.remote_update(entity_id, changes)
        except Exception as e:
            await self._enqueue(JobOperation.UPDATE, payload, "remote_failed", e)
            await self._emit(EntityEvent.updated(updated))
            return updated

        server_entity.mark_synced()
        await self._ops.local_update(server_entity)
        await self._emit(EntityEvent.updated(server_entity))
        return server_entity

    async def delete(self, entity_id: str) -> None:
        current = await self._ops.store.get(entity_id)
        if current is None:
            logger.debug(
                "delete_missing_entity",
                extra={"entity_kind": self.kind.value, "entity_id": entity_id},
            )
            return

        await self._ops.local_delete(entity_id)
        payload = self._ops.delete_payload(current)

        if not self._connectivity.is_online():
            await self._enqueue(JobOperation.DELETE, payload, "offline")
        elif await self._has_unfinished_jobs(entity_id):
            await self._enqueue(JobOperation.DELETE, payload, "queued_behind")
        else:
            try:
                await self._remote_delete(entity_id)
            except Exception as e:
                await self._enqueue(JobOperation.DELETE, payload, "remote_failed", e)

        await self._emit(EntityEvent.deleted(current))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, entity_id: str) -> E | None:
        """Local copy, or the remote one (cached as synced) if absent locally."""
        local = await self._ops.store.get(entity_id)
        if local is not None or not self._connectivity.is_online():
            return local
        if await self._has_unfinished_jobs(entity_id):
            return None

        try:
            remote = await self._ops.remote.get(entity_id)
        except Exception as e:
            logger.debug(
                "remote_get_failed",
                extra={"entity_kind": self.kind.value, "entity_id": entity_id, "error": str(e)},
            )
            return None

        remote.mark_synced()
        await self._ops.store.put(remote)
        return remote

    async def list(self, parent_id: str | None, **filters: Any) -> list[E]:
        entities = await self._ops.store.get_all_by_parent(parent_id, **filters)

        if self._connectivity.is_online():
            try:
                remote = await self._ops.remote.list(parent_id, **filters)
            except Exception as e:
                logger.debug(
                    "remote_list_failed",
                    extra={"entity_kind": self.kind.value, "parent_id": parent_id, "error": str(e)},
                )
            else:
                await self._refresh_cache(entities, remote)
                entities = await self._ops.store.get_all_by_parent(parent_id, **filters)

        await self.events.publish(
            EntityListRefreshed(
                occurred_at=utc_now(),
                aggregate_id=parent_id,
                entity_kind=self.kind,
                parent_id=parent_id,
                entities=tuple(entities),
            )
        )
        return entities

    async def search(self, query: str, parent_id: str | None = None) -> list[E]:
        """Local and remote matches merged by id, server copy winning, newest first."""
        merged: dict[str, E] = {e.id: e for e in await self._ops.store.search(query, parent_id)}

        remote_client = self._ops.remote
        if isinstance(remote_client, SearchableRemoteClient) and self._connectivity.is_online():
            try:
                remote = await remote_client.search(query, parent_id)
            except Exception as e:
                logger.debug(
                    "remote_search_failed",
                    extra={"entity_kind": self.kind.value, "error": str(e)},
                )
            else:
                deleting = await self._pending_ids(JobOperation.DELETE)
                for entity in remote:
                    if entity.id not in deleting:
                        entity.mark_synced()
                        merged[entity.id] = entity

        return sorted(merged.values(), key=lambda e: e.created_at, reverse=True)

    async def count(self, parent_id: str | None, **filters: Any) -> int:
        return await self._ops.store.count_by_parent(parent_id, **filters)

    async def find_one(self, parent_id: str | None, **filters: Any) -> E | None:
        matches = await self._ops.store.get_all_by_parent(parent_id, **filters)
        return matches[0] if matches else None

    # ------------------------------------------------------------------
    # Replay
    # ------------------------------------------------------------------

    async def replay_pending_jobs(self) -> ReplayReport:
        """Replay this kind's pending jobs, oldest first, one at a time.

        A failing job does not stop the pass, but later jobs for the same
        entity are left for the next pass so their order is kept.
        """
        report = ReplayReport()
        if not self._connectivity.is_online():
            return report

        async with self._replay_lock:
            jobs = await self._queue.pending_jobs(self._ops.job_types)
            renamed: dict[str, str] = {}
            blocked: set[str] = set()

            for snapshot in jobs:
                entity_key = renamed.get(snapshot.entity_id or "", snapshot.entity_id)
                if entity_key in blocked:
                    continue

                job = await self._queue.mark_processing(snapshot.job_id)
                if job is None:
                    if entity_key is not None:
                        blocked.add(entity_key)
                    continue
                report.processed += 1

                if self._queue.is_exhausted(job):
                    await self._queue.abandon(job)
                    report.failed += 1
                    if job.entity_id is not None:
                        blocked.add(job.entity_id)
                    continue

                try:
                    new_id = await self._execute(job)
                except StorageFaultError:
                    raise
                except Exception as e:
                    failed = await self._queue.record_attempt_failure(job.job_id, str(e))
                    if self._queue.is_exhausted(failed):
                        await self._queue.abandon(failed)
                        report.failed += 1
                    else:
                        report.retried += 1
                    if job.entity_id is not None:
                        blocked.add(job.entity_id)
                    continue

                if new_id is not None and job.entity_id is not None:
                    renamed[job.entity_id] = new_id
                await self._queue.complete(job.job_id)
                report.completed += 1

        if report.processed:
            logger.info(
                "replay_pass_finished",
                extra={
                    "entity_kind": self.kind.value,
                    "processed": report.processed,
                    "completed": report.completed,
                    "retried": report.retried,
                    "failed": report.failed,
                },
            )
        return report

    async def _execute(self, job: Job) -> str | None:
        """Perform one job's remote call and fold the result back locally.

        Returns the server id when a create replaced the local identity.
        """
        entity_id = job.entity_id
        if entity_id is None:
            raise RemoteServiceError(f"Job {job.job_id} has no entity id")

        if job.operation is JobOperation.CREATE:
            entity = self._ops.entity_from_payload(job.payload)
            server_entity = await self._ops.remote_create(entity)
            # Queued edits are newer than what the server returned.
            edits_queued = await self._has_unfinished_jobs(entity_id, exclude_job_id=job.job_id)
            result = await reconcile_identity(
                self._ops.store, entity_id, server_entity, identity_only=edits_queued
            )
            if server_entity.id != entity_id:
                await self._queue.rewrite_entity_id(
                    self._ops.job_types, entity_id, server_entity.id
                )
            if result.entity is not None:
                await self._emit(EntityEvent.created(result.entity))
            return server_entity.id if server_entity.id != entity_id else None

        if job.operation is JobOperation.UPDATE:
            server_entity = await self._ops.remote_update(entity_id, dict(job.payload[CHANGES_KEY]))
            if await self._has_unfinished_jobs(entity_id, exclude_job_id=job.job_id):
                return None
            if await self._ops.store.get(entity_id) is None:
                return None
            server_entity.mark_synced()
            await self._ops.local_update(server_entity)
            await self._emit(EntityEvent.updated(server_entity))
            return None

        await self._remote_delete(entity_id)
        return None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _remote_delete(self, entity_id: str) -> None:
        try:
            await self._ops.remote_delete(entity_id)
        except RemoteServiceError as e:
            if e.status_code != 404:
                raise
            logger.debug(
                "remote_delete_already_gone",
                extra={"entity_kind": self.kind.value, "entity_id": entity_id},
            )

    async def _refresh_cache(self, local: list[E], remote: list[E]) -> None:
        """Make the server's result set the local truth for synced records.

        Records with queued intents are left untouched: unsynced local edits
        stay, and locally deleted ones are not resurrected.
        """
        queued = await self._queue.entity_ids_with_jobs(self._ops.job_types)
        remote_ids = {entity.id for entity in remote}

        for entity in local:
            if entity.is_synced() and entity.id not in remote_ids and entity.id not in queued:
                await self._ops.store.delete(entity.id)

        for entity in remote:
            if entity.id in queued:
                continue
            entity.mark_synced()
            await self._ops.store.put(entity)

    async def _has_unfinished_jobs(
        self, entity_id: str, *, exclude_job_id: str | None = None
    ) -> bool:
        return await self._queue.has_jobs_for_entity(
            self._ops.job_types, entity_id, exclude_job_id=exclude_job_id
        )

    async def _pending_ids(self, operation: JobOperation) -> set[str]:
        return await self._queue.entity_ids_with_jobs(
            [self._ops.job_type(operation)],
            statuses=(JobStatus.PENDING, JobStatus.PROCESSING),
        )

    async def _enqueue(
        self,
        operation: JobOperation,
        payload: dict[str, Any],
        reason: str,
        error: Exception | None = None,
    ) -> str:
        job_id = await self._queue.enqueue(self._ops.job_type(operation), payload)
        if error is not None:
            logger.warning(
                f"remote_{operation.value}_failed",
                extra={
                    "entity_kind": self.kind.value,
                    "entity_id": payload.get("entity_id"),
                    "job_id": job_id,
                    "error": str(error),
                },
            )
        else:
            logger.debug(
                "mutation_queued",
                extra={
                    "entity_kind": self.kind.value,
                    "entity_id": payload.get("entity_id"),
                    "job_id": job_id,
                    "reason": reason,
                },
            )
        return job_id

    async def _emit(self, event: DomainEvent) -> None:
        await self.events.publish(event)


class BookmarkCoordinator(EntitySyncCoordinator[Bookmark]):
    async def at_page(self, doc_id: str, page_number: int) -> Bookmark | None:
        return await self.find_one(doc_id, page_number=page_number)


class CommentCoordinator(EntitySyncCoordinator[Comment]):
    async def list_page(self, doc_id: str, page_number: int) -> list[Comment]:
        return await self.list(doc_id, page_number=page_number)

    async def count_page(self, doc_id: str, page_number: int) -> int:
        return await self.count(doc_id, page_number=page_number)
