"""Protocol definitions for the sync engine's collaborators.

The engine only talks to storage, the remote service, connectivity detection
and the job table through these contracts, so each can be swapped for an
in-memory fake in tests.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any, Protocol, TypeVar, runtime_checkable

from docsync.domain.models.job import Job, JobStatus, JobType

E = TypeVar("E")


class LocalStore(Protocol[E]):
    """Durable per-kind entity table.

    Implementations raise ``StorageFaultError`` on storage-layer faults and
    hold no consistency logic of their own.
    """

    async def get(self, entity_id: str) -> E | None:
        """Return the entity or None when it is not stored locally."""
        ...

    async def get_all_by_parent(self, parent_id: str | None, **filters: Any) -> list[E]:
        """Return every entity grouped under ``parent_id``, oldest first.

        Keyword filters narrow the result by column equality (e.g. page_number).
        """
        ...

    async def put(self, entity: E) -> None:
        """Insert or overwrite the entity keyed by its id."""
        ...

    async def delete(self, entity_id: str) -> None:
        """Remove the entity; deleting a missing id is a no-op."""
        ...

    async def set_sync_flag(self, entity_id: str, synced: bool) -> None:
        """Flip the stored sync state of an entity."""
        ...

    async def count_by_parent(self, parent_id: str | None, **filters: Any) -> int:
        ...

    async def search(self, query: str, parent_id: str | None = None) -> list[E]:
        """Case-insensitive substring search over the entity's text fields."""
        ...


class RemoteClient(Protocol[E]):
    """Remote endpoints for one entity kind.

    Every method raises ``RemoteServiceError`` on transport or server errors.
    """

    async def create(self, entity: E) -> E:
        """Create the entity remotely and return the server's canonical copy."""
        ...

    async def update(self, entity_id: str, changes: dict[str, Any]) -> E:
        ...

    async def delete(self, entity_id: str) -> None:
        ...

    async def get(self, entity_id: str) -> E:
        ...

    async def list(self, parent_id: str | None, **filters: Any) -> list[E]:
        ...


@runtime_checkable
class SearchableRemoteClient(RemoteClient[E], Protocol[E]):
    """Remote client that also offers server-side search."""

    async def search(self, query: str, parent_id: str | None = None) -> list[E]:
        ...


class ConnectivityOracle(Protocol):
    """Reports the current online state. Must not block."""

    def is_online(self) -> bool:
        ...


class JobStore(Protocol):
    """Persistence for queued jobs.

    Status changes are conditional on the current status so that each
    transition is a single atomic write.
    """

    async def insert(self, job: Job) -> Job:
        """Persist a new job and return it with its sequence number."""
        ...

    async def get(self, job_id: str) -> Job | None:
        ...

    async def list_jobs(
        self,
        *,
        status: JobStatus | None = None,
        types: Sequence[JobType] | None = None,
        limit: int | None = None,
    ) -> list[Job]:
        """Return jobs in enqueue order, optionally filtered."""
        ...

    async def transition(
        self,
        job_id: str,
        target: JobStatus,
        *,
        last_error: str | None = None,
        increment_attempts: bool = False,
    ) -> Job | None:
        """Apply ``target`` if the job's current status allows it.

        Returns the updated job, or None when the job is missing or its
        current status does not permit the transition.
        """
        ...

    async def delete(self, job_id: str, *, only_status: JobStatus | None = None) -> bool:
        ...

    async def count_by_status(self) -> dict[JobStatus, int]:
        ...

    async def reset_failed(self) -> int:
        ...

    async def reset_processing(self) -> int:
        ...

    async def purge_terminal(self, older_than: datetime) -> int:
        ...

    async def rewrite_entity_id(
        self, types: Sequence[JobType], old_id: str, new_id: str
    ) -> int:
        """Point pending jobs of ``types`` that reference ``old_id`` at ``new_id``."""
        ...
