"""Job domain model.

A job is the durable record of a mutation intent that still has to reach
the remote service. Its status follows a small state machine::

    pending --claim--> processing --complete--> completed
                       processing --attempt failed--> pending
    pending/processing --fail--> failed

``completed`` and ``failed`` are terminal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from docsync.core.time_utils import utc_now
from docsync.domain.exceptions.domain_exceptions import InvalidStateTransitionError
from docsync.domain.models.entities import EntityKind


class JobOperation(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class JobType(str, Enum):
    """One job type per entity kind / operation pair."""

    CREATE_BOOKMARK = "createBookmark"
    UPDATE_BOOKMARK = "updateBookmark"
    DELETE_BOOKMARK = "deleteBookmark"
    CREATE_COMMENT = "createComment"
    UPDATE_COMMENT = "updateComment"
    DELETE_COMMENT = "deleteComment"
    CREATE_LIBRARY = "createLibrary"
    UPDATE_LIBRARY = "updateLibrary"
    DELETE_LIBRARY = "deleteLibrary"

    @property
    def operation(self) -> JobOperation:
        for operation in JobOperation:
            if self.value.startswith(operation.value):
                return operation
        raise ValueError(f"Unknown operation for job type {self.value}")

    @property
    def kind(self) -> EntityKind:
        return EntityKind(self.value[len(self.operation.value) :].lower())

    @classmethod
    def for_operation(cls, kind: EntityKind, operation: JobOperation) -> JobType:
        return cls(f"{operation.value}{kind.value.capitalize()}")

    @classmethod
    def for_kind(cls, kind: EntityKind) -> tuple[JobType, ...]:
        return tuple(cls.for_operation(kind, operation) for operation in JobOperation)


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.PROCESSING, JobStatus.FAILED}),
    JobStatus.PROCESSING: frozenset({JobStatus.PENDING, JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}


def allowed_sources(target: JobStatus) -> tuple[JobStatus, ...]:
    """Statuses from which ``target`` may be entered."""
    return tuple(source for source, targets in ALLOWED_TRANSITIONS.items() if target in targets)


# Payload key naming the entity a job mutates. Reconciliation rewrites it.
ENTITY_ID_KEY = "entity_id"


@dataclass
class Job:
    """Durable mutation intent awaiting successful remote execution."""

    job_id: str
    type: JobType
    payload: dict[str, Any]
    status: JobStatus = JobStatus.PENDING
    attempts: int = 0
    last_error: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    seq: int | None = None

    @property
    def kind(self) -> EntityKind:
        return self.type.kind

    @property
    def operation(self) -> JobOperation:
        return self.type.operation

    @property
    def entity_id(self) -> str | None:
        value = self.payload.get(ENTITY_ID_KEY)
        return str(value) if value is not None else None

    def transition_to(self, target: JobStatus) -> None:
        """Move to ``target`` or raise if the state machine forbids it."""
        if target not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidStateTransitionError(
                f"Cannot move job {self.job_id} from {self.status.value} to {target.value}",
                {"job_id": self.job_id, "from": self.status.value, "to": target.value},
            )
        self.status = target

    def has_exhausted(self, max_attempts: int) -> bool:
        return self.attempts >= max_attempts

    def to_wire(self) -> dict[str, Any]:
        """Stable persisted shape of a job."""
        return {
            "job_id": self.job_id,
            "type": self.type.value,
            "payload": dict(self.payload),
            "status": self.status.value,
            "attempts": self.attempts,
            "last_error": self.last_error,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> Job:
        return cls(
            job_id=data["job_id"],
            type=JobType(data["type"]),
            payload=dict(data.get("payload") or {}),
            status=JobStatus(data.get("status", JobStatus.PENDING.value)),
            attempts=int(data.get("attempts", 0)),
            last_error=data.get("last_error"),
            created_at=datetime.fromisoformat(data["created_at"]),
        )

    def __str__(self) -> str:
        return f"Job(id={self.job_id}, type={self.type.value}, status={self.status.value})"


@dataclass(frozen=True)
class JobQueueStatus:
    """Point-in-time counts of jobs per status."""

    pending: int
    processing: int
    failed: int
    completed: int
    last_updated: datetime = field(default_factory=utc_now)

    @property
    def has_work(self) -> bool:
        return self.pending > 0 or self.processing > 0

    @property
    def has_errors(self) -> bool:
        return self.failed > 0

    @property
    def total(self) -> int:
        return self.pending + self.processing + self.failed + self.completed
