"""Per-kind operation sets plugged into the generic coordinator.

An operation set knows how to build and validate one entity kind, how to
flatten it into a replayable job payload and back, and which local store and
remote client to call. The coordinator owns everything else.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, ClassVar, Generic, TypeVar

from docsync.core.time_utils import ensure_utc
from docsync.domain.exceptions.domain_exceptions import ValidationError
from docsync.domain.models.entities import EntityKind, SyncTracked
from docsync.domain.models.job import ENTITY_ID_KEY, JobOperation, JobType
from docsync.protocols import LocalStore, RemoteClient

E = TypeVar("E", bound=SyncTracked)

PARENT_ID_KEY = "parent_id"
FIELDS_KEY = "fields"
CHANGES_KEY = "changes"


class EntityOperations(ABC, Generic[E]):
    """Capability set for one entity kind."""

    kind: ClassVar[EntityKind]
    updatable_fields: ClassVar[frozenset[str]]

    def __init__(self, store: LocalStore[E], remote: RemoteClient[E]) -> None:
        self.store = store
        self.remote = remote

    @property
    def job_types(self) -> tuple[JobType, ...]:
        return JobType.for_kind(self.kind)

    def job_type(self, operation: JobOperation) -> JobType:
        return JobType.for_operation(self.kind, operation)

    @abstractmethod
    def build(self, entity_id: str, fields: dict[str, Any]) -> E:
        """Construct a new unsynced entity, raising ValidationError on bad input."""

    @abstractmethod
    def to_fields(self, entity: E) -> dict[str, Any]:
        """JSON-safe field values, excluding identity and sync state."""

    @abstractmethod
    def from_fields(self, entity_id: str, fields: dict[str, Any]) -> E:
        ...

    def validate_changes(self, changes: dict[str, Any]) -> dict[str, Any]:
        if not changes:
            raise ValidationError("No changes given", {"kind": self.kind.value})
        unknown = set(changes) - self.updatable_fields
        if unknown:
            raise ValidationError(
                f"Fields not updatable on {self.kind.value}: {', '.join(sorted(unknown))}",
                {"kind": self.kind.value, "fields": sorted(unknown)},
            )
        return dict(changes)

    def apply_changes(self, entity: E, changes: dict[str, Any]) -> E:
        """Return a copy of ``entity`` with ``changes`` applied and marked unsynced."""
        fields = self.to_fields(entity)
        fields.update(changes)
        updated = self.from_fields(entity.id, fields)
        updated.created_at = entity.created_at
        updated.mark_unsynced()
        return updated

    def create_payload(self, entity: E) -> dict[str, Any]:
        return {
            ENTITY_ID_KEY: entity.id,
            PARENT_ID_KEY: entity.parent_id,
            FIELDS_KEY: self.to_fields(entity),
        }

    def entity_from_payload(self, payload: dict[str, Any]) -> E:
        return self.from_fields(payload[ENTITY_ID_KEY], dict(payload[FIELDS_KEY]))

    def update_payload(self, entity: E, changes: dict[str, Any]) -> dict[str, Any]:
        return {
            ENTITY_ID_KEY: entity.id,
            PARENT_ID_KEY: entity.parent_id,
            CHANGES_KEY: dict(changes),
        }

    def delete_payload(self, entity: E) -> dict[str, Any]:
        return {ENTITY_ID_KEY: entity.id, PARENT_ID_KEY: entity.parent_id}

    async def local_create(self, entity: E) -> None:
        await self.store.put(entity)

    async def local_update(self, entity: E) -> None:
        await self.store.put(entity)

    async def local_delete(self, entity_id: str) -> None:
        await self.store.delete(entity_id)

    async def remote_create(self, entity: E) -> E:
        return await self.remote.create(entity)

    async def remote_update(self, entity_id: str, changes: dict[str, Any]) -> E:
        return await self.remote.update(entity_id, changes)

    async def remote_delete(self, entity_id: str) -> None:
        await self.remote.delete(entity_id)


def timestamps_to_fields(entity: SyncTracked) -> dict[str, str]:
    return {
        "created_at": entity.created_at.isoformat(),
        "updated_at": entity.updated_at.isoformat(),
    }


def timestamps_from_fields(fields: dict[str, Any]) -> dict[str, datetime]:
    parsed: dict[str, datetime] = {}
    for key in ("created_at", "updated_at"):
        value = fields.get(key)
        if isinstance(value, str):
            parsed[key] = ensure_utc(datetime.fromisoformat(value))
        elif isinstance(value, datetime):
            parsed[key] = ensure_utc(value)
    return parsed


def require_text(fields: dict[str, Any], name: str, kind: EntityKind) -> str:
    value = fields.get(name)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{kind.value} {name} must be a non-empty string", {"field": name})
    return value


def optional_page(fields: dict[str, Any]) -> int | None:
    page = fields.get("page_number")
    if page is None:
        return None
    if isinstance(page, bool) or not isinstance(page, int) or page < 1:
        raise ValidationError("page_number must be a positive integer", {"field": "page_number"})
    return page

