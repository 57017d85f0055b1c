"""Domain events emitted by the entity sync coordinators.

Events describe what the caller-visible local state now looks like. They are
published on the owning coordinator's channel in emission order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from docsync.core.time_utils import utc_now
from docsync.domain.models.entities import EntityKind


@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    occurred_at: datetime
    aggregate_id: str | None = None

    def __post_init__(self) -> None:
        """Validate event data after initialization."""
        if not isinstance(self.occurred_at, datetime):
            raise TypeError("occurred_at must be a datetime")


class EntityEventKind(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(frozen=True)
class EntityEvent(DomainEvent):
    """A single entity was created, updated or deleted locally."""

    event_kind: EntityEventKind = EntityEventKind.CREATED
    entity_kind: EntityKind = EntityKind.BOOKMARK
    entity: Any = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.entity is None:
            raise ValueError("entity is required")

    @property
    def timestamp(self) -> datetime:
        return self.occurred_at

    @classmethod
    def created(cls, entity: Any) -> EntityEvent:
        return cls._build(EntityEventKind.CREATED, entity)

    @classmethod
    def updated(cls, entity: Any) -> EntityEvent:
        return cls._build(EntityEventKind.UPDATED, entity)

    @classmethod
    def deleted(cls, entity: Any) -> EntityEvent:
        return cls._build(EntityEventKind.DELETED, entity)

    @classmethod
    def _build(cls, event_kind: EntityEventKind, entity: Any) -> EntityEvent:
        return cls(
            occurred_at=utc_now(),
            aggregate_id=entity.id,
            event_kind=event_kind,
            entity_kind=entity.kind,
            entity=entity,
        )


@dataclass(frozen=True)
class EntityListRefreshed(DomainEvent):
    """A list read finished; carries the entities the caller received."""

    entity_kind: EntityKind = EntityKind.BOOKMARK
    parent_id: str | None = None
    entities: tuple[Any, ...] = field(default_factory=tuple)
