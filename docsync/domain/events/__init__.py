from docsync.domain.events.entity_events import (
    DomainEvent,
    EntityEvent,
    EntityEventKind,
    EntityListRefreshed,
)

__all__ = ["DomainEvent", "EntityEvent", "EntityEventKind", "EntityListRefreshed"]
