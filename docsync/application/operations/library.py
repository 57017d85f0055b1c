from __future__ import annotations

from typing import Any

from docsync.application.operations.base import (
    EntityOperations,
    require_text,
    timestamps_from_fields,
    timestamps_to_fields,
)
from docsync.domain.exceptions.domain_exceptions import ValidationError
from docsync.domain.models.entities import EntityKind, Library, LibraryType


def _library_type(value: Any) -> LibraryType:
    try:
        return LibraryType(value)
    except ValueError as e:
        allowed = ", ".join(t.value for t in LibraryType)
        raise ValidationError(
            f"Unknown library type {value!r}; expected one of {allowed}", {"field": "type"}
        ) from e


def _config(fields: dict[str, Any]) -> dict[str, Any] | None:
    config = fields.get("config")
    if config is not None and not isinstance(config, dict):
        raise ValidationError("config must be a JSON object", {"field": "config"})
    return config


class LibraryOperations(EntityOperations[Library]):
    kind = EntityKind.LIBRARY
    updatable_fields = frozenset({"name", "config"})

    def build(self, entity_id: str, fields: dict[str, Any]) -> Library:
        return Library(
            id=entity_id,
            name=require_text(fields, "name", self.kind),
            type=_library_type(fields.get("type")),
            owner_id=fields.get("owner_id"),
            config=_config(fields),
        )

    def validate_changes(self, changes: dict[str, Any]) -> dict[str, Any]:
        changes = super().validate_changes(changes)
        if "name" in changes:
            require_text(changes, "name", self.kind)
        if "config" in changes:
            _config(changes)
        return changes

    def to_fields(self, entity: Library) -> dict[str, Any]:
        return {
            "name": entity.name,
            "type": entity.type.value,
            "owner_id": entity.owner_id,
            "config": entity.config,
            **timestamps_to_fields(entity),
        }

    def from_fields(self, entity_id: str, fields: dict[str, Any]) -> Library:
        return Library(
            id=entity_id,
            name=fields["name"],
            type=LibraryType(fields["type"]),
            owner_id=fields.get("owner_id"),
            config=fields.get("config"),
            **timestamps_from_fields(fields),
        )
