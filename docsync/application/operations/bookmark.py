from __future__ import annotations

from typing import Any

from docsync.application.operations.base import (
    EntityOperations,
    optional_page,
    require_text,
    timestamps_from_fields,
    timestamps_to_fields,
)
from docsync.domain.exceptions.domain_exceptions import ValidationError
from docsync.domain.models.entities import Bookmark, EntityKind


class BookmarkOperations(EntityOperations[Bookmark]):
    kind = EntityKind.BOOKMARK
    updatable_fields = frozenset({"page_number", "note"})

    def build(self, entity_id: str, fields: dict[str, Any]) -> Bookmark:
        return Bookmark(
            id=entity_id,
            doc_id=require_text(fields, "doc_id", self.kind),
            user_id=require_text(fields, "user_id", self.kind),
            page_number=optional_page(fields),
            note=_note(fields),
        )

    def validate_changes(self, changes: dict[str, Any]) -> dict[str, Any]:
        changes = super().validate_changes(changes)
        if "page_number" in changes:
            changes["page_number"] = optional_page(changes)
        if "note" in changes:
            changes["note"] = _note(changes)
        return changes

    def to_fields(self, entity: Bookmark) -> dict[str, Any]:
        return {
            "doc_id": entity.doc_id,
            "user_id": entity.user_id,
            "page_number": entity.page_number,
            "note": entity.note,
            **timestamps_to_fields(entity),
        }

    def from_fields(self, entity_id: str, fields: dict[str, Any]) -> Bookmark:
        return Bookmark(
            id=entity_id,
            doc_id=fields["doc_id"],
            user_id=fields["user_id"],
            page_number=fields.get("page_number"),
            note=fields.get("note"),
            **timestamps_from_fields(fields),
        )


def _note(fields: dict[str, Any]) -> str | None:
    note = fields.get("note")
    if note is not None and not isinstance(note, str):
        raise ValidationError("note must be a string", {"field": "note"})
    return note
