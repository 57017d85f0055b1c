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
from docsync.domain.models.entities import Comment, EntityKind


def _anchor(fields: dict[str, Any]) -> dict[str, Any] | None:
    anchor = fields.get("anchor")
    if anchor is not None and not isinstance(anchor, dict):
        raise ValidationError("anchor must be a JSON object", {"field": "anchor"})
    return anchor


class CommentOperations(EntityOperations[Comment]):
    kind = EntityKind.COMMENT
    updatable_fields = frozenset({"content", "anchor"})

    def build(self, entity_id: str, fields: dict[str, Any]) -> Comment:
        user_id = fields.get("user_id")
        if user_id is not None and not isinstance(user_id, str):
            raise ValidationError("user_id must be a string", {"field": "user_id"})
        return Comment(
            id=entity_id,
            doc_id=require_text(fields, "doc_id", self.kind),
            content=require_text(fields, "content", self.kind),
            user_id=user_id,
            page_number=optional_page(fields),
            anchor=_anchor(fields),
        )

    def validate_changes(self, changes: dict[str, Any]) -> dict[str, Any]:
        changes = super().validate_changes(changes)
        if "content" in changes:
            require_text(changes, "content", self.kind)
        if "anchor" in changes:
            _anchor(changes)
        return changes

    def to_fields(self, entity: Comment) -> dict[str, Any]:
        return {
            "doc_id": entity.doc_id,
            "content": entity.content,
            "user_id": entity.user_id,
            "page_number": entity.page_number,
            "anchor": entity.anchor,
            **timestamps_to_fields(entity),
        }

    def from_fields(self, entity_id: str, fields: dict[str, Any]) -> Comment:
        return Comment(
            id=entity_id,
            doc_id=fields["doc_id"],
            content=fields["content"],
            user_id=fields.get("user_id"),
            page_number=fields.get("page_number"),
            anchor=fields.get("anchor"),
            **timestamps_from_fields(fields),
        )
