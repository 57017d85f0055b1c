"""Remote endpoints for comments, including server-side search."""

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter

from docsync.adapters.remote.client import RemoteApiClient
from docsync.adapters.remote.models import (
    CommentResponse,
    CreateCommentRequest,
    UpdateCommentRequest,
)
from docsync.domain.models.entities import Comment

_ONE = TypeAdapter(CommentResponse)
_MANY = TypeAdapter(list[CommentResponse])


class CommentApi:
    def __init__(self, client: RemoteApiClient) -> None:
        self._client = client

    async def create(self, entity: Comment) -> Comment:
        body = CreateCommentRequest(
            page_number=entity.page_number, anchor=entity.anchor, content=entity.content
        )
        data = await self._client.request(
            "POST",
            f"/api/documents/{entity.doc_id}/comments",
            json=body.model_dump(mode="json", exclude_none=True),
            operation_name="create_comment",
        )
        return self._client.parse(_ONE, data, "create_comment").to_domain()

    async def update(self, entity_id: str, changes: dict[str, Any]) -> Comment:
        body = UpdateCommentRequest.model_validate(changes)
        data = await self._client.request(
            "PUT",
            f"/api/comments/{entity_id}",
            json=body.model_dump(mode="json", exclude_unset=True),
            operation_name="update_comment",
        )
        return self._client.parse(_ONE, data, "update_comment").to_domain()

    async def delete(self, entity_id: str) -> None:
        await self._client.request(
            "DELETE", f"/api/comments/{entity_id}", operation_name="delete_comment"
        )

    async def get(self, entity_id: str) -> Comment:
        data = await self._client.request(
            "GET", f"/api/comments/{entity_id}", operation_name="get_comment"
        )
        return self._client.parse(_ONE, data, "get_comment").to_domain()

    async def list(self, parent_id: str | None, **filters: Any) -> list[Comment]:
        page_number = filters.pop("page_number", None)
        if page_number is not None:
            path = f"/api/documents/{parent_id}/pages/{page_number}/comments"
        else:
            path = f"/api/documents/{parent_id}/comments"
        data = await self._client.request(
            "GET", path, params=filters, operation_name="list_comments"
        )
        return [item.to_domain() for item in self._client.parse(_MANY, data, "list_comments")]

    async def search(self, query: str, parent_id: str | None = None) -> list[Comment]:
        data = await self._client.request(
            "GET",
            "/api/comments/search",
            params={"q": query, "document_id": parent_id},
            operation_name="search_comments",
        )
        return [item.to_domain() for item in self._client.parse(_MANY, data, "search_comments")]
