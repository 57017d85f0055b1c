"""Remote endpoints for bookmarks."""

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter

from docsync.adapters.remote.client import RemoteApiClient
from docsync.adapters.remote.models import (
    BookmarkResponse,
    CreateBookmarkRequest,
    UpdateBookmarkRequest,
)
from docsync.domain.models.entities import Bookmark

_ONE = TypeAdapter(BookmarkResponse)
_MANY = TypeAdapter(list[BookmarkResponse])


class BookmarkApi:
    """Bookmark CRUD against ``/api/documents/{doc_id}/bookmarks`` and ``/api/bookmarks``."""

    def __init__(self, client: RemoteApiClient) -> None:
        self._client = client

    async def create(self, entity: Bookmark) -> Bookmark:
        body = CreateBookmarkRequest(page_number=entity.page_number, note=entity.note)
        data = await self._client.request(
            "POST",
            f"/api/documents/{entity.doc_id}/bookmarks",
            json=body.model_dump(mode="json", exclude_none=True),
            operation_name="create_bookmark",
        )
        return self._client.parse(_ONE, data, "create_bookmark").to_domain()

    async def update(self, entity_id: str, changes: dict[str, Any]) -> Bookmark:
        body = UpdateBookmarkRequest.model_validate(changes)
        data = await self._client.request(
            "PUT",
            f"/api/bookmarks/{entity_id}",
            json=body.model_dump(mode="json", exclude_unset=True),
            operation_name="update_bookmark",
        )
        return self._client.parse(_ONE, data, "update_bookmark").to_domain()

    async def delete(self, entity_id: str) -> None:
        await self._client.request(
            "DELETE", f"/api/bookmarks/{entity_id}", operation_name="delete_bookmark"
        )

    async def get(self, entity_id: str) -> Bookmark:
        data = await self._client.request(
            "GET", f"/api/bookmarks/{entity_id}", operation_name="get_bookmark"
        )
        return self._client.parse(_ONE, data, "get_bookmark").to_domain()

    async def list(self, parent_id: str | None, **filters: Any) -> list[Bookmark]:
        data = await self._client.request(
            "GET",
            f"/api/documents/{parent_id}/bookmarks",
            params=filters,
            operation_name="list_bookmarks",
        )
        return [item.to_domain() for item in self._client.parse(_MANY, data, "list_bookmarks")]
