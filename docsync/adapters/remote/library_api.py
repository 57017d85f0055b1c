"""Remote endpoints for libraries."""

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter

from docsync.adapters.remote.client import RemoteApiClient
from docsync.adapters.remote.models import (
    CreateLibraryRequest,
    LibraryResponse,
    UpdateLibraryRequest,
)
from docsync.domain.models.entities import Library

_ONE = TypeAdapter(LibraryResponse)
_MANY = TypeAdapter(list[LibraryResponse])


class LibraryApi:
    def __init__(self, client: RemoteApiClient) -> None:
        self._client = client

    async def create(self, entity: Library) -> Library:
        body = CreateLibraryRequest(name=entity.name, type=entity.type, config=entity.config)
        data = await self._client.request(
            "POST",
            "/api/libraries",
            json=body.model_dump(mode="json", exclude_none=True),
            operation_name="create_library",
        )
        return self._client.parse(_ONE, data, "create_library").to_domain()

    async def update(self, entity_id: str, changes: dict[str, Any]) -> Library:
        body = UpdateLibraryRequest.model_validate(changes)
        data = await self._client.request(
            "PUT",
            f"/api/libraries/{entity_id}",
            json=body.model_dump(mode="json", exclude_unset=True),
            operation_name="update_library",
        )
        return self._client.parse(_ONE, data, "update_library").to_domain()

    async def delete(self, entity_id: str) -> None:
        await self._client.request(
            "DELETE", f"/api/libraries/{entity_id}", operation_name="delete_library"
        )

    async def get(self, entity_id: str) -> Library:
        data = await self._client.request(
            "GET", f"/api/libraries/{entity_id}", operation_name="get_library"
        )
        return self._client.parse(_ONE, data, "get_library").to_domain()

    async def list(self, parent_id: str | None, **filters: Any) -> list[Library]:
        """List the caller's libraries; the server scopes them to the token's owner."""
        data = await self._client.request(
            "GET", "/api/libraries", params=filters, operation_name="list_libraries"
        )
        libraries = [item.to_domain() for item in self._client.parse(_MANY, data, "list_libraries")]
        if parent_id is None:
            return libraries
        return [library for library in libraries if library.owner_id == parent_id]
