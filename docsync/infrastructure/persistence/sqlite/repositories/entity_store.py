"""SQLite local stores for bookmarks, comments and libraries.

Each store is a plain key/value table plus a sync flag. Consistency between
records and queued jobs is the coordinator's business, not the store's.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar, Generic, TypeVar

import peewee

from docsync.db.models import BaseModel, BookmarkRecord, CommentRecord, LibraryRecord
from docsync.domain.exceptions.domain_exceptions import ValidationError
from docsync.domain.models.entities import (
    Bookmark,
    Comment,
    Library,
    LibraryType,
    SyncState,
    SyncTracked,
)
from docsync.infrastructure.persistence.sqlite.base import SqliteBaseRepository

E = TypeVar("E", bound=SyncTracked)


class SqliteEntityStore(SqliteBaseRepository, Generic[E]):
    """Generic peewee-backed store; subclasses map rows to one entity type."""

    model: ClassVar[type[BaseModel]]
    parent_field: ClassVar[str]
    filter_fields: ClassVar[frozenset[str]] = frozenset()
    search_fields: ClassVar[tuple[str, ...]] = ()

    def _to_domain(self, record: Any) -> E:
        raise NotImplementedError

    def _from_domain(self, entity: E) -> dict[str, Any]:
        raise NotImplementedError

    def _where_parent(self, query: peewee.ModelSelect, parent_id: str | None, filters: dict) -> Any:
        if parent_id is not None:
            query = query.where(getattr(self.model, self.parent_field) == parent_id)
        for name, value in filters.items():
            if name not in self.filter_fields:
                raise ValidationError(f"Unsupported filter: {name}", {"filter": name})
            if value is None:
                continue
            if isinstance(value, Enum):
                value = value.value
            query = query.where(getattr(self.model, name) == value)
        return query

    async def get(self, entity_id: str) -> E | None:
        def _query() -> E | None:
            record = self.model.get_or_none(self.model.id == entity_id)
            return self._to_domain(record) if record is not None else None

        return await self._execute(
            _query, operation_name=f"get_{self.model._meta.table_name}", read_only=True
        )

    async def get_all_by_parent(self, parent_id: str | None, **filters: Any) -> list[E]:
        def _query() -> list[E]:
            query = self._where_parent(self.model.select(), parent_id, filters)
            query = query.order_by(self.model.created_at.asc(), self.model.id.asc())
            return [self._to_domain(record) for record in query]

        return await self._execute(
            _query, operation_name=f"list_{self.model._meta.table_name}", read_only=True
        )

    async def count_by_parent(self, parent_id: str | None, **filters: Any) -> int:
        def _query() -> int:
            return self._where_parent(self.model.select(), parent_id, filters).count()

        return await self._execute(
            _query, operation_name=f"count_{self.model._meta.table_name}", read_only=True
        )

    async def search(self, query: str, parent_id: str | None = None) -> list[E]:
        def _query() -> list[E]:
            select = self._where_parent(self.model.select(), parent_id, {})
            clauses = [getattr(self.model, name).contains(query) for name in self.search_fields]
            if clauses:
                condition = clauses[0]
                for clause in clauses[1:]:
                    condition |= clause
                select = select.where(condition)
            select = select.order_by(self.model.created_at.desc())
            return [self._to_domain(record) for record in select]

        return await self._execute(
            _query, operation_name=f"search_{self.model._meta.table_name}", read_only=True
        )

    async def put(self, entity: E) -> None:
        row = self._from_domain(entity)

        def _upsert() -> None:
            self.model.replace(**row).execute()

        await self._execute(_upsert, operation_name=f"put_{self.model._meta.table_name}")

    async def delete(self, entity_id: str) -> None:
        def _delete() -> None:
            self.model.delete().where(self.model.id == entity_id).execute()

        await self._execute(_delete, operation_name=f"delete_{self.model._meta.table_name}")

    async def set_sync_flag(self, entity_id: str, synced: bool) -> None:
        def _update() -> None:
            self.model.update({self.model.is_synced: synced}).where(
                self.model.id == entity_id
            ).execute()

        await self._execute(_update, operation_name=f"set_sync_flag_{self.model._meta.table_name}")


def _sync_state(record: Any) -> SyncState:
    return SyncState.SYNCED if record.is_synced else SyncState.UNSYNCED


class SqliteBookmarkStore(SqliteEntityStore[Bookmark]):
    model = BookmarkRecord
    parent_field = "doc_id"
    filter_fields = frozenset({"page_number", "user_id"})
    search_fields = ("note",)

    def _to_domain(self, record: BookmarkRecord) -> Bookmark:
        return Bookmark(
            id=record.id,
            doc_id=record.doc_id,
            user_id=record.user_id,
            page_number=record.page_number,
            note=record.note,
            sync_state=_sync_state(record),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    def _from_domain(self, entity: Bookmark) -> dict[str, Any]:
        return {
            "id": entity.id,
            "doc_id": entity.doc_id,
            "user_id": entity.user_id,
            "page_number": entity.page_number,
            "note": entity.note,
            "is_synced": entity.is_synced(),
            "created_at": entity.created_at,
            "updated_at": entity.updated_at,
        }


class SqliteCommentStore(SqliteEntityStore[Comment]):
    model = CommentRecord
    parent_field = "doc_id"
    filter_fields = frozenset({"page_number", "user_id"})
    search_fields = ("content",)

    def _to_domain(self, record: CommentRecord) -> Comment:
        return Comment(
            id=record.id,
            doc_id=record.doc_id,
            content=record.content,
            user_id=record.user_id,
            page_number=record.page_number,
            anchor=record.anchor,
            sync_state=_sync_state(record),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    def _from_domain(self, entity: Comment) -> dict[str, Any]:
        return {
            "id": entity.id,
            "doc_id": entity.doc_id,
            "content": entity.content,
            "user_id": entity.user_id,
            "page_number": entity.page_number,
            "anchor": entity.anchor,
            "is_synced": entity.is_synced(),
            "created_at": entity.created_at,
            "updated_at": entity.updated_at,
        }


class SqliteLibraryStore(SqliteEntityStore[Library]):
    model = LibraryRecord
    parent_field = "owner_id"
    filter_fields = frozenset({"type"})
    search_fields = ("name",)

    def _to_domain(self, record: LibraryRecord) -> Library:
        return Library(
            id=record.id,
            name=record.name,
            type=LibraryType(record.type),
            owner_id=record.owner_id,
            config=record.config,
            sync_state=_sync_state(record),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    def _from_domain(self, entity: Library) -> dict[str, Any]:
        return {
            "id": entity.id,
            "owner_id": entity.owner_id,
            "name": entity.name,
            "type": entity.type.value,
            "config": entity.config,
            "is_synced": entity.is_synced(),
            "created_at": entity.created_at,
            "updated_at": entity.updated_at,
        }
