"""Pydantic models for the document service API."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Pydantic needs this at runtime
from typing import Any

from pydantic import BaseModel

from docsync.core.time_utils import ensure_utc, utc_now
from docsync.domain.models.entities import Bookmark, Comment, Library, LibraryType, SyncState


class _ApiModel(BaseModel):
    model_config = {"populate_by_name": True, "extra": "ignore"}


class BookmarkResponse(_ApiModel):
    id: str
    doc_id: str
    user_id: str
    page_number: int | None = None
    note: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_domain(self) -> Bookmark:
        created = ensure_utc(self.created_at) if self.created_at else utc_now()
        return Bookmark(
            id=self.id,
            doc_id=self.doc_id,
            user_id=self.user_id,
            page_number=self.page_number,
            note=self.note,
            sync_state=SyncState.SYNCED,
            created_at=created,
            updated_at=ensure_utc(self.updated_at) if self.updated_at else created,
        )


class CommentResponse(_ApiModel):
    id: str
    doc_id: str
    user_id: str | None = None
    page_number: int | None = None
    anchor: dict[str, Any] | None = None
    content: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_domain(self) -> Comment:
        created = ensure_utc(self.created_at) if self.created_at else utc_now()
        return Comment(
            id=self.id,
            doc_id=self.doc_id,
            content=self.content,
            user_id=self.user_id,
            page_number=self.page_number,
            anchor=self.anchor,
            sync_state=SyncState.SYNCED,
            created_at=created,
            updated_at=ensure_utc(self.updated_at) if self.updated_at else created,
        )


class LibraryResponse(_ApiModel):
    id: str
    owner_id: str | None = None
    name: str
    type: LibraryType
    config: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_domain(self) -> Library:
        created = ensure_utc(self.created_at) if self.created_at else utc_now()
        return Library(
            id=self.id,
            name=self.name,
            type=self.type,
            owner_id=self.owner_id,
            config=self.config,
            sync_state=SyncState.SYNCED,
            created_at=created,
            updated_at=ensure_utc(self.updated_at) if self.updated_at else created,
        )


class CreateBookmarkRequest(_ApiModel):
    page_number: int | None = None
    note: str | None = None


class UpdateBookmarkRequest(_ApiModel):
    page_number: int | None = None
    note: str | None = None


class CreateCommentRequest(_ApiModel):
    page_number: int | None = None
    anchor: dict[str, Any] | None = None
    content: str


class UpdateCommentRequest(_ApiModel):
    anchor: dict[str, Any] | None = None
    content: str | None = None


class CreateLibraryRequest(_ApiModel):
    name: str
    type: LibraryType
    config: dict[str, Any] | None = None


class UpdateLibraryRequest(_ApiModel):
    name: str | None = None
    config: dict[str, Any] | None = None
