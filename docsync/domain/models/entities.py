"""Entity domain models.

Bookmarks, comments and libraries share the same sync bookkeeping: a string
identity that starts out client-generated and may later be replaced by the
server's, plus a ``sync_state`` flag. Everything else is entity-specific.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Self

from docsync.core.time_utils import utc_now


class SyncState(str, Enum):
    """Whether the local copy matches what the server last confirmed."""

    SYNCED = "synced"
    UNSYNCED = "unsynced"


class EntityKind(str, Enum):
    """Entity kinds handled by the sync engine."""

    BOOKMARK = "bookmark"
    COMMENT = "comment"
    LIBRARY = "library"


class LibraryType(str, Enum):
    """Storage backends a library can point at."""

    LOCAL = "local"
    GDRIVE = "gdrive"
    ONEDRIVE = "onedrive"
    S3 = "s3"


class SyncTracked:
    """Sync bookkeeping shared by every entity dataclass."""

    kind: ClassVar[EntityKind]
    id: str
    sync_state: SyncState
    created_at: datetime
    updated_at: datetime

    @property
    def parent_id(self) -> str | None:
        """Identifier the entity is grouped under for list queries."""
        raise NotImplementedError

    def is_synced(self) -> bool:
        return self.sync_state == SyncState.SYNCED

    def mark_synced(self) -> None:
        self.sync_state = SyncState.SYNCED

    def mark_unsynced(self) -> None:
        self.sync_state = SyncState.UNSYNCED
        self.updated_at = utc_now()

    def with_identity(self, entity_id: str) -> Self:
        """Return a copy of this entity carrying another identifier."""
        return dataclasses.replace(self, id=entity_id)  # type: ignore[type-var]

    def copy(self) -> Self:
        return dataclasses.replace(self)  # type: ignore[type-var]


@dataclass
class Bookmark(SyncTracked):
    """A page marker inside a document."""

    kind: ClassVar[EntityKind] = EntityKind.BOOKMARK

    id: str
    doc_id: str
    user_id: str
    page_number: int | None = None
    note: str | None = None
    sync_state: SyncState = SyncState.UNSYNCED
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def parent_id(self) -> str:
        return self.doc_id


@dataclass
class Comment(SyncTracked):
    """An annotation on a document page, optionally anchored to a text selection."""

    kind: ClassVar[EntityKind] = EntityKind.COMMENT

    id: str
    doc_id: str
    content: str
    user_id: str | None = None
    page_number: int | None = None
    anchor: dict[str, Any] | None = None
    sync_state: SyncState = SyncState.UNSYNCED
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def parent_id(self) -> str:
        return self.doc_id


@dataclass
class Library(SyncTracked):
    """A configured document source. Libraries are grouped by owner."""

    kind: ClassVar[EntityKind] = EntityKind.LIBRARY

    id: str
    name: str
    type: LibraryType
    owner_id: str | None = None
    config: dict[str, Any] | None = None
    sync_state: SyncState = SyncState.UNSYNCED
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def parent_id(self) -> str | None:
        return self.owner_id


Entity = Bookmark | Comment | Library
