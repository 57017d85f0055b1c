from docsync.infrastructure.persistence.sqlite.repositories.entity_store import (
    SqliteBookmarkStore,
    SqliteCommentStore,
    SqliteEntityStore,
    SqliteLibraryStore,
)
from docsync.infrastructure.persistence.sqlite.repositories.job_repository import (
    SqliteJobRepository,
)

__all__ = [
    "SqliteBookmarkStore",
    "SqliteCommentStore",
    "SqliteEntityStore",
    "SqliteJobRepository",
    "SqliteLibraryStore",
]
