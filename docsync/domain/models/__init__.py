from docsync.domain.models.entities import (
    Bookmark,
    Comment,
    Entity,
    EntityKind,
    Library,
    LibraryType,
    SyncState,
    SyncTracked,
)
from docsync.domain.models.job import (
    ENTITY_ID_KEY,
    Job,
    JobOperation,
    JobQueueStatus,
    JobStatus,
    JobType,
)

__all__ = [
    "ENTITY_ID_KEY",
    "Bookmark",
    "Comment",
    "Entity",
    "EntityKind",
    "Job",
    "JobOperation",
    "JobQueueStatus",
    "JobStatus",
    "JobType",
    "Library",
    "LibraryType",
    "SyncState",
    "SyncTracked",
]
