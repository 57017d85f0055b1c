from docsync.application.coordinator import (
    BookmarkCoordinator,
    CommentCoordinator,
    EntitySyncCoordinator,
    ReplayReport,
)
from docsync.application.job_queue import JobQueue
from docsync.application.scheduler import ReplayScheduler
from docsync.application.sync_engine import SyncEngine

__all__ = [
    "BookmarkCoordinator",
    "CommentCoordinator",
    "EntitySyncCoordinator",
    "JobQueue",
    "ReplayReport",
    "ReplayScheduler",
    "SyncEngine",
]
