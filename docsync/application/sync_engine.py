"""Wiring of the three coordinators over one local database and one job queue."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from docsync.adapters.connectivity import ConnectivityMonitor
from docsync.adapters.remote import BookmarkApi, CommentApi, LibraryApi, RemoteApiClient
from docsync.application.coordinator import (
    BookmarkCoordinator,
    CommentCoordinator,
    EntitySyncCoordinator,
    ReplayReport,
)
from docsync.application.job_queue import JobQueue
from docsync.application.operations import (
    BookmarkOperations,
    CommentOperations,
    LibraryOperations,
)
from docsync.application.scheduler import ReplayScheduler
from docsync.core.logging_utils import generate_correlation_id
from docsync.db.session import DatabaseSessionManager
from docsync.domain.models.entities import Library
from docsync.infrastructure.persistence.sqlite.repositories import (
    SqliteBookmarkStore,
    SqliteCommentStore,
    SqliteJobRepository,
    SqliteLibraryStore,
)

if TYPE_CHECKING:
    import httpx

    from docsync.config.settings import AppConfig
    from docsync.protocols import ConnectivityOracle

logger = logging.getLogger(__name__)


class SyncEngine:
    """Entry point for callers: one coordinator per entity kind plus replay triggers."""

    def __init__(
        self,
        *,
        queue: JobQueue,
        connectivity: ConnectivityOracle,
        bookmarks: BookmarkCoordinator,
        comments: CommentCoordinator,
        libraries: EntitySyncCoordinator[Library],
        session: DatabaseSessionManager | None = None,
        remote_client: RemoteApiClient | None = None,
        replay_interval: float = 0.0,
    ) -> None:
        self.queue = queue
        self.connectivity = connectivity
        self.bookmarks = bookmarks
        self.comments = comments
        self.libraries = libraries
        self._session = session
        self._remote_client = remote_client
        self._replay_interval = replay_interval
        self._scheduler: ReplayScheduler | None = None

    @classmethod
    def build(
        cls,
        config: AppConfig,
        *,
        connectivity: ConnectivityOracle | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> SyncEngine:
        """Create the SQLite-backed, HTTP-connected engine described by ``config``."""
        session = DatabaseSessionManager(
            path=config.runtime.db_path,
            operation_timeout=config.database.operation_timeout,
            max_retries=config.database.max_retries,
        )
        session.migrate()

        queue = JobQueue(
            SqliteJobRepository(session),
            max_attempts=config.sync.max_attempts,
            retain_completed=config.sync.retain_completed_jobs,
            retention=timedelta(days=config.sync.completed_retention_days),
        )
        oracle = connectivity if connectivity is not None else ConnectivityMonitor()
        remote_client = RemoteApiClient.from_config(config.remote, transport=transport)

        engine = cls(
            queue=queue,
            connectivity=oracle,
            bookmarks=BookmarkCoordinator(
                BookmarkOperations(SqliteBookmarkStore(session), BookmarkApi(remote_client)),
                queue,
                oracle,
            ),
            comments=CommentCoordinator(
                CommentOperations(SqliteCommentStore(session), CommentApi(remote_client)),
                queue,
                oracle,
            ),
            libraries=EntitySyncCoordinator(
                LibraryOperations(SqliteLibraryStore(session), LibraryApi(remote_client)),
                queue,
                oracle,
            ),
            session=session,
            remote_client=remote_client,
            replay_interval=config.sync.replay_interval_sec,
        )
        logger.info(
            "sync_engine_built",
            extra={"max_attempts": queue.max_attempts, "remote_api_url": config.remote.api_url},
        )
        return engine

    @property
    def coordinators(self) -> tuple[EntitySyncCoordinator, ...]:
        # Libraries first: documents, and their bookmarks and comments, live in them.
        return (self.libraries, self.bookmarks, self.comments)

    async def start(self) -> None:
        """Recover jobs orphaned by a crash, then start the replay triggers.

        Replay runs on every offline-to-online change reported by a
        ConnectivityMonitor and, when ``replay_interval`` is positive, on a
        fixed period as well.
        """
        await self.queue.recover_stale_processing()
        if isinstance(self.connectivity, ConnectivityMonitor):
            self.connectivity.add_listener(self.on_connectivity_changed)
        if self._replay_interval > 0 and self._scheduler is None:
            self._scheduler = ReplayScheduler(self, self._replay_interval)
            await self._scheduler.start()

    async def replay_all(self) -> ReplayReport:
        """Replay every kind's pending jobs; a no-op while offline."""
        report = ReplayReport()
        if not self.connectivity.is_online():
            logger.debug("replay_skipped_offline")
            return report

        correlation_id = generate_correlation_id()
        for coordinator in self.coordinators:
            report = report + await coordinator.replay_pending_jobs()
        logger.info(
            "replay_all_finished",
            extra={
                "correlation_id": correlation_id,
                "processed": report.processed,
                "completed": report.completed,
                "retried": report.retried,
                "failed": report.failed,
            },
        )
        return report

    async def on_connectivity_changed(self, is_online: bool) -> None:
        if is_online:
            await self.replay_all()

    async def close(self) -> None:
        if self._scheduler is not None:
            await self._scheduler.stop()
            self._scheduler = None
        if isinstance(self.connectivity, ConnectivityMonitor):
            self.connectivity.remove_listener(self.on_connectivity_changed)
        if self._remote_client is not None:
            await self._remote_client.aclose()
        if self._session is not None:
            self._session.close()
