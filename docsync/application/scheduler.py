"""Background scheduler for periodic replay of queued jobs."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from docsync.core.time_utils import utc_now

if TYPE_CHECKING:
    from docsync.application.sync_engine import SyncEngine

logger = logging.getLogger(__name__)

REPLAY_JOB_ID = "replay_all"


class ReplayScheduler:
    """Calls ``engine.replay_all()`` every ``interval`` seconds.

    The first pass runs as soon as the scheduler starts. Passes never
    overlap; a pass that is still running when the next one is due is
    skipped.

    Usage::

        scheduler = ReplayScheduler(engine, interval=60.0)
        await scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(self, engine: SyncEngine, interval: float) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._engine = engine
        self._interval = interval
        self._scheduler: AsyncIOScheduler | None = None
        self._in_flight = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    async def start(self) -> None:
        if self._scheduler is not None:
            logger.warning("replay_scheduler_already_running")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self._run_replay,
            trigger=IntervalTrigger(seconds=self._interval),
            id=REPLAY_JOB_ID,
            name="Offline job replay",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=utc_now(),
        )
        self._scheduler.start()
        logger.info("replay_scheduler_started", extra={"interval": self._interval})

    async def stop(self) -> None:
        """Stop scheduling, then wait for a pass that is already running."""
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        async with self._in_flight:
            pass
        logger.info("replay_scheduler_stopped")

    def next_run_time(self) -> datetime | None:
        if self._scheduler is None:
            return None
        job = self._scheduler.get_job(REPLAY_JOB_ID)
        return job.next_run_time if job else None

    async def _run_replay(self) -> None:
        if self._in_flight.locked():
            return
        async with self._in_flight:
            try:
                report = await self._engine.replay_all()
            except Exception:
                logger.exception("scheduled_replay_failed")
                return
        if report.processed:
            logger.debug(
                "scheduled_replay_finished",
                extra={"processed": report.processed, "failed": report.failed},
            )
