"""SQLite session management for the local store and the job queue.

Every repository call funnels through :class:`DatabaseSessionManager`, which
runs the blocking peewee work in a worker thread, bounds it with a timeout
and retries when SQLite reports the file as locked or busy.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

import peewee
from playhouse.sqlite_ext import SqliteExtDatabase

from docsync.db.models import ALL_MODELS, database_proxy
from docsync.db.access_lock import StoreAccessLock

T = TypeVar("T")

DEFAULT_OPERATION_TIMEOUT = 30.0
DEFAULT_MAX_RETRIES = 3


@dataclass
class DatabaseSessionManager:
    """Peewee-backed database session manager.

    Attributes:
        path: Path to the SQLite database file.
        operation_timeout: Default timeout for database operations in seconds.
        max_retries: Maximum retries for locked/busy errors.
    """

    path: str
    operation_timeout: float = field(default=DEFAULT_OPERATION_TIMEOUT)
    max_retries: int = field(default=DEFAULT_MAX_RETRIES)
    _logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))
    _database: peewee.SqliteDatabase = field(init=False)
    _access_lock: StoreAccessLock = field(init=False)

    def __post_init__(self) -> None:
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        self._database = SqliteExtDatabase(
            self.path,
            pragmas={
                "journal_mode": "wal",
                "synchronous": "normal",
                "busy_timeout": 5000,
            },
            check_same_thread=False,
        )
        database_proxy.initialize(self._database)
        self._access_lock = StoreAccessLock()

    @property
    def database(self) -> peewee.SqliteDatabase:
        return self._database

    def migrate(self) -> None:
        """Create missing tables and indexes."""
        with self._database.connection_context(), self._database.bind_ctx(ALL_MODELS):
            self._database.create_tables(ALL_MODELS, safe=True)
        self._logger.info("db_migrated", extra={"path": self._mask_path(self.path)})

    def close(self) -> None:
        if not self._database.is_closed():
            self._database.close()

    async def run(
        self,
        operation: Callable[..., T],
        *args: Any,
        timeout: float | None = None,
        operation_name: str = "database_operation",
        read_only: bool = False,
        **kwargs: Any,
    ) -> T:
        """Execute ``operation`` off the event loop with timeout and retry.

        ``read_only`` operations enter the StoreAccessLock shared; everything
        else enters it exclusively, which serializes job claims and
        reconciliation writes.

        Raises:
            TimeoutError: If the operation exceeds ``timeout``.
            peewee.OperationalError: If the database stays locked after retries.
            peewee.PeeweeException: Any other database error.
        """

        def _op_wrapper() -> T:
            with self._database.connection_context():
                return operation(*args, **kwargs)

        async def _with_lock() -> T:
            if read_only:
                async with self._access_lock.shared():
                    return await asyncio.to_thread(_op_wrapper)
            async with self._access_lock.exclusive():
                return await asyncio.to_thread(_op_wrapper)

        return await self._retrying(_with_lock, timeout, operation_name)

    async def transaction(
        self,
        operation: Callable[..., T],
        *args: Any,
        timeout: float | None = None,
        operation_name: str = "database_transaction",
        **kwargs: Any,
    ) -> T:
        """Execute ``operation`` inside one atomic transaction."""

        def _execute_in_transaction() -> T:
            with self._database.connection_context(), self._database.atomic():
                return operation(*args, **kwargs)

        async def _with_lock() -> T:
            async with self._access_lock.exclusive():
                return await asyncio.to_thread(_execute_in_transaction)

        return await self._retrying(_with_lock, timeout, operation_name)

    async def _retrying(
        self,
        runner: Callable[[], Any],
        timeout: float | None,
        operation_name: str,
    ) -> Any:
        if timeout is None:
            timeout = self.operation_timeout

        retries = 0
        while True:
            try:
                return await asyncio.wait_for(runner(), timeout=timeout)

            except TimeoutError:
                self._logger.exception(
                    "db_operation_timeout",
                    extra={"operation": operation_name, "timeout": timeout, "retries": retries},
                )
                raise

            except peewee.OperationalError as e:
                error_msg = str(e).lower()
                if ("locked" in error_msg or "busy" in error_msg) and retries < self.max_retries:
                    retries += 1
                    wait_time = 0.1 * (2**retries)
                    self._logger.warning(
                        "db_locked_retrying",
                        extra={
                            "operation": operation_name,
                            "retry": retries,
                            "max_retries": self.max_retries,
                            "wait_time": wait_time,
                            "error": str(e),
                        },
                    )
                    await asyncio.sleep(wait_time)
                    continue

                self._logger.exception(
                    "db_operational_error",
                    extra={"operation": operation_name, "retries": retries, "error": str(e)},
                )
                raise

            except peewee.IntegrityError as e:
                self._logger.exception(
                    "db_integrity_error",
                    extra={"operation": operation_name, "error": str(e)},
                )
                raise

    @staticmethod
    def _mask_path(path: str) -> str:
        try:
            p = Path(path)
            return f".../{p.name}" if p.name else "..."
        except Exception:
            return "..."
