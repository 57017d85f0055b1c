from typing import Any

import peewee

from docsync.db.session import DatabaseSessionManager
from docsync.domain.exceptions.domain_exceptions import StorageFaultError


class SqliteBaseRepository:
    """Base repository for SQLite implementations."""

    def __init__(self, session_manager: DatabaseSessionManager) -> None:
        self._session = session_manager

    async def _execute(
        self,
        operation: Any,
        *args: Any,
        timeout: float | None = None,
        operation_name: str = "repository_operation",
        read_only: bool = False,
        **kwargs: Any,
    ) -> Any:
        """Execute a database operation, surfacing failures as storage faults."""
        try:
            return await self._session.run(
                operation,
                *args,
                timeout=timeout,
                operation_name=operation_name,
                read_only=read_only,
                **kwargs,
            )
        except (peewee.PeeweeException, TimeoutError) as e:
            raise StorageFaultError(
                f"{operation_name} failed: {e}",
                {"operation": operation_name, "error_type": type(e).__name__},
            ) from e

    async def _execute_atomic(
        self,
        operation: Any,
        *args: Any,
        operation_name: str = "repository_transaction",
        **kwargs: Any,
    ) -> Any:
        try:
            return await self._session.transaction(
                operation, *args, operation_name=operation_name, **kwargs
            )
        except (peewee.PeeweeException, TimeoutError) as e:
            raise StorageFaultError(
                f"{operation_name} failed: {e}",
                {"operation": operation_name, "error_type": type(e).__name__},
            ) from e
