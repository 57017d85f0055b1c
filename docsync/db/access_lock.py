"""Shared/exclusive gate in front of the SQLite file.

Reads (entity lookups, job listings, counts) enter shared. Every write
enters exclusive, which makes the exclusive side the serialization point for
job claims: one replay pass's conditional ``pending -> processing`` UPDATE
never interleaves with another pass's claim, with a status reset, or with the
put/delete pair of an identity reconciliation.

Writers are preferred. Once a write is waiting, new reads queue behind it,
so a steady stream of list refreshes cannot hold back queued mutations.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class StoreAccessLock:
    """Many concurrent readers, or a single writer."""

    def __init__(self) -> None:
        self._changed = asyncio.Condition()
        self._readers = 0
        self._writing = False
        self._writers_waiting = 0

    def _can_read(self) -> bool:
        return not self._writing and self._writers_waiting == 0

    def _can_write(self) -> bool:
        return not self._writing and self._readers == 0

    @asynccontextmanager
    async def shared(self) -> AsyncIterator[None]:
        async with self._changed:
            await self._changed.wait_for(self._can_read)
            self._readers += 1
        try:
            yield
        finally:
            async with self._changed:
                self._readers -= 1
                if self._readers == 0:
                    self._changed.notify_all()

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[None]:
        async with self._changed:
            self._writers_waiting += 1
            try:
                await self._changed.wait_for(self._can_write)
            finally:
                self._writers_waiting -= 1
                # A cancelled writer may be the one holding readers back.
                self._changed.notify_all()
            self._writing = True
        try:
            yield
        finally:
            async with self._changed:
                self._writing = False
                self._changed.notify_all()
