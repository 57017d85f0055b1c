"""Connectivity oracle with change notification.

``is_online()`` is a plain attribute read so callers can query it on every
mutation. State changes arrive through :meth:`ConnectivityMonitor.update`,
from a platform hook or from :meth:`ConnectivityMonitor.probe`.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

ConnectivityListener = Callable[[bool], Awaitable[None]]


class ConnectivityMonitor:
    def __init__(self, online: bool = False) -> None:
        self._online = online
        self._listeners: list[ConnectivityListener] = []

    def is_online(self) -> bool:
        return self._online

    def add_listener(self, listener: ConnectivityListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ConnectivityListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def update(self, online: bool) -> None:
        """Record the new state and notify listeners if it changed."""
        if online == self._online:
            return
        self._online = online
        logger.info("connectivity_changed", extra={"online": online})
        for listener in list(self._listeners):
            try:
                await listener(online)
            except Exception:
                logger.exception("connectivity_listener_failed", extra={"online": online})

    async def probe(self, client: httpx.AsyncClient, path: str = "/api/health") -> bool:
        """Check reachability of the remote service and update the state.

        Any response, even an error status, counts as online; only transport
        failures count as offline.
        """
        try:
            await client.get(path)
            online = True
        except httpx.TransportError as e:
            logger.debug("connectivity_probe_failed", extra={"error": str(e)})
            online = False
        await self.update(online)
        return online
