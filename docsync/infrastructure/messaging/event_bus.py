"""In-memory event bus owned by one coordinator.

Handlers registered for a base class (``DomainEvent``, ``EntityEvent``) also
receive its subclasses. Delivery is sequential, so subscribers observe events
in emission order; late subscribers get nothing retroactively.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from docsync.domain.events.entity_events import DomainEvent

logger = logging.getLogger(__name__)

TEvent = TypeVar("TEvent", bound=DomainEvent)

EventHandler = Callable[[Any], Awaitable[None]]


def _handler_name(handler: EventHandler) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)


class EventBus:
    """Publish/subscribe channel with explicit subscriber lifecycle.

    Example:
        ```python
        bus = EventBus()

        async def on_entity(event: EntityEvent) -> None:
            print(event.event_kind, event.entity.id)

        bus.subscribe(EntityEvent, on_entity)
        await bus.publish(EntityEvent.created(bookmark))
        bus.unsubscribe(EntityEvent, on_entity)
        ```
    """

    def __init__(self, name: str = "events") -> None:
        self.name = name
        self._handlers: dict[type, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: type[TEvent], handler: EventHandler) -> Callable[[], None]:
        """Register ``handler`` for ``event_type`` and its subclasses.

        Returns:
            A callable that removes the subscription.
        """
        self._handlers[event_type].append(handler)
        logger.debug(
            "event_handler_subscribed",
            extra={
                "bus": self.name,
                "event_type": event_type.__name__,
                "handler": _handler_name(handler),
                "total_handlers": len(self._handlers[event_type]),
            },
        )
        return lambda: self.unsubscribe(event_type, handler)

    def unsubscribe(self, event_type: type[TEvent], handler: EventHandler) -> None:
        handlers = self._handlers.get(event_type)
        if not handlers or handler not in handlers:
            logger.warning(
                "event_handler_not_found",
                extra={
                    "bus": self.name,
                    "event_type": event_type.__name__,
                    "handler": _handler_name(handler),
                },
            )
            return
        handlers.remove(handler)
        if not handlers:
            del self._handlers[event_type]
        logger.debug(
            "event_handler_unsubscribed",
            extra={"bus": self.name, "event_type": event_type.__name__},
        )

    def _handlers_for(self, event_type: type) -> list[EventHandler]:
        matched: list[EventHandler] = []
        for cls in event_type.__mro__:
            matched.extend(self._handlers.get(cls, ()))
        return matched

    async def publish(self, event: DomainEvent) -> None:
        """Deliver ``event`` to every matching handler.

        A failing handler is logged and does not stop delivery to the rest.
        """
        event_type = type(event)
        handlers = self._handlers_for(event_type)

        if not handlers:
            logger.debug(
                "event_published_no_handlers",
                extra={"bus": self.name, "event_type": event_type.__name__},
            )
            return

        logger.debug(
            "event_published",
            extra={
                "bus": self.name,
                "event_type": event_type.__name__,
                "event_id": event.aggregate_id,
                "handler_count": len(handlers),
            },
        )

        for handler in handlers:
            try:
                await handler(event)
            except Exception as exc:
                logger.exception(
                    "event_handler_failed",
                    extra={
                        "bus": self.name,
                        "event_type": event_type.__name__,
                        "handler": _handler_name(handler),
                        "error": str(exc),
                    },
                )

    def clear_handlers(self, event_type: type[TEvent] | None = None) -> None:
        if event_type is not None:
            self._handlers.pop(event_type, None)
        else:
            self._handlers.clear()

    def get_handler_count(self, event_type: type[TEvent]) -> int:
        return len(self._handlers.get(event_type, []))
