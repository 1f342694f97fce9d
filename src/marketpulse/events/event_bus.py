"""Event bus for publishing domain events to in-process subscribers."""

import asyncio
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Set, Type, Union

from ..config.logging import get_logger
from .events import DomainEvent

logger = get_logger(__name__)

EventHandler = Callable[[DomainEvent], Union[None, Awaitable[None]]]


class EventBus:
    """Event bus for publishing and subscribing to domain events."""

    def __init__(self, name: str = "default"):
        self.name = name
        self.logger = logger.bind(event_bus=name)

        # Event handlers registry: event_type -> list of handlers
        self._handlers: Dict[Type[DomainEvent], List[EventHandler]] = defaultdict(list)

        # Fire-and-forget tasks must stay referenced until they finish
        self._pending: Set[asyncio.Task] = set()

        self._event_history: List[Dict[str, Any]] = []
        self._max_history_size = 1000

        self._stats = {
            "events_published": 0,
            "handlers_executed": 0,
            "errors_count": 0,
            "last_event_time": None,
        }

    def subscribe(self, event_type: Type[DomainEvent], handler: EventHandler) -> None:
        """
        Subscribe a handler to an event type.

        Args:
            event_type: Type of event to subscribe to
            handler: Handler function (sync or async)
        """
        self._handlers[event_type].append(handler)

        self.logger.debug(
            "Event handler subscribed",
            event_type=event_type.__name__,
            handler=getattr(handler, "__name__", repr(handler)),
            total_handlers=len(self._handlers[event_type]),
        )

    def unsubscribe(self, event_type: Type[DomainEvent], handler: EventHandler) -> bool:
        """
        Unsubscribe a handler from an event type.

        Returns:
            True if handler was found and removed
        """
        if event_type in self._handlers and handler in self._handlers[event_type]:
            self._handlers[event_type].remove(handler)
            return True

        return False

    async def publish(
        self, event: DomainEvent, wait_for_handlers: bool = False
    ) -> Dict[str, Any]:
        """
        Publish an event to all subscribed handlers.

        Sync handlers run inline. Async handlers run as tasks, awaited only
        when ``wait_for_handlers`` is set. A failing handler never affects
        the publisher or the other handlers.

        Args:
            event: Domain event to publish
            wait_for_handlers: Whether to wait for async handlers to complete

        Returns:
            Dictionary with publication results
        """
        event_type = type(event)
        self._stats["events_published"] += 1
        self._stats["last_event_time"] = datetime.now(timezone.utc)
        self._add_to_history(event)

        handlers = list(self._handlers.get(event_type, []))
        if not handlers:
            self.logger.debug(
                "No handlers registered for event type", event_type=event_type.__name__
            )
            return {
                "event_id": event.event_id,
                "handlers_executed": 0,
                "successful_handlers": 0,
                "failed_handlers": 0,
            }

        successful_handlers = 0
        failed_handlers = 0
        tasks = []

        for handler in handlers:
            if asyncio.iscoroutinefunction(handler):
                task = asyncio.create_task(handler(event))
                self._pending.add(task)
                task.add_done_callback(self._on_task_done)
                tasks.append(task)
                continue

            try:
                handler(event)
                successful_handlers += 1
            except Exception as e:
                failed_handlers += 1
                self._stats["errors_count"] += 1
                self.logger.error(
                    "Handler execution failed",
                    event_type=event_type.__name__,
                    handler=getattr(handler, "__name__", repr(handler)),
                    error=str(e),
                    exc_info=True,
                )

        if tasks:
            if wait_for_handlers:
                results = await asyncio.gather(*tasks, return_exceptions=True)
                for result in results:
                    if isinstance(result, Exception):
                        failed_handlers += 1
                    else:
                        successful_handlers += 1
            else:
                successful_handlers += len(tasks)

        self._stats["handlers_executed"] += len(handlers)

        return {
            "event_id": event.event_id,
            "handlers_executed": len(handlers),
            "successful_handlers": successful_handlers,
            "failed_handlers": failed_handlers,
        }

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self._stats["errors_count"] += 1
            self.logger.error(
                "Async handler failed",
                error=str(error),
                error_type=type(error).__name__,
            )

    async def drain(self) -> None:
        """Wait for all fire-and-forget handler tasks to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _add_to_history(self, event: DomainEvent):
        """Add event to history for debugging."""
        self._event_history.append(event.to_dict())

        if len(self._event_history) > self._max_history_size:
            self._event_history = self._event_history[-self._max_history_size :]

    def get_statistics(self) -> Dict[str, Any]:
        """Get event bus statistics."""
        return {
            **self._stats,
            "registered_event_types": len(self._handlers),
            "total_handlers": sum(len(h) for h in self._handlers.values()),
            "history_size": len(self._event_history),
        }

    def get_event_history(self, limit: int = 100) -> List[Dict[str, Any]]:
        """Get recent event history."""
        return self._event_history[-limit:] if self._event_history else []
