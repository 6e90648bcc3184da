"""Event dispatcher — fans one feed event out to the listeners of its type.

Listeners run synchronously in registration order. A listener may return
an awaitable; it is scheduled as a background task so the feed never waits
for listener completion. Listeners that mutate shared state must do so
before returning the awaitable.

Key class: EventDispatcher.
"""

import asyncio
import inspect
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

Listener = Callable[[Any], Awaitable[Any] | None]


async def _await(awaitable: Awaitable[Any]) -> Any:
    return await awaitable


class EventDispatcher:
    """Type-name keyed listener table."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._tasks: set[asyncio.Task[Any]] = set()

    def on(self, event_type: str, listener: Listener) -> Listener:
        """Register ``listener`` for ``event_type``; returns it unchanged."""
        self._listeners[event_type].append(listener)
        return listener

    def off(self, event_type: str, listener: Listener) -> None:
        """Remove one registration of ``listener``; missing ones are ignored."""
        registered = self._listeners.get(event_type)
        if registered and listener in registered:
            registered.remove(listener)

    def listeners(self, event_type: str) -> list[Listener]:
        return list(self._listeners.get(event_type, ()))

    def emit(self, event_type: str, event: Any) -> int:
        """Call every listener of ``event_type``; returns how many were called."""
        listeners = self.listeners(event_type)
        for listener in listeners:
            result = listener(event)
            if inspect.isawaitable(result):
                self._spawn(event_type, result)
        if not listeners:
            logger.debug("No listeners for %s", event_type)
        return len(listeners)

    def dispatch(self, event: Any) -> int:
        """Emit ``event`` under its own ``type`` name."""
        return self.emit(event.type, event)

    @property
    def pending(self) -> int:
        """Number of listener tasks still running."""
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait until every scheduled listener task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel(self) -> None:
        """Cancel every outstanding listener task and wait for them to exit."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Cancelled %d listener tasks", len(tasks))

    def _spawn(self, event_type: str, awaitable: Awaitable[Any]) -> None:
        coro = awaitable if inspect.iscoroutine(awaitable) else _await(awaitable)
        task = asyncio.create_task(coro, name=f"listener:{event_type}")
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Listener task %s failed: %s",
                task.get_name(),
                exc,
                exc_info=exc,
            )
