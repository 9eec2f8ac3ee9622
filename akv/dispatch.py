"""
Event channel and background task dispatcher.

Background work never touches AppState. Each dispatched coroutine either
returns an Event (sent for it) or sends its own events and returns None; an
exception becomes a single StatusMessage. The event loop drains the channel
on every tick.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from akv.models import Event, StatusMessage

logger = logging.getLogger(__name__)


class EventChannel:
    """Many producers, one consumer. Sending after close is a silent no-op."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Event] = asyncio.Queue()
        self._closed = False

    def send(self, event: Event) -> bool:
        if self._closed:
            logger.debug("Dropping %s: channel closed", type(event).__name__)
            return False
        self._queue.put_nowait(event)
        return True

    def drain(self) -> list[Event]:
        """Return every queued event without waiting, in arrival order."""
        events: list[Event] = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except asyncio.QueueEmpty:
                return events

    def close(self) -> None:
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return self._queue.qsize()


class TaskDispatcher:
    """Spawn fire-and-forget tasks that report back through an EventChannel."""

    def __init__(self, channel: EventChannel) -> None:
        self.channel = channel
        self._tasks: set[asyncio.Task] = set()

    def spawn(
        self,
        coro: Coroutine[Any, Any, Event | None],
        *,
        failure: str,
        name: str | None = None,
    ) -> asyncio.Task:
        """Schedule ``coro``. On error, ``failure`` prefixes the status message."""
        task = asyncio.create_task(self._run(coro, failure), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, coro: Coroutine[Any, Any, Event | None], failure: str) -> None:
        try:
            event = await coro
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("%s: %s", failure, e)
            self.channel.send(StatusMessage(f"{failure}: {e}"))
            return
        if event is not None:
            self.channel.send(event)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def join(self) -> None:
        """Wait until no task is in flight, including ones spawned meanwhile."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel everything still running. Only used on exit."""
        self.channel.close()
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
