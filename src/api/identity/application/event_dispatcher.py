"""In-process domain event dispatcher.

Producing events is synchronous and never blocks: publish() only places
the event on a bounded queue. A fixed pool of worker tasks consumes the
queue and invokes the handlers registered for each event type, each under
a timeout. A slow or failing handler can therefore never block or fail the
request that produced the event.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, Protocol

from identity.application.observability import (
    DefaultEventDispatcherProbe,
    EventDispatcherProbe,
)

EventHandler = Callable[[Any], Awaitable[None]]


class DomainEventPublisher(Protocol):
    """Publishing side of the dispatcher, as seen by producers."""

    def publish(self, event: Any) -> bool:
        """Queue an event for dispatch without waiting for handlers."""
        ...

    def publish_all(self, events: Iterable[Any]) -> int:
        """Queue events in order and return how many were accepted."""
        ...


class DomainEventDispatcher:
    """Type-keyed event dispatcher backed by a bounded asyncio queue.

    Handlers are registered per event class with subscribe(). Events are
    delivered to handlers in the order they were queued by a single
    worker, but different events may be processed concurrently by
    different workers.
    """

    def __init__(
        self,
        worker_count: int = 4,
        queue_size: int = 1000,
        handler_timeout_seconds: float = 15.0,
        probe: EventDispatcherProbe | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            worker_count: Number of concurrent worker tasks
            queue_size: Maximum number of pending events before new ones are dropped
            handler_timeout_seconds: Time bound applied to each handler invocation
            probe: Optional domain probe for observability
        """
        if worker_count < 1:
            raise ValueError("worker_count must be at least 1")
        self._worker_count = worker_count
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=queue_size)
        self._handler_timeout = handler_timeout_seconds
        self._handlers: dict[type, list[EventHandler]] = defaultdict(list)
        self._probe = probe or DefaultEventDispatcherProbe()
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    @property
    def pending(self) -> int:
        """Number of events waiting to be processed."""
        return self._queue.qsize()

    def subscribe(self, event_type: type, handler: EventHandler) -> None:
        """Register a handler for one event class."""
        self._handlers[event_type].append(handler)

    def handlers_for(self, event_type: type) -> list[EventHandler]:
        return list(self._handlers.get(event_type, ()))

    def publish(self, event: Any) -> bool:
        """Queue an event for dispatch.

        Never blocks and never raises. When the queue is full the event is
        dropped and the drop is recorded.

        Returns:
            True if the event was queued, False if it was dropped
        """
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self._probe.event_dropped(
                event_type=type(event).__name__,
                event_id=str(getattr(event, "event_id", "")),
                queue_size=self._queue.maxsize,
            )
            return False
        return True

    def publish_all(self, events: Iterable[Any]) -> int:
        """Queue events in order.

        Returns:
            Number of events accepted
        """
        return sum(1 for event in events if self.publish(event))

    async def start(self) -> None:
        """Start the worker tasks. Calling start twice has no effect."""
        if self._tasks:
            return
        for index in range(self._worker_count):
            self._tasks.append(
                asyncio.create_task(self._worker(), name=f"domain-event-worker-{index}")
            )
        self._probe.dispatcher_started(worker_count=self._worker_count)

    async def join(self) -> None:
        """Wait until every queued event has been processed."""
        await self._queue.join()

    async def stop(self, drain_timeout_seconds: float | None = 5.0) -> None:
        """Stop the workers, first giving queued events a chance to finish.

        Args:
            drain_timeout_seconds: How long to wait for the queue to drain
                before cancelling workers. None skips draining.
        """
        if drain_timeout_seconds is not None and self._tasks:
            try:
                async with asyncio.timeout(drain_timeout_seconds):
                    await self._queue.join()
            except TimeoutError:
                pass

        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

        self._tasks.clear()
        self._probe.dispatcher_stopped(pending_events=self._queue.qsize())

    async def _worker(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._dispatch(event)
            finally:
                self._queue.task_done()

    async def _dispatch(self, event: Any) -> None:
        event_type = type(event).__name__
        handlers = self.handlers_for(type(event))
        self._probe.event_dispatched(
            event_type=event_type,
            event_id=str(getattr(event, "event_id", "")),
            handler_count=len(handlers),
        )
        for handler in handlers:
            handler_name = getattr(handler, "__qualname__", repr(handler))
            try:
                async with asyncio.timeout(self._handler_timeout):
                    await handler(event)
            except TimeoutError:
                self._probe.handler_timed_out(
                    event_type=event_type,
                    handler=handler_name,
                    timeout_seconds=self._handler_timeout,
                )
            except Exception as e:
                self._probe.handler_failed(
                    event_type=event_type,
                    handler=handler_name,
                    error=str(e),
                )
