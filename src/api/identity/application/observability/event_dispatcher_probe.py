"""Protocol for domain event dispatcher observability."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class EventDispatcherProbe(Protocol):
    """Domain probe for the in-process domain event dispatcher."""

    def dispatcher_started(self, worker_count: int) -> None:
        """Record that the dispatcher workers started."""
        ...

    def dispatcher_stopped(self, pending_events: int) -> None:
        """Record that the dispatcher stopped, with events still queued."""
        ...

    def event_dropped(self, event_type: str, event_id: str, queue_size: int) -> None:
        """Record that an event was dropped because the queue was full."""
        ...

    def event_dispatched(self, event_type: str, event_id: str, handler_count: int) -> None:
        """Record that an event was handed to its handlers."""
        ...

    def handler_failed(self, event_type: str, handler: str, error: str) -> None:
        """Record that a handler raised while processing an event."""
        ...

    def handler_timed_out(self, event_type: str, handler: str, timeout_seconds: float) -> None:
        """Record that a handler exceeded its time bound."""
        ...

    def with_context(self, context: ObservationContext) -> EventDispatcherProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultEventDispatcherProbe:
    """Default implementation of EventDispatcherProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        """Get context metadata as kwargs for logging."""
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultEventDispatcherProbe:
        """Create a new probe with observation context bound."""
        return DefaultEventDispatcherProbe(logger=self._logger, context=context)

    def dispatcher_started(self, worker_count: int) -> None:
        self._logger.info(
            "event_dispatcher_started",
            worker_count=worker_count,
            **self._get_context_kwargs(),
        )

    def dispatcher_stopped(self, pending_events: int) -> None:
        log = self._logger.warning if pending_events else self._logger.info
        log(
            "event_dispatcher_stopped",
            pending_events=pending_events,
            **self._get_context_kwargs(),
        )

    def event_dropped(self, event_type: str, event_id: str, queue_size: int) -> None:
        self._logger.error(
            "domain_event_dropped",
            event_type=event_type,
            event_id=event_id,
            queue_size=queue_size,
            **self._get_context_kwargs(),
        )

    def event_dispatched(self, event_type: str, event_id: str, handler_count: int) -> None:
        self._logger.debug(
            "domain_event_dispatched",
            event_type=event_type,
            event_id=event_id,
            handler_count=handler_count,
            **self._get_context_kwargs(),
        )

    def handler_failed(self, event_type: str, handler: str, error: str) -> None:
        self._logger.error(
            "domain_event_handler_failed",
            event_type=event_type,
            handler=handler,
            error=error,
            **self._get_context_kwargs(),
        )

    def handler_timed_out(self, event_type: str, handler: str, timeout_seconds: float) -> None:
        self._logger.error(
            "domain_event_handler_timed_out",
            event_type=event_type,
            handler=handler,
            timeout_seconds=timeout_seconds,
            **self._get_context_kwargs(),
        )
