"""Protocol for notification handler observability.

Notification outcomes are only observable here: a failed notification
never fails the authentication that triggered it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class NotificationProbe(Protocol):
    """Domain probe for notification dispatch outcomes."""

    def notification_sent(self, kind: str, account_id: str) -> None:
        """Record that a notification was accepted by the provider."""
        ...

    def notification_failed(self, kind: str, account_id: str, error: str | None) -> None:
        """Record that a notification could not be delivered."""
        ...

    def with_context(self, context: ObservationContext) -> NotificationProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultNotificationProbe:
    """Default implementation of NotificationProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultNotificationProbe:
        """Create a new probe with observation context bound."""
        return DefaultNotificationProbe(logger=self._logger, context=context)

    def notification_sent(self, kind: str, account_id: str) -> None:
        self._logger.info(
            "notification_sent",
            kind=kind,
            account_id=account_id,
            **self._get_context_kwargs(),
        )

    def notification_failed(self, kind: str, account_id: str, error: str | None) -> None:
        self._logger.warning(
            "notification_failed",
            kind=kind,
            account_id=account_id,
            error=error,
            **self._get_context_kwargs(),
        )
