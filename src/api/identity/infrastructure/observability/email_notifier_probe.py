"""Domain probe for transactional email delivery."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class EmailNotifierProbe(Protocol):
    """Domain probe for the email provider adapter."""

    def email_delivered(self, kind: str, provider_message_id: str | None) -> None:
        """Record that the provider accepted an email."""
        ...

    def email_rejected(self, kind: str, status_code: int, error: str) -> None:
        """Record that the provider rejected an email."""
        ...

    def email_delivery_failed(self, kind: str, error: str) -> None:
        """Record that the provider could not be reached."""
        ...

    def email_delivery_disabled(self, kind: str) -> None:
        """Record that an email was not sent because delivery is not configured."""
        ...

    def with_context(self, context: ObservationContext) -> EmailNotifierProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultEmailNotifierProbe:
    """Default implementation of EmailNotifierProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultEmailNotifierProbe:
        """Create a new probe with observation context bound."""
        return DefaultEmailNotifierProbe(logger=self._logger, context=context)

    def email_delivered(self, kind: str, provider_message_id: str | None) -> None:
        self._logger.info(
            "email_delivered",
            kind=kind,
            provider_message_id=provider_message_id,
            **self._get_context_kwargs(),
        )

    def email_rejected(self, kind: str, status_code: int, error: str) -> None:
        self._logger.warning(
            "email_rejected",
            kind=kind,
            status_code=status_code,
            error=error,
            **self._get_context_kwargs(),
        )

    def email_delivery_failed(self, kind: str, error: str) -> None:
        self._logger.error(
            "email_delivery_failed",
            kind=kind,
            error=error,
            **self._get_context_kwargs(),
        )

    def email_delivery_disabled(self, kind: str) -> None:
        self._logger.debug(
            "email_delivery_disabled",
            kind=kind,
            **self._get_context_kwargs(),
        )
