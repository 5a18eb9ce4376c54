"""Domain probe for application startup and shutdown."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class StartupProbe(Protocol):
    """Domain probe for application lifecycle events."""

    def application_started(self, version: str, debug: bool) -> None:
        """Record that the application finished starting."""
        ...

    def application_stopping(self) -> None:
        """Record that shutdown began."""
        ...

    def email_delivery_disabled(self) -> None:
        """Record that no email provider key is configured."""
        ...

    def affiliation_registry_enabled(self) -> None:
        """Record that affiliation codes resolve against the registry."""
        ...

    def with_context(self, context: ObservationContext) -> StartupProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultStartupProbe:
    """Default implementation of StartupProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultStartupProbe:
        """Create a new probe with observation context bound."""
        return DefaultStartupProbe(logger=self._logger, context=context)

    def application_started(self, version: str, debug: bool) -> None:
        self._logger.info(
            "application_started",
            version=version,
            debug=debug,
            **self._get_context_kwargs(),
        )

    def application_stopping(self) -> None:
        self._logger.info("application_stopping", **self._get_context_kwargs())

    def email_delivery_disabled(self) -> None:
        self._logger.warning(
            "email_delivery_disabled",
            **self._get_context_kwargs(),
        )

    def affiliation_registry_enabled(self) -> None:
        self._logger.info(
            "affiliation_registry_enabled",
            **self._get_context_kwargs(),
        )
