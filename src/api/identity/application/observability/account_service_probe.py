"""Protocol for account service observability.

Defines the interface for domain probes that capture account lifecycle
operations (profile reads, credential, email and affiliation changes,
deactivation and reactivation).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class AccountServiceProbe(Protocol):
    """Domain probe for account service operations."""

    def profile_retrieved(self, account_id: str) -> None:
        """Record that an account profile was read."""
        ...

    def account_changed(self, account_id: str, operation: str) -> None:
        """Record that an account lifecycle operation succeeded."""
        ...

    def account_change_failed(self, account_id: str, operation: str, error: str) -> None:
        """Record that an account lifecycle operation failed."""
        ...

    def with_context(self, context: ObservationContext) -> AccountServiceProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultAccountServiceProbe:
    """Default implementation of AccountServiceProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultAccountServiceProbe:
        """Create a new probe with observation context bound."""
        return DefaultAccountServiceProbe(logger=self._logger, context=context)

    def profile_retrieved(self, account_id: str) -> None:
        self._logger.debug(
            "account_profile_retrieved",
            account_id=account_id,
            **self._get_context_kwargs(),
        )

    def account_changed(self, account_id: str, operation: str) -> None:
        self._logger.info(
            "account_changed",
            account_id=account_id,
            operation=operation,
            **self._get_context_kwargs(),
        )

    def account_change_failed(self, account_id: str, operation: str, error: str) -> None:
        self._logger.warning(
            "account_change_failed",
            account_id=account_id,
            operation=operation,
            error=error,
            **self._get_context_kwargs(),
        )
