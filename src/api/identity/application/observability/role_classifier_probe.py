"""Protocol for role classifier observability."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class RoleClassifierProbe(Protocol):
    """Domain probe for affiliation code classification."""

    def affiliation_fallback(self, raw_code: str, reason: str) -> None:
        """Record that an invalid code was classified as secondary."""
        ...

    def registry_lookup_failed(self, code: str, error: str) -> None:
        """Record that the registry could not be queried for a code."""
        ...

    def affiliation_code_used(self, code: str, account_id: str) -> None:
        """Record that a registry code was consumed by a registration."""
        ...

    def affiliation_code_unavailable(self, code: str, account_id: str) -> None:
        """Record that a registry code was already consumed when recording use."""
        ...

    def with_context(self, context: ObservationContext) -> RoleClassifierProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultRoleClassifierProbe:
    """Default implementation of RoleClassifierProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultRoleClassifierProbe:
        """Create a new probe with observation context bound."""
        return DefaultRoleClassifierProbe(logger=self._logger, context=context)

    def affiliation_fallback(self, raw_code: str, reason: str) -> None:
        self._logger.info(
            "affiliation_code_fallback_to_secondary",
            raw_code=raw_code,
            reason=reason,
            **self._get_context_kwargs(),
        )

    def registry_lookup_failed(self, code: str, error: str) -> None:
        self._logger.warning(
            "affiliation_registry_lookup_failed",
            code=code,
            error=error,
            **self._get_context_kwargs(),
        )

    def affiliation_code_used(self, code: str, account_id: str) -> None:
        self._logger.info(
            "affiliation_code_used",
            code=code,
            account_id=account_id,
            **self._get_context_kwargs(),
        )

    def affiliation_code_unavailable(self, code: str, account_id: str) -> None:
        self._logger.warning(
            "affiliation_code_unavailable",
            code=code,
            account_id=account_id,
            **self._get_context_kwargs(),
        )
