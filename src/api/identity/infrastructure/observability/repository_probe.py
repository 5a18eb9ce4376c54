"""Domain probe for Identity repository operations.

Following Domain-Oriented Observability patterns, this probe captures
domain-significant events related to identity and affiliation code
persistence. Email addresses are never logged.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class IdentityRepositoryProbe(Protocol):
    """Domain probe for identity repository operations."""

    def identity_saved(self, account_id: str) -> None:
        """Record that a new identity was inserted."""
        ...

    def identity_updated(self, account_id: str) -> None:
        """Record that an identity was updated."""
        ...

    def identity_retrieved(self, account_id: str, lookup: str) -> None:
        """Record that an identity was found."""
        ...

    def identity_not_found(self, lookup: str) -> None:
        """Record that no identity matched a lookup."""
        ...

    def duplicate_identity(self, account_id: str, constraint: str) -> None:
        """Record that a write violated a uniqueness constraint."""
        ...

    def with_context(self, context: ObservationContext) -> IdentityRepositoryProbe:
        """Create a new probe with observation context bound."""
        ...


class AffiliationCodeRepositoryProbe(Protocol):
    """Domain probe for affiliation code registry operations."""

    def affiliation_code_saved(self, code: str, is_used: bool) -> None:
        """Record that a registry entry was saved."""
        ...

    def affiliation_code_not_found(self, code: str) -> None:
        """Record that a code is not in the registry."""
        ...

    def with_context(self, context: ObservationContext) -> AffiliationCodeRepositoryProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultIdentityRepositoryProbe:
    """Default implementation of IdentityRepositoryProbe using structlog."""

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

    def with_context(
        self, context: ObservationContext
    ) -> DefaultIdentityRepositoryProbe:
        """Create a new probe with observation context bound."""
        return DefaultIdentityRepositoryProbe(logger=self._logger, context=context)

    def identity_saved(self, account_id: str) -> None:
        """Record that a new identity was inserted."""
        self._logger.info(
            "identity_saved",
            account_id=account_id,
            **self._get_context_kwargs(),
        )

    def identity_updated(self, account_id: str) -> None:
        """Record that an identity was updated."""
        self._logger.info(
            "identity_updated",
            account_id=account_id,
            **self._get_context_kwargs(),
        )

    def identity_retrieved(self, account_id: str, lookup: str) -> None:
        """Record that an identity was found."""
        self._logger.debug(
            "identity_retrieved",
            account_id=account_id,
            lookup=lookup,
            **self._get_context_kwargs(),
        )

    def identity_not_found(self, lookup: str) -> None:
        """Record that no identity matched a lookup."""
        self._logger.debug(
            "identity_not_found",
            lookup=lookup,
            **self._get_context_kwargs(),
        )

    def duplicate_identity(self, account_id: str, constraint: str) -> None:
        """Record that a write violated a uniqueness constraint."""
        self._logger.warning(
            "duplicate_identity",
            account_id=account_id,
            constraint=constraint,
            **self._get_context_kwargs(),
        )


class DefaultAffiliationCodeRepositoryProbe:
    """Default implementation of AffiliationCodeRepositoryProbe using structlog."""

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

    def with_context(
        self, context: ObservationContext
    ) -> DefaultAffiliationCodeRepositoryProbe:
        """Create a new probe with observation context bound."""
        return DefaultAffiliationCodeRepositoryProbe(logger=self._logger, context=context)

    def affiliation_code_saved(self, code: str, is_used: bool) -> None:
        self._logger.info(
            "affiliation_code_saved",
            code=code,
            is_used=is_used,
            **self._get_context_kwargs(),
        )

    def affiliation_code_not_found(self, code: str) -> None:
        self._logger.debug(
            "affiliation_code_not_found",
            code=code,
            **self._get_context_kwargs(),
        )
