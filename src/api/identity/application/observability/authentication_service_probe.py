"""Protocol for authentication service observability.

Defines the interface for domain probes that capture application-level
domain events for the dual-path authentication and registration flow.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class AuthenticationServiceProbe(Protocol):
    """Domain probe for authentication service operations."""

    def account_registered(self, account_id: str, origin: str, role: str) -> None:
        """Record that a new account was registered."""
        ...

    def account_authenticated(self, account_id: str, origin: str) -> None:
        """Record that an existing account authenticated."""
        ...

    def external_identity_linked(self, account_id: str, email_verified: bool) -> None:
        """Record that a federated identity was merged into a local account."""
        ...

    def authentication_failed(self, origin: str, reason: str) -> None:
        """Record that an authentication attempt failed."""
        ...

    def token_mismatch(self) -> None:
        """Record that the provider email differed from the caller email."""
        ...

    def token_verification_timed_out(self, timeout_seconds: float) -> None:
        """Record that federated token verification exceeded its time bound."""
        ...

    def registration_race_detected(self, origin: str, winner_found: bool) -> None:
        """Record that a uniqueness violation interrupted a registration."""
        ...

    def event_publication_failed(self, account_id: str, error: str) -> None:
        """Record that domain events could not be handed to the dispatcher."""
        ...

    def with_context(self, context: ObservationContext) -> AuthenticationServiceProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultAuthenticationServiceProbe:
    """Default implementation of AuthenticationServiceProbe using structlog."""

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
    ) -> DefaultAuthenticationServiceProbe:
        """Create a new probe with observation context bound."""
        return DefaultAuthenticationServiceProbe(logger=self._logger, context=context)

    def account_registered(self, account_id: str, origin: str, role: str) -> None:
        """Record that a new account was registered."""
        self._logger.info(
            "account_registered",
            account_id=account_id,
            origin=origin,
            role=role,
            **self._get_context_kwargs(),
        )

    def account_authenticated(self, account_id: str, origin: str) -> None:
        """Record that an existing account authenticated."""
        self._logger.info(
            "account_authenticated",
            account_id=account_id,
            origin=origin,
            **self._get_context_kwargs(),
        )

    def external_identity_linked(self, account_id: str, email_verified: bool) -> None:
        """Record that a federated identity was merged into a local account."""
        log = self._logger.info if email_verified else self._logger.warning
        log(
            "external_identity_linked",
            account_id=account_id,
            email_verified=email_verified,
            **self._get_context_kwargs(),
        )

    def authentication_failed(self, origin: str, reason: str) -> None:
        """Record that an authentication attempt failed."""
        self._logger.warning(
            "authentication_failed",
            origin=origin,
            reason=reason,
            **self._get_context_kwargs(),
        )

    def token_mismatch(self) -> None:
        """Record that the provider email differed from the caller email."""
        self._logger.warning(
            "federated_token_email_mismatch",
            **self._get_context_kwargs(),
        )

    def token_verification_timed_out(self, timeout_seconds: float) -> None:
        """Record that federated token verification exceeded its time bound."""
        self._logger.error(
            "federated_token_verification_timed_out",
            timeout_seconds=timeout_seconds,
            **self._get_context_kwargs(),
        )

    def registration_race_detected(self, origin: str, winner_found: bool) -> None:
        """Record that a uniqueness violation interrupted a registration."""
        self._logger.warning(
            "registration_race_detected",
            origin=origin,
            winner_found=winner_found,
            **self._get_context_kwargs(),
        )

    def event_publication_failed(self, account_id: str, error: str) -> None:
        """Record that domain events could not be handed to the dispatcher."""
        self._logger.error(
            "event_publication_failed",
            account_id=account_id,
            error=error,
            **self._get_context_kwargs(),
        )
