"""Probe for federated ID token validation.

Only the subject and key ids are logged. Email addresses and raw claims
stay out of the log stream.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class JWTValidatorProbe(Protocol):
    """Outcomes of ID token validation and signing key caching."""

    def token_validated(self, subject: str, email_verified: bool) -> None: ...

    def token_validation_failed(self, reason: str) -> None: ...

    def jwks_fetched(self, key_count: int) -> None: ...

    def jwks_cache_hit(self) -> None: ...

    def signing_key_unknown(self, kid: str) -> None:
        """A fresh cache lacked the token's key id, forcing a refetch."""
        ...

    def jwks_fetch_failed(self, error: str) -> None: ...

    def with_context(self, context: ObservationContext) -> JWTValidatorProbe: ...


class DefaultJWTValidatorProbe:
    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        return self._context.as_dict() if self._context is not None else {}

    def with_context(self, context: ObservationContext) -> DefaultJWTValidatorProbe:
        return DefaultJWTValidatorProbe(logger=self._logger, context=context)

    def token_validated(self, subject: str, email_verified: bool) -> None:
        self._logger.debug(
            "id_token_validated",
            subject=subject,
            email_verified=email_verified,
            **self._get_context_kwargs(),
        )

    def token_validation_failed(self, reason: str) -> None:
        self._logger.warning(
            "id_token_rejected", reason=reason, **self._get_context_kwargs()
        )

    def jwks_fetched(self, key_count: int) -> None:
        self._logger.info(
            "signing_keys_fetched", key_count=key_count, **self._get_context_kwargs()
        )

    def jwks_cache_hit(self) -> None:
        self._logger.debug("signing_keys_cached", **self._get_context_kwargs())

    def signing_key_unknown(self, kid: str) -> None:
        self._logger.info(
            "signing_key_rotation_suspected", kid=kid, **self._get_context_kwargs()
        )

    def jwks_fetch_failed(self, error: str) -> None:
        self._logger.error(
            "signing_keys_fetch_failed", error=error, **self._get_context_kwargs()
        )
