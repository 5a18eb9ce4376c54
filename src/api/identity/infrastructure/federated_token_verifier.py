"""OIDC-backed implementation of IFederatedTokenVerifier."""

from __future__ import annotations

from shared_kernel.auth import ExpiredTokenError as SharedExpiredTokenError
from shared_kernel.auth import InvalidTokenError as SharedInvalidTokenError
from shared_kernel.auth import JWTValidator

from identity.ports.exceptions import ExpiredTokenError, InvalidTokenError
from identity.ports.gateways import FederatedClaims, IFederatedTokenVerifier


class OIDCFederatedTokenVerifier(IFederatedTokenVerifier):
    """Verifies provider ID tokens and maps them to FederatedClaims.

    Tokens without an email claim are rejected: an identity can only be
    registered or matched through an email address.
    """

    def __init__(self, validator: JWTValidator) -> None:
        self._validator = validator

    async def verify(self, token: str) -> FederatedClaims:
        try:
            claims = await self._validator.validate_token(token)
        except SharedExpiredTokenError as e:
            raise ExpiredTokenError(str(e)) from e
        except SharedInvalidTokenError as e:
            raise InvalidTokenError(str(e)) from e

        if not claims.email:
            raise InvalidTokenError("Token does not carry an email claim")

        return FederatedClaims(
            external_id=claims.sub,
            email=claims.email,
            email_verified=claims.email_verified,
            name=claims.name,
        )
