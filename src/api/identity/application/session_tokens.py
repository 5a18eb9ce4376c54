"""Session token issuance and verification.

Session tokens are signed claim sets with a fixed validity window taken
from configuration. Signing itself is delegated to the ITokenSigner port.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from identity.domain.aggregates import Identity
from identity.ports.exceptions import InvalidTokenError
from identity.ports.gateways import ITokenSigner

DEFAULT_SESSION_TTL = timedelta(hours=24)


@dataclass(frozen=True)
class SessionClaims:
    """Verified contents of a session token."""

    account_id: str
    email: str
    role: str
    external_identity_id: str | None
    issued_at: datetime
    expires_at: datetime


class SessionTokenIssuer:
    """Issues and verifies session tokens for identities."""

    def __init__(self, signer: ITokenSigner, ttl: timedelta = DEFAULT_SESSION_TTL) -> None:
        """Initialize the issuer.

        Args:
            signer: Token signer holding the injected signing secret
            ttl: Validity window of issued tokens
        """
        if ttl <= timedelta(0):
            raise ValueError("Session token TTL must be positive")
        self._signer = signer
        self._ttl = ttl

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue(self, identity: Identity) -> str:
        """Issue a session token for an identity.

        Claims are ``sub`` (account id), ``email``, ``role`` and, for
        identities with a federated identity, ``ext``.
        """
        claims: dict[str, str] = {
            "sub": identity.id.value,
            "email": identity.email.value,
            "role": identity.role.value,
        }
        if identity.external_identity_id is not None:
            claims["ext"] = identity.external_identity_id.value
        return self._signer.sign(claims, self._ttl)

    def verify(self, token: str) -> SessionClaims:
        """Verify a session token and return its claims.

        Raises:
            InvalidTokenError: If the token is malformed, tampered with or
                missing required claims
            ExpiredTokenError: If the token has expired
        """
        claims = self._signer.decode(token)
        try:
            return SessionClaims(
                account_id=str(claims["sub"]),
                email=str(claims["email"]),
                role=str(claims["role"]),
                external_identity_id=(
                    str(claims["ext"]) if claims.get("ext") is not None else None
                ),
                issued_at=datetime.fromtimestamp(int(claims["iat"]), tz=UTC),
                expires_at=datetime.fromtimestamp(int(claims["exp"]), tz=UTC),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidTokenError(f"Session token is missing required claims: {e}") from e
