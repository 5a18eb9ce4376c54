"""Gateway protocols (ports) for collaborators outside the process.

The federated token verifier and the notifier cross the process boundary
and are always called under a bounded timeout. The token signer wraps a
vetted JWS library.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Protocol, runtime_checkable

from identity.domain.value_objects import NotificationKind


@dataclass(frozen=True)
class FederatedClaims:
    """Identity asserted by the federated provider for a verified token."""

    external_id: str
    email: str
    email_verified: bool
    name: str | None = None


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of one notification attempt. Truthy on success."""

    success: bool
    error: str | None = None

    def __bool__(self) -> bool:
        return self.success


@runtime_checkable
class IFederatedTokenVerifier(Protocol):
    """Verifies ID tokens issued by the federated identity provider."""

    async def verify(self, token: str) -> FederatedClaims:
        """Verify a token and return the identity it asserts.

        Raises:
            InvalidTokenError: If the token is malformed or fails verification
            ExpiredTokenError: If the token has expired
        """
        ...


@runtime_checkable
class INotifier(Protocol):
    """Sends transactional notifications."""

    async def notify(
        self,
        kind: NotificationKind,
        recipient: str,
        context: Mapping[str, Any],
    ) -> DeliveryResult:
        """Deliver one notification.

        Never raises for delivery problems; failures are reported through
        the returned DeliveryResult.
        """
        ...


@runtime_checkable
class ITokenSigner(Protocol):
    """Signs and decodes session tokens."""

    def sign(self, claims: Mapping[str, Any], ttl: timedelta) -> str:
        """Sign a claim set, adding issued-at and expiry claims."""
        ...

    def decode(self, token: str) -> dict[str, Any]:
        """Verify a token's signature and expiry and return its claims.

        Raises:
            InvalidTokenError: If the token is malformed or the signature is wrong
            ExpiredTokenError: If the token has expired
        """
        ...
