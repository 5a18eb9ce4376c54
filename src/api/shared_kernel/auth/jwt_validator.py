"""ID token validation against an OIDC provider.

Validates RS256 ID tokens using the provider's JWKS. Keys are cached for
a configurable TTL and refreshed early when a token names a key id that
is not in the cached set (the provider rotated its keys).
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import httpx
from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError

if TYPE_CHECKING:
    from shared_kernel.auth.observability import JWTValidatorProbe


@dataclass(frozen=True)
class TokenClaims:
    """Validated ID token claims."""

    sub: str
    email: str | None
    email_verified: bool
    name: str | None = None
    raw_claims: dict[str, Any] = field(default_factory=dict, repr=False)


class InvalidTokenError(Exception):
    """Raised when ID token validation fails."""

    pass


class ExpiredTokenError(InvalidTokenError):
    """Raised when an otherwise well-formed ID token has expired."""

    pass


class JWTValidator:
    """Validates ID tokens using the OIDC provider's JWKS.

    Validates signature, expiry, issuer and audience.
    """

    def __init__(
        self,
        issuer_url: str,
        audience: str,
        probe: JWTValidatorProbe,
        jwks_cache_ttl: timedelta = timedelta(hours=24),
        http_timeout_seconds: float = 5.0,
    ):
        """Initialize the validator.

        Args:
            issuer_url: The OIDC issuer URL.
            audience: Expected audience claim value.
            probe: Observability probe for logging events.
            jwks_cache_ttl: How long to cache JWKS keys (default: 24 hours).
            http_timeout_seconds: Timeout for discovery and JWKS requests.
        """
        self._issuer_url = issuer_url.rstrip("/")
        self._audience = audience
        self._probe = probe
        self._jwks_cache_ttl = jwks_cache_ttl
        self._http_timeout_seconds = http_timeout_seconds

        self._jwks: dict[str, Any] | None = None
        self._jwks_fetched_at: datetime | None = None
        self._jwks_lock = asyncio.Lock()

    async def validate_token(self, token: str) -> TokenClaims:
        """Validate an ID token and return its claims.

        Raises:
            ExpiredTokenError: If the token has expired.
            InvalidTokenError: If the token is invalid or verification fails.
        """
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as e:
            self._probe.token_validation_failed(reason="Malformed token")
            raise InvalidTokenError(f"Invalid token format: {e}") from e

        if not header:
            self._probe.token_validation_failed(reason="Missing token header")
            raise InvalidTokenError("Invalid token: missing header")

        jwks = await self._get_jwks(header.get("kid"))

        try:
            claims = jwt.decode(
                token=token,
                key=jwks,
                algorithms=["RS256"],
                audience=self._audience,
                issuer=self._issuer_url,
                options={"verify_at_hash": False},
            )
        except ExpiredSignatureError as e:
            self._probe.token_validation_failed(reason="Token expired")
            raise ExpiredTokenError("Token has expired") from e
        except JWTClaimsError as e:
            message = str(e).lower()
            if "audience" in message:
                reason = "Invalid audience"
            elif "issuer" in message:
                reason = "Invalid issuer"
            else:
                reason = "Invalid claims"
            self._probe.token_validation_failed(reason=reason)
            raise InvalidTokenError(f"{reason}: {e}") from e
        except JWTError as e:
            reason = "Invalid signature" if "signature" in str(e).lower() else "Invalid token"
            self._probe.token_validation_failed(reason=reason)
            raise InvalidTokenError(f"{reason}: {e}") from e

        subject = claims.get("sub")
        if not subject:
            self._probe.token_validation_failed(reason="Missing sub claim")
            raise InvalidTokenError("Missing required claim: sub")

        email = claims.get("email")
        name = claims.get("name")
        email_verified = claims.get("email_verified") is True

        self._probe.token_validated(subject=str(subject), email_verified=email_verified)

        return TokenClaims(
            sub=str(subject),
            email=str(email) if email is not None else None,
            email_verified=email_verified,
            name=str(name) if name is not None else None,
            raw_claims=claims,
        )

    async def _get_jwks(self, kid: str | None) -> dict[str, Any]:
        """Get JWKS, fetching from the issuer if the cache cannot serve kid."""
        if self._cache_serves(kid):
            self._probe.jwks_cache_hit()
            return self._jwks  # type: ignore[return-value]

        async with self._jwks_lock:
            if self._cache_serves(kid):
                self._probe.jwks_cache_hit()
                return self._jwks  # type: ignore[return-value]
            if kid is not None and self._cache_is_fresh():
                self._probe.signing_key_unknown(kid=kid)
            return await self._fetch_jwks()

    def _cache_is_fresh(self) -> bool:
        if self._jwks is None or self._jwks_fetched_at is None:
            return False
        age = datetime.now(tz=timezone.utc) - self._jwks_fetched_at
        return age < self._jwks_cache_ttl

    def _cache_serves(self, kid: str | None) -> bool:
        if not self._cache_is_fresh():
            return False
        if kid is None:
            return True
        return any(key.get("kid") == kid for key in self._jwks.get("keys", []))

    async def _fetch_jwks(self) -> dict[str, Any]:
        """Fetch JWKS through the provider's discovery document.

        Raises:
            InvalidTokenError: If the keys cannot be fetched.
        """
        try:
            async with httpx.AsyncClient(timeout=self._http_timeout_seconds) as client:
                config_response = await client.get(
                    f"{self._issuer_url}/.well-known/openid-configuration"
                )
                config_response.raise_for_status()
                jwks_uri = config_response.json().get("jwks_uri")
                if not jwks_uri:
                    self._probe.jwks_fetch_failed(
                        error="Missing jwks_uri in OpenID configuration"
                    )
                    raise InvalidTokenError(
                        "OIDC provider missing jwks_uri in configuration"
                    )

                jwks_response = await client.get(jwks_uri)
                jwks_response.raise_for_status()
                jwks = jwks_response.json()
        except httpx.HTTPError as e:
            self._probe.jwks_fetch_failed(error=str(e))
            raise InvalidTokenError(
                f"Failed to fetch JWKS from OIDC provider: {e}"
            ) from e
        except ValueError as e:
            self._probe.jwks_fetch_failed(error=str(e))
            raise InvalidTokenError(f"OIDC provider returned invalid JSON: {e}") from e

        self._jwks = jwks
        self._jwks_fetched_at = datetime.now(tz=timezone.utc)
        self._probe.jwks_fetched(key_count=len(jwks.get("keys", [])))
        return jwks
