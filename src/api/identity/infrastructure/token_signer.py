"""Session token signing with python-jose."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

from identity.ports.exceptions import ExpiredTokenError, InvalidTokenError
from identity.ports.gateways import ITokenSigner


class JoseTokenSigner(ITokenSigner):
    """HMAC-signed JWS session tokens.

    The signer adds ``iat`` and ``exp``; expiry is verified on decode.
    """

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        if not secret:
            raise ValueError("Session token secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm

    def sign(self, claims: Mapping[str, Any], ttl: timedelta) -> str:
        now = datetime.now(UTC)
        payload = dict(claims)
        payload["iat"] = int(now.timestamp())
        payload["exp"] = int((now + ttl).timestamp())
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> dict[str, Any]:
        try:
            return jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError as e:
            raise ExpiredTokenError("Session token has expired") from e
        except JWTError as e:
            raise InvalidTokenError(f"Invalid session token: {e}") from e
