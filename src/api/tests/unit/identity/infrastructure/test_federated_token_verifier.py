"""Unit tests for OIDCFederatedTokenVerifier."""

from unittest.mock import AsyncMock

import pytest

from identity.infrastructure.federated_token_verifier import OIDCFederatedTokenVerifier
from identity.ports.exceptions import ExpiredTokenError, InvalidTokenError
from identity.ports.gateways import IFederatedTokenVerifier
from shared_kernel.auth import ExpiredTokenError as SharedExpiredTokenError
from shared_kernel.auth import InvalidTokenError as SharedInvalidTokenError
from shared_kernel.auth import TokenClaims


@pytest.fixture
def validator():
    return AsyncMock()


@pytest.fixture
def verifier(validator):
    return OIDCFederatedTokenVerifier(validator)


def test_implements_protocol(verifier):
    assert isinstance(verifier, IFederatedTokenVerifier)


@pytest.mark.asyncio
async def test_maps_validated_claims(verifier, validator):
    validator.validate_token.return_value = TokenClaims(
        sub="google-1", email="ana@uni.edu", email_verified=True, name="Ana Pérez"
    )

    claims = await verifier.verify("token")

    assert claims.external_id == "google-1"
    assert claims.email == "ana@uni.edu"
    assert claims.email_verified is True
    assert claims.name == "Ana Pérez"
    validator.validate_token.assert_awaited_once_with("token")


@pytest.mark.asyncio
async def test_token_without_email_is_invalid(verifier, validator):
    validator.validate_token.return_value = TokenClaims(
        sub="google-1", email=None, email_verified=False
    )

    with pytest.raises(InvalidTokenError):
        await verifier.verify("token")


@pytest.mark.asyncio
async def test_expired_token_maps_to_expired(verifier, validator):
    validator.validate_token.side_effect = SharedExpiredTokenError("Token has expired")

    with pytest.raises(ExpiredTokenError):
        await verifier.verify("token")


@pytest.mark.asyncio
async def test_invalid_token_maps_to_invalid(verifier, validator):
    validator.validate_token.side_effect = SharedInvalidTokenError("Invalid signature")

    with pytest.raises(InvalidTokenError) as exc_info:
        await verifier.verify("token")

    assert not isinstance(exc_info.value, ExpiredTokenError)
    assert "Invalid signature" in str(exc_info.value)
