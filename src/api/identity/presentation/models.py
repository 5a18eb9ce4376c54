"""Pydantic models for Identity API requests and responses."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from identity.application.value_objects import AuthenticationResult
from identity.domain.aggregates import Identity
from identity.domain.classification import AffiliationDescriptor
from identity.domain.value_objects import AuthOrigin, Role


class CredentialAuthenticationRequestModel(BaseModel):
    """Request model for the credential path.

    display_name and affiliation_code are only used when the email is not
    registered yet.
    """

    email: str = Field(..., description="Account email", max_length=320)
    password: str = Field(..., description="Account password", max_length=256)
    display_name: str | None = Field(
        default=None, description="Display name for a new account", max_length=200
    )
    affiliation_code: str | None = Field(
        default=None, description="Institution affiliation code", max_length=64
    )


class FederatedAuthenticationRequestModel(BaseModel):
    """Request model for the federated token path."""

    email: str = Field(
        ...,
        description="Email the caller signed in with; must match the token",
        max_length=320,
    )
    token: str = Field(..., description="ID token issued by the identity provider")
    display_name: str | None = Field(
        default=None, description="Display name for a new account", max_length=200
    )
    affiliation_code: str | None = Field(
        default=None, description="Institution affiliation code", max_length=64
    )


class AffiliationResponse(BaseModel):
    """Institutional context of an account."""

    institution_name: str
    tier: str

    @classmethod
    def from_domain(cls, descriptor: AffiliationDescriptor) -> AffiliationResponse:
        return cls(institution_name=descriptor.institution_name, tier=descriptor.tier)


class AuthenticationResponse(BaseModel):
    """Response model for both authentication paths."""

    is_new_account: bool = Field(..., description="True when the call registered the account")
    account_id: str = Field(..., description="Account ID (ULID format)")
    role: Role = Field(..., description="Account role")
    session_token: str = Field(..., description="Signed session token")
    token_type: str = Field(default="bearer", description="Session token type")
    expires_in: int = Field(..., description="Session token validity in seconds")
    display_name: str
    email: str
    affiliation: AffiliationResponse
    affiliation_code: str | None = None

    @classmethod
    def from_result(
        cls, result: AuthenticationResult, expires_in: int
    ) -> AuthenticationResponse:
        return cls(
            is_new_account=result.is_new_account,
            account_id=result.account_id,
            role=result.role,
            session_token=result.session_token,
            expires_in=expires_in,
            display_name=result.display_name,
            email=result.email,
            affiliation=AffiliationResponse.from_domain(result.affiliation),
            affiliation_code=result.affiliation_code,
        )


class ProfileResponse(BaseModel):
    """Response model for an account profile.

    The credential digest and the external identity id are never exposed.
    """

    account_id: str = Field(..., description="Account ID (ULID format)")
    display_name: str
    email: str
    role: Role
    origin: AuthOrigin = Field(..., description="How the account was registered")
    affiliation: AffiliationResponse
    affiliation_code: str | None = None
    has_external_identity: bool
    active: bool
    created_at: datetime
    updated_at: datetime
    deactivated_at: datetime | None = None

    @classmethod
    def from_domain(cls, identity: Identity) -> ProfileResponse:
        """Convert domain Identity aggregate to API response."""
        return cls(
            account_id=identity.id.value,
            display_name=identity.display_name.value,
            email=identity.email.value,
            role=identity.role,
            origin=identity.origin,
            affiliation=AffiliationResponse.from_domain(identity.affiliation),
            affiliation_code=(
                identity.affiliation_code.value if identity.affiliation_code else None
            ),
            has_external_identity=identity.external_identity_id is not None,
            active=identity.active,
            created_at=identity.created_at,
            updated_at=identity.updated_at,
            deactivated_at=identity.deactivated_at,
        )


class ChangeCredentialRequest(BaseModel):
    """Request model for a password change."""

    current_password: str = Field(..., max_length=256)
    new_password: str = Field(..., max_length=256)


class ChangeEmailRequest(BaseModel):
    """Request model for an email change."""

    email: str = Field(..., max_length=320)


class UpdateAffiliationRequest(BaseModel):
    """Request model for an affiliation change.

    Unlike registration, a malformed code is rejected here.
    """

    affiliation_code: str = Field(..., max_length=64)
