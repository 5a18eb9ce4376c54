"""Application-layer value objects for the Identity bounded context.

Requests and results of the authentication use cases, plus the
authenticated-session context of account endpoints. These are
application concepts: they describe one request, not a domain entity.
"""

from __future__ import annotations

from dataclasses import dataclass

from identity.domain.aggregates import Identity
from identity.domain.classification import AffiliationDescriptor
from identity.domain.value_objects import IdentityId, Role


@dataclass(frozen=True)
class CredentialAuthenticationRequest:
    """Raw input of the local credential (password) path."""

    email: str
    password: str
    display_name: str | None = None
    affiliation_code: str | None = None

    def __repr__(self) -> str:
        return (
            f"CredentialAuthenticationRequest(email={self.email!r}, password='***', "
            f"display_name={self.display_name!r}, "
            f"affiliation_code={self.affiliation_code!r})"
        )


@dataclass(frozen=True)
class FederatedAuthenticationRequest:
    """Raw input of the federated token path."""

    email: str
    token: str
    display_name: str | None = None
    affiliation_code: str | None = None

    def __repr__(self) -> str:
        return (
            f"FederatedAuthenticationRequest(email={self.email!r}, token='***', "
            f"display_name={self.display_name!r}, "
            f"affiliation_code={self.affiliation_code!r})"
        )


@dataclass(frozen=True)
class AuthenticationResult:
    """Outcome of a successful authentication or registration."""

    is_new_account: bool
    account_id: str
    role: Role
    session_token: str
    display_name: str
    email: str
    affiliation: AffiliationDescriptor
    affiliation_code: str | None = None
    external_identity_id: str | None = None

    @classmethod
    def for_identity(
        cls, identity: Identity, session_token: str, is_new_account: bool
    ) -> AuthenticationResult:
        return cls(
            is_new_account=is_new_account,
            account_id=identity.id.value,
            role=identity.role,
            session_token=session_token,
            display_name=identity.display_name.value,
            email=identity.email.value,
            affiliation=identity.affiliation,
            affiliation_code=(
                identity.affiliation_code.value if identity.affiliation_code else None
            ),
            external_identity_id=(
                identity.external_identity_id.value
                if identity.external_identity_id
                else None
            ),
        )


@dataclass(frozen=True)
class AuthenticatedAccount:
    """The account a verified session token was issued to.

    Extracted from the bearer token of account endpoints.
    """

    account_id: IdentityId
    email: str
    role: Role
