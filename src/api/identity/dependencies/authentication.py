"""Per-request dependencies for authentication endpoints."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from identity.application.observability import (
    AuthenticationServiceProbe,
    DefaultAuthenticationServiceProbe,
    DefaultRoleClassifierProbe,
)
from identity.application.role_classifier import (
    RegistryBackedStrategy,
    RoleClassifier,
    SentinelCodeStrategy,
)
from identity.application.services import AuthenticationService
from identity.dependencies.runtime import IdentityRuntime, get_identity_runtime
from identity.infrastructure.affiliation_code_repository import (
    AffiliationCodeRepository,
)
from identity.infrastructure.identity_repository import IdentityRepository
from infrastructure.database.dependencies import get_write_session


def get_identity_repository(
    session: Annotated[AsyncSession, Depends(get_write_session)],
) -> IdentityRepository:
    """Get IdentityRepository bound to the request session."""
    return IdentityRepository(session=session)


def get_role_classifier(
    session: Annotated[AsyncSession, Depends(get_write_session)],
    runtime: Annotated[IdentityRuntime, Depends(get_identity_runtime)],
) -> RoleClassifier:
    """Get RoleClassifier using the configured strategy.

    With the registry enabled, registry codes are consumed in the same
    transaction as the registration that uses them.
    """
    probe = DefaultRoleClassifierProbe()
    sentinel = SentinelCodeStrategy(primary_codes=(runtime.affiliation.primary_code,))
    if not runtime.affiliation.registry_enabled:
        return RoleClassifier(strategy=sentinel, probe=probe)
    strategy = RegistryBackedStrategy(
        repository=AffiliationCodeRepository(session=session),
        fallback=sentinel,
        probe=probe,
    )
    return RoleClassifier(strategy=strategy, probe=probe)


def get_authentication_service_probe() -> AuthenticationServiceProbe:
    """Get AuthenticationServiceProbe instance."""
    return DefaultAuthenticationServiceProbe()


def get_authentication_service(
    session: Annotated[AsyncSession, Depends(get_write_session)],
    identity_repository: Annotated[
        IdentityRepository, Depends(get_identity_repository)
    ],
    classifier: Annotated[RoleClassifier, Depends(get_role_classifier)],
    runtime: Annotated[IdentityRuntime, Depends(get_identity_runtime)],
    probe: Annotated[
        AuthenticationServiceProbe, Depends(get_authentication_service_probe)
    ],
) -> AuthenticationService:
    """Get AuthenticationService instance.

    Args:
        session: Database session (shared with the repositories)
        identity_repository: Identity repository for this request
        classifier: Role classifier for this request
        runtime: Process-wide collaborators
        probe: Authentication service probe for observability

    Returns:
        AuthenticationService instance
    """
    return AuthenticationService(
        session=session,
        identity_repository=identity_repository,
        classifier=classifier,
        token_verifier=runtime.token_verifier,
        token_issuer=runtime.token_issuer,
        publisher=runtime.dispatcher,
        verification_timeout_seconds=runtime.verification_timeout_seconds,
        probe=probe,
    )
