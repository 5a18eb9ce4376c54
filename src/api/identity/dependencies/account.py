"""Per-request dependencies for account endpoints.

Account endpoints are authenticated with the session token issued by the
authentication endpoints, sent as ``Authorization: Bearer <token>``.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from identity.application.observability import (
    AccountServiceProbe,
    DefaultAccountServiceProbe,
)
from identity.application.role_classifier import RoleClassifier
from identity.application.services import AccountService
from identity.application.value_objects import AuthenticatedAccount
from identity.dependencies.authentication import (
    get_identity_repository,
    get_role_classifier,
)
from identity.dependencies.runtime import IdentityRuntime, get_identity_runtime
from identity.domain.value_objects import IdentityId, Role
from identity.infrastructure.identity_repository import IdentityRepository
from identity.ports.exceptions import InvalidTokenError
from infrastructure.database.dependencies import get_write_session

bearer_scheme = HTTPBearer(auto_error=False)


def get_account_service_probe() -> AccountServiceProbe:
    """Get AccountServiceProbe instance."""
    return DefaultAccountServiceProbe()


def get_account_service(
    session: Annotated[AsyncSession, Depends(get_write_session)],
    identity_repository: Annotated[
        IdentityRepository, Depends(get_identity_repository)
    ],
    classifier: Annotated[RoleClassifier, Depends(get_role_classifier)],
    probe: Annotated[AccountServiceProbe, Depends(get_account_service_probe)],
) -> AccountService:
    """Get AccountService instance."""
    return AccountService(
        session=session,
        identity_repository=identity_repository,
        classifier=classifier,
        probe=probe,
    )


def get_authenticated_account(
    runtime: Annotated[IdentityRuntime, Depends(get_identity_runtime)],
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ] = None,
) -> AuthenticatedAccount:
    """Resolve the account a bearer session token was issued to.

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing session token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        claims = runtime.token_issuer.verify(credentials.credentials)
        return AuthenticatedAccount(
            account_id=IdentityId.from_string(claims.account_id),
            email=claims.email,
            role=Role(claims.role),
        )
    except (InvalidTokenError, ValueError) as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e) if isinstance(e, InvalidTokenError) else "Invalid session token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e
