"""HTTP routes for the Identity bounded context.

Authentication endpoints are public. Account endpoints require the
session token issued by them, and an account may only act on itself.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from identity.application.services import AccountService, AuthenticationService
from identity.application.value_objects import (
    AuthenticatedAccount,
    CredentialAuthenticationRequest,
    FederatedAuthenticationRequest,
)
from identity.dependencies.account import (
    get_account_service,
    get_authenticated_account,
)
from identity.dependencies.authentication import get_authentication_service
from identity.dependencies.runtime import IdentityRuntime, get_identity_runtime
from identity.domain.value_objects import IdentityId, RequestMetadata
from identity.presentation.errors import to_http_exception
from identity.presentation.models import (
    AuthenticationResponse,
    ChangeCredentialRequest,
    ChangeEmailRequest,
    CredentialAuthenticationRequestModel,
    FederatedAuthenticationRequestModel,
    ProfileResponse,
    UpdateAffiliationRequest,
)

router = APIRouter(prefix="/auth", tags=["identity"])


def get_request_metadata(request: Request) -> RequestMetadata:
    """Audit context of the current request.

    The first X-Forwarded-For entry wins over the socket peer address.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        client_ip = forwarded.split(",")[0].strip()
    elif request.client is not None:
        client_ip = request.client.host
    else:
        client_ip = None
    return RequestMetadata(
        client_ip=client_ip or "unknown",
        user_agent=request.headers.get("user-agent") or "unknown",
    )


def _session_ttl_seconds(runtime: IdentityRuntime) -> int:
    return int(runtime.token_issuer.ttl.total_seconds())


def _resolve_own_account(account_id: str, account: AuthenticatedAccount) -> IdentityId:
    try:
        identity_id = IdentityId.from_string(account_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid account ID format: {e}",
        ) from e

    if identity_id != account.account_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Session token does not belong to this account",
        )
    return identity_id


@router.post("/validate")
async def authenticate_with_credential(
    body: CredentialAuthenticationRequestModel,
    response: Response,
    metadata: Annotated[RequestMetadata, Depends(get_request_metadata)],
    service: Annotated[AuthenticationService, Depends(get_authentication_service)],
    runtime: Annotated[IdentityRuntime, Depends(get_identity_runtime)],
) -> AuthenticationResponse:
    """Log in with email and password, registering unknown emails.

    Returns:
        201 with is_new_account=true for a registration, 200 otherwise

    Raises:
        HTTPException: 400 for malformed input
        HTTPException: 401 if the password is wrong
        HTTPException: 403 if the account is deactivated
        HTTPException: 409 if a concurrent registration won
    """
    try:
        result = await service.authenticate_with_credential(
            CredentialAuthenticationRequest(
                email=body.email,
                password=body.password,
                display_name=body.display_name,
                affiliation_code=body.affiliation_code,
            ),
            metadata,
        )
    except Exception as e:
        raise to_http_exception(e, "authenticate") from e

    response.status_code = (
        status.HTTP_201_CREATED if result.is_new_account else status.HTTP_200_OK
    )
    return AuthenticationResponse.from_result(result, _session_ttl_seconds(runtime))


@router.post("/federated")
async def authenticate_with_federated_token(
    body: FederatedAuthenticationRequestModel,
    response: Response,
    metadata: Annotated[RequestMetadata, Depends(get_request_metadata)],
    service: Annotated[AuthenticationService, Depends(get_authentication_service)],
    runtime: Annotated[IdentityRuntime, Depends(get_identity_runtime)],
) -> AuthenticationResponse:
    """Exchange an identity provider ID token for a session token.

    Registers unknown identities and merges the federated identity into
    an existing account with the same email.

    Raises:
        HTTPException: 401 if the token is invalid, expired or names another email
        HTTPException: 403 if the account is deactivated
        HTTPException: 409 on a lost registration race or a conflicting link
        HTTPException: 500 if verification timed out
    """
    try:
        result = await service.authenticate_with_external_token(
            FederatedAuthenticationRequest(
                email=body.email,
                token=body.token,
                display_name=body.display_name,
                affiliation_code=body.affiliation_code,
            ),
            metadata,
        )
    except Exception as e:
        raise to_http_exception(e, "authenticate") from e

    response.status_code = (
        status.HTTP_201_CREATED if result.is_new_account else status.HTTP_200_OK
    )
    return AuthenticationResponse.from_result(result, _session_ttl_seconds(runtime))


@router.get("/profile/{account_id}")
async def get_profile(
    account_id: str,
    account: Annotated[AuthenticatedAccount, Depends(get_authenticated_account)],
    service: Annotated[AccountService, Depends(get_account_service)],
) -> ProfileResponse:
    """Get the profile of the authenticated account."""
    identity_id = _resolve_own_account(account_id, account)
    try:
        identity = await service.get_profile(identity_id)
    except Exception as e:
        raise to_http_exception(e, "get profile") from e
    return ProfileResponse.from_domain(identity)


@router.post("/accounts/{account_id}/credential")
async def change_credential(
    account_id: str,
    body: ChangeCredentialRequest,
    account: Annotated[AuthenticatedAccount, Depends(get_authenticated_account)],
    service: Annotated[AccountService, Depends(get_account_service)],
) -> ProfileResponse:
    """Change the password after confirming the current one."""
    identity_id = _resolve_own_account(account_id, account)
    try:
        identity = await service.change_credential(
            identity_id, body.current_password, body.new_password
        )
    except Exception as e:
        raise to_http_exception(e, "change credential") from e
    return ProfileResponse.from_domain(identity)


@router.put("/accounts/{account_id}/email")
async def change_email(
    account_id: str,
    body: ChangeEmailRequest,
    account: Annotated[AuthenticatedAccount, Depends(get_authenticated_account)],
    service: Annotated[AccountService, Depends(get_account_service)],
) -> ProfileResponse:
    """Change the account email. Existing session tokens keep the old email."""
    identity_id = _resolve_own_account(account_id, account)
    try:
        identity = await service.change_email(identity_id, body.email)
    except Exception as e:
        raise to_http_exception(e, "change email") from e
    return ProfileResponse.from_domain(identity)


@router.put("/accounts/{account_id}/affiliation")
async def update_affiliation(
    account_id: str,
    body: UpdateAffiliationRequest,
    account: Annotated[AuthenticatedAccount, Depends(get_authenticated_account)],
    service: Annotated[AccountService, Depends(get_account_service)],
) -> ProfileResponse:
    """Change the affiliation code and recompute the role."""
    identity_id = _resolve_own_account(account_id, account)
    try:
        identity = await service.update_affiliation(identity_id, body.affiliation_code)
    except Exception as e:
        raise to_http_exception(e, "update affiliation") from e
    return ProfileResponse.from_domain(identity)


@router.post("/accounts/{account_id}/deactivate")
async def deactivate_account(
    account_id: str,
    account: Annotated[AuthenticatedAccount, Depends(get_authenticated_account)],
    service: Annotated[AccountService, Depends(get_account_service)],
) -> ProfileResponse:
    """Deactivate the account. Authentication is rejected until reactivation."""
    identity_id = _resolve_own_account(account_id, account)
    try:
        identity = await service.deactivate(identity_id)
    except Exception as e:
        raise to_http_exception(e, "deactivate account") from e
    return ProfileResponse.from_domain(identity)


@router.post("/accounts/{account_id}/reactivate")
async def reactivate_account(
    account_id: str,
    account: Annotated[AuthenticatedAccount, Depends(get_authenticated_account)],
    service: Annotated[AccountService, Depends(get_account_service)],
) -> ProfileResponse:
    """Reactivate a deactivated account.

    A session token issued before deactivation is still accepted here
    until it expires.
    """
    identity_id = _resolve_own_account(account_id, account)
    try:
        identity = await service.reactivate(identity_id)
    except Exception as e:
        raise to_http_exception(e, "reactivate account") from e
    return ProfileResponse.from_domain(identity)
