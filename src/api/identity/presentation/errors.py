"""Translation of Identity failures into HTTP errors."""

from __future__ import annotations

from fastapi import HTTPException, status

from identity.ports.exceptions import (
    AccountDeactivatedError,
    AffiliationCodeAlreadyUsedError,
    DuplicateIdentityError,
    IdentityAlreadyActiveError,
    IdentityAlreadyDeactivatedError,
    IdentityNotFoundError,
    InternalFailure,
    InvalidCredentialsError,
    InvalidTokenError,
    TokenMismatchError,
    ValidationFailure,
)

# Ordered: subclasses precede their bases.
_STATUS_BY_ERROR: tuple[tuple[type[Exception], int], ...] = (
    (ValidationFailure, status.HTTP_400_BAD_REQUEST),
    (InvalidCredentialsError, status.HTTP_401_UNAUTHORIZED),
    (InvalidTokenError, status.HTTP_401_UNAUTHORIZED),
    (TokenMismatchError, status.HTTP_401_UNAUTHORIZED),
    (IdentityAlreadyDeactivatedError, status.HTTP_409_CONFLICT),
    (IdentityAlreadyActiveError, status.HTTP_409_CONFLICT),
    (AccountDeactivatedError, status.HTTP_403_FORBIDDEN),
    (IdentityNotFoundError, status.HTTP_404_NOT_FOUND),
    (DuplicateIdentityError, status.HTTP_409_CONFLICT),
    (AffiliationCodeAlreadyUsedError, status.HTTP_409_CONFLICT),
)


def to_http_exception(error: Exception, action: str) -> HTTPException:
    """Map an exception raised by a service to an HTTPException.

    Unknown exceptions become a 500 whose detail does not leak internals.

    Args:
        error: The exception raised by the service
        action: What was being attempted, for the 500 detail
    """
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            headers = (
                {"WWW-Authenticate": "Bearer"}
                if status_code == status.HTTP_401_UNAUTHORIZED
                else None
            )
            return HTTPException(
                status_code=status_code, detail=str(error), headers=headers
            )

    if isinstance(error, InternalFailure):
        detail = f"Failed to {action}: {error}"
    else:
        detail = f"Failed to {action}"
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=detail,
    )
