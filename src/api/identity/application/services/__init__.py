"""Application services for the Identity bounded context."""

from identity.application.services.account_service import AccountService
from identity.application.services.authentication_service import (
    AuthenticationService,
)

__all__ = [
    "AccountService",
    "AuthenticationService",
]
