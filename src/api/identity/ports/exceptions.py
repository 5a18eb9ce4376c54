"""Domain exceptions for the Identity bounded context.

These exceptions represent domain-level errors raised by value objects,
the Identity aggregate, repositories and application services. The
presentation layer translates them into HTTP responses.
"""


class ValidationFailure(ValueError):
    """Raised when a value object is constructed from malformed input.

    Always recoverable by the caller re-submitting corrected input.
    """

    pass


class InvalidCredentialsError(Exception):
    """Raised when a password does not match the stored credential digest.

    The message never reveals whether the email or the password was wrong.
    """

    pass


class AccountDeactivatedError(Exception):
    """Raised when authenticating or mutating a deactivated identity.

    Deactivated identities fail closed for everything except reactivation.
    """

    pass


class IdentityAlreadyDeactivatedError(AccountDeactivatedError):
    """Raised when deactivating an identity that is already deactivated."""

    pass


class IdentityAlreadyActiveError(Exception):
    """Raised when reactivating an identity that is already active."""

    pass


class TokenMismatchError(Exception):
    """Raised when the provider-asserted email differs from the caller's email.

    Guards against a caller presenting a valid federated token for one
    account while claiming the email of another.
    """

    pass


class InvalidTokenError(Exception):
    """Raised when a federated or session token fails verification."""

    pass


class ExpiredTokenError(InvalidTokenError):
    """Raised when a federated or session token is past its expiry."""

    pass


class DuplicateIdentityError(Exception):
    """Raised when a write violates email or external identity uniqueness.

    This is the expected outcome of two concurrent registrations racing
    for the same email or external identity id.
    """

    pass


class ExternalIdentityAlreadyLinkedError(DuplicateIdentityError):
    """Raised when linking a federated identity onto an identity that
    already carries a different external identity id."""

    pass


class AffiliationCodeAlreadyUsedError(Exception):
    """Raised when marking an already-used registry code as used again."""

    pass


class IdentityNotFoundError(Exception):
    """Raised when an identity cannot be found by its id."""

    pass


class InternalFailure(Exception):
    """Raised when a collaborator fails in an unexpected way.

    Includes a federated token verification exceeding its time bound.
    """

    pass
