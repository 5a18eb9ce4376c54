"""Repository protocols (ports) for the Identity bounded context.

Repository protocols define the interface for persisting and retrieving
aggregates. The store is the single serialization point for email and
external identity uniqueness; implementations surface violations as
DuplicateIdentityError.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from identity.domain.aggregates import AffiliationCodeEntry, Identity
from identity.domain.value_objects import (
    AffiliationCode,
    Email,
    ExternalIdentityId,
    IdentityId,
)


@runtime_checkable
class IIdentityRepository(Protocol):
    """Repository for Identity aggregate persistence."""

    async def find_by_id(self, identity_id: IdentityId) -> Identity | None:
        """Retrieve an identity by its ID, active or not.

        Args:
            identity_id: The unique identifier of the identity

        Returns:
            The Identity aggregate, or None if not found
        """
        ...

    async def find_by_email(self, email: Email) -> Identity | None:
        """Retrieve the identity registered with an email.

        Email is only unique among active identities. The active identity
        is preferred; otherwise the most recently created deactivated one
        is returned so callers can reject it instead of re-registering.

        Args:
            email: Normalized email to search for

        Returns:
            The Identity aggregate, or None if not found
        """
        ...

    async def find_by_external_id(
        self, external_identity_id: ExternalIdentityId
    ) -> Identity | None:
        """Retrieve an identity by its federated identity id, active or not.

        Args:
            external_identity_id: Provider subject identifier

        Returns:
            The Identity aggregate, or None if not found
        """
        ...

    async def save(self, identity: Identity) -> Identity:
        """Insert a newly registered identity.

        Args:
            identity: The Identity aggregate to persist

        Returns:
            The persisted identity

        Raises:
            DuplicateIdentityError: If email or external identity id is taken
        """
        ...

    async def update(self, identity: Identity) -> Identity:
        """Persist changes to an existing identity.

        Args:
            identity: The Identity aggregate to persist

        Returns:
            The persisted identity

        Raises:
            DuplicateIdentityError: If the change collides with another identity
            IdentityNotFoundError: If the identity does not exist
        """
        ...


@runtime_checkable
class IAffiliationCodeRepository(Protocol):
    """Repository for the affiliation code registry."""

    async def find_by_code(
        self, code: AffiliationCode, for_update: bool = False
    ) -> AffiliationCodeEntry | None:
        """Retrieve a registry entry by code.

        Args:
            code: The code to look up
            for_update: Lock the entry until the surrounding transaction
                ends, so a concurrent registration cannot consume it too

        Returns:
            The entry, or None if the code is not registered
        """
        ...

    async def save(self, entry: AffiliationCodeEntry) -> None:
        """Insert or update a registry entry."""
        ...
