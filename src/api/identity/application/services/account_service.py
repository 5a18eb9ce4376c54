"""Account application service for the Identity bounded context.

Lifecycle operations on an existing identity: reading the profile,
changing password, email or affiliation, deactivating and reactivating.
Each operation runs in a single transaction.
"""

from __future__ import annotations

from collections.abc import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from identity.application.observability import (
    AccountServiceProbe,
    DefaultAccountServiceProbe,
)
from identity.application.role_classifier import RoleClassifier
from identity.domain.aggregates import Identity
from identity.domain.value_objects import AffiliationCode, Email, IdentityId
from identity.ports.exceptions import (
    AccountDeactivatedError,
    IdentityNotFoundError,
    InvalidCredentialsError,
)
from identity.ports.repositories import IIdentityRepository


class AccountService:
    """Application service for account lifecycle management."""

    def __init__(
        self,
        session: AsyncSession,
        identity_repository: IIdentityRepository,
        classifier: RoleClassifier,
        probe: AccountServiceProbe | None = None,
    ):
        self._session = session
        self._identity_repository = identity_repository
        self._classifier = classifier
        self._probe = probe or DefaultAccountServiceProbe()

    async def get_profile(self, identity_id: IdentityId) -> Identity:
        """Retrieve an active identity.

        Session tokens stay valid after deactivation, so this is where a
        token issued before it stops reading the account.

        Raises:
            IdentityNotFoundError: If no identity has this id
            AccountDeactivatedError: If the identity is deactivated
        """
        async with self._session.begin():
            identity = await self._load(identity_id)
        if not identity.active:
            raise AccountDeactivatedError(f"Identity {identity_id.value} is deactivated")
        self._probe.profile_retrieved(account_id=identity_id.value)
        return identity

    async def change_credential(
        self,
        identity_id: IdentityId,
        current_password: str,
        new_password: str,
    ) -> Identity:
        """Replace the password after checking the current one.

        Raises:
            IdentityNotFoundError: If no identity has this id
            AccountDeactivatedError: If the identity is deactivated
            InvalidCredentialsError: If the current password is wrong
            ValidationFailure: If the new password is too weak
        """

        def change(identity: Identity) -> None:
            if not identity.active:
                raise AccountDeactivatedError(
                    f"Cannot change the credential of deactivated identity {identity.id.value}"
                )
            if not identity.verify_credential(current_password):
                raise InvalidCredentialsError("Current password is incorrect")
            identity.change_credential(new_password)

        return await self._mutate(identity_id, "change_credential", change)

    async def change_email(self, identity_id: IdentityId, email: str) -> Identity:
        """Replace the email address.

        Raises:
            IdentityNotFoundError: If no identity has this id
            ValidationFailure: If the email is malformed
            AccountDeactivatedError: If the identity is deactivated
            DuplicateIdentityError: If another active identity uses the email
        """
        new_email = Email(email)
        return await self._mutate(
            identity_id, "change_email", lambda identity: identity.change_email(new_email)
        )

    async def update_affiliation(
        self, identity_id: IdentityId, affiliation_code: str | None
    ) -> Identity:
        """Replace the affiliation code and recompute the role with it.

        Unlike registration, a malformed code is rejected here: the caller
        explicitly asked for this code.

        Raises:
            IdentityNotFoundError: If no identity has this id
            ValidationFailure: If the code is malformed
            AccountDeactivatedError: If the identity is deactivated
            AffiliationCodeAlreadyUsedError: If a concurrent change consumed
                the registry code first
        """
        code = (
            AffiliationCode(affiliation_code)
            if affiliation_code is not None and affiliation_code.strip()
            else None
        )
        try:
            async with self._session.begin():
                identity = await self._load(identity_id)
                classification = await self._classifier.classify(code)
                identity.update_affiliation(classification)
                await self._identity_repository.update(identity)
                await self._classifier.record_use(classification, identity.id)
        except Exception as e:
            self._probe.account_change_failed(
                account_id=identity_id.value, operation="update_affiliation", error=str(e)
            )
            raise

        self._probe.account_changed(
            account_id=identity_id.value, operation="update_affiliation"
        )
        return identity

    async def deactivate(self, identity_id: IdentityId) -> Identity:
        """Deactivate an identity.

        Raises:
            IdentityNotFoundError: If no identity has this id
            IdentityAlreadyDeactivatedError: If already deactivated
        """
        return await self._mutate(
            identity_id, "deactivate", lambda identity: identity.deactivate()
        )

    async def reactivate(self, identity_id: IdentityId) -> Identity:
        """Reactivate a deactivated identity.

        Raises:
            IdentityNotFoundError: If no identity has this id
            IdentityAlreadyActiveError: If the identity is active
            DuplicateIdentityError: If another active identity now uses the email
        """
        return await self._mutate(
            identity_id, "reactivate", lambda identity: identity.reactivate()
        )

    async def _mutate(
        self,
        identity_id: IdentityId,
        operation: str,
        change: Callable[[Identity], None],
    ) -> Identity:
        try:
            async with self._session.begin():
                identity = await self._load(identity_id)
                change(identity)
                await self._identity_repository.update(identity)
        except Exception as e:
            self._probe.account_change_failed(
                account_id=identity_id.value, operation=operation, error=str(e)
            )
            raise

        self._probe.account_changed(account_id=identity_id.value, operation=operation)
        return identity

    async def _load(self, identity_id: IdentityId) -> Identity:
        identity = await self._identity_repository.find_by_id(identity_id)
        if identity is None:
            raise IdentityNotFoundError(f"Identity {identity_id.value} not found")
        return identity
