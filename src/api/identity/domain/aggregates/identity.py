"""Identity aggregate for the Identity context."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from identity.domain.classification import (
    AffiliationDescriptor,
    Classification,
    describe_affiliation,
)
from identity.domain.events import IdentityAuthenticated, IdentityRegistered
from identity.domain.value_objects import (
    AffiliationCode,
    AuthOrigin,
    CredentialDigest,
    DisplayName,
    Email,
    ExternalIdentityId,
    IdentityId,
    RequestMetadata,
    Role,
)
from identity.ports.exceptions import (
    AccountDeactivatedError,
    ExternalIdentityAlreadyLinkedError,
    IdentityAlreadyActiveError,
    IdentityAlreadyDeactivatedError,
)

if TYPE_CHECKING:
    from identity.domain.events import DomainEvent


@dataclass
class Identity:
    """Identity aggregate representing one account.

    An identity is registered through exactly one origin (a local
    credential or a federated identity) but may carry both a credential
    digest and an external identity id after a merge. Federated-only
    identities hold the digest of an unguessable placeholder so every
    record has the same shape.

    Business rules:
    - Role is only ever assigned together with the affiliation code that
      produced it (see Classification)
    - A deactivated identity rejects authentication and every mutation
      except reactivation
    - Identities are never deleted, only deactivated

    Event collection:
    - Registration and successful authentication record domain events
    - Events are returned and cleared by drain_events()
    """

    id: IdentityId
    display_name: DisplayName
    email: Email
    credential_digest: CredentialDigest
    role: Role
    origin: AuthOrigin
    created_at: datetime
    updated_at: datetime
    affiliation_code: AffiliationCode | None = None
    external_identity_id: ExternalIdentityId | None = None
    deactivated_at: datetime | None = None
    _pending_events: list[DomainEvent] = field(default_factory=list, repr=False)

    @classmethod
    def create_with_credential(
        cls,
        display_name: DisplayName,
        email: Email,
        plaintext_password: str,
        classification: Classification,
        metadata: RequestMetadata | None = None,
    ) -> Identity:
        """Factory method for registering a local (password) identity.

        Args:
            display_name: Normalized display name
            email: Normalized email
            plaintext_password: Password to hash; strength rules apply
            classification: Role and affiliation code to assign
            metadata: Audit context of the registering request

        Returns:
            A new Identity with IdentityRegistered recorded

        Raises:
            ValidationFailure: If the password does not meet strength rules
        """
        digest = CredentialDigest.from_plaintext(plaintext_password)
        identity = cls._new(
            display_name=display_name,
            email=email,
            credential_digest=digest,
            classification=classification,
            origin=AuthOrigin.CREDENTIAL,
        )
        identity._record_registered(metadata or RequestMetadata.unknown())
        return identity

    @classmethod
    def create_with_external_identity(
        cls,
        display_name: DisplayName,
        email: Email,
        external_identity_id: ExternalIdentityId,
        classification: Classification,
        metadata: RequestMetadata | None = None,
    ) -> Identity:
        """Factory method for registering a federated identity.

        The caller must have verified the external token already.

        Returns:
            A new Identity with IdentityRegistered recorded
        """
        identity = cls._new(
            display_name=display_name,
            email=email,
            credential_digest=CredentialDigest.placeholder(),
            classification=classification,
            origin=AuthOrigin.EXTERNAL,
            external_identity_id=external_identity_id,
        )
        identity._record_registered(metadata or RequestMetadata.unknown())
        return identity

    @classmethod
    def _new(
        cls,
        display_name: DisplayName,
        email: Email,
        credential_digest: CredentialDigest,
        classification: Classification,
        origin: AuthOrigin,
        external_identity_id: ExternalIdentityId | None = None,
    ) -> Identity:
        now = datetime.now(UTC)
        return cls(
            id=IdentityId.generate(),
            display_name=display_name,
            email=email,
            credential_digest=credential_digest,
            role=classification.role,
            origin=origin,
            created_at=now,
            updated_at=now,
            affiliation_code=classification.affiliation_code,
            external_identity_id=external_identity_id,
        )

    @property
    def active(self) -> bool:
        return self.deactivated_at is None

    @property
    def affiliation(self) -> AffiliationDescriptor:
        """Descriptor of the current role and affiliation code."""
        return describe_affiliation(self.role, self.affiliation_code)

    def verify_credential(self, plaintext_password: str) -> bool:
        """Compare a password with the stored digest without recording anything."""
        return self.credential_digest.matches(plaintext_password)

    def authenticate_with_credential(
        self,
        plaintext_password: str,
        metadata: RequestMetadata | None = None,
    ) -> bool:
        """Authenticate with a password.

        Records IdentityAuthenticated only when the password matches.

        Returns:
            True if the password matches, False otherwise

        Raises:
            AccountDeactivatedError: If the identity is deactivated
        """
        self._ensure_active("authenticate")
        if not self.credential_digest.matches(plaintext_password):
            return False
        self._record_authenticated(AuthOrigin.CREDENTIAL, metadata)
        return True

    def authenticate_with_external_identity(
        self, metadata: RequestMetadata | None = None
    ) -> None:
        """Authenticate through an already-verified federated token.

        Raises:
            AccountDeactivatedError: If the identity is deactivated
        """
        self._ensure_active("authenticate")
        self._record_authenticated(AuthOrigin.EXTERNAL, metadata)

    def link_external_identity(self, external_identity_id: ExternalIdentityId) -> None:
        """Attach a federated identity to this account.

        Linking the id that is already attached is a no-op.

        Raises:
            AccountDeactivatedError: If the identity is deactivated
            ExternalIdentityAlreadyLinkedError: If a different id is attached
        """
        self._ensure_active("link an external identity to")
        if self.external_identity_id == external_identity_id:
            return
        if self.external_identity_id is not None:
            raise ExternalIdentityAlreadyLinkedError(
                f"Identity {self.id.value} is already linked to another external identity"
            )
        self.external_identity_id = external_identity_id
        self._touch()

    def update_affiliation(self, classification: Classification) -> None:
        """Replace affiliation code and role together.

        Raises:
            AccountDeactivatedError: If the identity is deactivated
        """
        self._ensure_active("update the affiliation of")
        self.affiliation_code = classification.affiliation_code
        self.role = classification.role
        self._touch()

    def change_credential(self, new_plaintext_password: str) -> None:
        """Replace the password.

        Raises:
            AccountDeactivatedError: If the identity is deactivated
            ValidationFailure: If the password does not meet strength rules
        """
        self._ensure_active("change the credential of")
        self.credential_digest = CredentialDigest.from_plaintext(new_plaintext_password)
        self._touch()

    def change_email(self, email: Email) -> None:
        """Replace the email address.

        Raises:
            AccountDeactivatedError: If the identity is deactivated
        """
        self._ensure_active("change the email of")
        if email == self.email:
            return
        self.email = email
        self._touch()

    def deactivate(self) -> None:
        """Soft-delete this identity.

        Raises:
            IdentityAlreadyDeactivatedError: If already deactivated
        """
        if not self.active:
            raise IdentityAlreadyDeactivatedError(
                f"Identity {self.id.value} is already deactivated"
            )
        now = datetime.now(UTC)
        self.deactivated_at = now
        self.updated_at = now

    def reactivate(self) -> None:
        """Reverse a deactivation.

        Raises:
            IdentityAlreadyActiveError: If the identity is active
        """
        if self.active:
            raise IdentityAlreadyActiveError(f"Identity {self.id.value} is already active")
        self.deactivated_at = None
        self._touch()

    def drain_events(self) -> list[DomainEvent]:
        """Return and clear pending domain events.

        Subsequent calls return an empty list until new events are recorded.

        Returns:
            List of pending domain events in the order they were recorded
        """
        events = self._pending_events.copy()
        self._pending_events.clear()
        return events

    def _ensure_active(self, action: str) -> None:
        if not self.active:
            raise AccountDeactivatedError(
                f"Cannot {action} deactivated identity {self.id.value}"
            )

    def _touch(self) -> None:
        self.updated_at = datetime.now(UTC)

    def _record_registered(self, metadata: RequestMetadata) -> None:
        self._pending_events.append(
            IdentityRegistered(
                aggregate_id=self.id.value,
                email=self.email.value,
                display_name=self.display_name.value,
                role=self.role.value,
                origin=self.origin.value,
                affiliation_code=(
                    self.affiliation_code.value if self.affiliation_code else None
                ),
                institution_name=self.affiliation.institution_name,
                client_ip=metadata.client_ip,
                user_agent=metadata.user_agent,
                occurred_at=datetime.now(UTC),
            )
        )

    def _record_authenticated(
        self, origin: AuthOrigin, metadata: RequestMetadata | None
    ) -> None:
        metadata = metadata or RequestMetadata.unknown()
        self._pending_events.append(
            IdentityAuthenticated(
                aggregate_id=self.id.value,
                email=self.email.value,
                display_name=self.display_name.value,
                role=self.role.value,
                origin=origin.value,
                client_ip=metadata.client_ip,
                user_agent=metadata.user_agent,
                occurred_at=datetime.now(UTC),
            )
        )
