"""PostgreSQL implementation of IIdentityRepository.

Uniqueness of email (among active identities) and of the external
identity id is enforced by the identities table itself. Constraint
violations are translated into DuplicateIdentityError so concurrent
registrations resolve to exactly one winner.

Transactions are owned by the calling service; this repository only
adds, mutates and flushes within the session's current transaction.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from identity.domain.aggregates import Identity
from identity.domain.value_objects import (
    AffiliationCode,
    AuthOrigin,
    CredentialDigest,
    DisplayName,
    Email,
    ExternalIdentityId,
    IdentityId,
    Role,
)
from identity.infrastructure.models import IdentityModel
from identity.infrastructure.models.identity import (
    ACTIVE_EMAIL_INDEX,
    EXTERNAL_IDENTITY_CONSTRAINT,
)
from identity.infrastructure.observability import (
    DefaultIdentityRepositoryProbe,
    IdentityRepositoryProbe,
)
from identity.ports.exceptions import (
    DuplicateIdentityError,
    ExternalIdentityAlreadyLinkedError,
    IdentityNotFoundError,
)
from identity.ports.repositories import IIdentityRepository

PRIMARY_KEY_CONSTRAINT = "identities_pkey"


class IdentityRepository(IIdentityRepository):
    """PostgreSQL-backed repository for Identity aggregates."""

    def __init__(
        self,
        session: AsyncSession,
        probe: IdentityRepositoryProbe | None = None,
    ) -> None:
        """Initialize repository with database session and probe.

        Args:
            session: AsyncSession from FastAPI dependency injection
            probe: Optional domain probe for observability
        """
        self._session = session
        self._probe = probe or DefaultIdentityRepositoryProbe()

    async def find_by_id(self, identity_id: IdentityId) -> Identity | None:
        stmt = select(IdentityModel).where(IdentityModel.id == identity_id.value)
        return await self._find_one(stmt, lookup="id")

    async def find_by_email(self, email: Email) -> Identity | None:
        """Retrieve the identity registered with an email.

        Active rows sort first (NULL deactivated_at), then the most
        recently created deactivated row.
        """
        stmt = (
            select(IdentityModel)
            .where(IdentityModel.email == email.value)
            .order_by(
                IdentityModel.deactivated_at.desc().nulls_first(),
                IdentityModel.created_at.desc(),
            )
            .limit(1)
        )
        return await self._find_one(stmt, lookup="email")

    async def find_by_external_id(
        self, external_identity_id: ExternalIdentityId
    ) -> Identity | None:
        stmt = select(IdentityModel).where(
            IdentityModel.external_identity_id == external_identity_id.value
        )
        return await self._find_one(stmt, lookup="external_identity_id")

    async def save(self, identity: Identity) -> Identity:
        """Insert a newly registered identity.

        Raises:
            DuplicateIdentityError: If email or external identity id is taken
        """
        model = IdentityModel(id=identity.id.value)
        self._apply(model, identity)
        model.created_at = identity.created_at
        self._session.add(model)

        try:
            await self._session.flush()
        except IntegrityError as e:
            self._raise_duplicate(identity, e)
            raise

        self._probe.identity_saved(identity.id.value)
        return identity

    async def update(self, identity: Identity) -> Identity:
        """Persist changes to an existing identity.

        Raises:
            DuplicateIdentityError: If the change collides with another identity
            IdentityNotFoundError: If the identity does not exist
        """
        model = await self._session.get(IdentityModel, identity.id.value)
        if model is None:
            raise IdentityNotFoundError(f"Identity {identity.id.value} not found")

        self._apply(model, identity)

        try:
            await self._session.flush()
        except IntegrityError as e:
            self._raise_duplicate(identity, e)
            raise

        self._probe.identity_updated(identity.id.value)
        return identity

    async def _find_one(self, stmt, lookup: str) -> Identity | None:
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            self._probe.identity_not_found(lookup)
            return None

        self._probe.identity_retrieved(model.id, lookup)
        return self._to_aggregate(model)

    def _raise_duplicate(self, identity: Identity, error: IntegrityError) -> None:
        """Translate a known uniqueness violation, if the error is one."""
        message = str(error)
        if EXTERNAL_IDENTITY_CONSTRAINT in message:
            self._probe.duplicate_identity(
                identity.id.value, EXTERNAL_IDENTITY_CONSTRAINT
            )
            raise ExternalIdentityAlreadyLinkedError(
                "External identity is already linked to another account"
            ) from error
        if ACTIVE_EMAIL_INDEX in message:
            self._probe.duplicate_identity(identity.id.value, ACTIVE_EMAIL_INDEX)
            raise DuplicateIdentityError(
                "An account with this email already exists"
            ) from error
        if PRIMARY_KEY_CONSTRAINT in message:
            self._probe.duplicate_identity(identity.id.value, PRIMARY_KEY_CONSTRAINT)
            raise DuplicateIdentityError(
                f"Identity {identity.id.value} already exists"
            ) from error

    @staticmethod
    def _apply(model: IdentityModel, identity: Identity) -> None:
        model.display_name = identity.display_name.value
        model.email = identity.email.value
        model.credential_digest = identity.credential_digest.value
        model.role = identity.role.value
        model.origin = identity.origin.value
        model.affiliation_code = (
            identity.affiliation_code.value if identity.affiliation_code else None
        )
        model.external_identity_id = (
            identity.external_identity_id.value
            if identity.external_identity_id
            else None
        )
        model.deactivated_at = identity.deactivated_at
        model.updated_at = identity.updated_at

    @staticmethod
    def _to_aggregate(model: IdentityModel) -> Identity:
        """Reconstitute an aggregate from a stored row. No events are recorded."""
        return Identity(
            id=IdentityId(value=model.id),
            display_name=DisplayName(model.display_name),
            email=Email(model.email),
            credential_digest=CredentialDigest(model.credential_digest),
            role=Role(model.role),
            origin=AuthOrigin(model.origin),
            created_at=model.created_at,
            updated_at=model.updated_at,
            affiliation_code=(
                AffiliationCode(model.affiliation_code)
                if model.affiliation_code
                else None
            ),
            external_identity_id=(
                ExternalIdentityId(model.external_identity_id)
                if model.external_identity_id
                else None
            ),
            deactivated_at=model.deactivated_at,
        )
