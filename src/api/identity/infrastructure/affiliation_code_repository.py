"""PostgreSQL implementation of IAffiliationCodeRepository."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from identity.domain.aggregates import AffiliationCodeEntry
from identity.domain.value_objects import AffiliationCode, Email, IdentityId
from identity.infrastructure.models import AffiliationCodeModel
from identity.infrastructure.observability import (
    AffiliationCodeRepositoryProbe,
    DefaultAffiliationCodeRepositoryProbe,
)
from identity.ports.repositories import IAffiliationCodeRepository


class AffiliationCodeRepository(IAffiliationCodeRepository):
    """PostgreSQL-backed affiliation code registry.

    Like IdentityRepository, this runs inside the caller's transaction
    and never commits on its own.
    """

    def __init__(
        self,
        session: AsyncSession,
        probe: AffiliationCodeRepositoryProbe | None = None,
    ) -> None:
        self._session = session
        self._probe = probe or DefaultAffiliationCodeRepositoryProbe()

    async def find_by_code(
        self, code: AffiliationCode, for_update: bool = False
    ) -> AffiliationCodeEntry | None:
        if for_update:
            # Reload past the identity map: an earlier unlocked read in this
            # session may hold a stale is_used
            stmt = (
                select(AffiliationCodeModel)
                .where(AffiliationCodeModel.code == code.value)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            result = await self._session.execute(stmt)
            model = result.scalar_one_or_none()
        else:
            model = await self._session.get(AffiliationCodeModel, code.value)
        if model is None:
            self._probe.affiliation_code_not_found(code.value)
            return None

        return AffiliationCodeEntry(
            code=AffiliationCode(model.code),
            owner_email=Email(model.owner_email),
            created_at=model.created_at,
            is_used=model.is_used,
            used_by=IdentityId(value=model.used_by) if model.used_by else None,
            used_at=model.used_at,
        )

    async def save(self, entry: AffiliationCodeEntry) -> None:
        """Insert or update a registry entry."""
        model = await self._session.get(AffiliationCodeModel, entry.code.value)
        if model is None:
            model = AffiliationCodeModel(
                code=entry.code.value,
                created_at=entry.created_at,
            )
            self._session.add(model)

        model.owner_email = entry.owner_email.value
        model.is_used = entry.is_used
        model.used_by = entry.used_by.value if entry.used_by else None
        model.used_at = entry.used_at

        await self._session.flush()
        self._probe.affiliation_code_saved(entry.code.value, entry.is_used)
