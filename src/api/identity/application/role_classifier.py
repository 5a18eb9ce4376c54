"""Role classification use case.

Every place that needs a role for an affiliation code goes through
RoleClassifier. How a code is judged is delegated to a strategy chosen
when the classifier is constructed: the sentinel strategy compares the
code against configured primary codes, the registry strategy additionally
accepts unused codes from the affiliation code registry.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from identity.application.observability import (
    DefaultRoleClassifierProbe,
    RoleClassifierProbe,
)
from identity.domain.classification import (
    DEFAULT_PRIMARY_CODE,
    Classification,
    classify_affiliation,
    describe_affiliation,
)
from identity.domain.value_objects import AffiliationCode, IdentityId, Role
from identity.ports.exceptions import AffiliationCodeAlreadyUsedError, ValidationFailure
from identity.ports.repositories import IAffiliationCodeRepository


class AffiliationStrategy(Protocol):
    """Decides which role an affiliation code grants."""

    async def resolve(self, code: AffiliationCode) -> Role:
        """Return the role granted by a valid code."""
        ...

    async def record_use(self, code: AffiliationCode, identity_id: IdentityId) -> None:
        """Record that an identity registered as primary with this code."""
        ...


class SentinelCodeStrategy:
    """Grants the primary role to a fixed set of configured codes."""

    def __init__(self, primary_codes: Iterable[str] = (DEFAULT_PRIMARY_CODE,)) -> None:
        self._primary_codes = frozenset(c.strip().upper() for c in primary_codes)

    async def resolve(self, code: AffiliationCode) -> Role:
        return classify_affiliation(code, self._primary_codes).role

    async def record_use(self, code: AffiliationCode, identity_id: IdentityId) -> None:
        # Sentinel codes are shared and never consumed
        return None


class RegistryBackedStrategy:
    """Grants the primary role to registered, unused registry codes.

    Codes absent from the registry are judged by the fallback strategy.
    A registry that cannot be queried is treated as absent: the failure
    is recorded and the fallback strategy decides.
    """

    def __init__(
        self,
        repository: IAffiliationCodeRepository,
        fallback: SentinelCodeStrategy | None = None,
        probe: RoleClassifierProbe | None = None,
    ) -> None:
        self._repository = repository
        self._fallback = fallback or SentinelCodeStrategy()
        self._probe = probe or DefaultRoleClassifierProbe()

    async def resolve(self, code: AffiliationCode) -> Role:
        try:
            entry = await self._repository.find_by_code(code)
        except Exception as e:
            self._probe.registry_lookup_failed(code=code.value, error=str(e))
            return await self._fallback.resolve(code)

        if entry is not None and entry.is_available:
            return Role.PRIMARY
        return await self._fallback.resolve(code)

    async def record_use(self, code: AffiliationCode, identity_id: IdentityId) -> None:
        """Consume a registry code for a new primary identity.

        The entry is read under a row lock, so of two registrations racing
        for one code only the first to commit finds it available.

        Raises:
            AffiliationCodeAlreadyUsedError: If the code was consumed after
                it was classified, and the fallback strategy would not grant
                the primary role on its own
        """
        entry = await self._repository.find_by_code(code, for_update=True)
        if entry is None:
            return
        if not entry.is_available:
            if await self._fallback.resolve(code) == Role.PRIMARY:
                return
            self._probe.affiliation_code_unavailable(
                code=code.value, account_id=identity_id.value
            )
            raise AffiliationCodeAlreadyUsedError(
                f"Affiliation code {code.value} has already been used"
            )
        entry.mark_used(identity_id)
        await self._repository.save(entry)
        self._probe.affiliation_code_used(code=code.value, account_id=identity_id.value)


class RoleClassifier:
    """Maps affiliation codes to a role and an affiliation descriptor."""

    def __init__(
        self,
        strategy: AffiliationStrategy | None = None,
        probe: RoleClassifierProbe | None = None,
    ) -> None:
        self._strategy = strategy or SentinelCodeStrategy()
        self._probe = probe or DefaultRoleClassifierProbe()

    async def classify(self, code: AffiliationCode | None) -> Classification:
        """Classify an already-validated code, or the absence of one."""
        if code is None:
            role = Role.SECONDARY
        else:
            role = await self._strategy.resolve(code)
        return Classification(
            role=role,
            affiliation_code=code,
            descriptor=describe_affiliation(role, code),
        )

    async def classify_raw(self, raw: str | None) -> Classification:
        """Classify a caller-supplied code.

        Blank codes count as absent. A malformed code is not an error:
        it is recorded and the account is classified as secondary with no
        affiliation code.
        """
        if raw is None or not raw.strip():
            return await self.classify(None)
        try:
            code = AffiliationCode(raw)
        except ValidationFailure as e:
            self._probe.affiliation_fallback(raw_code=raw, reason=str(e))
            return await self.classify(None)
        return await self.classify(code)

    async def record_use(
        self, classification: Classification, identity_id: IdentityId
    ) -> None:
        """Record that an identity was assigned a primary classification.

        Must run inside the transaction that persists the identity, so a
        rejected claim rolls the identity back with it.

        Raises:
            AffiliationCodeAlreadyUsedError: If the code was consumed concurrently
        """
        if classification.is_primary and classification.affiliation_code is not None:
            await self._strategy.record_use(classification.affiliation_code, identity_id)
