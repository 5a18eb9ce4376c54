"""Fixtures and in-memory fakes for Identity unit tests."""

from __future__ import annotations

import asyncio
import dataclasses
from typing import Any
from unittest.mock import AsyncMock

import pytest

from identity.application.role_classifier import RoleClassifier
from identity.application.session_tokens import SessionTokenIssuer
from identity.domain.aggregates import AffiliationCodeEntry, Identity
from identity.domain.value_objects import (
    AffiliationCode,
    Email,
    ExternalIdentityId,
    IdentityId,
)
from identity.infrastructure.token_signer import JoseTokenSigner
from identity.ports.exceptions import (
    DuplicateIdentityError,
    ExternalIdentityAlreadyLinkedError,
    IdentityNotFoundError,
)
from identity.ports.gateways import FederatedClaims, IFederatedTokenVerifier

TEST_SECRET = "unit-test-session-secret-0123456789abcdef"


class InMemoryIdentityRepository:
    """Identity store enforcing the same uniqueness rules as the table.

    Stored and returned aggregates are copies, so a caller only changes
    the store through save() and update(). Lookups yield to the event
    loop after reading, which lets concurrent flows interleave between
    their lookup and their write.
    """

    def __init__(self) -> None:
        self.rows: dict[str, Identity] = {}
        self.save_calls = 0
        self.update_calls = 0

    def add(self, identity: Identity) -> Identity:
        self.rows[identity.id.value] = _copy(identity)
        return identity

    async def find_by_id(self, identity_id: IdentityId) -> Identity | None:
        found = self.rows.get(identity_id.value)
        await asyncio.sleep(0)
        return _copy(found) if found else None

    async def find_by_email(self, email: Email) -> Identity | None:
        matches = [row for row in self.rows.values() if row.email == email]
        active = [row for row in matches if row.active]
        if active:
            found = active[0]
        elif matches:
            found = max(matches, key=lambda row: row.created_at)
        else:
            found = None
        await asyncio.sleep(0)
        return _copy(found) if found else None

    async def find_by_external_id(
        self, external_identity_id: ExternalIdentityId
    ) -> Identity | None:
        found = next(
            (
                row
                for row in self.rows.values()
                if row.external_identity_id == external_identity_id
            ),
            None,
        )
        await asyncio.sleep(0)
        return _copy(found) if found else None

    async def save(self, identity: Identity) -> Identity:
        self.save_calls += 1
        if identity.id.value in self.rows:
            raise DuplicateIdentityError(f"Identity {identity.id.value} already exists")
        self._check_unique(identity)
        self.rows[identity.id.value] = _copy(identity)
        return identity

    async def update(self, identity: Identity) -> Identity:
        self.update_calls += 1
        if identity.id.value not in self.rows:
            raise IdentityNotFoundError(f"Identity {identity.id.value} not found")
        self._check_unique(identity)
        self.rows[identity.id.value] = _copy(identity)
        return identity

    def _check_unique(self, identity: Identity) -> None:
        for row in self.rows.values():
            if row.id == identity.id:
                continue
            if (
                identity.external_identity_id is not None
                and row.external_identity_id == identity.external_identity_id
            ):
                raise ExternalIdentityAlreadyLinkedError(
                    "External identity is already linked to another account"
                )
            if identity.active and row.active and row.email == identity.email:
                raise DuplicateIdentityError("An account with this email already exists")


def _copy(identity: Identity) -> Identity:
    return dataclasses.replace(identity, _pending_events=[])


class InMemoryAffiliationCodeRepository:
    """Affiliation code registry with row-lock semantics for locking reads.

    Plain reads yield to the event loop like the identity store does. A
    locking read and the save after it never yield, so a claim on a code
    completes before any other flow can read the entry, as it would while
    a row lock is held until commit.
    """

    def __init__(self) -> None:
        self.entries: dict[str, AffiliationCodeEntry] = {}

    def add(self, entry: AffiliationCodeEntry) -> AffiliationCodeEntry:
        self.entries[entry.code.value] = dataclasses.replace(entry)
        return entry

    async def find_by_code(
        self, code: AffiliationCode, for_update: bool = False
    ) -> AffiliationCodeEntry | None:
        found = self.entries.get(code.value)
        if not for_update:
            await asyncio.sleep(0)
        return dataclasses.replace(found) if found else None

    async def save(self, entry: AffiliationCodeEntry) -> None:
        self.entries[entry.code.value] = dataclasses.replace(entry)


class RecordingPublisher:
    """DomainEventPublisher that keeps events instead of dispatching them."""

    def __init__(self) -> None:
        self.events: list[Any] = []

    def publish(self, event: Any) -> bool:
        self.events.append(event)
        return True

    def publish_all(self, events) -> int:
        events = list(events)
        self.events.extend(events)
        return len(events)

    def of_type(self, event_type: type) -> list[Any]:
        return [event for event in self.events if isinstance(event, event_type)]


class StubTokenVerifier(IFederatedTokenVerifier):
    """Verifier returning preconfigured claims per token."""

    def __init__(self) -> None:
        self.claims_by_token: dict[str, FederatedClaims] = {}
        self.calls: list[str] = []

    def register(
        self,
        token: str,
        external_id: str,
        email: str,
        email_verified: bool = True,
        name: str | None = None,
    ) -> None:
        self.claims_by_token[token] = FederatedClaims(
            external_id=external_id,
            email=email,
            email_verified=email_verified,
            name=name,
        )

    async def verify(self, token: str) -> FederatedClaims:
        from identity.ports.exceptions import InvalidTokenError

        self.calls.append(token)
        try:
            return self.claims_by_token[token]
        except KeyError:
            raise InvalidTokenError("Unknown token") from None


@pytest.fixture
def identity_repository() -> InMemoryIdentityRepository:
    return InMemoryIdentityRepository()


@pytest.fixture
def affiliation_repository() -> InMemoryAffiliationCodeRepository:
    return InMemoryAffiliationCodeRepository()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def token_verifier() -> StubTokenVerifier:
    return StubTokenVerifier()


@pytest.fixture
def token_signer() -> JoseTokenSigner:
    return JoseTokenSigner(secret=TEST_SECRET)


@pytest.fixture
def token_issuer(token_signer) -> SessionTokenIssuer:
    return SessionTokenIssuer(signer=token_signer)


@pytest.fixture
def classifier() -> RoleClassifier:
    """Classifier using the default sentinel primary code."""
    return RoleClassifier()


@pytest.fixture
def mock_notifier() -> AsyncMock:
    return AsyncMock()
