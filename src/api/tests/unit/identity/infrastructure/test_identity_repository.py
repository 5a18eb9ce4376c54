"""Unit tests for IdentityRepository.

Tests verify mapping and constraint translation with a mocked session.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest
from sqlalchemy.exc import IntegrityError

from identity.domain.aggregates import Identity
from identity.domain.classification import classify_affiliation
from identity.domain.value_objects import (
    AffiliationCode,
    AuthOrigin,
    DisplayName,
    Email,
    ExternalIdentityId,
    IdentityId,
    Role,
)
from identity.infrastructure.identity_repository import IdentityRepository
from identity.infrastructure.models import IdentityModel
from identity.ports.exceptions import (
    DuplicateIdentityError,
    ExternalIdentityAlreadyLinkedError,
    IdentityNotFoundError,
)
from identity.ports.repositories import IIdentityRepository


@pytest.fixture
def mock_session():
    """Create mock async session."""
    session = AsyncMock()
    session.add = Mock()
    return session


@pytest.fixture
def mock_probe():
    return Mock()


@pytest.fixture
def repository(mock_session, mock_probe):
    return IdentityRepository(session=mock_session, probe=mock_probe)


def _identity() -> Identity:
    return Identity.create_with_credential(
        display_name=DisplayName("Ana Pérez"),
        email=Email("ana@uni.edu"),
        plaintext_password="Secr3t!pw",
        classification=classify_affiliation(AffiliationCode("TUTOR")),
    )


def _model(**overrides) -> IdentityModel:
    now = datetime.now(UTC)
    values = dict(
        id=IdentityId.generate().value,
        display_name="Ana Pérez",
        email="ana@uni.edu",
        credential_digest="$2b$04$abcdefghijklmnopqrstuu",
        role="primary",
        origin="credential",
        affiliation_code="TUTOR",
        external_identity_id=None,
        deactivated_at=None,
        created_at=now,
        updated_at=now,
    )
    values.update(overrides)
    return IdentityModel(**values)


def _integrity_error(constraint: str) -> IntegrityError:
    return IntegrityError(
        "INSERT INTO identities ...",
        params={},
        orig=Exception(f'duplicate key value violates unique constraint "{constraint}"'),
    )


def _returning(mock_session, model):
    result = MagicMock()
    result.scalar_one_or_none.return_value = model
    mock_session.execute.return_value = result


class TestProtocolCompliance:
    def test_implements_protocol(self, repository):
        assert isinstance(repository, IIdentityRepository)


class TestFind:
    @pytest.mark.asyncio
    async def test_returns_none_when_not_found(self, repository, mock_session, mock_probe):
        _returning(mock_session, None)

        result = await repository.find_by_id(IdentityId.generate())

        assert result is None
        mock_probe.identity_not_found.assert_called_once_with("id")

    @pytest.mark.asyncio
    async def test_reconstitutes_aggregate_without_events(self, repository, mock_session):
        model = _model(external_identity_id="google-1")
        _returning(mock_session, model)

        identity = await repository.find_by_email(Email("ana@uni.edu"))

        assert identity.id.value == model.id
        assert identity.role == Role.PRIMARY
        assert identity.origin == AuthOrigin.CREDENTIAL
        assert identity.affiliation_code == AffiliationCode("TUTOR")
        assert identity.external_identity_id == ExternalIdentityId("google-1")
        assert identity.drain_events() == []

    @pytest.mark.asyncio
    async def test_find_by_email_prefers_active_rows(self, repository, mock_session):
        _returning(mock_session, None)

        await repository.find_by_email(Email("ana@uni.edu"))

        stmt = mock_session.execute.call_args[0][0]
        compiled = str(stmt)
        assert "NULLS FIRST" in compiled
        assert "LIMIT" in compiled

    @pytest.mark.asyncio
    async def test_find_by_external_id(self, repository, mock_session, mock_probe):
        model = _model(origin="external", external_identity_id="google-1")
        _returning(mock_session, model)

        identity = await repository.find_by_external_id(ExternalIdentityId("google-1"))

        assert identity.origin == AuthOrigin.EXTERNAL
        mock_probe.identity_retrieved.assert_called_once_with(model.id, "external_identity_id")


class TestSave:
    @pytest.mark.asyncio
    async def test_adds_model_and_flushes(self, repository, mock_session, mock_probe):
        identity = _identity()

        await repository.save(identity)

        mock_session.add.assert_called_once()
        added = mock_session.add.call_args[0][0]
        assert isinstance(added, IdentityModel)
        assert added.id == identity.id.value
        assert added.email == "ana@uni.edu"
        assert added.role == "primary"
        assert added.credential_digest == identity.credential_digest.value
        assert added.created_at == identity.created_at
        mock_session.flush.assert_awaited_once()
        mock_probe.identity_saved.assert_called_once_with(identity.id.value)

    @pytest.mark.asyncio
    async def test_active_email_violation_is_duplicate(self, repository, mock_session):
        mock_session.flush.side_effect = _integrity_error("uq_identities_active_email")

        with pytest.raises(DuplicateIdentityError) as exc_info:
            await repository.save(_identity())

        assert not isinstance(exc_info.value, ExternalIdentityAlreadyLinkedError)

    @pytest.mark.asyncio
    async def test_external_identity_violation_is_already_linked(
        self, repository, mock_session, mock_probe
    ):
        mock_session.flush.side_effect = _integrity_error("uq_identities_external_identity_id")

        with pytest.raises(ExternalIdentityAlreadyLinkedError):
            await repository.save(_identity())

        assert mock_probe.duplicate_identity.call_args[0][1] == (
            "uq_identities_external_identity_id"
        )

    @pytest.mark.asyncio
    async def test_unrelated_integrity_error_propagates(self, repository, mock_session):
        mock_session.flush.side_effect = _integrity_error("some_other_check")

        with pytest.raises(IntegrityError):
            await repository.save(_identity())


class TestUpdate:
    @pytest.mark.asyncio
    async def test_applies_changes_to_loaded_model(self, repository, mock_session):
        identity = _identity()
        model = _model(id=identity.id.value, email="old@uni.edu")
        mock_session.get.return_value = model
        identity.link_external_identity(ExternalIdentityId("google-1"))
        identity.deactivate()

        await repository.update(identity)

        assert model.email == "ana@uni.edu"
        assert model.external_identity_id == "google-1"
        assert model.deactivated_at == identity.deactivated_at
        mock_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_row_raises_not_found(self, repository, mock_session):
        mock_session.get.return_value = None

        with pytest.raises(IdentityNotFoundError):
            await repository.update(_identity())

    @pytest.mark.asyncio
    async def test_reactivation_collision_is_duplicate(self, repository, mock_session):
        identity = _identity()
        mock_session.get.return_value = _model(id=identity.id.value)
        mock_session.flush.side_effect = _integrity_error("uq_identities_active_email")

        with pytest.raises(DuplicateIdentityError):
            await repository.update(identity)
