"""Unit tests for RoleClassifier and its affiliation strategies."""

from unittest.mock import AsyncMock, Mock

import pytest

from identity.application.role_classifier import (
    RegistryBackedStrategy,
    RoleClassifier,
    SentinelCodeStrategy,
)
from identity.domain.aggregates import AffiliationCodeEntry
from identity.domain.classification import NO_INSTITUTION
from identity.domain.value_objects import AffiliationCode, Email, IdentityId, Role
from identity.ports.exceptions import AffiliationCodeAlreadyUsedError


@pytest.fixture
def mock_probe():
    return Mock()


def _entry(code: str, used: bool = False) -> AffiliationCodeEntry:
    entry = AffiliationCodeEntry.create(
        code=AffiliationCode(code), owner_email=Email("dean@uni.edu")
    )
    if used:
        entry.mark_used(IdentityId.generate())
    return entry


class TestSentinelClassification:
    @pytest.mark.asyncio
    async def test_sentinel_code_is_primary(self, classifier):
        result = await classifier.classify_raw("tutor")

        assert result.role == Role.PRIMARY
        assert result.affiliation_code == AffiliationCode("TUTOR")

    @pytest.mark.asyncio
    async def test_other_valid_code_is_secondary(self, classifier):
        result = await classifier.classify_raw("UNI01")

        assert result.role == Role.SECONDARY
        assert result.affiliation_code == AffiliationCode("UNI01")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", [None, "", "   "])
    async def test_absent_code_is_secondary(self, classifier, raw):
        result = await classifier.classify_raw(raw)

        assert result.role == Role.SECONDARY
        assert result.affiliation_code is None
        assert result.descriptor.institution_name == NO_INSTITUTION

    @pytest.mark.asyncio
    async def test_malformed_code_falls_back_to_secondary(self, mock_probe):
        classifier = RoleClassifier(probe=mock_probe)

        result = await classifier.classify_raw("not a code!")

        assert result.role == Role.SECONDARY
        assert result.affiliation_code is None
        mock_probe.affiliation_fallback.assert_called_once()
        assert mock_probe.affiliation_fallback.call_args.kwargs["raw_code"] == "not a code!"

    @pytest.mark.asyncio
    async def test_configured_primary_codes(self):
        classifier = RoleClassifier(strategy=SentinelCodeStrategy(["MENTOR"]))

        assert (await classifier.classify_raw("mentor")).role == Role.PRIMARY
        assert (await classifier.classify_raw("TUTOR")).role == Role.SECONDARY

    @pytest.mark.asyncio
    async def test_record_use_is_a_no_op_for_sentinel_codes(self, classifier):
        classification = await classifier.classify_raw("TUTOR")

        await classifier.record_use(classification, IdentityId.generate())


class TestRegistryBackedClassification:
    @pytest.mark.asyncio
    async def test_unused_registry_code_is_primary(self, mock_probe):
        repository = AsyncMock()
        repository.find_by_code.return_value = _entry("INST2024")
        classifier = RoleClassifier(strategy=RegistryBackedStrategy(repository, probe=mock_probe))

        result = await classifier.classify_raw("inst2024")

        assert result.role == Role.PRIMARY
        repository.find_by_code.assert_awaited_once_with(AffiliationCode("INST2024"))

    @pytest.mark.asyncio
    async def test_used_registry_code_is_secondary(self, mock_probe):
        repository = AsyncMock()
        repository.find_by_code.return_value = _entry("INST2024", used=True)
        classifier = RoleClassifier(strategy=RegistryBackedStrategy(repository, probe=mock_probe))

        result = await classifier.classify_raw("INST2024")

        assert result.role == Role.SECONDARY
        assert result.affiliation_code == AffiliationCode("INST2024")

    @pytest.mark.asyncio
    async def test_unknown_code_falls_back_to_sentinel(self, mock_probe):
        repository = AsyncMock()
        repository.find_by_code.return_value = None
        classifier = RoleClassifier(strategy=RegistryBackedStrategy(repository, probe=mock_probe))

        assert (await classifier.classify_raw("TUTOR")).role == Role.PRIMARY
        assert (await classifier.classify_raw("UNI01")).role == Role.SECONDARY

    @pytest.mark.asyncio
    async def test_registry_failure_falls_back_and_is_recorded(self, mock_probe):
        repository = AsyncMock()
        repository.find_by_code.side_effect = RuntimeError("connection refused")
        classifier = RoleClassifier(strategy=RegistryBackedStrategy(repository, probe=mock_probe))

        result = await classifier.classify_raw("TUTOR")

        assert result.role == Role.PRIMARY
        mock_probe.registry_lookup_failed.assert_called_once_with(
            code="TUTOR", error="connection refused"
        )

    @pytest.mark.asyncio
    async def test_record_use_marks_entry_used(self, mock_probe):
        entry = _entry("INST2024")
        repository = AsyncMock()
        repository.find_by_code.return_value = entry
        classifier = RoleClassifier(strategy=RegistryBackedStrategy(repository, probe=mock_probe))
        classification = await classifier.classify_raw("INST2024")
        identity_id = IdentityId.generate()

        await classifier.record_use(classification, identity_id)

        assert entry.used_by == identity_id
        repository.save.assert_awaited_once_with(entry)
        mock_probe.affiliation_code_used.assert_called_once()

    @pytest.mark.asyncio
    async def test_record_use_skips_secondary_classifications(self, mock_probe):
        repository = AsyncMock()
        repository.find_by_code.return_value = None
        classifier = RoleClassifier(strategy=RegistryBackedStrategy(repository, probe=mock_probe))
        classification = await classifier.classify_raw("UNI01")
        repository.find_by_code.reset_mock()

        await classifier.record_use(classification, IdentityId.generate())

        repository.find_by_code.assert_not_awaited()
        repository.save.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_record_use_reads_entry_under_lock(self, mock_probe):
        repository = AsyncMock()
        repository.find_by_code.return_value = _entry("INST2024")
        strategy = RegistryBackedStrategy(repository, probe=mock_probe)

        await strategy.record_use(AffiliationCode("INST2024"), IdentityId.generate())

        repository.find_by_code.assert_awaited_once_with(
            AffiliationCode("INST2024"), for_update=True
        )

    @pytest.mark.asyncio
    async def test_record_use_of_consumed_code_rejects_registration(self, mock_probe):
        repository = AsyncMock()
        repository.find_by_code.side_effect = [_entry("INST2024"), _entry("INST2024", used=True)]
        classifier = RoleClassifier(strategy=RegistryBackedStrategy(repository, probe=mock_probe))
        classification = await classifier.classify_raw("INST2024")
        assert classification.role == Role.PRIMARY

        with pytest.raises(AffiliationCodeAlreadyUsedError):
            await classifier.record_use(classification, IdentityId.generate())

        repository.save.assert_not_awaited()
        mock_probe.affiliation_code_unavailable.assert_called_once()

    @pytest.mark.asyncio
    async def test_consumed_registry_entry_for_sentinel_code_stays_primary(self, mock_probe):
        repository = AsyncMock()
        repository.find_by_code.return_value = _entry("TUTOR", used=True)
        classifier = RoleClassifier(strategy=RegistryBackedStrategy(repository, probe=mock_probe))
        classification = await classifier.classify_raw("TUTOR")

        await classifier.record_use(classification, IdentityId.generate())

        assert classification.role == Role.PRIMARY
        repository.save.assert_not_awaited()
        mock_probe.affiliation_code_unavailable.assert_not_called()
