"""Unit tests for the Identity aggregate."""

import pytest

from identity.domain.aggregates import Identity
from identity.domain.classification import (
    NO_INSTITUTION,
    PRIMARY_INSTITUTION,
    classify_affiliation,
)
from identity.domain.events import IdentityAuthenticated, IdentityRegistered
from identity.domain.value_objects import (
    AffiliationCode,
    AuthOrigin,
    DisplayName,
    Email,
    ExternalIdentityId,
    RequestMetadata,
    Role,
)
from identity.ports.exceptions import (
    AccountDeactivatedError,
    ExternalIdentityAlreadyLinkedError,
    IdentityAlreadyActiveError,
    IdentityAlreadyDeactivatedError,
    ValidationFailure,
)

PASSWORD = "Secr3t!pw"
METADATA = RequestMetadata(client_ip="10.0.0.7", user_agent="Mozilla/5.0 (X11; Linux)")


def _local_identity(code: str | None = None) -> Identity:
    return Identity.create_with_credential(
        display_name=DisplayName("ana pérez"),
        email=Email("ana@uni.edu"),
        plaintext_password=PASSWORD,
        classification=classify_affiliation(AffiliationCode(code) if code else None),
        metadata=METADATA,
    )


def _federated_identity() -> Identity:
    return Identity.create_with_external_identity(
        display_name=DisplayName("Luis Gómez"),
        email=Email("luis@uni.edu"),
        external_identity_id=ExternalIdentityId("google-123"),
        classification=classify_affiliation(None),
        metadata=METADATA,
    )


class TestCreateWithCredential:
    def test_creates_secondary_identity_without_code(self):
        identity = _local_identity()

        assert identity.role == Role.SECONDARY
        assert identity.origin == AuthOrigin.CREDENTIAL
        assert identity.affiliation_code is None
        assert identity.external_identity_id is None
        assert identity.active
        assert identity.affiliation.institution_name == NO_INSTITUTION

    def test_primary_code_grants_primary_role(self):
        identity = _local_identity("tutor")

        assert identity.role == Role.PRIMARY
        assert identity.affiliation_code == AffiliationCode("TUTOR")
        assert identity.affiliation.institution_name == PRIMARY_INSTITUTION

    def test_hashes_password(self):
        identity = _local_identity()

        assert identity.credential_digest.value != PASSWORD
        assert identity.verify_credential(PASSWORD)

    def test_records_registered_event_with_audit_context(self):
        identity = _local_identity()

        events = identity.drain_events()
        assert len(events) == 1
        event = events[0]
        assert isinstance(event, IdentityRegistered)
        assert event.aggregate_id == identity.id.value
        assert event.email == "ana@uni.edu"
        assert event.display_name == "Ana Pérez"
        assert event.origin == "credential"
        assert event.role == "secondary"
        assert event.client_ip == "10.0.0.7"
        assert event.event_type == "IdentityRegistered"

    def test_weak_password_is_rejected(self):
        with pytest.raises(ValidationFailure):
            Identity.create_with_credential(
                display_name=DisplayName("Ana"),
                email=Email("ana@uni.edu"),
                plaintext_password="weak",
                classification=classify_affiliation(None),
            )


class TestCreateWithExternalIdentity:
    def test_uses_unguessable_placeholder_digest(self):
        identity = _federated_identity()

        assert identity.origin == AuthOrigin.EXTERNAL
        assert identity.external_identity_id == ExternalIdentityId("google-123")
        assert identity.credential_digest.value
        assert not identity.verify_credential("")

    def test_records_registered_event_with_external_origin(self):
        events = _federated_identity().drain_events()

        assert [type(e) for e in events] == [IdentityRegistered]
        assert events[0].origin == "external"


class TestAuthentication:
    def test_correct_password_records_authenticated_event(self):
        identity = _local_identity()
        identity.drain_events()

        assert identity.authenticate_with_credential(PASSWORD, METADATA) is True

        events = identity.drain_events()
        assert len(events) == 1
        assert isinstance(events[0], IdentityAuthenticated)
        assert events[0].origin == "credential"

    def test_wrong_password_records_nothing(self):
        identity = _local_identity()
        identity.drain_events()

        assert identity.authenticate_with_credential("Wr0ng!pw", METADATA) is False
        assert identity.drain_events() == []

    def test_deactivated_identity_cannot_authenticate(self):
        identity = _local_identity()
        identity.deactivate()
        identity.drain_events()

        with pytest.raises(AccountDeactivatedError):
            identity.authenticate_with_credential(PASSWORD, METADATA)
        with pytest.raises(AccountDeactivatedError):
            identity.authenticate_with_external_identity(METADATA)
        assert identity.drain_events() == []

    def test_external_authentication_records_event(self):
        identity = _federated_identity()
        identity.drain_events()

        identity.authenticate_with_external_identity(METADATA)

        events = identity.drain_events()
        assert isinstance(events[0], IdentityAuthenticated)
        assert events[0].origin == "external"

    def test_drain_events_clears_pending_events(self):
        identity = _local_identity()

        assert len(identity.drain_events()) == 1
        assert identity.drain_events() == []


class TestLinkExternalIdentity:
    def test_links_id_and_keeps_credential(self):
        identity = _local_identity()
        original_digest = identity.credential_digest

        identity.link_external_identity(ExternalIdentityId("google-999"))

        assert identity.external_identity_id == ExternalIdentityId("google-999")
        assert identity.credential_digest == original_digest
        assert identity.origin == AuthOrigin.CREDENTIAL

    def test_linking_same_id_twice_is_a_no_op(self):
        identity = _federated_identity()
        updated_at = identity.updated_at

        identity.link_external_identity(ExternalIdentityId("google-123"))

        assert identity.updated_at == updated_at

    def test_linking_a_different_id_is_rejected(self):
        identity = _federated_identity()

        with pytest.raises(ExternalIdentityAlreadyLinkedError):
            identity.link_external_identity(ExternalIdentityId("google-456"))

    def test_deactivated_identity_cannot_be_linked(self):
        identity = _local_identity()
        identity.deactivate()

        with pytest.raises(AccountDeactivatedError):
            identity.link_external_identity(ExternalIdentityId("google-999"))


class TestMutations:
    def test_update_affiliation_replaces_code_and_role_together(self):
        identity = _local_identity()

        identity.update_affiliation(classify_affiliation(AffiliationCode("TUTOR")))
        assert identity.role == Role.PRIMARY
        assert identity.affiliation_code == AffiliationCode("TUTOR")

        identity.update_affiliation(classify_affiliation(AffiliationCode("UNI01")))
        assert identity.role == Role.SECONDARY
        assert identity.affiliation_code == AffiliationCode("UNI01")

    def test_change_credential_replaces_digest(self):
        identity = _local_identity()

        identity.change_credential("N3w!password")

        assert identity.verify_credential("N3w!password")
        assert not identity.verify_credential(PASSWORD)

    def test_change_email(self):
        identity = _local_identity()

        identity.change_email(Email("Ana.New@Uni.edu"))

        assert identity.email.value == "ana.new@uni.edu"

    @pytest.mark.parametrize(
        "mutation",
        [
            lambda i: i.update_affiliation(classify_affiliation(None)),
            lambda i: i.change_credential("N3w!password"),
            lambda i: i.change_email(Email("other@uni.edu")),
        ],
    )
    def test_mutations_are_rejected_when_deactivated(self, mutation):
        identity = _local_identity()
        identity.deactivate()

        with pytest.raises(AccountDeactivatedError):
            mutation(identity)


class TestDeactivation:
    def test_deactivate_and_reactivate(self):
        identity = _local_identity()

        identity.deactivate()
        assert not identity.active
        assert identity.deactivated_at is not None

        identity.reactivate()
        assert identity.active
        assert identity.deactivated_at is None

    def test_deactivating_twice_is_rejected(self):
        identity = _local_identity()
        identity.deactivate()

        with pytest.raises(IdentityAlreadyDeactivatedError):
            identity.deactivate()

    def test_reactivating_active_identity_is_rejected(self):
        with pytest.raises(IdentityAlreadyActiveError):
            _local_identity().reactivate()
