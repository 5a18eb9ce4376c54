"""Unit tests for Identity HTTP routes.

Services are mocked. Bearer session tokens are issued and verified by a
real SessionTokenIssuer so account endpoint authentication is exercised.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from identity.application.services import AccountService, AuthenticationService
from identity.application.value_objects import AuthenticationResult
from identity.dependencies.account import get_account_service
from identity.dependencies.authentication import get_authentication_service
from identity.dependencies.runtime import get_identity_runtime
from identity.domain.aggregates import Identity
from identity.domain.classification import classify_affiliation
from identity.domain.value_objects import (
    AffiliationCode,
    DisplayName,
    Email,
    IdentityId,
    Role,
)
from identity.ports.exceptions import (
    AccountDeactivatedError,
    DuplicateIdentityError,
    IdentityAlreadyActiveError,
    InternalFailure,
    InvalidCredentialsError,
    TokenMismatchError,
    ValidationFailure,
)
from identity.presentation import router


@pytest.fixture
def identity() -> Identity:
    identity = Identity.create_with_credential(
        display_name=DisplayName("Ana Pérez"),
        email=Email("ana@uni.edu"),
        plaintext_password="Secr3t!pw",
        classification=classify_affiliation(AffiliationCode("TUTOR")),
    )
    identity.drain_events()
    return identity


@pytest.fixture
def auth_service():
    return AsyncMock(spec=AuthenticationService)


@pytest.fixture
def account_service():
    return AsyncMock(spec=AccountService)


@pytest.fixture
def runtime(token_issuer):
    return SimpleNamespace(token_issuer=token_issuer)


@pytest.fixture
def app(auth_service, account_service, runtime):
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[get_authentication_service] = lambda: auth_service
    app.dependency_overrides[get_account_service] = lambda: account_service
    app.dependency_overrides[get_identity_runtime] = lambda: runtime
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def bearer(identity, token_issuer) -> dict[str, str]:
    return {"Authorization": f"Bearer {token_issuer.issue(identity)}"}


def _result(identity: Identity, is_new: bool) -> AuthenticationResult:
    return AuthenticationResult.for_identity(
        identity, session_token="session-token", is_new_account=is_new
    )


class TestCredentialEndpoint:
    def test_registration_returns_201(self, client, auth_service, identity):
        auth_service.authenticate_with_credential.return_value = _result(identity, True)

        response = client.post(
            "/auth/validate",
            json={"email": "ana@uni.edu", "password": "Secr3t!pw", "affiliation_code": "tutor"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["is_new_account"] is True
        assert body["account_id"] == identity.id.value
        assert body["role"] == "primary"
        assert body["session_token"] == "session-token"
        assert body["token_type"] == "bearer"
        assert body["expires_in"] == 24 * 3600
        assert body["affiliation"]["institution_name"] == "Main institution"
        request = auth_service.authenticate_with_credential.await_args.args[0]
        assert request.affiliation_code == "tutor"

    def test_login_returns_200(self, client, auth_service, identity):
        auth_service.authenticate_with_credential.return_value = _result(identity, False)

        response = client.post(
            "/auth/validate", json={"email": "ana@uni.edu", "password": "Secr3t!pw"}
        )

        assert response.status_code == 200
        assert response.json()["is_new_account"] is False

    def test_request_metadata_prefers_forwarded_for(self, client, auth_service, identity):
        auth_service.authenticate_with_credential.return_value = _result(identity, False)

        client.post(
            "/auth/validate",
            json={"email": "ana@uni.edu", "password": "Secr3t!pw"},
            headers={
                "X-Forwarded-For": "203.0.113.9, 10.0.0.1",
                "User-Agent": "Mozilla/5.0 (X11; Linux) Firefox/121.0",
            },
        )

        metadata = auth_service.authenticate_with_credential.await_args.args[1]
        assert metadata.client_ip == "203.0.113.9"
        assert metadata.browser == "Firefox"

    @pytest.mark.parametrize(
        "error,status_code",
        [
            (ValidationFailure("Invalid email address"), 400),
            (InvalidCredentialsError("Invalid email or password"), 401),
            (AccountDeactivatedError("deactivated"), 403),
            (DuplicateIdentityError("An account with this email already exists"), 409),
            (RuntimeError("database exploded"), 500),
        ],
    )
    def test_errors_map_to_status_codes(self, client, auth_service, error, status_code):
        auth_service.authenticate_with_credential.side_effect = error

        response = client.post(
            "/auth/validate", json={"email": "ana@uni.edu", "password": "Secr3t!pw"}
        )

        assert response.status_code == status_code

    def test_unexpected_error_does_not_leak_details(self, client, auth_service):
        auth_service.authenticate_with_credential.side_effect = RuntimeError("password=hunter2")

        response = client.post(
            "/auth/validate", json={"email": "ana@uni.edu", "password": "Secr3t!pw"}
        )

        assert response.json()["detail"] == "Failed to authenticate"

    def test_invalid_credentials_advertise_bearer_scheme(self, client, auth_service):
        auth_service.authenticate_with_credential.side_effect = InvalidCredentialsError("no")

        response = client.post(
            "/auth/validate", json={"email": "ana@uni.edu", "password": "Wr0ng!pw"}
        )

        assert response.headers["www-authenticate"] == "Bearer"


class TestFederatedEndpoint:
    def test_registration_returns_201(self, client, auth_service, identity):
        auth_service.authenticate_with_external_token.return_value = _result(identity, True)

        response = client.post(
            "/auth/federated", json={"email": "ana@uni.edu", "token": "id-token"}
        )

        assert response.status_code == 201
        request = auth_service.authenticate_with_external_token.await_args.args[0]
        assert request.token == "id-token"

    def test_token_mismatch_is_401(self, client, auth_service):
        auth_service.authenticate_with_external_token.side_effect = TokenMismatchError("no")

        response = client.post(
            "/auth/federated", json={"email": "ana@uni.edu", "token": "id-token"}
        )

        assert response.status_code == 401

    def test_verification_timeout_is_500_with_reason(self, client, auth_service):
        auth_service.authenticate_with_external_token.side_effect = InternalFailure(
            "Federated token verification timed out"
        )

        response = client.post(
            "/auth/federated", json={"email": "ana@uni.edu", "token": "id-token"}
        )

        assert response.status_code == 500
        assert "timed out" in response.json()["detail"]


class TestAccountEndpoints:
    def test_missing_token_is_401(self, client, identity):
        response = client.get(f"/auth/profile/{identity.id.value}")

        assert response.status_code == 401

    def test_invalid_token_is_401(self, client, identity):
        response = client.get(
            f"/auth/profile/{identity.id.value}",
            headers={"Authorization": "Bearer not-a-token"},
        )

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_profile_of_own_account(self, client, account_service, identity, bearer):
        account_service.get_profile.return_value = identity

        response = client.get(f"/auth/profile/{identity.id.value}", headers=bearer)

        assert response.status_code == 200
        body = response.json()
        assert body["email"] == "ana@uni.edu"
        assert body["role"] == "primary"
        assert body["active"] is True
        assert body["has_external_identity"] is False
        assert "credential_digest" not in body
        account_service.get_profile.assert_awaited_once_with(identity.id)

    def test_profile_of_deactivated_account_is_forbidden(
        self, client, account_service, identity, bearer
    ):
        account_service.get_profile.side_effect = AccountDeactivatedError("deactivated")

        response = client.get(f"/auth/profile/{identity.id.value}", headers=bearer)

        assert response.status_code == 403

    def test_other_account_is_forbidden(self, client, account_service, bearer):
        response = client.get(f"/auth/profile/{IdentityId.generate().value}", headers=bearer)

        assert response.status_code == 403
        account_service.get_profile.assert_not_awaited()

    def test_malformed_account_id_is_400(self, client, bearer):
        response = client.get("/auth/profile/not-a-ulid", headers=bearer)

        assert response.status_code == 400

    def test_change_credential(self, client, account_service, identity, bearer):
        account_service.change_credential.return_value = identity

        response = client.post(
            f"/auth/accounts/{identity.id.value}/credential",
            json={"current_password": "Secr3t!pw", "new_password": "N3w!password"},
            headers=bearer,
        )

        assert response.status_code == 200
        account_service.change_credential.assert_awaited_once_with(
            identity.id, "Secr3t!pw", "N3w!password"
        )

    def test_change_email(self, client, account_service, identity, bearer):
        account_service.change_email.return_value = identity

        response = client.put(
            f"/auth/accounts/{identity.id.value}/email",
            json={"email": "new@uni.edu"},
            headers=bearer,
        )

        assert response.status_code == 200
        account_service.change_email.assert_awaited_once_with(identity.id, "new@uni.edu")

    def test_update_affiliation_with_malformed_code_is_400(
        self, client, account_service, identity, bearer
    ):
        account_service.update_affiliation.side_effect = ValidationFailure("Invalid code")

        response = client.put(
            f"/auth/accounts/{identity.id.value}/affiliation",
            json={"affiliation_code": "bad code!"},
            headers=bearer,
        )

        assert response.status_code == 400

    def test_deactivate(self, client, account_service, identity, bearer):
        identity.deactivate()
        account_service.deactivate.return_value = identity

        response = client.post(
            f"/auth/accounts/{identity.id.value}/deactivate", headers=bearer
        )

        assert response.status_code == 200
        assert response.json()["active"] is False
        assert response.json()["deactivated_at"] is not None

    def test_reactivating_active_account_is_409(
        self, client, account_service, identity, bearer
    ):
        account_service.reactivate.side_effect = IdentityAlreadyActiveError("active")

        response = client.post(
            f"/auth/accounts/{identity.id.value}/reactivate", headers=bearer
        )

        assert response.status_code == 409

    def test_role_in_response_matches_domain(self, client, account_service, identity, bearer):
        account_service.get_profile.return_value = identity

        body = client.get(f"/auth/profile/{identity.id.value}", headers=bearer).json()

        assert Role(body["role"]) == identity.role
