"""Unit tests for ResendEmailNotifier using httpx's mock transport."""

import json
from unittest.mock import Mock

import httpx
import pytest

from identity.domain.value_objects import NotificationKind
from identity.infrastructure.email_notifier import (
    DELIVERY_DISABLED_ERROR,
    ResendEmailNotifier,
)

API_URL = "https://mail.example.test/"
CONTEXT = {
    "display_name": "Ana Pérez",
    "email": "ana@uni.edu",
    "device": "Firefox on macOS",
    "client_ip": "10.0.0.7",
}


@pytest.fixture
def mock_probe():
    return Mock()


def _notifier(handler, mock_probe, api_key="re_test_key") -> ResendEmailNotifier:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ResendEmailNotifier(
        client=client,
        api_url=API_URL,
        api_key=api_key,
        sender="Identity <no-reply@example.test>",
        app_name="Campus",
        timeout_seconds=2.0,
        probe=mock_probe,
    )


class TestSuccessfulDelivery:
    @pytest.mark.asyncio
    async def test_posts_rendered_email(self, mock_probe):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"id": "msg_123"})

        notifier = _notifier(handler, mock_probe)

        result = await notifier.notify(NotificationKind.LOGIN_ALERT, "ana@uni.edu", CONTEXT)

        assert result.success is True
        assert result
        [request] = requests
        assert str(request.url) == "https://mail.example.test/emails"
        assert request.headers["Authorization"] == "Bearer re_test_key"
        payload = json.loads(request.content)
        assert payload["to"] == ["ana@uni.edu"]
        assert payload["from"] == "Identity <no-reply@example.test>"
        assert payload["subject"] == "New sign-in to Campus"
        assert "Firefox on macOS" in payload["html"]
        mock_probe.email_delivered.assert_called_once_with("login_alert", "msg_123")


class TestFailedDelivery:
    @pytest.mark.asyncio
    async def test_provider_rejection_is_reported(self, mock_probe):
        def handler(request):
            return httpx.Response(422, json={"message": "invalid recipient"})

        result = await _notifier(handler, mock_probe).notify(
            NotificationKind.REGISTRATION_WELCOME, "ana@uni.edu", CONTEXT
        )

        assert result.success is False
        assert result.error == "Provider returned HTTP 422"
        assert mock_probe.email_rejected.call_args[0][1] == 422

    @pytest.mark.asyncio
    async def test_transport_error_is_reported_not_raised(self, mock_probe):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = await _notifier(handler, mock_probe).notify(
            NotificationKind.LOGIN_ALERT, "ana@uni.edu", CONTEXT
        )

        assert result.success is False
        assert result.error.startswith("ConnectError")
        mock_probe.email_delivery_failed.assert_called_once()

    @pytest.mark.asyncio
    async def test_missing_api_key_disables_delivery(self, mock_probe):
        handler = Mock()

        result = await _notifier(handler, mock_probe, api_key="").notify(
            NotificationKind.LOGIN_ALERT, "ana@uni.edu", CONTEXT
        )

        assert result.success is False
        assert result.error == DELIVERY_DISABLED_ERROR
        handler.assert_not_called()
        mock_probe.email_delivery_disabled.assert_called_once_with("login_alert")

    @pytest.mark.asyncio
    async def test_unknown_kind_is_reported(self, mock_probe):
        handler = Mock()

        result = await _notifier(handler, mock_probe).notify(
            "password_reset", "ana@uni.edu", CONTEXT
        )

        assert result.success is False
        handler.assert_not_called()
        assert "password_reset" in result.error
        mock_probe.email_delivery_failed.assert_called_once_with(
            "password_reset", result.error
        )

    @pytest.mark.asyncio
    async def test_unknown_kind_with_delivery_disabled_is_reported(self, mock_probe):
        handler = Mock()

        result = await _notifier(handler, mock_probe, api_key="").notify(
            "password_reset", "ana@uni.edu", CONTEXT
        )

        assert result.success is False
        mock_probe.email_delivery_disabled.assert_called_once_with("password_reset")
