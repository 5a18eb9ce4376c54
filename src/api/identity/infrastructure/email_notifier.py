"""INotifier implementation backed by the Resend HTTP API."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from identity.domain.value_objects import NotificationKind
from identity.infrastructure.notification_templates import render
from identity.infrastructure.observability import (
    DefaultEmailNotifierProbe,
    EmailNotifierProbe,
)
from identity.ports.gateways import DeliveryResult, INotifier

DELIVERY_DISABLED_ERROR = "Email delivery is not configured"


class ResendEmailNotifier(INotifier):
    """Sends notification emails through the provider's REST API.

    Every failure, including transport errors and provider rejections, is
    returned as an unsuccessful DeliveryResult. The HTTP client is owned by
    the caller so connections are pooled across deliveries.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_url: str,
        api_key: str,
        sender: str,
        app_name: str = "Identity API",
        timeout_seconds: float = 10.0,
        probe: EmailNotifierProbe | None = None,
    ) -> None:
        self._client = client
        self._endpoint = f"{api_url.rstrip('/')}/emails"
        self._api_key = api_key
        self._sender = sender
        self._app_name = app_name
        self._timeout = timeout_seconds
        self._probe = probe or DefaultEmailNotifierProbe()

    async def notify(
        self,
        kind: NotificationKind,
        recipient: str,
        context: Mapping[str, Any],
    ) -> DeliveryResult:
        # Callers outside the enum still get a DeliveryResult, never an error
        label = kind.value if isinstance(kind, NotificationKind) else str(kind)

        if not self._api_key:
            self._probe.email_delivery_disabled(label)
            return DeliveryResult(success=False, error=DELIVERY_DISABLED_ERROR)

        try:
            email = render(kind, context, self._app_name)
        except ValueError as e:
            self._probe.email_delivery_failed(label, str(e))
            return DeliveryResult(success=False, error=str(e))

        try:
            response = await self._client.post(
                self._endpoint,
                headers={"Authorization": f"Bearer {self._api_key}"},
                json={
                    "from": self._sender,
                    "to": [recipient],
                    "subject": email.subject,
                    "html": email.html,
                },
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            error = f"{type(e).__name__}: {e}"
            self._probe.email_delivery_failed(label, error)
            return DeliveryResult(success=False, error=error)

        if response.is_success:
            self._probe.email_delivered(label, _message_id(response))
            return DeliveryResult(success=True)

        error = f"Provider returned HTTP {response.status_code}"
        self._probe.email_rejected(label, response.status_code, response.text)
        return DeliveryResult(success=False, error=error)


def _message_id(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict):
        return payload.get("id")
    return None
