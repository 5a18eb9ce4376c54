"""Domain event handlers that send transactional notifications.

Handlers run on the dispatcher's workers, detached from the request that
produced the event. Every delivery attempt is bounded by a timeout and its
outcome is published as a NotificationDispatched event; a failed delivery
is never raised.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from identity.application.event_dispatcher import (
    DomainEventDispatcher,
    DomainEventPublisher,
)
from identity.application.observability import (
    DefaultNotificationProbe,
    NotificationProbe,
)
from identity.domain.events import (
    IdentityAuthenticated,
    IdentityRegistered,
    NotificationDispatched,
)
from identity.domain.value_objects import NotificationKind, RequestMetadata, Role
from identity.ports.gateways import DeliveryResult, INotifier


class NotificationHandlers:
    """Reacts to identity events by notifying account holders and staff."""

    def __init__(
        self,
        notifier: INotifier,
        publisher: DomainEventPublisher,
        staff_recipient: str | None = None,
        timeout_seconds: float = 10.0,
        probe: NotificationProbe | None = None,
    ) -> None:
        """Initialize the handlers.

        Args:
            notifier: Delivery channel for notifications
            publisher: Where NotificationDispatched outcomes are published
            staff_recipient: Address alerted when a secondary account
                registers; None disables staff alerts
            timeout_seconds: Time bound applied to each delivery
            probe: Optional domain probe for observability
        """
        self._notifier = notifier
        self._publisher = publisher
        self._staff_recipient = staff_recipient
        self._timeout = timeout_seconds
        self._probe = probe or DefaultNotificationProbe()

    def register(self, dispatcher: DomainEventDispatcher) -> None:
        """Subscribe all handlers to the dispatcher."""
        dispatcher.subscribe(IdentityRegistered, self.on_identity_registered)
        dispatcher.subscribe(IdentityAuthenticated, self.on_identity_authenticated)
        dispatcher.subscribe(NotificationDispatched, self.on_notification_dispatched)

    async def on_identity_registered(self, event: IdentityRegistered) -> None:
        """Welcome the new account holder and alert staff about secondary accounts."""
        context = _context_from(
            event,
            occurred_at=event.occurred_at,
            institution_name=event.institution_name,
        )
        await self._send(
            NotificationKind.REGISTRATION_WELCOME,
            event.email,
            context,
            event.aggregate_id,
        )
        if event.role == Role.SECONDARY.value and self._staff_recipient:
            await self._send(
                NotificationKind.STAFF_REGISTRATION_ALERT,
                self._staff_recipient,
                context,
                event.aggregate_id,
            )

    async def on_identity_authenticated(self, event: IdentityAuthenticated) -> None:
        """Alert the account holder about a successful sign-in."""
        await self._send(
            NotificationKind.LOGIN_ALERT,
            event.email,
            _context_from(event, occurred_at=event.occurred_at),
            event.aggregate_id,
        )

    async def on_notification_dispatched(self, event: NotificationDispatched) -> None:
        """Record the outcome of a delivery attempt."""
        if event.success:
            self._probe.notification_sent(kind=event.kind, account_id=event.aggregate_id)
        else:
            self._probe.notification_failed(
                kind=event.kind, account_id=event.aggregate_id, error=event.error
            )

    async def _send(
        self,
        kind: NotificationKind,
        recipient: str,
        context: Mapping[str, Any],
        aggregate_id: str,
    ) -> DeliveryResult:
        try:
            async with asyncio.timeout(self._timeout):
                result = await self._notifier.notify(kind, recipient, context)
        except TimeoutError:
            result = DeliveryResult(
                success=False,
                error=f"Delivery timed out after {self._timeout} seconds",
            )
        except Exception as e:
            # Notifiers should not raise; a misbehaving one still only fails this delivery
            result = DeliveryResult(success=False, error=str(e))

        self._publisher.publish(
            NotificationDispatched(
                aggregate_id=aggregate_id,
                kind=kind.value,
                recipient=recipient,
                success=result.success,
                error=result.error,
                occurred_at=datetime.now(UTC),
            )
        )
        return result


def _context_from(
    event: IdentityRegistered | IdentityAuthenticated, **extra: Any
) -> dict[str, Any]:
    metadata = RequestMetadata(client_ip=event.client_ip, user_agent=event.user_agent)
    return {
        "display_name": event.display_name,
        "email": event.email,
        "role": event.role,
        "origin": event.origin,
        "client_ip": metadata.client_ip,
        "user_agent": metadata.user_agent,
        "device": metadata.device_description,
        **extra,
    }
