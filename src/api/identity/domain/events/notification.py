"""Notification domain events."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from ulid import ULID


@dataclass(frozen=True)
class NotificationDispatched:
    """Event recording the outcome of one notification attempt.

    Produced for successful and failed deliveries alike. A failed delivery
    never affects the authentication that triggered it; this event is the
    only place the failure is observable.

    Attributes:
        aggregate_id: The ULID of the identity the notification concerns
        kind: NotificationKind value
        recipient: Address the notification was sent to
        success: Whether the provider accepted the notification
        error: Failure reason when success is False
        occurred_at: When the attempt finished (UTC)
        event_id: Unique id of this event
    """

    aggregate_id: str
    kind: str
    recipient: str
    success: bool
    occurred_at: datetime
    error: str | None = None
    event_id: str = field(default_factory=lambda: str(ULID()))

    @property
    def event_type(self) -> str:
        return type(self).__name__
