"""Identity domain events.

Domain events related to registration and authentication of identities.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from ulid import ULID


def _new_event_id() -> str:
    return str(ULID())


@dataclass(frozen=True)
class IdentityRegistered:
    """Event raised when a new identity is registered.

    Attributes:
        aggregate_id: The ULID of the registered identity
        email: Normalized email of the identity
        display_name: Normalized display name
        role: Role assigned at registration
        origin: Registration path (credential or external)
        affiliation_code: Affiliation code the role was derived from, if any
        institution_name: Descriptor of the affiliation
        client_ip: Client address of the registering request
        user_agent: User agent of the registering request
        occurred_at: When the event occurred (UTC)
        event_id: Unique id of this event
    """

    aggregate_id: str
    email: str
    display_name: str
    role: str
    origin: str
    affiliation_code: str | None
    institution_name: str
    client_ip: str
    user_agent: str
    occurred_at: datetime
    event_id: str = field(default_factory=_new_event_id)

    @property
    def event_type(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class IdentityAuthenticated:
    """Event raised when an identity successfully authenticates.

    Failed attempts never produce this event.

    Attributes:
        aggregate_id: The ULID of the authenticated identity
        email: Email of the identity
        display_name: Display name of the identity
        role: Current role of the identity
        origin: Authentication path (credential or external)
        client_ip: Client address of the request
        user_agent: User agent of the request
        occurred_at: When the event occurred (UTC)
        event_id: Unique id of this event
    """

    aggregate_id: str
    email: str
    display_name: str
    role: str
    origin: str
    client_ip: str
    user_agent: str
    occurred_at: datetime
    event_id: str = field(default_factory=_new_event_id)

    @property
    def event_type(self) -> str:
        return type(self).__name__
