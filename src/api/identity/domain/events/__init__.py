"""Domain events for the Identity bounded context.

Domain events capture facts about things that have happened in the domain.
They are immutable, pure data: they trigger nothing by themselves. The
application layer's dispatcher decides what reacts to them.
"""

from identity.domain.events.identity import (
    IdentityAuthenticated,
    IdentityRegistered,
)
from identity.domain.events.notification import NotificationDispatched

# Type alias for all domain events in the Identity context
DomainEvent = IdentityRegistered | IdentityAuthenticated | NotificationDispatched

__all__ = [
    "IdentityRegistered",
    "IdentityAuthenticated",
    "NotificationDispatched",
    "DomainEvent",
]
