"""Domain-Oriented Observability for the Identity application layer.

Probes for application service operations following Domain-Oriented Observability patterns.
"""

from identity.application.observability.account_service_probe import (
    AccountServiceProbe,
    DefaultAccountServiceProbe,
)
from identity.application.observability.authentication_service_probe import (
    AuthenticationServiceProbe,
    DefaultAuthenticationServiceProbe,
)
from identity.application.observability.event_dispatcher_probe import (
    DefaultEventDispatcherProbe,
    EventDispatcherProbe,
)
from identity.application.observability.notification_probe import (
    DefaultNotificationProbe,
    NotificationProbe,
)
from identity.application.observability.role_classifier_probe import (
    DefaultRoleClassifierProbe,
    RoleClassifierProbe,
)

__all__ = [
    "AccountServiceProbe",
    "DefaultAccountServiceProbe",
    "AuthenticationServiceProbe",
    "DefaultAuthenticationServiceProbe",
    "EventDispatcherProbe",
    "DefaultEventDispatcherProbe",
    "NotificationProbe",
    "DefaultNotificationProbe",
    "RoleClassifierProbe",
    "DefaultRoleClassifierProbe",
]
