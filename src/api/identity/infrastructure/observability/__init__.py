"""Domain-Oriented Observability for Identity infrastructure.

Probes for repository and adapter operations following Domain-Oriented Observability patterns.
"""

from identity.infrastructure.observability.email_notifier_probe import (
    DefaultEmailNotifierProbe,
    EmailNotifierProbe,
)
from identity.infrastructure.observability.repository_probe import (
    AffiliationCodeRepositoryProbe,
    DefaultAffiliationCodeRepositoryProbe,
    DefaultIdentityRepositoryProbe,
    IdentityRepositoryProbe,
)

__all__ = [
    "AffiliationCodeRepositoryProbe",
    "DefaultAffiliationCodeRepositoryProbe",
    "IdentityRepositoryProbe",
    "DefaultIdentityRepositoryProbe",
    "EmailNotifierProbe",
    "DefaultEmailNotifierProbe",
]
