"""Domain-oriented observability infrastructure.

Domain probes encapsulate instrumentation details and provide a
domain-focused API for observability.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from shared_kernel.observability_context import ObservationContext
from infrastructure.observability.probes import (
    DatabaseProbe,
    DefaultDatabaseProbe,
)
from infrastructure.observability.startup_probe import (
    DefaultStartupProbe,
    StartupProbe,
)

__all__ = [
    "DatabaseProbe",
    "DefaultDatabaseProbe",
    "DefaultStartupProbe",
    "ObservationContext",
    "StartupProbe",
]
