"""Observation context for domain-oriented observability.

Observation contexts collect and manage contextual metadata for instrumentation,
following the Domain Oriented Observability pattern.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class ObservationContext:
    """Immutable context containing metadata for observability.

    Captures request-scoped metadata that should be included with all
    instrumentation events, so that log lines produced while serving one
    request can be correlated.

    Attributes:
        request_id: Unique identifier for the current request/operation.
        account_id: Identifier of the account the request acts on (if known).
        client_ip: Client address the request originated from.
        user_agent: Client user agent string.
        extra: Additional contextual metadata.

    Example:
        context = ObservationContext(request_id="req-123", client_ip="10.0.0.1")
        probe = DefaultAuthenticationServiceProbe().with_context(context)
    """

    request_id: str | None = None
    account_id: str | None = None
    client_ip: str | None = None
    user_agent: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        """Convert context to a dictionary for logging.

        Only includes non-None values to keep logs clean.
        """
        result: dict[str, Any] = {}
        if self.request_id is not None:
            result["request_id"] = self.request_id
        if self.account_id is not None:
            result["account_id"] = self.account_id
        if self.client_ip is not None:
            result["client_ip"] = self.client_ip
        if self.user_agent is not None:
            result["user_agent"] = self.user_agent
        result.update(self.extra)
        return result

    def with_account(self, account_id: str) -> ObservationContext:
        """Create a new context with the account id set."""
        return replace(self, account_id=account_id)

    def with_extra(self, **kwargs: Any) -> ObservationContext:
        """Create a new context with additional metadata."""
        return replace(self, extra={**self.extra, **kwargs})
