"""Process-wide collaborators of the Identity bounded context.

The runtime owns everything that outlives a request: the event dispatcher
and its workers, the notifier's HTTP client, the federated token verifier
(with its JWKS cache) and the session token issuer. It is built and
started in the application lifespan and stored on ``app.state``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

import httpx
from fastapi import Request

from identity.application.event_dispatcher import DomainEventDispatcher
from identity.application.notification_handlers import NotificationHandlers
from identity.application.session_tokens import SessionTokenIssuer
from identity.infrastructure.email_notifier import ResendEmailNotifier
from identity.infrastructure.federated_token_verifier import (
    OIDCFederatedTokenVerifier,
)
from identity.infrastructure.token_signer import JoseTokenSigner
from identity.ports.gateways import IFederatedTokenVerifier, INotifier
from infrastructure.settings import (
    AffiliationSettings,
    FederatedAuthSettings,
    NotificationSettings,
    SessionTokenSettings,
    get_affiliation_settings,
    get_federated_auth_settings,
    get_notification_settings,
    get_session_token_settings,
    get_settings,
)
from shared_kernel.auth import DefaultJWTValidatorProbe, JWTValidator


@dataclass
class IdentityRuntime:
    """Long-lived collaborators shared by all requests."""

    token_verifier: IFederatedTokenVerifier
    token_issuer: SessionTokenIssuer
    notifier: INotifier
    dispatcher: DomainEventDispatcher
    affiliation: AffiliationSettings
    verification_timeout_seconds: float
    http_client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(
        cls,
        session_settings: SessionTokenSettings | None = None,
        federated_settings: FederatedAuthSettings | None = None,
        notification_settings: NotificationSettings | None = None,
        affiliation_settings: AffiliationSettings | None = None,
        app_name: str | None = None,
    ) -> IdentityRuntime:
        """Wire the runtime from configuration. Nothing is started yet."""
        session_settings = session_settings or get_session_token_settings()
        federated_settings = federated_settings or get_federated_auth_settings()
        notification_settings = notification_settings or get_notification_settings()
        affiliation_settings = affiliation_settings or get_affiliation_settings()
        app_name = app_name or get_settings().app_name

        validator = JWTValidator(
            issuer_url=federated_settings.issuer_url,
            audience=federated_settings.audience,
            probe=DefaultJWTValidatorProbe(),
            jwks_cache_ttl=timedelta(hours=federated_settings.jwks_cache_ttl_hours),
            http_timeout_seconds=federated_settings.verification_timeout_seconds,
        )
        issuer = SessionTokenIssuer(
            signer=JoseTokenSigner(
                secret=session_settings.secret.get_secret_value(),
                algorithm=session_settings.algorithm,
            ),
            ttl=timedelta(hours=session_settings.ttl_hours),
        )

        http_client = httpx.AsyncClient(timeout=notification_settings.timeout_seconds)
        notifier = ResendEmailNotifier(
            client=http_client,
            api_url=notification_settings.api_url,
            api_key=notification_settings.api_key.get_secret_value(),
            sender=notification_settings.sender,
            app_name=app_name,
            timeout_seconds=notification_settings.timeout_seconds,
        )

        dispatcher = DomainEventDispatcher(
            worker_count=notification_settings.dispatch_workers,
            queue_size=notification_settings.dispatch_queue_size,
            # a handler may send two notifications in sequence
            handler_timeout_seconds=notification_settings.timeout_seconds * 2 + 1,
        )
        NotificationHandlers(
            notifier=notifier,
            publisher=dispatcher,
            staff_recipient=notification_settings.staff_recipient,
            timeout_seconds=notification_settings.timeout_seconds,
        ).register(dispatcher)

        return cls(
            token_verifier=OIDCFederatedTokenVerifier(validator),
            token_issuer=issuer,
            notifier=notifier,
            dispatcher=dispatcher,
            affiliation=affiliation_settings,
            verification_timeout_seconds=federated_settings.verification_timeout_seconds,
            http_client=http_client,
        )

    async def start(self) -> None:
        await self.dispatcher.start()

    async def stop(self) -> None:
        """Drain and stop the dispatcher, then close the HTTP client."""
        await self.dispatcher.stop()
        if self.http_client is not None:
            await self.http_client.aclose()


def get_identity_runtime(request: Request) -> IdentityRuntime:
    """Get the runtime created by the application lifespan.

    Raises:
        RuntimeError: If the application has not been started
    """
    runtime = getattr(request.app.state, "identity_runtime", None)
    if runtime is None:
        raise RuntimeError(
            "Identity runtime not initialized. Ensure app startup completed successfully."
        )
    return runtime
