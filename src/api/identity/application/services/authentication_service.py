"""Authentication application service for the Identity bounded context.

Orchestrates the two authentication paths (local credential and federated
token) against a single identity record: it decides between registration,
login and merge, issues the session token and hands the resulting domain
events to the dispatcher without waiting for their handlers.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from identity.application.event_dispatcher import DomainEventPublisher
from identity.application.observability import (
    AuthenticationServiceProbe,
    DefaultAuthenticationServiceProbe,
)
from identity.application.role_classifier import RoleClassifier
from identity.application.session_tokens import SessionTokenIssuer
from identity.application.value_objects import (
    AuthenticationResult,
    CredentialAuthenticationRequest,
    FederatedAuthenticationRequest,
)
from identity.domain.aggregates import Identity
from identity.domain.value_objects import (
    AuthOrigin,
    DisplayName,
    Email,
    ExternalIdentityId,
    RequestMetadata,
)
from identity.ports.exceptions import (
    DuplicateIdentityError,
    ExternalIdentityAlreadyLinkedError,
    InternalFailure,
    InvalidCredentialsError,
    InvalidTokenError,
    TokenMismatchError,
    ValidationFailure,
)
from identity.ports.gateways import FederatedClaims, IFederatedTokenVerifier
from identity.ports.repositories import IIdentityRepository

FALLBACK_DISPLAY_NAME = "New Member"

_Outcome = tuple[Identity, bool]


class AuthenticationService:
    """Application service for dual-path authentication and registration.

    Each call runs its lookup and write in one transaction. The store is
    the only serialization point: a uniqueness violation raised by a
    concurrent registration is handled by re-running the lookup once.
    """

    def __init__(
        self,
        session: AsyncSession,
        identity_repository: IIdentityRepository,
        classifier: RoleClassifier,
        token_verifier: IFederatedTokenVerifier,
        token_issuer: SessionTokenIssuer,
        publisher: DomainEventPublisher,
        verification_timeout_seconds: float = 5.0,
        probe: AuthenticationServiceProbe | None = None,
    ):
        """Initialize AuthenticationService with dependencies.

        Args:
            session: Database session for transaction management
            identity_repository: Repository for identity persistence
            classifier: Role classifier for affiliation codes
            token_verifier: Verifier for federated ID tokens
            token_issuer: Issuer of session tokens
            publisher: Dispatcher that domain events are handed to
            verification_timeout_seconds: Time bound for federated verification
            probe: Optional domain probe for observability
        """
        self._session = session
        self._identity_repository = identity_repository
        self._classifier = classifier
        self._token_verifier = token_verifier
        self._token_issuer = token_issuer
        self._publisher = publisher
        self._verification_timeout = verification_timeout_seconds
        self._probe = probe or DefaultAuthenticationServiceProbe()

    async def authenticate_with_credential(
        self,
        request: CredentialAuthenticationRequest,
        metadata: RequestMetadata | None = None,
    ) -> AuthenticationResult:
        """Log in with email and password, registering the account if it is new.

        Args:
            request: Email, password and optional registration details
            metadata: Audit context of the request

        Returns:
            AuthenticationResult with is_new_account set for registrations

        Raises:
            ValidationFailure: If the email, display name or password is malformed
            InvalidCredentialsError: If the password does not match
            AccountDeactivatedError: If the account is deactivated
            DuplicateIdentityError: If a concurrent registration won the race
            AffiliationCodeAlreadyUsedError: If a concurrent registration
                consumed the same single-use affiliation code
        """
        metadata = metadata or RequestMetadata.unknown()
        try:
            email = Email(request.email)
            identity, is_new = await self._with_race_retry(
                origin=AuthOrigin.CREDENTIAL,
                attempt=lambda: self._credential_flow(email, request, metadata),
                find_winner=lambda: self._identity_repository.find_by_email(email),
            )
        except Exception as e:
            self._probe.authentication_failed(
                origin=AuthOrigin.CREDENTIAL.value, reason=type(e).__name__
            )
            raise

        return self._complete(identity, is_new, AuthOrigin.CREDENTIAL)

    async def authenticate_with_external_token(
        self,
        request: FederatedAuthenticationRequest,
        metadata: RequestMetadata | None = None,
    ) -> AuthenticationResult:
        """Log in with a federated ID token, registering or merging as needed.

        The token is verified first. The external identity id is the
        identity anchor: an account already linked to it wins over an
        account that merely shares the email. An active account with the
        same email and no external identity is merged by linking the id.

        Args:
            request: Caller email, ID token and optional registration details
            metadata: Audit context of the request

        Returns:
            AuthenticationResult with is_new_account set for registrations

        Raises:
            InvalidTokenError: If the token fails verification
            ExpiredTokenError: If the token has expired
            TokenMismatchError: If the provider email differs from the caller email
            InternalFailure: If verification exceeds its time bound
            AccountDeactivatedError: If the account is deactivated
            DuplicateIdentityError: If a concurrent registration won the race,
                or the email's account is linked to another external identity
            AffiliationCodeAlreadyUsedError: If a concurrent registration
                consumed the same single-use affiliation code
        """
        metadata = metadata or RequestMetadata.unknown()
        try:
            claims = await self._verify_token(request.token)
            provider_email, external_id = self._parse_claims(claims)

            caller_email = Email(request.email)
            if provider_email != caller_email:
                self._probe.token_mismatch()
                raise TokenMismatchError(
                    "Email asserted by the identity provider does not match"
                )

            identity, is_new = await self._with_race_retry(
                origin=AuthOrigin.EXTERNAL,
                attempt=lambda: self._federated_flow(
                    caller_email, external_id, claims, request, metadata
                ),
                find_winner=lambda: self._find_federated(external_id, caller_email),
            )
        except Exception as e:
            self._probe.authentication_failed(
                origin=AuthOrigin.EXTERNAL.value, reason=type(e).__name__
            )
            raise

        return self._complete(identity, is_new, AuthOrigin.EXTERNAL)

    async def _credential_flow(
        self,
        email: Email,
        request: CredentialAuthenticationRequest,
        metadata: RequestMetadata,
    ) -> _Outcome:
        async with self._session.begin():
            identity = await self._identity_repository.find_by_email(email)
            if identity is not None:
                if not identity.authenticate_with_credential(request.password, metadata):
                    raise InvalidCredentialsError("Invalid email or password")
                return identity, False

            display_name = _resolve_display_name(request.display_name, email)
            classification = await self._classifier.classify_raw(request.affiliation_code)
            identity = Identity.create_with_credential(
                display_name=display_name,
                email=email,
                plaintext_password=request.password,
                classification=classification,
                metadata=metadata,
            )
            await self._identity_repository.save(identity)
            await self._classifier.record_use(classification, identity.id)
            return identity, True

    async def _federated_flow(
        self,
        email: Email,
        external_id: ExternalIdentityId,
        claims: FederatedClaims,
        request: FederatedAuthenticationRequest,
        metadata: RequestMetadata,
    ) -> _Outcome:
        async with self._session.begin():
            identity = await self._identity_repository.find_by_external_id(external_id)
            if identity is not None:
                identity.authenticate_with_external_identity(metadata)
                return identity, False

            identity = await self._identity_repository.find_by_email(email)
            if identity is not None:
                identity.link_external_identity(external_id)
                identity.authenticate_with_external_identity(metadata)
                await self._identity_repository.update(identity)
                self._probe.external_identity_linked(
                    account_id=identity.id.value,
                    email_verified=claims.email_verified,
                )
                return identity, False

            display_name = _resolve_display_name(
                request.display_name, email, suggested=claims.name
            )
            classification = await self._classifier.classify_raw(request.affiliation_code)
            identity = Identity.create_with_external_identity(
                display_name=display_name,
                email=email,
                external_identity_id=external_id,
                classification=classification,
                metadata=metadata,
            )
            await self._identity_repository.save(identity)
            await self._classifier.record_use(classification, identity.id)
            return identity, True

    async def _with_race_retry(
        self,
        origin: AuthOrigin,
        attempt: Callable[[], Awaitable[_Outcome]],
        find_winner: Callable[[], Awaitable[Identity | None]],
    ) -> _Outcome:
        """Run a flow, handling a uniqueness violation from a concurrent write.

        The lookup is re-run once. If it now finds the identity written by
        the concurrent request, this request lost the race and the violation
        is surfaced. If it still finds nothing the conflicting write did not
        survive, and the flow is attempted one more time.
        """
        try:
            return await attempt()
        except ExternalIdentityAlreadyLinkedError:
            raise
        except DuplicateIdentityError:
            async with self._session.begin():
                winner = await find_winner()
            self._probe.registration_race_detected(
                origin=origin.value, winner_found=winner is not None
            )
            if winner is not None:
                raise

        return await attempt()

    async def _find_federated(
        self, external_id: ExternalIdentityId, email: Email
    ) -> Identity | None:
        identity = await self._identity_repository.find_by_external_id(external_id)
        if identity is None:
            identity = await self._identity_repository.find_by_email(email)
        return identity

    async def _verify_token(self, token: str) -> FederatedClaims:
        try:
            async with asyncio.timeout(self._verification_timeout):
                return await self._token_verifier.verify(token)
        except TimeoutError as e:
            self._probe.token_verification_timed_out(
                timeout_seconds=self._verification_timeout
            )
            raise InternalFailure("Federated token verification timed out") from e

    @staticmethod
    def _parse_claims(claims: FederatedClaims) -> tuple[Email, ExternalIdentityId]:
        try:
            return Email(claims.email), ExternalIdentityId(claims.external_id)
        except ValidationFailure as e:
            raise InvalidTokenError(
                f"Identity provider asserted an invalid identity: {e}"
            ) from e

    def _complete(
        self, identity: Identity, is_new: bool, origin: AuthOrigin
    ) -> AuthenticationResult:
        """Issue the session token and hand events to the dispatcher.

        Runs after the transaction has committed. Publishing is
        fire-and-forget and can never fail the call.
        """
        events = identity.drain_events()
        session_token = self._token_issuer.issue(identity)

        try:
            self._publisher.publish_all(events)
        except Exception as e:
            self._probe.event_publication_failed(
                account_id=identity.id.value, error=str(e)
            )

        if is_new:
            self._probe.account_registered(
                account_id=identity.id.value,
                origin=origin.value,
                role=identity.role.value,
            )
        else:
            self._probe.account_authenticated(
                account_id=identity.id.value, origin=origin.value
            )

        return AuthenticationResult.for_identity(
            identity, session_token=session_token, is_new_account=is_new
        )


def _resolve_display_name(
    explicit: str | None, email: Email, suggested: str | None = None
) -> DisplayName:
    """Pick the display name for a new account.

    An explicit name must be valid. Otherwise the provider's suggestion or
    the email's local part is used, falling back to a generic name.
    """
    if explicit is not None and explicit.strip():
        return DisplayName(explicit)

    derived = re.sub(r"[._+\-]+", " ", email.local_part)
    for candidate in (suggested, derived):
        if not candidate:
            continue
        try:
            return DisplayName(candidate)
        except ValidationFailure:
            continue
    return DisplayName(FALLBACK_DISPLAY_NAME)
