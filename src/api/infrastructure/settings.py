"""Application settings using pydantic-settings.

Settings are loaded from environment variables with sensible defaults
for development. Production deployments should set all values explicitly.
"""

from functools import lru_cache

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection settings.

    Environment variables:
        IDENTITY_DB_HOST: Database host (default: localhost)
        IDENTITY_DB_PORT: Database port (default: 5432)
        IDENTITY_DB_DATABASE: Database name (default: identity)
        IDENTITY_DB_USERNAME: Database user (default: identity)
        IDENTITY_DB_PASSWORD: Database password (required in production)
        IDENTITY_DB_POOL_SIZE: Connections kept in the pool (default: 10)
    """

    model_config = SettingsConfigDict(
        env_prefix="IDENTITY_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    database: str = Field(default="identity", description="Database name")
    username: str = Field(default="identity", description="Database username")
    password: SecretStr = Field(
        default=SecretStr(""),
        description="Database password",
    )
    pool_size: int = Field(
        default=10,
        description="Connections kept in the pool",
        ge=1,
        le=100,
    )

    @property
    def connection_string(self) -> str:
        """Generate a connection string (without password for logging)."""
        return f"postgresql://{self.username}@{self.host}:{self.port}/{self.database}"


class SessionTokenSettings(BaseSettings):
    """Settings for signed session tokens.

    Environment variables:
        IDENTITY_SESSION_SECRET: HMAC signing secret (required, at least 32 characters)
        IDENTITY_SESSION_ALGORITHM: JWS algorithm (default: HS256)
        IDENTITY_SESSION_TTL_HOURS: Token validity window (default: 24)
    """

    model_config = SettingsConfigDict(
        env_prefix="IDENTITY_SESSION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    secret: SecretStr = Field(
        ...,
        description="Secret used to sign session tokens",
    )
    algorithm: str = Field(default="HS256", description="Signing algorithm")
    ttl_hours: int = Field(
        default=24,
        description="Validity window of issued session tokens, in hours",
        ge=1,
        le=24 * 30,
    )

    @model_validator(mode="after")
    def validate_signing(self) -> "SessionTokenSettings":
        """Validate secret strength and restrict to HMAC algorithms."""
        if len(self.secret.get_secret_value()) < 32:
            raise ValueError("Session token secret must be at least 32 characters")
        if self.algorithm not in ("HS256", "HS384", "HS512"):
            raise ValueError(
                f"Unsupported session token algorithm: {self.algorithm}"
            )
        return self


class FederatedAuthSettings(BaseSettings):
    """Settings for the external identity provider (OIDC).

    Environment variables:
        IDENTITY_OIDC_ISSUER_URL: Issuer URL of the identity provider
        IDENTITY_OIDC_AUDIENCE: Expected audience of ID tokens
        IDENTITY_OIDC_VERIFICATION_TIMEOUT_SECONDS: Bound on one verification (default: 5)
        IDENTITY_OIDC_JWKS_CACHE_TTL_HOURS: How long signing keys are cached (default: 24)
    """

    model_config = SettingsConfigDict(
        env_prefix="IDENTITY_OIDC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    issuer_url: str = Field(
        default="http://localhost:8080/realms/identity",
        description="OIDC issuer URL",
    )
    audience: str = Field(default="identity-api", description="Expected audience")
    verification_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout applied to a single token verification",
        gt=0,
        le=60,
    )
    jwks_cache_ttl_hours: int = Field(
        default=24,
        description="How long fetched signing keys are cached",
        ge=1,
    )


class NotificationSettings(BaseSettings):
    """Settings for transactional email notifications and event dispatch.

    Environment variables:
        IDENTITY_NOTIFY_API_URL: Base URL of the email provider API
        IDENTITY_NOTIFY_API_KEY: Provider API key (empty disables delivery)
        IDENTITY_NOTIFY_SENDER: From address
        IDENTITY_NOTIFY_STAFF_RECIPIENT: Address alerted on new secondary accounts
        IDENTITY_NOTIFY_TIMEOUT_SECONDS: Bound on one delivery (default: 10)
        IDENTITY_NOTIFY_DISPATCH_WORKERS: Concurrent event handlers (default: 4)
        IDENTITY_NOTIFY_DISPATCH_QUEUE_SIZE: Pending events before dropping (default: 1000)
    """

    model_config = SettingsConfigDict(
        env_prefix="IDENTITY_NOTIFY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_url: str = Field(
        default="https://api.resend.com",
        description="Email provider API base URL",
    )
    api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Email provider API key",
    )
    sender: str = Field(
        default="noreply@identity.local",
        description="Sender address for notifications",
    )
    staff_recipient: str | None = Field(
        default=None,
        description="Staff address alerted when a secondary account registers",
    )
    timeout_seconds: float = Field(
        default=10.0,
        description="Timeout applied to a single notification delivery",
        gt=0,
        le=120,
    )
    dispatch_workers: int = Field(
        default=4,
        description="Number of concurrent event handler workers",
        ge=1,
        le=64,
    )
    dispatch_queue_size: int = Field(
        default=1000,
        description="Maximum pending events before new ones are dropped",
        ge=1,
    )

    @property
    def delivery_enabled(self) -> bool:
        """Delivery is enabled only when an API key is configured."""
        return bool(self.api_key.get_secret_value())


class AffiliationSettings(BaseSettings):
    """Settings for affiliation code classification.

    Environment variables:
        IDENTITY_AFFILIATION_PRIMARY_CODE: Sentinel code granting the primary role
        IDENTITY_AFFILIATION_REGISTRY_ENABLED: Resolve codes against the registry table
    """

    model_config = SettingsConfigDict(
        env_prefix="IDENTITY_AFFILIATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    primary_code: str = Field(
        default="TUTOR",
        description="Sentinel affiliation code that maps to the primary role",
        min_length=2,
        max_length=20,
    )
    registry_enabled: bool = Field(
        default=False,
        description="Whether codes are resolved against the affiliation registry",
    )


class Settings(BaseSettings):
    """Main application settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="Identity API", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def database(self) -> DatabaseSettings:
        """Get database settings."""
        return get_database_settings()


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


@lru_cache
def get_database_settings() -> DatabaseSettings:
    """Get cached database settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return DatabaseSettings()


@lru_cache
def get_session_token_settings() -> SessionTokenSettings:
    """Get cached session token settings."""
    return SessionTokenSettings()


@lru_cache
def get_federated_auth_settings() -> FederatedAuthSettings:
    """Get cached federated authentication settings."""
    return FederatedAuthSettings()


@lru_cache
def get_notification_settings() -> NotificationSettings:
    """Get cached notification settings."""
    return NotificationSettings()


@lru_cache
def get_affiliation_settings() -> AffiliationSettings:
    """Get cached affiliation settings."""
    return AffiliationSettings()
