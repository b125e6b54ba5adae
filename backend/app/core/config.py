"""Application configuration loaded from environment variables.

Settings for database, API, identity provider, email delivery, and the
account creation workflow. Uses pydantic-settings for validation and .env
file support.
"""

from typing import Literal

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "fundportal_dev_password"  # nosec B105

# Minimum length for AUTH_SECRET in production (256 bits = 32 bytes)
_MIN_AUTH_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "fund_portal"
    database_user: str = "fund_portal_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD

    # API
    # 0.0.0.0 binds to all network interfaces (required for Docker containers)
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 8000

    # CORS (Security)
    # Default allows the Vite dev server used by the investor portal
    allowed_origins: list[str] = ["http://localhost:5173"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Bearer JWT validation for operator endpoints.
    # Access tokens are minted by the identity provider and signed with its
    # JWT secret, so auth_secret must match the provider's signing key.
    auth_secret: SecretStr = SecretStr("")
    auth_issuer: str = ""
    auth_audience: str = "authenticated"

    # Identity provider
    # "gotrue": GoTrue-compatible admin API (hosted auth)
    # "mock": in-memory provider for local development and tests
    identity_provider: Literal["gotrue", "mock"] = "mock"
    identity_url: str = "http://localhost:9999"
    identity_service_key: SecretStr = SecretStr("")
    identity_timeout_seconds: float = 10.0

    # Email (Resend)
    email_from: str = "noreply@fundportal.com"
    resend_api_key: SecretStr = SecretStr("")

    # Frontend URL used to build account creation and portal links
    frontend_url: str = "http://localhost:5173"

    # Account creation workflow
    account_token_ttl_days: int = 7
    verification_code_ttl_minutes: int = 10
    verification_code_max_attempts: int = 3
    # Opt-in hardening: compare submitted codes with hmac.compare_digest
    verification_code_constant_time_compare: bool = False

    # Rate Limiting (Security)
    # Format: "count/period" (e.g., "10/minute", "100/hour")
    rate_limit_send_code: str = "5/hour"
    rate_limit_create_account: str = "10/minute"
    rate_limit_verify_token: str = "20/minute"
    rate_limit_send_invite: str = "30/hour"
    rate_limit_enabled: bool = True  # Disable for testing

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate configuration invariants and production requirements.

        Checks:
        - Workflow windows and attempt limits must be positive (all environments)
        - CORS must not use wildcard origin (all environments)
        - Database password must not be the default in production
        - AUTH_SECRET must be set and >= 32 chars in production
        - Production requires the GoTrue provider with a service key
        """
        if self.account_token_ttl_days <= 0:
            msg = f"ACCOUNT_TOKEN_TTL_DAYS must be positive. Got: {self.account_token_ttl_days}"
            raise ValueError(msg)
        if self.verification_code_ttl_minutes <= 0:
            msg = (
                "VERIFICATION_CODE_TTL_MINUTES must be positive. "
                f"Got: {self.verification_code_ttl_minutes}"
            )
            raise ValueError(msg)
        if self.verification_code_max_attempts <= 0:
            msg = (
                "VERIFICATION_CODE_MAX_ATTEMPTS must be positive. "
                f"Got: {self.verification_code_max_attempts}"
            )
            raise ValueError(msg)

        # CORS wildcard with credentials is invalid (all environments)
        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "This application uses credentials which are "
                "incompatible with wildcard CORS origins."
            )
            raise ValueError(msg)

        if self.environment == "production":
            if self.database_password == _INSECURE_DEFAULT_PASSWORD:
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            secret_value = self.auth_secret.get_secret_value()
            if len(secret_value) < _MIN_AUTH_SECRET_LENGTH:
                msg = (
                    f"AUTH_SECRET must be at least {_MIN_AUTH_SECRET_LENGTH} "
                    "characters in production."
                )
                raise ValueError(msg)

            if self.identity_provider == "mock":
                msg = "IDENTITY_PROVIDER=mock is not allowed in production."
                raise ValueError(msg)

            if not self.identity_service_key.get_secret_value():
                msg = "IDENTITY_SERVICE_KEY must be set when IDENTITY_PROVIDER=gotrue."
                raise ValueError(msg)

        return self


settings = Settings()
