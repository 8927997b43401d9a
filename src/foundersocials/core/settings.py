"""Application settings and configuration.

This module defines all configuration options for the FounderSocials API.
Settings are loaded from environment variables with sensible defaults.
"""

import hashlib
import hmac

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Every third-party integration (OpenAI, Stripe, PayPal, SendGrid) is optional;
    when its credentials are missing the corresponding adapter degrades instead
    of failing at import time.
    """

    # Application metadata
    app_name: str = Field(default="FounderSocials", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    app_base_url: str = Field(default="http://localhost:5000", alias="APP_BASE_URL")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    password_min_length: int = Field(default=8, alias="PASSWORD_MIN_LENGTH")
    reset_token_ttl_minutes: int = Field(default=60, alias="RESET_TOKEN_TTL_MINUTES")

    # Database configuration
    database_url: str = Field(default="sqlite:///./foundersocials.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # AI moderation (OpenAI)
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4.1", alias="OPENAI_MODEL")
    openai_timeout_seconds: float = Field(default=30.0, alias="OPENAI_TIMEOUT_SECONDS")
    default_remaining_prompts: int = Field(default=3, alias="DEFAULT_REMAINING_PROMPTS")

    # Stripe billing
    stripe_secret_key: str | None = Field(default=None, alias="STRIPE_SECRET_KEY")
    stripe_webhook_secret: str | None = Field(default=None, alias="STRIPE_WEBHOOK_SECRET")
    stripe_price_id: str | None = Field(default=None, alias="STRIPE_PRICE_ID")

    # PayPal billing
    paypal_client_id: str | None = Field(default=None, alias="PAYPAL_CLIENT_ID")
    paypal_client_secret: str | None = Field(default=None, alias="PAYPAL_CLIENT_SECRET")
    paypal_environment: str = Field(default="sandbox", alias="PAYPAL_ENVIRONMENT")

    # Outbound email (SendGrid)
    sendgrid_api_key: str | None = Field(default=None, alias="SENDGRID_API_KEY")
    email_from: str = Field(default="support@foundersocials.com", alias="EMAIL_FROM")

    # External project-management access
    jwt_secret: str | None = Field(default=None, alias="JWT_SECRET")
    external_audience: str = Field(
        default="project-management-platform",
        alias="EXTERNAL_JWT_AUDIENCE",
    )
    external_issuer: str = Field(default="foundersocials-platform", alias="EXTERNAL_JWT_ISSUER")
    external_token_ttl_seconds: int = Field(default=3600, alias="EXTERNAL_TOKEN_TTL_SECONDS")
    access_link_ttl_seconds: int = Field(default=900, alias="ACCESS_LINK_TTL_SECONDS")
    project_management_app_url: str = Field(
        default="https://project-management-app.example.com",
        alias="PROJECT_MANAGEMENT_APP_URL",
    )

    # Outbound HTTP
    http_timeout_seconds: float = Field(default=10.0, alias="HTTP_TIMEOUT_SECONDS")

    # Avatar uploads
    upload_dir: str = Field(default="uploads", alias="UPLOAD_DIR")
    max_upload_bytes: int = Field(default=5 * 1024 * 1024, alias="MAX_UPLOAD_BYTES")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling such as Alembic."""
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        if url.startswith("postgres://"):
            return url.replace("postgres://", "postgresql+psycopg://", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides.

        Returns:
            The active database URL (test database if in testing mode, otherwise production)
        """
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def external_signing_key(self) -> str:
        """Key used for tokens handed to the project-management app.

        Without ``JWT_SECRET`` the key is derived from ``SECRET_KEY`` so that
        external tokens can never verify as API tokens.
        """
        if self.jwt_secret:
            return self.jwt_secret
        return hmac.new(
            self.secret_key.encode("utf-8"), b"external-access", hashlib.sha256
        ).hexdigest()

    @property
    def paypal_base_url(self) -> str:
        if self.paypal_environment == "production":
            return "https://api-m.paypal.com"
        return "https://api-m.sandbox.paypal.com"


settings = Settings()  # type: ignore[call-arg]
