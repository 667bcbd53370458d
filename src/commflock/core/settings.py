"""Application settings and configuration.

This module defines all configuration options for the CommFlock application.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="CommFlock", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    public_base_url: str = Field(default="http://localhost:8000", alias="PUBLIC_BASE_URL")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./commflock.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    auto_create_tables: bool = Field(default=False, alias="AUTO_CREATE_TABLES")

    # JWT authentication settings
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Credentials
    password_min_length: int = Field(default=6, alias="PASSWORD_MIN_LENGTH")
    bcrypt_rounds: int = Field(default=12, alias="BCRYPT_ROUNDS")
    password_reset_ttl_minutes: int = Field(default=60, alias="PASSWORD_RESET_TTL_MINUTES")

    # Rate limiting (sliding window per client identifier)
    redis_url: str | None = Field(default=None, alias="REDIS_URL")
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")
    rate_limit_strict_requests: int = Field(default=3, alias="RATE_LIMIT_STRICT_REQUESTS")
    rate_limit_strict_window_seconds: int = Field(
        default=3600, alias="RATE_LIMIT_STRICT_WINDOW_SECONDS"
    )
    rate_limit_auth_requests: int = Field(default=5, alias="RATE_LIMIT_AUTH_REQUESTS")
    rate_limit_auth_window_seconds: int = Field(
        default=600, alias="RATE_LIMIT_AUTH_WINDOW_SECONDS"
    )
    rate_limit_api_requests: int = Field(default=100, alias="RATE_LIMIT_API_REQUESTS")
    rate_limit_api_window_seconds: int = Field(default=60, alias="RATE_LIMIT_API_WINDOW_SECONDS")

    # Outbound e-mail
    smtp_host: str | None = Field(default=None, alias="SMTP_HOST")
    smtp_port: int = Field(default=465, alias="SMTP_PORT")
    smtp_user: str | None = Field(default=None, alias="SMTP_USER")
    smtp_password: str | None = Field(default=None, alias="SMTP_PASSWORD")
    smtp_security: str = Field(default="ssl", alias="SMTP_SECURITY")
    smtp_from: str | None = Field(default=None, alias="SMTP_FROM")
    smtp_timeout_seconds: float = Field(default=20.0, alias="SMTP_TIMEOUT_SECONDS")

    # Simulated payments
    community_creation_price_sats: int = Field(
        default=21, alias="COMMUNITY_CREATION_PRICE_SATS"
    )

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
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
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def smtp_configured(self) -> bool:
        """Return True when enough SMTP settings exist to deliver mail."""
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)


settings = Settings()  # type: ignore[call-arg]
