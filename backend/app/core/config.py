"""Application configuration loaded from environment variables.

Settings for the database, CORS, JWT authentication, pagination bounds and
rate limiting. Uses pydantic-settings for validation and .env file support.
"""

from typing import Literal

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
_INSECURE_DEFAULT_PASSWORD = "playlist_fleet_dev_password"  # nosec B105

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
    database_name: str = "playlist_fleet"
    database_user: str = "playlist_fleet_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD

    # API
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 8000

    # CORS
    # Never "*": the refresh cookie requires credentialed requests.
    allowed_origins: list[str] = ["http://localhost:5173"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Authentication
    auth_secret: SecretStr = SecretStr("")
    auth_issuer: str = "playlist-fleet"
    auth_audience: str = "playlist-fleet"
    access_token_minutes: int = 20
    refresh_token_days: int = 3
    refresh_cookie_name: str = "RefreshToken"
    refresh_cookie_secure: bool = True
    refresh_cookie_samesite: Literal["lax", "strict", "none"] = "lax"

    # Pagination
    default_page_size: int = 10
    max_page_size: int = 50

    # Rate Limiting
    # Format: "count/period" (e.g., "10/minute", "100/hour")
    rate_limit_login: str = "10/minute"
    rate_limit_register: str = "5/hour"
    rate_limit_enabled: bool = True

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def database_url_sync(self) -> str:
        """Sync database URL for Alembic."""
        return (
            f"postgresql://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate configuration invariants.

        Checks:
        - Page size bounds are positive and the default fits under the cap
        - SameSite=None requires the Secure flag
        - CORS must not use a wildcard origin
        - Production: no default database password, AUTH_SECRET >= 32 chars
        """
        if self.default_page_size < 1 or self.max_page_size < 1:
            msg = "DEFAULT_PAGE_SIZE and MAX_PAGE_SIZE must be positive."
            raise ValueError(msg)
        if self.default_page_size > self.max_page_size:
            msg = (
                "DEFAULT_PAGE_SIZE must not exceed MAX_PAGE_SIZE. "
                f"Got: {self.default_page_size} > {self.max_page_size}"
            )
            raise ValueError(msg)

        if self.refresh_cookie_samesite == "none" and not self.refresh_cookie_secure:
            msg = (
                "REFRESH_COOKIE_SECURE must be true when "
                "REFRESH_COOKIE_SAMESITE=none. Browsers reject SameSite=None "
                "cookies without the Secure flag."
            )
            raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "The refresh cookie needs credentialed CORS requests."
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

        return self


settings = Settings()
