"""Tests for application configuration.

Defaults, derived database URLs, and the invariants enforced by the
settings validator (page sizes, cookie flags, CORS, production secrets).
"""

import pytest
from pydantic import SecretStr, ValidationError

from app.core.config import _INSECURE_DEFAULT_PASSWORD, Settings

_SECURE_DB_PASSWORD = "my-secure-production-password-123!"
_TEST_AUTH_SECRET = "a" * 64
_PRODUCTION = "production"


class TestDefaults:
    """Settings defaults used by local development."""

    def test_token_lifetimes(self):
        s = Settings()
        assert s.access_token_minutes == 20
        assert s.refresh_token_days == 3
        assert s.refresh_cookie_name == "RefreshToken"

    def test_page_size_defaults(self):
        s = Settings()
        assert (s.default_page_size, s.max_page_size) == (10, 50)

    def test_database_urls(self):
        s = Settings(
            database_user="u",
            database_password="p",
            database_host="db",
            database_port=6543,
            database_name="fleet",
        )
        assert s.database_url == "postgresql+asyncpg://u:p@db:6543/fleet"
        assert s.database_url_sync == "postgresql://u:p@db:6543/fleet"


class TestProductionSecurityValidation:
    """Tests for production security requirements."""

    def test_allows_default_password_in_development(self):
        """Default password is allowed in development environment."""
        s = Settings(
            environment="development",
            database_password=_INSECURE_DEFAULT_PASSWORD,
        )
        assert s.database_password == _INSECURE_DEFAULT_PASSWORD

    def test_rejects_default_password_in_production(self):
        """Default password is rejected in production environment."""
        with pytest.raises(ValidationError) as exc_info:
            Settings(
                environment=_PRODUCTION,
                database_password=_INSECURE_DEFAULT_PASSWORD,
                auth_secret=SecretStr(_TEST_AUTH_SECRET),
            )
        assert "Cannot use default database password" in str(exc_info.value)

    def test_rejects_short_auth_secret_in_production(self):
        with pytest.raises(ValidationError, match="AUTH_SECRET"):
            Settings(
                environment=_PRODUCTION,
                database_password=_SECURE_DB_PASSWORD,
                auth_secret=SecretStr("short"),
            )

    def test_accepts_secure_production_config(self):
        s = Settings(
            environment=_PRODUCTION,
            database_password=_SECURE_DB_PASSWORD,
            auth_secret=SecretStr(_TEST_AUTH_SECRET),
        )
        assert s.environment == _PRODUCTION


class TestInvariants:
    """Rules enforced in every environment."""

    def test_default_page_size_must_fit_under_cap(self):
        with pytest.raises(ValidationError, match="DEFAULT_PAGE_SIZE"):
            Settings(default_page_size=60, max_page_size=50)

    def test_page_sizes_must_be_positive(self):
        with pytest.raises(ValidationError, match="positive"):
            Settings(default_page_size=0)

    def test_samesite_none_requires_secure(self):
        with pytest.raises(ValidationError, match="REFRESH_COOKIE_SECURE"):
            Settings(refresh_cookie_samesite="none", refresh_cookie_secure=False)

    def test_wildcard_cors_rejected(self):
        with pytest.raises(ValidationError, match="wildcard"):
            Settings(allowed_origins=["*"])
