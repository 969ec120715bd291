"""Application configuration."""

from functools import lru_cache
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, PostgresDsn, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Minimum entropy for secrets (measured by character diversity)
MIN_SECRET_UNIQUE_CHARS = 16


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "HRM Administration API"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Database (required - no default for security)
    database_url: PostgresDsn = Field(
        description="PostgreSQL connection URL. Must be set via environment variable."
    )
    database_pool_size: int = 5
    database_max_overflow: int = 10

    # Identity provider tokens (issued externally, verified here)
    jwt_secret: str = Field(min_length=32)
    jwt_algorithm: str = "HS256"
    jwt_audience: str = "authenticated"
    jwt_issuer: str | None = None

    # Lifecycle rules
    # Termination dates are compared against "today" in this timezone
    business_timezone: str = "UTC"
    reason_max_length: int = 500

    # CORS settings
    cors_origins: str = "http://localhost:3000"  # Comma-separated list

    # Rate limiting (requests per minute)
    rate_limit_enabled: bool = True
    rate_limit_default: int = 100
    rate_limit_sensitive: int = 20
    # Comma-separated IPs or CIDR ranges allowed to set X-Forwarded-For
    trusted_proxies: str = ""

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Validate settings for security requirements."""
        if self.environment == "production" and self.debug:
            raise ValueError(
                "DEBUG mode cannot be enabled in production environment. "
                "This would expose API documentation and detailed error messages."
            )

        url = str(self.database_url)
        if not url.startswith(("postgresql://", "postgres://")):
            raise ValueError(
                "DATABASE_URL must be a PostgreSQL URL starting with 'postgresql://' or 'postgres://'"
            )

        if self.environment == "production" and len(set(self.jwt_secret)) < MIN_SECRET_UNIQUE_CHARS:
            raise ValueError(
                f"JWT_SECRET must contain at least {MIN_SECRET_UNIQUE_CHARS} unique characters "
                "for sufficient entropy. Use the identity provider's signing secret."
            )

        try:
            ZoneInfo(self.business_timezone)
        except ZoneInfoNotFoundError as e:
            raise ValueError(f"Unknown BUSINESS_TIMEZONE: {self.business_timezone}") from e

        return self

    @property
    def async_database_url(self) -> str:
        """Get async database URL for SQLAlchemy with asyncpg.

        Converts sslmode parameter to ssl for asyncpg compatibility.
        """
        url = str(self.database_url)
        url = url.replace("postgresql://", "postgresql+asyncpg://")
        url = url.replace("sslmode=", "ssl=")
        return url

    @property
    def tzinfo(self) -> ZoneInfo:
        """Get the business timezone."""
        return ZoneInfo(self.business_timezone)

    @property
    def trusted_proxies_list(self) -> list[str]:
        """Get trusted proxies as a list."""
        return [p.strip() for p in self.trusted_proxies.split(",") if p.strip()]

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
