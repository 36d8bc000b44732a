"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, ValidationInfo, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Minimum entropy for secrets (measured by character diversity)
MIN_SECRET_UNIQUE_CHARS = 16

_POSTGRES_SCHEMES = ("postgresql://", "postgres://", "postgresql+asyncpg://")
_SQLITE_SCHEME = "sqlite+aiosqlite://"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Staffing API"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Database (required, no default)
    database_url: str = Field(
        description="PostgreSQL connection URL. Must be set via environment variable."
    )
    database_pool_size: int = 5
    database_max_overflow: int = 10

    # Security - JWT
    jwt_secret: str = Field(min_length=32)
    jwt_algorithm: str = "HS256"
    jwt_expiration_hours: int = 1
    jwt_issuer: str = "staffing-api"
    jwt_audience: str = "staffing-app"

    # CORS settings
    cors_origins: str = "http://localhost:3000"  # Comma-separated list

    # Trusted proxies for rate limiting (comma-separated IP/CIDR ranges)
    trusted_proxies: str = ""

    # Rate limiting settings (requests per minute)
    rate_limit_default: int = 100
    rate_limit_mutations: int = 30
    rate_limit_enabled: bool = True

    # Contract rules
    max_renewable_contract_months: int = 12
    cumulative_cap_months: int = 24
    days_per_month: int = 30
    default_alert_threshold_days: int = 30

    # Pagination
    default_page_size: int = 10
    max_page_size: int = 100

    @field_validator("days_per_month", "max_renewable_contract_months", "cumulative_cap_months")
    @classmethod
    def check_positive(cls, value: int, info: ValidationInfo) -> int:
        if value <= 0:
            raise ValueError(f"{info.field_name.upper()} must be positive")
        return value

    @field_validator("database_url")
    @classmethod
    def check_database_url(cls, url: str) -> str:
        if not url.startswith(_POSTGRES_SCHEMES + (_SQLITE_SCHEME,)):
            raise ValueError("DATABASE_URL must be a PostgreSQL URL or a 'sqlite+aiosqlite://' URL")
        return url

    @model_validator(mode="after")
    def check_production(self) -> "Settings":
        """Refuse settings that are only acceptable on a developer machine."""
        if self.environment != "production":
            return self
        if self.debug:
            raise ValueError("DEBUG would expose API docs and raw error messages in production")
        if self.is_sqlite:
            raise ValueError("DATABASE_URL must point to PostgreSQL in production")
        if len(set(self.jwt_secret)) < MIN_SECRET_UNIQUE_CHARS:
            raise ValueError(
                f"JWT_SECRET needs at least {MIN_SECRET_UNIQUE_CHARS} distinct characters in production"
            )
        return self

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith(_SQLITE_SCHEME)

    @property
    def async_database_url(self) -> str:
        """URL for the async engine.

        Plain PostgreSQL URLs are switched to the asyncpg driver, whose
        ``ssl`` parameter replaces libpq's ``sslmode``.
        """
        if self.is_sqlite:
            return self.database_url
        _, _, rest = self.database_url.partition("://")
        return f"postgresql+asyncpg://{rest}".replace("sslmode=", "ssl=")

    @property
    def cors_origins_list(self) -> list[str]:
        return _split_csv(self.cors_origins)

    @property
    def trusted_proxies_list(self) -> list[str]:
        return _split_csv(self.trusted_proxies)


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@lru_cache
def get_settings() -> Settings:
    """Settings are read once per process."""
    return Settings()
