"""
Configuration management for the vendor dashboard backend.

Secrets and connection strings come from environment variables (or a
``.env`` file); defaults are suitable for local development only.
"""

from functools import lru_cache
from typing import List, Optional, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_JWT_SECRET = "dev-secret-change-in-production"


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Document store
    mongodb_uri: str = "mongodb://localhost:27017/vendor_dashboard"
    mongodb_db_name: str = "vendor_dashboard"
    mongodb_server_selection_timeout_ms: int = 5000
    mongodb_max_pool_size: int = 10

    # Redis cache
    redis_url: Optional[str] = None
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None
    redis_connect_timeout_seconds: int = 5
    cache_enabled: bool = True
    cache_key_prefix: str = ""

    # Analytics
    analytics_cache_ttl_seconds: int = 300
    analytics_month_locale: str = "tr"

    # JWT Authentication - MUST be overridden in production
    jwt_secret_key: str = DEV_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_expires_minutes: int = 60 * 24 * 7

    cors_origins: Union[List[str], str] = ["http://localhost:3000"]

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_storage: str = "redis"
    analytics_rate_limit: int = 30
    analytics_rate_window_seconds: int = 60
    auth_rate_limit: int = 5
    auth_rate_window_seconds: int = 15 * 60

    # Environment
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from a comma separated string or a list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("analytics_month_locale")
    @classmethod
    def validate_month_locale(cls, v: str) -> str:
        v = v.lower()
        if v not in ("tr", "en"):
            raise ValueError("analytics_month_locale must be 'tr' or 'en'")
        return v

    @field_validator("rate_limit_storage")
    @classmethod
    def validate_rate_limit_storage(cls, v: str) -> str:
        v = v.lower()
        if v not in ("redis", "memory"):
            raise ValueError("rate_limit_storage must be 'redis' or 'memory'")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Returns:
        Settings instance with environment variables loaded
    """
    return Settings()


def validate_production_config(config: Settings) -> None:
    """Refuse insecure configuration when running in production."""
    if not config.is_production:
        return

    issues = []
    if config.jwt_secret_key == DEV_JWT_SECRET:
        issues.append("JWT_SECRET_KEY is using default value")
    if config.debug:
        issues.append("DEBUG is enabled in production")

    if issues:
        raise ValueError(f"Production security issues detected: {', '.join(issues)}")


settings = get_settings()
validate_production_config(settings)
