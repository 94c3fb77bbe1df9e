"""
Centralized configuration management for CollabPost.

This module provides a Pydantic Settings-based configuration system that:
- Validates environment variables at startup
- Provides type coercion (strings to ints, bools, etc.)
- Groups related settings for better organization
- Exposes methods to check if features are enabled
- Supports .env file loading

Usage:
    from src.config import get_settings

    settings = get_settings()
    if settings.is_supabase_configured:
        ...
"""

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# Database Settings (Supabase)
# =============================================================================


class DatabaseSettings(BaseSettings):
    """Configuration for the Supabase project."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    supabase_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"),
        description="Supabase project URL",
    )
    supabase_anon_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY"),
        description="Supabase anon/public key",
    )
    supabase_service_role_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_SERVICE_KEY"),
        description="Supabase service role key (server-side queries)",
    )
    database_url: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL"),
        description="Direct Postgres connection string (migrations)",
    )

    @property
    def is_configured(self) -> bool:
        """Check if Supabase is properly configured."""
        return bool(self.supabase_url and (self.supabase_service_role_key or self.supabase_anon_key))

    @property
    def api_key(self) -> Optional[str]:
        """Key used by the server-side client (service role preferred)."""
        key = self.supabase_service_role_key or self.supabase_anon_key
        return key.get_secret_value() if key else None


# =============================================================================
# Application Settings
# =============================================================================


class AppSettings(BaseSettings):
    """Configuration for the deployed application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    app_url: str = Field(
        default="http://localhost:3004",
        validation_alias=AliasChoices("APP_URL", "NEXT_PUBLIC_APP_URL"),
        description="Public base URL of the web app (invite and share links)",
    )
    allowed_origins: str = Field(
        default="http://localhost:3004,http://127.0.0.1:3004",
        description="Comma-separated list of allowed CORS origins",
    )
    sandbox_connect_enabled: bool = Field(
        default=True,
        description="Allow mock platform connections (never honoured in production)",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def origins_list(self) -> List[str]:
        """Get parsed list of allowed origins."""
        return [
            origin.strip()
            for origin in self.allowed_origins.split(",")
            if origin.strip()
        ]

    @property
    def base_url(self) -> str:
        """App URL without a trailing slash."""
        return self.app_url.rstrip("/")


# =============================================================================
# Platform Settings (X / LinkedIn)
# =============================================================================


class PlatformSettings(BaseSettings):
    """OAuth client credentials and outbound call settings for social platforms."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    twitter_client_id: Optional[str] = Field(default=None, description="X OAuth client id")
    twitter_client_secret: Optional[SecretStr] = Field(default=None, description="X OAuth client secret")
    linkedin_client_id: Optional[str] = Field(default=None, description="LinkedIn OAuth client id")
    linkedin_client_secret: Optional[SecretStr] = Field(
        default=None,
        description="LinkedIn OAuth client secret",
    )

    platform_http_timeout: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Timeout in seconds for outbound platform API requests",
    )

    @property
    def is_twitter_configured(self) -> bool:
        return bool(self.twitter_client_id and self.twitter_client_secret)

    @property
    def is_linkedin_configured(self) -> bool:
        return bool(self.linkedin_client_id and self.linkedin_client_secret)


# =============================================================================
# Rate Limiting Settings
# =============================================================================


class RateLimitSettings(BaseSettings):
    """Configuration for share-link rate limiting."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    rate_limit_enabled: bool = Field(
        default=True,
        description="Enable rate limiting on share endpoints",
    )
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis URL for counters shared across instances",
    )
    share_read_limit: int = Field(
        default=180,
        ge=1,
        description="Share read endpoints: requests per window per IP and content",
    )
    share_write_limit: int = Field(
        default=60,
        ge=1,
        description="Share write endpoints: requests per window per IP and content",
    )
    share_window_ms: int = Field(
        default=60_000,
        ge=1000,
        description="Share rate limit window in milliseconds",
    )


# =============================================================================
# Logging Settings
# =============================================================================


class LoggingSettings(BaseSettings):
    """Configuration for logging."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_format_json: bool = Field(
        default=False,
        description="Force JSON log format in development",
    )
    request_logging_enabled: bool = Field(
        default=True,
        description="Enable request logging middleware",
    )


# =============================================================================
# Monitoring Settings (Sentry)
# =============================================================================


class SentrySettings(BaseSettings):
    """Configuration for Sentry error tracking."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    sentry_dsn: Optional[str] = Field(
        default=None,
        description="Sentry DSN for error tracking",
    )
    sentry_environment: str = Field(
        default="development",
        description="Sentry environment name",
    )
    sentry_traces_sample_rate: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Sentry transaction sample rate (0.0 to 1.0)",
    )
    sentry_release: Optional[str] = Field(
        default="collabpost@1.0.0",
        description="Sentry release version",
    )

    @property
    def is_configured(self) -> bool:
        """Check if Sentry is configured."""
        return bool(self.sentry_dsn)


# =============================================================================
# Main Settings
# =============================================================================


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration groups.

    This class provides a single entry point for all application configuration
    with validation, type coercion, and feature detection.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    app: AppSettings = Field(default_factory=AppSettings)
    platforms: PlatformSettings = Field(default_factory=PlatformSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    sentry: SentrySettings = Field(default_factory=SentrySettings)

    @property
    def is_supabase_configured(self) -> bool:
        """Check if the Supabase database is available."""
        return self.database.is_configured

    @property
    def is_sentry_configured(self) -> bool:
        """Check if Sentry error tracking is available."""
        return self.sentry.is_configured

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app.is_production

    @property
    def sandbox_connect_allowed(self) -> bool:
        """Mock platform connections are a local/test affordance only."""
        return self.app.sandbox_connect_enabled and not self.is_production

    def get_config_summary(self) -> dict:
        """
        Get a summary of configuration status for logging.

        This method returns a dictionary with configuration status
        WITHOUT exposing any secrets.
        """
        return {
            "environment": self.app.environment,
            "app_url": self.app.base_url,
            "supabase_configured": self.is_supabase_configured,
            "sentry_configured": self.is_sentry_configured,
            "twitter_configured": self.platforms.is_twitter_configured,
            "linkedin_configured": self.platforms.is_linkedin_configured,
            "rate_limiting_enabled": self.rate_limit.rate_limit_enabled,
            "rate_limit_backend": "redis" if self.rate_limit.redis_url else "memory",
            "sandbox_connect": self.sandbox_connect_allowed,
            "allowed_origins": self.app.origins_list,
            "log_level": self.logging.log_level,
        }


# =============================================================================
# Settings Singleton
# =============================================================================


@lru_cache()
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload settings.
    """
    return Settings()


def reload_settings() -> Settings:
    """
    Reload settings from environment.

    This clears the cache and returns fresh settings.
    Useful for testing or after environment changes.
    """
    get_settings.cache_clear()
    return get_settings()
