"""Application configuration using pydantic-settings."""
from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    environment: Literal["development", "test", "staging", "production"] = Field(
        default="development", validation_alias="ENVIRONMENT",
    )

    # Database
    database_url: str
    db_pool_size: int = Field(default=10, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, validation_alias="DB_MAX_OVERFLOW")
    # Startup connection retry - fixed attempt count and delay, exit on exhaustion
    db_connect_max_attempts: int = Field(default=5, validation_alias="DB_CONNECT_MAX_ATTEMPTS")
    db_connect_retry_interval: float = Field(
        default=5.0, validation_alias="DB_CONNECT_RETRY_INTERVAL",
    )

    # Sessions
    session_secret: str = Field(default="", validation_alias="SESSION_SECRET")
    session_cookie_name: str = Field(default="session", validation_alias="SESSION_COOKIE_NAME")
    session_cookie_secure: bool = Field(default=False, validation_alias="SESSION_COOKIE_SECURE")
    # Lifetime of "stay logged in" sessions
    session_expiry_days: int = Field(default=7, validation_alias="SESSION_EXPIRY_DAYS")

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:5173",
        validation_alias="CORS_ORIGINS",
    )

    # Redis - for rate limiting
    redis_url: str = Field(default="redis://localhost:6379", validation_alias="REDIS_URL")
    redis_enabled: bool = Field(default=True, validation_alias="REDIS_ENABLED")
    redis_pool_size: int = Field(default=20, validation_alias="REDIS_POOL_SIZE")

    # Rate limits per sensitivity tier (requests per client address)
    rate_limit_very_low_per_minute: int = Field(
        default=600, validation_alias="RATE_LIMIT_VERY_LOW_PER_MINUTE",
    )
    rate_limit_very_low_per_day: int = Field(
        default=50_000, validation_alias="RATE_LIMIT_VERY_LOW_PER_DAY",
    )
    rate_limit_medium_per_minute: int = Field(
        default=120, validation_alias="RATE_LIMIT_MEDIUM_PER_MINUTE",
    )
    rate_limit_medium_per_day: int = Field(
        default=10_000, validation_alias="RATE_LIMIT_MEDIUM_PER_DAY",
    )
    rate_limit_high_per_minute: int = Field(
        default=20, validation_alias="RATE_LIMIT_HIGH_PER_MINUTE",
    )
    rate_limit_high_per_day: int = Field(
        default=500, validation_alias="RATE_LIMIT_HIGH_PER_DAY",
    )

    # Tracks
    track_name_policy: Literal["free_form", "registry"] = Field(
        default="free_form", validation_alias="TRACK_NAME_POLICY",
    )
    # Bounded by the track_name column, varchar(100)
    max_track_name_length: int = Field(
        default=100, ge=1, le=100, validation_alias="MAX_TRACK_NAME_LENGTH",
    )

    # Passwords
    bcrypt_rounds: int = Field(default=12, validation_alias="BCRYPT_ROUNDS")

    # Mailer
    smtp_host: str = Field(default="localhost", validation_alias="SMTP_SERVER")
    smtp_port: int = Field(default=587, validation_alias="SMTP_PORT")
    smtp_login: str = Field(default="", validation_alias="SMTP_LOGIN")
    smtp_password: str = Field(default="", validation_alias="SMTP_KEY")
    email_from: str = Field(default="noreply@localhost", validation_alias="EMAIL_FROM")
    frontend_domain: str = Field(default="localhost:5173", validation_alias="FRONTEND_DOMAIN")

    @model_validator(mode="after")
    def validate_required_secrets(self) -> "Settings":
        """
        Require a session secret in deployed environments.

        Development and test runs fall back to an ephemeral secret so that the
        app can boot without one; cookies signed with it do not survive a restart.
        """
        if self.session_secret:
            return self
        if self.environment in ("staging", "production"):
            raise ValueError(
                f"SESSION_SECRET must be set when ENVIRONMENT is '{self.environment}'.",
            )
        self.session_secret = "insecure-development-secret"
        return self

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    @property
    def is_local_environment(self) -> bool:
        """True for development and test runs (emails are logged, not sent)."""
        return self.environment in ("development", "test")

    @property
    def session_max_age_seconds(self) -> int:
        """Cookie max-age for persistent sessions."""
        return self.session_expiry_days * 24 * 60 * 60


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
