"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

VERIFICATION_EXPOSE_CODES is the diagnostics switch: when unset it follows
the environment (on in development, off everywhere else).
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "garden-reminders"
    # Applied to every notification store call; a timeout is a failure, not an empty result
    store_timeout_seconds: float = Field(default=5.0, gt=0)


class RedisSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Optional; without Redis, verification records live in process memory
    redis_uri: Optional[str] = None


class EmailSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    zepto_api_token: str = ""
    zepto_from_email: str = "noreply@garden-planner.app"
    zepto_from_name: str = "Garden Planner"

    @property
    def is_configured(self) -> bool:
        return bool(self.zepto_api_token)


class VerificationSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    verification_code_ttl_seconds: int = Field(default=600, gt=0)
    verification_max_attempts: int = Field(default=3, ge=1)
    verification_expose_codes: Optional[bool] = None


class SchedulerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    reminder_hour: int = Field(default=9, ge=0, le=23)
    scheduler_timezone: str = "UTC"

    dispatcher_enabled: bool = True
    dispatcher_interval_seconds: float = Field(default=60.0, gt=0)

    # Weekly garden summary, sent by the dispatcher (0 = Monday, 6 = Sunday)
    weekly_summary_enabled: bool = True
    summary_weekday: int = Field(default=6, ge=0, le=6)


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    env: str = "development"
    app_url: str = "https://garden-planner.app"
    app_name: str = "garden-reminders"

    cors_origins: list[str] = ["*"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    redis: Optional[RedisSettings] = None
    email: Optional[EmailSettings] = None
    verification: Optional[VerificationSettings] = None
    scheduler: Optional[SchedulerSettings] = None
    logging: Optional[LoggingSettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        if self.db is None:
            self.db = DatabaseSettings()
        if self.redis is None:
            self.redis = RedisSettings()
        if self.email is None:
            self.email = EmailSettings()
        if self.verification is None:
            self.verification = VerificationSettings()
        if self.scheduler is None:
            self.scheduler = SchedulerSettings()
        if self.logging is None:
            self.logging = LoggingSettings()

        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def expose_verification_codes(self) -> bool:
        explicit = self.verification.verification_expose_codes
        if explicit is not None:
            return explicit
        return self.env == "development"
