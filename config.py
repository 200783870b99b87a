"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

Durations (ACCESS_TTL, REFRESH_TTL, RESET_TOKEN_TTL) accept either plain
seconds or a short duration string such as "15m" or "7d"; they are stored as
integer seconds.
"""

from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.datetime_utils import parse_duration


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "bricola"


class JWTSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", populate_by_name=True
    )

    jwt_issuer: str = "bricola"
    jwt_audience: str = "bricola.api"

    access_secret: str = Field(
        default="", validation_alias=AliasChoices("ACCESS_SECRET", "JWT_ACCESS_SECRET")
    )
    refresh_secret: str = Field(
        default="",
        validation_alias=AliasChoices("REFRESH_SECRET", "JWT_REFRESH_SECRET"),
    )
    access_token_ttl_seconds: int = Field(
        default=900,
        validation_alias=AliasChoices("ACCESS_TTL", "ACCESS_TOKEN_TTL_SECONDS"),
    )
    refresh_token_ttl_seconds: int = Field(
        default=604800,
        validation_alias=AliasChoices("REFRESH_TTL", "REFRESH_TOKEN_TTL_SECONDS"),
    )

    # None means "derive from ENV" (secure everywhere except development)
    cookie_secure: Optional[bool] = None

    @field_validator(
        "access_token_ttl_seconds", "refresh_token_ttl_seconds", mode="before"
    )
    @classmethod
    def _parse_ttl(cls, value):
        return parse_duration(value)


class SecuritySettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", populate_by_name=True
    )

    # argon2 time cost; named after the bcrypt setting it replaces
    salt_rounds: int = Field(
        default=10,
        ge=1,
        validation_alias=AliasChoices("SALT_ROUNDS", "BCRYPT_SALT_ROUNDS"),
    )
    hash_memory_cost: int = 65536  # KiB
    hash_parallelism: int = 1

    reset_token_ttl_seconds: int = Field(
        default=900,
        validation_alias=AliasChoices("RESET_TOKEN_TTL", "RESET_TOKEN_TTL_SECONDS"),
    )

    @field_validator("reset_token_ttl_seconds", mode="before")
    @classmethod
    def _parse_ttl(cls, value):
        return parse_duration(value)


class EmailSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    zepto_api_token: str = ""
    zepto_from_email: str = "noreply@bricola.fr"
    zepto_from_name: str = "BRICOLA"


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1
    sentry_profile_sample_rate: float = 0.05


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    env: str = "development"
    app_url: str = "https://bricola.fr"
    app_name: str = "BRICOLA"

    cors_origins: list[str] = ["*"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    jwt: Optional[JWTSettings] = None
    security: Optional[SecuritySettings] = None
    email: Optional[EmailSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        # Populate sub-configs from the same env/dotenv source
        if self.db is None:
            self.db = DatabaseSettings()
        if self.jwt is None:
            self.jwt = JWTSettings()
        if self.security is None:
            self.security = SecuritySettings()
        if self.email is None:
            self.email = EmailSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()

        if self.jwt.cookie_secure is None:
            self.jwt.cookie_secure = not self.is_development

        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def is_development(self) -> bool:
        return self.env == "development"
