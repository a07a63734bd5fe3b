"""
Application configuration models and helpers.

Settings are read once at startup into a single ``AppSettings`` object which
is then injected into every component; nothing below the API layer looks up
configuration on its own.
"""

from functools import lru_cache
from pathlib import Path
import os
import secrets

from pydantic import AnyHttpUrl, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.core.errors import ConfigurationError, InvalidSecretError
from app.core.keys import secret_key_from_hex


def _load_env_file(path: str = ".env", *, override: bool = False) -> None:
    """
    Best-effort load key=value pairs from a .env file into the environment.

    Variables already exported win unless ``override`` is set.
    """
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or (key in os.environ and not override):
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class StravaSettings(BaseSettings):
    """Credentials and endpoints for the Strava API."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    client_id: str = Field(..., validation_alias="STRAVA_CLIENT_ID")
    client_secret: str = Field(..., validation_alias="STRAVA_CLIENT_SECRET")
    scopes: str = Field("read,activity:read_all", validation_alias="STRAVA_SCOPES")
    authorize_url: str = "https://www.strava.com/oauth/authorize"
    token_url: str = "https://www.strava.com/oauth/token"
    subscriptions_url: str = "https://www.strava.com/api/v3/push_subscriptions"

    @field_validator("client_id", "client_secret")
    @classmethod
    def _require_value(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Strava client credentials must be set.")
        return value


class SecuritySettings(BaseSettings):
    """Secret material and lifetimes for tokens issued by the broker."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    app_secret: str = Field(
        ...,
        validation_alias="APP_SECRET",
        description="Hex-encoded secret (>= 32 bytes) for token encryption and signing.",
    )
    bearer_token_ttl_seconds: int = Field(
        30 * 24 * 60 * 60, validation_alias="BEARER_TOKEN_TTL_SECONDS", gt=0
    )
    oauth_state_ttl_seconds: int = Field(600, validation_alias="OAUTH_STATE_TTL", gt=0)
    cli_session_ttl_seconds: int = Field(60, validation_alias="CLI_SESSION_TTL", gt=0)

    @field_validator("app_secret")
    @classmethod
    def _validate_secret(cls, value: str) -> str:
        try:
            secret_key_from_hex(value)
        except InvalidSecretError as exc:
            raise ValueError(f"APP_SECRET is invalid: {exc}") from exc
        return value.strip()


class RedisSettings(BaseSettings):
    """Connection settings for the shared key-value store."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    url: str = Field(..., validation_alias="UPSTASH_REDIS_URL")
    socket_timeout: float = Field(5.0, validation_alias="REDIS_SOCKET_TIMEOUT", gt=0)


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    base_url: AnyHttpUrl = Field("http://localhost:8080", validation_alias="APP_BASE_URL")
    http_timeout_seconds: float = Field(10.0, validation_alias="HTTP_TIMEOUT_SECONDS", gt=0)
    verify_token: str = Field(
        default_factory=lambda: secrets.token_hex(16),
        validation_alias="STRAVA_VERIFY_TOKEN",
        description="Token Strava echoes back when verifying the webhook callback.",
    )
    subscriptions_enabled: bool = Field(True, validation_alias="SUBSCRIPTIONS_ENABLED")
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    strava: StravaSettings = Field(default_factory=StravaSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)

    def callback_url(self) -> str:
        """Absolute redirect URI registered with Strava for the token flow."""
        return f"{str(self.base_url).rstrip('/')}/token/callback"

    def subscription_callback_url(self) -> str:
        return f"{str(self.base_url).rstrip('/')}/subscriptions/callback"


def load_settings() -> AppSettings:
    """Build settings, converting validation failures into a configuration error."""
    try:
        return AppSettings()  # type: ignore[call-arg]
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return load_settings()


__all__ = [
    "AppSettings",
    "RedisSettings",
    "SecuritySettings",
    "StravaSettings",
    "get_settings",
    "load_settings",
]
