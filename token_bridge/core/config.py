"""
Application configuration models and helpers.

All settings are read once at startup. Every value the bridge cannot run
without is declared required, so a missing variable fails ``create_app`` with
a ``ValidationError`` instead of surfacing later as a request-time fault.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
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
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class GitHubSettings(BaseSettings):
    """Credentials registered with the GitHub OAuth application."""

    model_config = SettingsConfigDict(extra="ignore")

    client_id: str = Field(..., min_length=1, alias="GITHUB_CLIENT_ID")
    client_secret: str = Field(..., min_length=1, alias="GITHUB_CLIENT_SECRET")
    redirect_uri: AnyHttpUrl = Field(..., alias="REDIRECT_URL")
    token_url: AnyHttpUrl = Field(
        "https://github.com/login/oauth/access_token", alias="GITHUB_TOKEN_URL"
    )
    authorize_url: AnyHttpUrl = Field(
        "https://github.com/login/oauth/authorize", alias="GITHUB_AUTHORIZE_URL"
    )


class RedisSettings(BaseSettings):
    """Connection details for the durable token store."""

    model_config = SettingsConfigDict(extra="ignore")

    url: str = Field(..., min_length=1, alias="REDIS_URL")
    key_prefix: str = Field(
        "",
        alias="REDIS_KEY_PREFIX",
        description="Optional namespace prepended to every identity key.",
    )


class SecuritySettings(BaseSettings):
    """Secrets guarding the token lookup endpoint and stored records."""

    model_config = SettingsConfigDict(extra="ignore")

    lookup_secret: str = Field(..., min_length=1, alias="LOOKUP_SECRET")
    lookup_secret_header: str = Field("X-Bridge-Secret", alias="LOOKUP_SECRET_HEADER")
    token_encryption_secret: Optional[str] = Field(
        None,
        alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "When set, records are encrypted before they reach Redis and "
            "decrypted again on lookup."
        ),
    )


class HandleSettings(BaseSettings):
    """Bounds applied to the in-memory handle store."""

    model_config = SettingsConfigDict(extra="ignore")

    ttl_seconds: int = Field(900, gt=0, alias="HANDLE_TTL_SECONDS")
    max_entries: int = Field(10_000, gt=0, alias="HANDLE_MAX_ENTRIES")


class TelegramSettings(BaseSettings):
    """Optional Telegram bot integration."""

    model_config = SettingsConfigDict(extra="ignore")

    bot_username: Optional[str] = Field(
        None,
        alias="TELEGRAM_BOT_USERNAME",
        description="Bot used to build t.me deep links for the issued handle.",
    )
    webhook_token: Optional[str] = Field(
        None,
        alias="TELEGRAM_WEBHOOK_TOKEN",
        description="Token Telegram must echo back when calling the webhook.",
    )

    @field_validator("bot_username")
    @classmethod
    def _strip_at_sign(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip().lstrip("@") or None


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="APP_LOG_LEVEL")
    bind_address: str = Field(..., alias="BIND_ADDRESS")
    github: GitHubSettings = Field(default_factory=GitHubSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    handles: HandleSettings = Field(default_factory=HandleSettings)
    telegram: TelegramSettings = Field(default_factory=TelegramSettings)

    @field_validator("bind_address")
    @classmethod
    def _validate_bind_address(cls, value: str) -> str:
        host, sep, port = value.strip().rpartition(":")
        if not sep or not host or not port.isdigit():
            raise ValueError("BIND_ADDRESS must look like 'host:port'.")
        if not 0 < int(port) < 65536:
            raise ValueError("BIND_ADDRESS port is out of range.")
        return value.strip()

    @property
    def bind_host(self) -> str:
        return self.bind_address.rpartition(":")[0].strip("[]")

    @property
    def bind_port(self) -> int:
        return int(self.bind_address.rpartition(":")[2])


@lru_cache()
def get_settings() -> AppSettings:
    """Return the settings object validated at startup."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "GitHubSettings",
    "HandleSettings",
    "RedisSettings",
    "SecuritySettings",
    "TelegramSettings",
    "get_settings",
]
