"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app and the maintenance scripts
share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

import os

from pydantic import AliasChoices, AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEXCOM_PRODUCTION_URL = "https://api.dexcom.com"
DEXCOM_SANDBOX_URL = "https://sandbox-api.dexcom.com"


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


def _split_csv(value: str | tuple[str, ...] | list[str]) -> tuple[str, ...]:
    if isinstance(value, (tuple, list)):
        return tuple(value)
    return tuple(item.strip() for item in value.split(",") if item.strip())


class DexcomSettings(BaseSettings):
    """Configuration required for interacting with the Dexcom API."""

    model_config = SettingsConfigDict(populate_by_name=True)

    client_id: str = Field(
        ..., validation_alias=AliasChoices("DEXCOM_CLIENT_ID", "CLIENT_ID")
    )
    client_secret: str = Field(
        ..., validation_alias=AliasChoices("DEXCOM_CLIENT_SECRET", "CLIENT_SECRET")
    )
    redirect_uri: AnyHttpUrl = Field(
        ..., validation_alias=AliasChoices("DEXCOM_REDIRECT_URI", "REDIRECT_URI")
    )
    base_url: str = Field(
        DEXCOM_PRODUCTION_URL,
        validation_alias="DEXCOM_BASE_URL",
        description="Dexcom API host; point at the sandbox host for development.",
    )
    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        ("offline_access",), validation_alias="DEXCOM_SCOPES"
    )
    request_timeout_seconds: float = Field(10.0, validation_alias="DEXCOM_TIMEOUT")

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        return _split_csv(value)

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class DatabaseSettings(BaseSettings):
    """Location of the SQLite database holding the token record."""

    model_config = SettingsConfigDict(populate_by_name=True)

    url: str = Field(
        "sqlite:///data/glucose_proxy.db",
        validation_alias="DATABASE_URL",
        description="Either sqlite:///<path> or a bare filesystem path.",
    )

    @field_validator("url")
    @classmethod
    def _require_sqlite(cls, value: str) -> str:
        scheme, sep, _ = value.partition("://")
        if sep and scheme != "sqlite":
            raise ValueError(
                f"Unsupported database scheme '{scheme}'; only sqlite is available."
            )
        return value

    @property
    def path(self) -> str:
        """Filesystem path of the SQLite database."""
        if self.url.startswith("sqlite:///"):
            return self.url[len("sqlite:///"):]
        return self.url


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = SettingsConfigDict(populate_by_name=True)

    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )


class ServerSettings(BaseSettings):
    """Listener and browser-facing options."""

    model_config = SettingsConfigDict(populate_by_name=True)

    host: str = Field("0.0.0.0", validation_alias="HOST")
    port: int = Field(3000, validation_alias="PORT")
    cors_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        ("https://chat.openai.com",), validation_alias="CORS_ORIGINS"
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        return _split_csv(value)


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    dexcom: DexcomSettings = Field(default_factory=DexcomSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "DEXCOM_PRODUCTION_URL",
    "DEXCOM_SANDBOX_URL",
    "DatabaseSettings",
    "DexcomSettings",
    "SecuritySettings",
    "ServerSettings",
    "get_settings",
]
