from __future__ import annotations

from pathlib import Path
from typing import Any, Literal
from urllib.parse import urlsplit

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = ".sprout-connector"
DEFAULT_API_BASE_URL = "https://api.sproutvideo.com/v1/"
API_NETWORK_DOMAIN = "sproutvideo.com"


def _resolve_path(value: str | Path) -> Path:
    return Path(value).expanduser().resolve()


def _normalize_optional_text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    normalized = value.strip()
    return normalized or None


class AppSettings(BaseSettings):
    """
    Runtime configuration, read from `SPROUT_CONNECTOR_*` environment variables
    or a local `.env` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="SPROUT_CONNECTOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    data_dir: Path = Field(
        default=Path(DEFAULT_DATA_DIR),
        description="Root runtime directory for local state and logs.",
    )
    log_dir: Path | None = Field(
        default=None,
        description="Directory for log files. Defaults to `${SPROUT_CONNECTOR_DATA_DIR}/logs`.",
    )
    log_level: str = Field(
        default="INFO",
        description="Console log level (stdout).",
    )

    # SproutVideo API.
    api_key: str | None = Field(
        default=None,
        description="SproutVideo API key, sent in the SproutVideo-Api-Key header.",
    )
    api_base_url: str = Field(
        default=DEFAULT_API_BASE_URL,
        description="SproutVideo REST API base URL.",
    )
    http_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for each SproutVideo API request.",
    )
    tags_cache_ttl_seconds: int = Field(
        default=3600,
        ge=0,
        description="How long the account tag list may be served from cache during sync.",
    )
    account_cache_ttl_seconds: int = Field(
        default=86_400,
        ge=0,
        description="How long the account details behind the connection name are cached.",
    )
    sync_page_size: int = Field(
        default=25,
        ge=1,
        le=100,
        description="Videos per page requested when a sync starts from an offset.",
    )

    # Telemetry.
    telemetry_enabled: bool = Field(
        default=True,
        description="Enable lightweight internal telemetry events.",
    )
    telemetry_sink: Literal["none", "log"] = Field(
        default="log",
        description="`log` emits structured telemetry locally; `none` disables it.",
    )

    @field_validator("api_key", mode="before")
    @classmethod
    def _normalize_api_key(cls, value: Any) -> str | None:
        return _normalize_optional_text(value)

    @field_validator("api_base_url", mode="before")
    @classmethod
    def _normalize_api_base_url(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("SPROUT_CONNECTOR_API_BASE_URL must be a string.")
        normalized = value.strip().rstrip("/")
        if not normalized:
            raise ValueError("SPROUT_CONNECTOR_API_BASE_URL must not be empty.")
        return f"{normalized}/"

    @field_validator("telemetry_sink", mode="before")
    @classmethod
    def _normalize_telemetry_sink(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("SPROUT_CONNECTOR_TELEMETRY_SINK must be a string.")
        normalized = value.strip().lower()
        if normalized in {"none", "log"}:
            return normalized
        raise ValueError("SPROUT_CONNECTOR_TELEMETRY_SINK must be set to: none, log.")

    @field_validator("data_dir", mode="before")
    @classmethod
    def _normalize_data_dir(cls, value: Any) -> Path:
        if value is None or value == "":
            return _resolve_path(DEFAULT_DATA_DIR)
        return _resolve_path(value)

    @field_validator("log_dir", mode="before")
    @classmethod
    def _normalize_log_dir(cls, value: Any) -> Path | None:
        if value is None or value == "":
            return None
        return _resolve_path(value)

    @property
    def resolved_log_dir(self) -> Path:
        if self.log_dir is not None:
            return self.log_dir
        return self.data_dir / "logs"


def _validate_api_configuration(settings: AppSettings, *, require_api_key: bool) -> None:
    errors: list[str] = []
    if require_api_key and settings.api_key is None:
        errors.append(
            "SPROUT_CONNECTOR_API_KEY is required (see https://sproutvideo.com/settings/api)."
        )
    base_url = urlsplit(settings.api_base_url)
    if base_url.scheme not in {"https", "http"}:
        errors.append(
            f"SPROUT_CONNECTOR_API_BASE_URL must be an http(s) URL: {settings.api_base_url}"
        )
    elif not _is_sproutvideo_host(base_url.hostname):
        errors.append(
            f"SPROUT_CONNECTOR_API_BASE_URL must point at {API_NETWORK_DOMAIN}: "
            f"{settings.api_base_url}"
        )

    if errors:
        bullets = "\n".join(f"- {message}" for message in errors)
        raise ValueError(f"Invalid SproutVideo connector configuration:\n{bullets}")


def _is_sproutvideo_host(hostname: str | None) -> bool:
    if not hostname:
        return False
    host = hostname.lower()
    return host == API_NETWORK_DOMAIN or host.endswith(f".{API_NETWORK_DOMAIN}")


def load_settings(*, validate_api_key: bool = True) -> AppSettings:
    settings = AppSettings()
    _validate_api_configuration(settings, require_api_key=validate_api_key)
    return settings
