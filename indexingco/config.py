import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from indexingco.errors import ConfigError
from indexingco.logging import json_logging_from_env

DEFAULT_BASE_URL = "https://app.indexing.co/dw"
API_KEY_ENV = "API_KEY_INDEXINGCO"

THEMES = ("dark", "light", "mono")
LOG_LEVELS = ("info", "debug")


class Config(BaseModel):
    """
    Pydantic-backed configuration loaded from environment variables.

    Key env vars:
    - API_KEY_INDEXINGCO (API key sent as X-API-KEY)
    - INDEXINGCO_BASE_URL (default: https://app.indexing.co/dw)
    - INDEXINGCO_REFRESH_INTERVAL (dashboard refresh seconds, default: 5)
    - INDEXINGCO_THEME (dark | light | mono)
    - INDEXINGCO_LOG_LEVEL (info | debug)
    - INDEXINGCO_LOG_JSON / INDEXINGCO_LOG_FILE (log formatting and destination)
    - INDEXINGCO_TIMEOUT_SECONDS (HTTP timeout, default: 20)
    """

    api_key: Optional[str] = Field(default=None)
    base_url: str = Field(default=DEFAULT_BASE_URL)
    refresh_interval: int = Field(default=5)
    theme: str = Field(default="dark")
    log_level: str = Field(default="info")
    log_json: bool = Field(default=False)
    log_file: Optional[str] = Field(default=None)
    timeout_seconds: float = Field(default=20.0)

    @field_validator("base_url")
    @classmethod
    def _strip_base_url(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value:
            raise ValueError("base URL must not be empty")
        return value

    @field_validator("refresh_interval")
    @classmethod
    def _check_refresh(cls, value: int) -> int:
        if value < 1:
            raise ValueError("refresh interval must be at least 1 second")
        return value

    @field_validator("theme")
    @classmethod
    def _check_theme(cls, value: str) -> str:
        if value not in THEMES:
            raise ValueError(f"Unsupported theme '{value}'. Use dark, light, or mono.")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.lower()
        if value not in LOG_LEVELS:
            raise ValueError(f"Unsupported log level '{value}'. Use info or debug.")
        return value

    @field_validator("timeout_seconds")
    @classmethod
    def _check_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be positive")
        return value

    def with_overrides(self, **overrides: Any) -> "Config":
        """Return a validated copy with the non-None overrides applied."""
        updates: Dict[str, Any] = {k: v for k, v in overrides.items() if v is not None}
        if not updates:
            return self
        data = self.model_dump()
        data.update(updates)
        return _build(data)


def _build(data: Dict[str, Any]) -> Config:
    try:
        return Config.model_validate(data)
    except ValidationError as exc:
        messages = "; ".join(str(err.get("msg", err)) for err in exc.errors())
        raise ConfigError(f"Invalid configuration: {messages}") from exc


def load_config() -> Config:
    """
    Load client configuration from environment.
    """
    data: Dict[str, Any] = {
        "api_key": os.environ.get(API_KEY_ENV) or None,
        "base_url": os.environ.get("INDEXINGCO_BASE_URL", DEFAULT_BASE_URL),
        "theme": os.environ.get("INDEXINGCO_THEME", "dark"),
        "log_level": os.environ.get("INDEXINGCO_LOG_LEVEL", "info"),
        "log_json": json_logging_from_env(),
        "log_file": os.environ.get("INDEXINGCO_LOG_FILE") or None,
    }
    refresh_raw = os.environ.get("INDEXINGCO_REFRESH_INTERVAL", "5")
    timeout_raw = os.environ.get("INDEXINGCO_TIMEOUT_SECONDS", "20")
    try:
        data["refresh_interval"] = int(refresh_raw)
        data["timeout_seconds"] = float(timeout_raw)
    except ValueError as exc:
        raise ConfigError(f"Invalid numeric setting: {exc}") from exc
    return _build(data)


def resolve_api_key(config: Config) -> str:
    if not config.api_key:
        raise ConfigError(f"Missing API key. Pass --api-key or set {API_KEY_ENV}.")
    return config.api_key


def mask_api_key(value: Optional[str]) -> str:
    if not value:
        return "<missing>"
    if len(value) <= 6:
        return "*" * len(value)
    return f"{value[:4]}…{value[-2:]}"
