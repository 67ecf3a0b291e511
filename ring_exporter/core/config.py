"""
Exporter configuration models and helpers.

Two layers are kept apart:

* ``AppSettings`` holds process-level settings read from the environment (and
  an optional ``.env`` file), cached through ``get_settings``.
* ``ExporterConfig`` is the JSON config file shared by the ``init``, ``test``
  and ``monitor`` commands. Missing values are defaulted on load and written
  back so the file migrates forward over time.
"""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

STATE_FILE_NAME = "ring-state.json"


class ConfigError(Exception):
    """Raised when the exporter config file cannot be read or parsed."""


class AppSettings(BaseSettings):
    """Root settings object for the exporter process."""

    model_config = SettingsConfigDict(
        env_prefix="RING_EXPORTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = Field("development")
    log_level: str = Field("INFO")
    config_file: str = Field("ring-config.json")
    token_encryption_secret: Optional[str] = Field(
        None,
        description=(
            "Secret used to derive the symmetric key for encrypting the stored token."
        ),
    )
    http_timeout_seconds: float = Field(10.0, gt=0)


class ApiConfig(BaseModel):
    """Settings that alter how the exporter presents itself to the Ring API."""

    hardware_id: str = ""


class WebConfig(BaseModel):
    """Settings for the metrics exposition server."""

    host: str = "0.0.0.0"
    port: int = Field(9100, gt=0, lt=65536)
    metrics_route: str = "/metrics"

    @field_validator("metrics_route")
    @classmethod
    def _leading_slash(cls, value: str) -> str:
        if value and not value.startswith("/"):
            return f"/{value}"
        return value


class ExporterConfig(BaseModel):
    """Serializable contents of the exporter config file."""

    api_config: ApiConfig = Field(default_factory=ApiConfig)
    web_config: WebConfig = Field(default_factory=WebConfig)
    poll_interval_seconds: int = Field(5 * 60, ge=0)
    save_interval_seconds: int = Field(5 * 60, ge=0)


def ensure_config_defaults(config: ExporterConfig) -> bool:
    """Fill zero-valued settings with defaults. Returns ``True`` when anything changed."""
    dirty = False
    if not config.api_config.hardware_id:
        config.api_config.hardware_id = str(uuid4())
        dirty = True
    if not config.web_config.metrics_route:
        config.web_config.metrics_route = "/metrics"
        dirty = True
    if config.poll_interval_seconds == 0:
        config.poll_interval_seconds = 5 * 60
        dirty = True
    if config.save_interval_seconds == 0:
        config.save_interval_seconds = 5 * 60
        dirty = True
    return dirty


def _missing_keys(raw: dict, config: ExporterConfig) -> bool:
    expected = config.model_dump(mode="json")
    for key, value in expected.items():
        if key not in raw:
            return True
        if isinstance(value, dict) and isinstance(raw[key], dict):
            if any(sub_key not in raw[key] for sub_key in value):
                return True
    return False


def load_config(path: str | Path) -> ExporterConfig:
    """Read, default and (when needed) rewrite the exporter config file."""
    config_path = Path(path)
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Failed to read config {config_path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Failed to deserialize config {config_path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"Config root in {config_path} must be an object.")

    try:
        config = ExporterConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config {config_path}: {exc}") from exc

    dirty = ensure_config_defaults(config)
    if dirty or _missing_keys(raw, config):
        logger.info("Writing defaulted settings back to %s", config_path)
        save_config(config_path, config)

    return config


def save_config(path: str | Path, config: ExporterConfig) -> None:
    """Persist the config file, readable only by the owner."""
    config_path = Path(path)
    if config_path.parent and not config_path.parent.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
    data = json.dumps(config.model_dump(mode="json"), indent=1)
    try:
        config_path.write_text(data, encoding="utf-8")
        os.chmod(config_path, 0o600)
    except OSError as exc:
        raise ConfigError(f"Failed to persist config {config_path}: {exc}") from exc


def ensure_config(path: str | Path) -> ExporterConfig:
    """Load the config, creating a defaulted one when it does not exist yet."""
    config_path = Path(path)
    if not config_path.exists():
        logger.info("No config at %s; initializing a new one", config_path)
        config = ExporterConfig()
        ensure_config_defaults(config)
        save_config(config_path, config)
        return config
    return load_config(config_path)


def state_path_for(config_file: str | Path) -> Path:
    """The ledger snapshot lives next to the config file."""
    return Path(config_file).resolve().parent / STATE_FILE_NAME


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()


__all__ = [
    "ApiConfig",
    "AppSettings",
    "ConfigError",
    "ExporterConfig",
    "STATE_FILE_NAME",
    "WebConfig",
    "ensure_config",
    "ensure_config_defaults",
    "get_settings",
    "load_config",
    "save_config",
    "state_path_for",
]
