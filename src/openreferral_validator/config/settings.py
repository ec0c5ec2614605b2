"""Configuration settings and loading."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from openreferral_validator.errors import ConfigurationError, ErrorContext

DEFAULT_SPECIFICATION_BASE_URL = (
    "https://raw.githubusercontent.com/tpximpact/OpenReferralApi/"
    "refs/heads/staging/OpenReferralApi/Schemas/"
)
DEFAULT_USER_AGENT = "OpenReferral-Validator/1.0"


class ValidatorSettings(BaseSettings):
    """Process-wide settings for the validator."""

    model_config = SettingsConfigDict(
        env_prefix="OPENREFERRAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    specification_base_url: str = DEFAULT_SPECIFICATION_BASE_URL
    user_agent: str = DEFAULT_USER_AGENT
    discovery_timeout: float = 10.0
    schema_fetch_timeout: float = 30.0
    timeout_seconds: int = 30
    max_concurrent_requests: int = 5
    id_sample_size: int = 10
    log_level: str = "INFO"
    json_logs: bool = False

    @field_validator("specification_base_url")
    @classmethod
    def validate_specification_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ConfigurationError(
                message="specification_base_url must be an http(s) URL",
                field="specification_base_url",
                context=ErrorContext(extra={"value": v}),
            )
        return v if v.endswith("/") else f"{v}/"

    @field_validator("max_concurrent_requests", "id_sample_size", "timeout_seconds")
    @classmethod
    def validate_positive(cls, v: int, info: Any) -> int:
        if v < 1:
            raise ConfigurationError(
                message=f"{info.field_name} must be at least 1",
                field=info.field_name,
                context=ErrorContext(extra={"value": v}),
            )
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ConfigurationError(
                message=f"Invalid log level: {v}. Valid: {sorted(valid)}",
                field="log_level",
                context=ErrorContext(extra={"valid_levels": sorted(valid)}),
            )
        return v.upper()


def load_settings(config_path: str | Path | None = None) -> ValidatorSettings:
    """Load settings from a YAML file and the environment.

    Priority: env vars > config file > defaults
    """
    config_data: dict[str, Any] = {}

    if config_path is not None:
        config_path = Path(config_path)
        if config_path.exists():
            with open(config_path) as f:
                loaded = yaml.safe_load(f) or {}
            if not isinstance(loaded, dict):
                raise ConfigurationError(
                    message=f"Config file {config_path} must contain a mapping",
                    context=ErrorContext(extra={"path": str(config_path)}),
                )
            config_data = loaded

    config_data.update(_get_env_overrides())

    return ValidatorSettings(**config_data)


def _get_env_overrides() -> dict[str, Any]:
    """Collect OPENREFERRAL_* variables so they win over file values."""
    overrides: dict[str, Any] = {}
    prefix = "OPENREFERRAL_"
    known = set(ValidatorSettings.model_fields)
    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        name = key[len(prefix):].lower()
        if name in known:
            overrides[name] = value
    return overrides
