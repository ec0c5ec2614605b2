"""Configuration module for the validator."""

from openreferral_validator.config.settings import (
    DEFAULT_SPECIFICATION_BASE_URL,
    DEFAULT_USER_AGENT,
    ValidatorSettings,
    load_settings,
)

__all__ = [
    "DEFAULT_SPECIFICATION_BASE_URL",
    "DEFAULT_USER_AGENT",
    "ValidatorSettings",
    "load_settings",
]
