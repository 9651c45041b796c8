"""Config – 12-factor settings and their validation errors."""

from mp_reliability.config.settings import (
    DotenvSettingsLoader,
    EnvSettingsLoader,
    ReliabilitySettings,
    Settings,
    SettingsFactory,
    SettingsLoader,
)
from mp_reliability.config.validation import (
    ConfigError,
    InvalidSettingValueError,
    MissingRequiredSettingError,
)

__all__ = [
    "ConfigError",
    "DotenvSettingsLoader",
    "EnvSettingsLoader",
    "InvalidSettingValueError",
    "MissingRequiredSettingError",
    "ReliabilitySettings",
    "Settings",
    "SettingsFactory",
    "SettingsLoader",
]
