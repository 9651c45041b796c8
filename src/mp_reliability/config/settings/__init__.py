"""Config settings – 12-factor env-based configuration."""
from mp_reliability.config.settings.base import Settings
from mp_reliability.config.settings.factory import SettingsFactory
from mp_reliability.config.settings.loaders import DotenvSettingsLoader, EnvSettingsLoader, SettingsLoader
from mp_reliability.config.settings.reliability import ReliabilitySettings

__all__ = [
    "DotenvSettingsLoader",
    "EnvSettingsLoader",
    "ReliabilitySettings",
    "Settings",
    "SettingsFactory",
    "SettingsLoader",
]
