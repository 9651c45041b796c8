"""Config validation – errors surfaced by settings loaders and ``ReliabilitySettings``."""
from mp_reliability.config.validation.errors import (
    ConfigError,
    InvalidSettingValueError,
    MissingRequiredSettingError,
)

__all__ = ["ConfigError", "InvalidSettingValueError", "MissingRequiredSettingError"]
