"""Config settings – SettingsFactory."""
from __future__ import annotations

from typing import Any, Sequence, TypeVar

import structlog

from mp_reliability.config.settings.base import Settings
from mp_reliability.config.settings.loaders import SettingsLoader
from mp_reliability.config.validation.errors import (
    ConfigError,
    MissingRequiredSettingError,
)

T = TypeVar("T", bound=Settings)

_log = structlog.get_logger(__name__)


class SettingsFactory:
    """Layer several settings sources into one validated instance.

    Sources are applied in order and later ones win.  *overrides* are applied
    last.  A loader raising :class:`ConfigError` is skipped and logged, so a
    missing ``.env`` file does not hide values found in the environment.
    """

    @staticmethod
    def create(
        settings_cls: type[T],
        loaders: Sequence[SettingsLoader] | None = None,
        overrides: dict[str, Any] | None = None,
    ) -> T:
        """
        Raises
        ------
        MissingRequiredSettingError
            A required field has no value in any source.
        InvalidSettingValueError
            Merged values fail the settings' own range checks.
        ConfigError
            Any other construction failure.
        """
        merged: dict[str, Any] = {}

        for loader in loaders or []:
            try:
                merged.update(loader.load(settings_cls).as_dict())
            except ConfigError as exc:
                _log.debug(
                    "settings_source_skipped",
                    loader=type(loader).__name__,
                    settings=settings_cls.__name__,
                    error=str(exc),
                )

        merged.update(overrides or {})

        missing = [name for name in settings_cls.required_fields() if name not in merged]
        if missing:
            raise MissingRequiredSettingError(settings_cls.env_var(missing[0]))

        try:
            return settings_cls(**merged)
        except ConfigError:
            raise
        except Exception as exc:
            raise ConfigError(f"Failed to construct {settings_cls.__name__}: {exc}") from exc


__all__ = ["SettingsFactory"]
