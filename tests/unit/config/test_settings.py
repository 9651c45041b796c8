"""Unit tests for settings loaders, SettingsFactory and config errors."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar

import pytest

from mp_reliability.config.settings import (
    DotenvSettingsLoader,
    EnvSettingsLoader,
    Settings,
    SettingsFactory,
    SettingsLoader,
)
from mp_reliability.config.validation import (
    ConfigError,
    InvalidSettingValueError,
    MissingRequiredSettingError,
)


@dataclass
class RunnerSettings(Settings):
    _prefix: ClassVar[str] = "RUNNER"

    name: str = "local"
    workers: int = 2
    ratio: float = 0.5
    headless: bool = True
    browsers: list[str] = field(default_factory=list)


@dataclass
class RequiredSettings(Settings):
    _prefix: ClassVar[str] = "REQ"
    token: str


class _FailingLoader(SettingsLoader):
    def load(self, settings_class):  # type: ignore[no-untyped-def]
        raise ConfigError("source unavailable")


# ---------------------------------------------------------------------------
# EnvSettingsLoader
# ---------------------------------------------------------------------------


class TestEnvSettingsLoader:
    def test_coerces_scalar_types(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RUNNER_NAME", "ci")
        monkeypatch.setenv("RUNNER_WORKERS", "8")
        monkeypatch.setenv("RUNNER_RATIO", "0.25")
        monkeypatch.setenv("RUNNER_HEADLESS", "off")
        settings = EnvSettingsLoader().load(RunnerSettings)
        assert settings.name == "ci"
        assert settings.workers == 8
        assert settings.ratio == 0.25
        assert settings.headless is False

    def test_loads_list(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RUNNER_BROWSERS", "chromium, firefox,")
        assert EnvSettingsLoader().load(RunnerSettings).browsers == ["chromium", "firefox"]

    def test_defaults_preserved_when_env_absent(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for key in ("RUNNER_NAME", "RUNNER_WORKERS", "RUNNER_RATIO", "RUNNER_HEADLESS", "RUNNER_BROWSERS"):
            monkeypatch.delenv(key, raising=False)
        settings = EnvSettingsLoader().load(RunnerSettings)
        assert settings == RunnerSettings()

    def test_unparseable_value_raises_invalid(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RUNNER_WORKERS", "many")
        with pytest.raises(InvalidSettingValueError) as exc_info:
            EnvSettingsLoader().load(RunnerSettings)
        assert exc_info.value.setting_name == "RUNNER_WORKERS"

    def test_missing_required_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("REQ_TOKEN", raising=False)
        with pytest.raises(MissingRequiredSettingError) as exc_info:
            EnvSettingsLoader().load(RequiredSettings)
        assert "REQ_TOKEN" in str(exc_info.value)

    def test_reads_injected_mapping(self) -> None:
        environ = {"RUNNER_WORKERS": "7", "RUNNER_HEADLESS": "off"}
        settings = EnvSettingsLoader(environ).load(RunnerSettings)
        assert (settings.workers, settings.headless) == (7, False)

    def test_env_var_and_as_dict(self) -> None:
        assert RunnerSettings.env_var("max_workers") == "RUNNER_MAX_WORKERS"
        assert RunnerSettings(workers=3).as_dict()["workers"] == 3
        assert RequiredSettings.required_fields() == ["token"]


# ---------------------------------------------------------------------------
# DotenvSettingsLoader
# ---------------------------------------------------------------------------


class TestDotenvSettingsLoader:
    def test_reads_env_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("RUNNER_WORKERS", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("RUNNER_WORKERS=6\n")
        try:
            settings = DotenvSettingsLoader(str(env_file)).load(RunnerSettings)
            assert settings.workers == 6
        finally:
            os.environ.pop("RUNNER_WORKERS", None)

    def test_existing_env_wins_without_override(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("RUNNER_WORKERS", "3")
        env_file = tmp_path / ".env"
        env_file.write_text("RUNNER_WORKERS=6\n")
        assert DotenvSettingsLoader(str(env_file)).load(RunnerSettings).workers == 3


# ---------------------------------------------------------------------------
# SettingsFactory
# ---------------------------------------------------------------------------


class TestSettingsFactory:
    def test_overrides_take_priority(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RUNNER_WORKERS", "4")
        settings = SettingsFactory.create(RunnerSettings, [EnvSettingsLoader()], {"workers": 9})
        assert settings.workers == 9

    def test_failing_loader_is_skipped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RUNNER_NAME", "nightly")
        settings = SettingsFactory.create(RunnerSettings, [_FailingLoader(), EnvSettingsLoader()])
        assert settings.name == "nightly"

    def test_missing_required_after_merge(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("REQ_TOKEN", raising=False)
        with pytest.raises(MissingRequiredSettingError):
            SettingsFactory.create(RequiredSettings, [EnvSettingsLoader()])

    def test_required_satisfied_by_override(self) -> None:
        assert SettingsFactory.create(RequiredSettings, overrides={"token": "t"}).token == "t"


# ---------------------------------------------------------------------------
# Config errors
# ---------------------------------------------------------------------------


class TestConfigErrors:
    def test_invalid_setting_value_attributes(self) -> None:
        err = InvalidSettingValueError("PORT", "abc", "must be an integer")
        assert (err.setting_name, err.value, err.reason) == ("PORT", "abc", "must be an integer")
        assert err.code == "invalid_setting_value"

    def test_hierarchy(self) -> None:
        assert isinstance(MissingRequiredSettingError("X"), ConfigError)
        assert isinstance(InvalidSettingValueError("X", 1, "r"), ConfigError)
