"""Tests for BuilderSettings.from_env()."""
from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from rnship.core.config import BuilderSettings
from rnship.core.exceptions import ConfigurationError

_VARS = (
    "RNSHIP_HOME",
    "RNSHIP_LOG_LEVEL",
    "RNSHIP_LOG_JSON",
    "RNSHIP_KEYCHAIN_TIMEOUT",
    "RNSHIP_RUNTIME_PACKAGE",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_from_env_defaults_when_not_set() -> None:
    settings = BuilderSettings.from_env()
    assert settings.home == Path.home() / ".rnship"
    assert settings.log_level == "INFO"
    assert settings.log_json is False
    assert settings.keychain_timeout == 3600
    assert settings.runtime_package == "@wavemaker/app-rn-runtime"


def test_from_env_reads_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("RNSHIP_HOME", str(tmp_path))
    settings = BuilderSettings.from_env()
    assert settings.home == tmp_path
    assert settings.build_root == tmp_path / "build"
    assert settings.temp_root == tmp_path / "temp"


def test_from_env_reads_log_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RNSHIP_LOG_LEVEL", "debug")
    monkeypatch.setenv("RNSHIP_LOG_JSON", "true")
    settings = BuilderSettings.from_env()
    assert settings.log_level == "DEBUG"
    assert settings.log_json is True


def test_from_env_reads_keychain_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RNSHIP_KEYCHAIN_TIMEOUT", "7200")
    assert BuilderSettings.from_env().keychain_timeout == 7200


def test_from_env_rejects_tiny_keychain_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RNSHIP_KEYCHAIN_TIMEOUT", "5")
    with pytest.raises(ValidationError):
        BuilderSettings.from_env()


def test_from_env_rejects_non_numeric_keychain_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RNSHIP_KEYCHAIN_TIMEOUT", "an hour")
    with pytest.raises(ConfigurationError, match="RNSHIP_KEYCHAIN_TIMEOUT") as exc_info:
        BuilderSettings.from_env()
    assert exc_info.value.details == {"variable": "RNSHIP_KEYCHAIN_TIMEOUT"}


def test_from_env_reads_runtime_package(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RNSHIP_RUNTIME_PACKAGE", "@acme/runtime")
    assert BuilderSettings.from_env().runtime_package == "@acme/runtime"
