from __future__ import annotations

from pathlib import Path

import allure
import pytest

from ci_exec.config import Settings

pytestmark = [
    allure.epic("Configuration"),
    allure.feature("Settings"),
]


def test_settings_defaults(monkeypatch) -> None:
    monkeypatch.delenv("CI_EXEC_RC_PATH", raising=False)
    monkeypatch.delenv("CI_EXEC_CONNECT_TIMEOUT_SECONDS", raising=False)
    monkeypatch.delenv("CI_EXEC_UPLOAD_GRACE_SECONDS", raising=False)
    monkeypatch.delenv("CI_EXEC_INSECURE", raising=False)

    settings = Settings.from_env()
    settings.validate()

    assert settings.rc_path == Path.home() / ".ci-execrc"
    assert settings.http.connect_timeout_seconds == 10.0
    assert settings.http.insecure is False
    assert settings.execution.upload_grace_seconds == 5.0
    assert settings.log_level == "WARNING"


def test_settings_read_environment(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CI_EXEC_RC_PATH", str(tmp_path / "rc"))
    monkeypatch.setenv("CI_EXEC_CONNECT_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("CI_EXEC_UPLOAD_GRACE_SECONDS", "0")
    monkeypatch.setenv("CI_EXEC_INSECURE", "yes")
    monkeypatch.setenv("CI_EXEC_LOG_LEVEL", "debug")

    settings = Settings.from_env()
    settings.validate()

    assert settings.rc_path == tmp_path / "rc"
    assert settings.http.connect_timeout_seconds == 2.5
    assert settings.http.insecure is True
    assert settings.execution.upload_grace_seconds == 0.0
    assert settings.log_level == "DEBUG"


def test_explicit_rc_path_wins(tmp_path: Path) -> None:
    assert Settings.from_env(rc_path=tmp_path / "explicit").rc_path == tmp_path / "explicit"


@pytest.mark.parametrize(
    ("name", "value", "message"),
    [
        ("CI_EXEC_INSECURE", "maybe", "Invalid boolean value"),
        ("CI_EXEC_CONNECT_TIMEOUT_SECONDS", "soon", "Invalid number"),
    ],
)
def test_malformed_environment_values_are_rejected(monkeypatch, name, value, message) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ValueError, match=message):
        Settings.from_env()


@pytest.mark.parametrize(
    ("name", "value", "message"),
    [
        ("CI_EXEC_CONNECT_TIMEOUT_SECONDS", "0", "must be > 0"),
        ("CI_EXEC_UPLOAD_GRACE_SECONDS", "-1", "must be >= 0"),
        ("CI_EXEC_LOG_LEVEL", "loud", "Invalid CI_EXEC_LOG_LEVEL"),
    ],
)
def test_out_of_range_settings_fail_validation(monkeypatch, name, value, message) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ValueError, match=message):
        Settings.from_env().validate()
