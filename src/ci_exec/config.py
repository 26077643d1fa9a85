"""Runtime configuration for the execution client."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_RC_FILENAME = ".ci-execrc"
API_PREFIX = "/api/v1"
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


@dataclass(slots=True)
class HttpSettings:
    """Transport settings shared by every request to the build server."""

    connect_timeout_seconds: float = 10.0
    insecure: bool = False


@dataclass(slots=True)
class ExecutionSettings:
    """Orchestration settings."""

    upload_grace_seconds: float = 5.0


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    rc_path: Path = field(default_factory=lambda: Path.home() / DEFAULT_RC_FILENAME)
    http: HttpSettings = field(default_factory=HttpSettings)
    execution: ExecutionSettings = field(default_factory=ExecutionSettings)
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, rc_path: Path | None = None) -> Settings:
        """Load settings from ``CI_EXEC_*`` environment variables."""

        env_rc_path = os.getenv("CI_EXEC_RC_PATH", "").strip()
        return cls(
            rc_path=rc_path
            or (Path(env_rc_path) if env_rc_path else Path.home() / DEFAULT_RC_FILENAME),
            http=HttpSettings(
                connect_timeout_seconds=_env_float("CI_EXEC_CONNECT_TIMEOUT_SECONDS", 10.0),
                insecure=_env_bool("CI_EXEC_INSECURE", default=False),
            ),
            execution=ExecutionSettings(
                upload_grace_seconds=_env_float("CI_EXEC_UPLOAD_GRACE_SECONDS", 5.0),
            ),
            log_level=os.getenv("CI_EXEC_LOG_LEVEL", "WARNING").strip().upper(),
        )

    def validate(self) -> None:
        """Raise ``ValueError`` if any setting is out of range."""

        if self.http.connect_timeout_seconds <= 0:
            raise ValueError("CI_EXEC_CONNECT_TIMEOUT_SECONDS must be > 0.")
        if self.execution.upload_grace_seconds < 0:
            raise ValueError("CI_EXEC_UPLOAD_GRACE_SECONDS must be >= 0.")
        if self.log_level not in _LOG_LEVELS:
            raise ValueError(
                f"Invalid CI_EXEC_LOG_LEVEL: {self.log_level!r}. "
                f"Expected one of {', '.join(sorted(_LOG_LEVELS))}.",
            )


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as error:
        raise ValueError(f"Invalid number for {name}: {value!r}") from error


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
