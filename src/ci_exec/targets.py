"""Read-only lookup of saved build-server targets."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml

from ci_exec.errors import UnknownTargetError, UsageError

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class TargetToken:
    type: str
    value: str

    @property
    def authorization(self) -> str:
        return f"{self.type} {self.value}"


@dataclass(slots=True, frozen=True)
class Target:
    """Resolved server address plus optional credential."""

    api: str
    token: TargetToken | None = None
    insecure: bool = False

    @property
    def authorization(self) -> str | None:
        return self.token.authorization if self.token else None


class TargetStore:
    """Targets saved in a YAML rc file, keyed by name."""

    def __init__(self, targets: dict[str, Target] | None = None) -> None:
        self._targets = dict(targets or {})

    @classmethod
    def load(cls, path: Path) -> TargetStore:
        if not path.exists():
            return cls()
        try:
            payload = yaml.safe_load(path.read_text("utf-8")) or {}
        except (OSError, yaml.YAMLError) as error:
            raise UsageError(f"could not read targets from {path}: {error}") from error
        if not isinstance(payload, dict):
            raise UsageError(f"invalid targets file {path}: expected a mapping")

        raw_targets = payload.get("targets") or {}
        if not isinstance(raw_targets, dict):
            raise UsageError(f"invalid targets file {path}: 'targets' must be a mapping")
        targets = {
            str(name): _parse_target(str(name), entry, path)
            for name, entry in raw_targets.items()
        }
        logger.debug("Loaded %d saved target(s) from %s", len(targets), path)
        return cls(targets)

    def resolve(self, name_or_url: str) -> Target:
        """Return the saved target named ``name_or_url`` or treat it as a server URL."""

        saved = self._targets.get(name_or_url)
        if saved is not None:
            return saved
        if _is_absolute_url(name_or_url):
            return Target(api=name_or_url.rstrip("/"))
        raise UnknownTargetError(name_or_url)


def _parse_target(name: str, entry: Any, path: Path) -> Target:
    if not isinstance(entry, dict) or not entry.get("api"):
        raise UsageError(f"invalid target {name!r} in {path}: 'api' is required")

    token = None
    raw_token = entry.get("token")
    if isinstance(raw_token, dict) and raw_token.get("value"):
        token = TargetToken(
            type=str(raw_token.get("type") or "Bearer"),
            value=str(raw_token["value"]),
        )
    return Target(
        api=str(entry["api"]).rstrip("/"),
        token=token,
        insecure=bool(entry.get("insecure", False)),
    )


def _is_absolute_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)
