"""Build event model decoded from the event stream."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class BuildStatus(str, Enum):
    """Build lifecycle states reported by the server."""

    PENDING = "pending"
    STARTED = "started"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ERRORED = "errored"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in _EXIT_CODES


_EXIT_CODES = {
    BuildStatus.SUCCEEDED: 0,
    BuildStatus.FAILED: 1,
    BuildStatus.ERRORED: 2,
    BuildStatus.ABORTED: 3,
}


def exit_code_for(status: BuildStatus) -> int:
    """Process exit code for a terminal build status."""

    try:
        return _EXIT_CODES[status]
    except KeyError as error:
        raise ValueError(f"status {status.value!r} is not terminal") from error


@dataclass(slots=True, frozen=True)
class LogEvent:
    payload: str
    origin: dict[str, Any] = field(default_factory=dict)

    @property
    def is_stderr(self) -> bool:
        return self.origin.get("source") == "stderr"


@dataclass(slots=True, frozen=True)
class StatusEvent:
    status: BuildStatus
    time: int | None = None


@dataclass(slots=True, frozen=True)
class ErrorEvent:
    message: str
    origin: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class UnknownEvent:
    """Any event kind this client does not render; kept so callers can ignore it."""

    kind: str
    data: Any = None


Event = LogEvent | StatusEvent | ErrorEvent | UnknownEvent


def decode_event(raw: str) -> Event:
    """Decode one ``{"event": kind, "data": {...}}`` envelope.

    Raises ``ValueError`` on malformed JSON or a malformed known event.
    """

    envelope = json.loads(raw)
    if not isinstance(envelope, dict) or not isinstance(envelope.get("event"), str):
        raise ValueError(f"invalid event envelope: {raw[:200]!r}")

    kind = envelope["event"]
    data = envelope.get("data")
    if kind not in {"log", "error", "status"}:
        return UnknownEvent(kind=kind, data=data)
    if not isinstance(data, dict):
        raise ValueError(f"invalid {kind} event payload: {data!r}")

    if kind == "log":
        return LogEvent(payload=str(data.get("payload", "")), origin=dict(data.get("origin") or {}))
    if kind == "error":
        return ErrorEvent(
            message=str(data.get("message", "")),
            origin=dict(data.get("origin") or {}),
        )
    try:
        status = BuildStatus(data.get("status"))
    except ValueError:
        return UnknownEvent(kind=kind, data=data)
    return StatusEvent(status=status, time=data.get("time"))
