"""Event stream consumption and terminal rendering."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

import rich_click as click

from ci_exec.api.events import (
    BuildStatus,
    ErrorEvent,
    Event,
    LogEvent,
    StatusEvent,
)
from ci_exec.errors import EventStreamInterrupted

logger = logging.getLogger(__name__)

_STATUS_COLORS = {
    BuildStatus.SUCCEEDED: "green",
    BuildStatus.FAILED: "red",
    BuildStatus.ERRORED: "magenta",
    BuildStatus.ABORTED: "yellow",
}


class EventRenderer(Protocol):
    def started(self, build_id: int) -> None: ...

    def log(self, event: LogEvent) -> None: ...

    def error(self, event: ErrorEvent) -> None: ...

    def status(self, status: BuildStatus) -> None: ...


class TerminalRenderer:
    """Writes build output to stdout/stderr as it arrives."""

    def started(self, build_id: int) -> None:
        click.echo(f"executing build {build_id}")

    def log(self, event: LogEvent) -> None:
        click.echo(event.payload, nl=False, err=event.is_stderr)

    def error(self, event: ErrorEvent) -> None:
        click.secho(event.message, fg="red", err=True)

    def status(self, status: BuildStatus) -> None:
        click.secho(status.value, fg=_STATUS_COLORS.get(status))


class EventConsumer:
    def __init__(self, renderer: EventRenderer) -> None:
        self._renderer = renderer

    def consume(self, events: Iterable[Event]) -> BuildStatus | None:
        """Render events until the stream ends and return the terminal status seen.

        ``None`` means the stream ended cleanly without a terminal status. A
        dropped stream is re-raised unless a terminal status already arrived.
        """

        status: BuildStatus | None = None
        try:
            for event in events:
                match event:
                    case LogEvent():
                        self._renderer.log(event)
                    case ErrorEvent():
                        self._renderer.error(event)
                    case StatusEvent(status=reported) if reported.is_terminal:
                        logger.debug("Terminal status received: %s", reported.value)
                        status = reported
                    case _:
                        logger.debug("Ignoring event %r", event)
        except EventStreamInterrupted:
            if status is None:
                raise
            logger.debug("Event stream dropped after terminal status %s", status.value)

        if status is not None:
            self._renderer.status(status)
        return status
