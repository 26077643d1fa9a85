"""Minimal server-sent-events framing over decoded text lines."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

DEFAULT_EVENT_NAME = "message"


@dataclass(slots=True, frozen=True)
class ServerSentEvent:
    name: str = DEFAULT_EVENT_NAME
    data: str = ""
    id: str | None = None


def iter_sse(lines: Iterable[str]) -> Iterator[ServerSentEvent]:
    """Group ``lines`` into events.

    Unlike browsers, a message is dispatched as soon as any field was seen, so
    data-less control messages (``event: end``) are not dropped. A trailing
    message without its blank-line terminator is incomplete and discarded.
    """

    name: str | None = None
    data: list[str] = []
    event_id: str | None = None
    seen_field = False

    for raw_line in lines:
        line = raw_line.rstrip("\r\n")
        if not line:
            if seen_field:
                yield ServerSentEvent(
                    name=name or DEFAULT_EVENT_NAME,
                    data="\n".join(data),
                    id=event_id,
                )
            name, data, event_id, seen_field = None, [], None, False
            continue
        if line.startswith(":"):
            continue

        field, _, value = line.partition(":")
        value = value.removeprefix(" ")
        if field == "event":
            name = value
        elif field == "data":
            data.append(value)
        elif field == "id":
            event_id = value
        else:
            continue
        seen_field = True
