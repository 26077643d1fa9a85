from __future__ import annotations

import json

import allure
import pytest
from conftest import log_event, status_event

from ci_exec.api.events import (
    BuildStatus,
    ErrorEvent,
    LogEvent,
    StatusEvent,
    UnknownEvent,
    decode_event,
    exit_code_for,
)
from ci_exec.api.sse import ServerSentEvent, iter_sse

pytestmark = [
    allure.epic("One-off Execution"),
    allure.feature("Build Events"),
]


def test_iter_sse_groups_fields_until_blank_line() -> None:
    lines = [
        ": keep-alive",
        "id: 0",
        "event: event",
        'data: {"a":',
        "data: 1}",
        "",
        "event: end",
        "",
    ]

    assert list(iter_sse(lines)) == [
        ServerSentEvent(name="event", data='{"a":\n1}', id="0"),
        ServerSentEvent(name="end"),
    ]


def test_iter_sse_defaults_event_name_and_strips_single_leading_space() -> None:
    assert list(iter_sse(["data:  two spaces", ""])) == [ServerSentEvent(data=" two spaces")]


def test_iter_sse_drops_unterminated_trailing_message() -> None:
    assert list(iter_sse(["event: end"])) == []


def test_iter_sse_ignores_unknown_fields_and_empty_messages() -> None:
    assert list(iter_sse(["", "retry: 10", "", "event: end", ""])) == [ServerSentEvent(name="end")]


def test_decode_log_event_keeps_origin() -> None:
    event = decode_event(json.dumps(log_event("sup", source="stderr")))

    assert event == LogEvent(payload="sup", origin={"source": "stderr", "id": "3"})
    assert event.is_stderr


def test_decode_status_and_error_events() -> None:
    assert decode_event(json.dumps(status_event("errored"))) == StatusEvent(
        status=BuildStatus.ERRORED,
        time=1700000000,
    )
    assert decode_event(
        json.dumps({"event": "error", "data": {"message": "disk full"}}),
    ) == ErrorEvent(message="disk full")


def test_unrecognized_kinds_and_statuses_are_kept_as_unknown() -> None:
    assert decode_event('{"event": "initialize", "data": {}}') == UnknownEvent(
        kind="initialize",
        data={},
    )
    assert isinstance(decode_event(json.dumps(status_event("paused"))), UnknownEvent)


@pytest.mark.parametrize(
    "raw",
    ["not json", "[]", '{"data": {}}', '{"event": "log", "data": "text"}'],
)
def test_decode_event_rejects_malformed_payloads(raw: str) -> None:
    with pytest.raises(ValueError):
        decode_event(raw)


@pytest.mark.parametrize(
    ("status", "code"),
    [
        (BuildStatus.SUCCEEDED, 0),
        (BuildStatus.FAILED, 1),
        (BuildStatus.ERRORED, 2),
        (BuildStatus.ABORTED, 3),
    ],
)
def test_terminal_statuses_map_to_exit_codes(status: BuildStatus, code: int) -> None:
    assert status.is_terminal
    assert exit_code_for(status) == code


def test_non_terminal_status_has_no_exit_code() -> None:
    assert not BuildStatus.STARTED.is_terminal
    with pytest.raises(ValueError, match="not terminal"):
        exit_code_for(BuildStatus.PENDING)
