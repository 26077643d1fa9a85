"""Shared test fixtures."""

from __future__ import annotations

import io
import json
import tarfile
import threading
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import httpx
import pytest

from ci_exec.api.events import BuildStatus, ErrorEvent, LogEvent
from ci_exec.api.session import ApiSession
from ci_exec.targets import Target

SERVER_URL = "http://ci.example.com"
BUILD_ID = 128

TASK_YAML = """---
platform: some-platform

image: ubuntu

inputs:
- name: fixture

params:
  FOO: bar
  BAZ: buzz
  X: 1

run:
  path: find
  args: [.]
"""

TASK_WITH_OUTPUT_YAML = """---
platform: some-platform

image: ubuntu

inputs:
- name: fixture

outputs:
- name: some-dir

params:
  FOO: bar
  BAZ: buzz
  X: 1

run:
  path: /bin/sh
  args:
    - -c
    - echo some-content > some-dir/a-file
"""


def sse_message(
    payload: dict[str, Any] | None = None,
    *,
    name: str = "event",
    event_id: str | None = None,
) -> bytes:
    lines = []
    if event_id is not None:
        lines.append(f"id: {event_id}")
    lines.append(f"event: {name}")
    if payload is not None:
        lines.append(f"data: {json.dumps(payload)}")
    return ("\n".join(lines) + "\n\n").encode()


def log_event(payload: str, source: str = "stdout") -> dict[str, Any]:
    return {
        "event": "log",
        "version": "5.0",
        "data": {"payload": payload, "origin": {"source": source, "id": "3"}},
    }


def status_event(status: str) -> dict[str, Any]:
    return {"event": "status", "version": "1.0", "data": {"status": status, "time": 1700000000}}


def make_archive(files: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        for name, content in files.items():
            info = tarfile.TarInfo(name=name)
            info.size = len(content)
            info.mode = 0o644
            archive.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


class RecordingRenderer:
    def __init__(self) -> None:
        self.calls: list[tuple[str, object]] = []

    def started(self, build_id: int) -> None:
        self.calls.append(("started", build_id))

    def log(self, event: LogEvent) -> None:
        self.calls.append(("log", event.payload))

    def error(self, event: ErrorEvent) -> None:
        self.calls.append(("error", event.message))

    def status(self, status: BuildStatus) -> None:
        self.calls.append(("status", status))


class FakeCiServer:
    """In-process build server speaking the pipe/build/event protocol."""

    def __init__(self) -> None:
        self.pipe_ids = ["some-pipe-id", "some-other-pipe-id", "third-pipe-id"]
        self.pipe_status = 201
        self.build_status = 201
        self.build_body = json.dumps({"id": BUILD_ID})
        self.events_status = 200
        self.abort_status = 204
        self.upload_status = 200
        self.on_submit: Callable[[], None] | None = None
        self.script: list[dict[str, Any] | Callable[[], None]] = []
        self.send_end = True
        self.pipe_contents: dict[str, bytes] = {}

        self.requests: list[httpx.Request] = []
        self.submitted_plan: dict[str, Any] | None = None
        self.uploads: dict[str, bytes] = {}
        self.uploaded = threading.Event()
        self.aborted = threading.Event()
        self._lock = threading.Lock()
        self._created = 0

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def calls(self) -> list[tuple[str, str]]:
        with self._lock:
            return [(request.method, request.url.path) for request in self.requests]

    def handle(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
        method, path = request.method, request.url.path

        if method == "POST" and path == "/api/v1/pipes":
            return self._create_pipe()
        if method == "POST" and path == "/api/v1/builds":
            self.submitted_plan = json.loads(request.content)
            if self.on_submit is not None:
                self.on_submit()
            return httpx.Response(
                self.build_status,
                text=self.build_body,
                headers={"Set-Cookie": "Some-Cookie=some-cookie-data; Path=/"},
            )
        if method == "GET" and path == f"/api/v1/builds/{BUILD_ID}/events":
            if self.events_status != 200:
                return httpx.Response(self.events_status, text="no such build")
            return httpx.Response(
                200,
                headers={"Content-Type": "text/event-stream; charset=utf-8"},
                content=self._event_stream(),
            )
        if method == "POST" and path == f"/api/v1/builds/{BUILD_ID}/abort":
            self.aborted.set()
            return httpx.Response(self.abort_status)
        if path.startswith("/api/v1/pipes/"):
            pipe_id = path.rsplit("/", 1)[-1]
            if method == "PUT":
                self.uploads[pipe_id] = request.content
                self.uploaded.set()
                return httpx.Response(self.upload_status)
            if method == "GET" and pipe_id in self.pipe_contents:
                return httpx.Response(200, content=self.pipe_contents[pipe_id])
        return httpx.Response(404, text=f"unhandled {method} {path}")

    def _create_pipe(self) -> httpx.Response:
        if self.pipe_status != 201:
            return httpx.Response(self.pipe_status, text="pipes are broken")
        with self._lock:
            pipe_id = self.pipe_ids[self._created]
            self._created += 1
        return httpx.Response(201, json={"id": pipe_id})

    def _event_stream(self) -> Iterator[bytes]:
        for index, item in enumerate(self.script):
            if callable(item):
                item()
                continue
            yield sse_message(item, event_id=str(index))
        if self.send_end:
            yield sse_message(name="end")


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CI_EXEC_RC_PATH", str(tmp_path / "missing-rc.yml"))
    monkeypatch.delenv("CI_EXEC_TARGET", raising=False)
    monkeypatch.delenv("CI_EXEC_LOG_LEVEL", raising=False)


@pytest.fixture()
def ci_server() -> FakeCiServer:
    return FakeCiServer()


@pytest.fixture()
def api_session(ci_server: FakeCiServer) -> Iterator[ApiSession]:
    with ApiSession(Target(api=SERVER_URL), transport=ci_server.transport) as session:
        yield session


@pytest.fixture()
def build_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "fixture"
    directory.mkdir()
    (directory / "task.yml").write_text(TASK_YAML, "utf-8")
    return directory
