"""Coordinator of a single one-off execution.

Validation and pipe creation happen strictly before submission; after
submission the event stream, the input uploads and the cancellation watcher
run side by side, and only the event stream decides the outcome.
"""

from __future__ import annotations

import logging
import tarfile
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from ci_exec.api.builds import BuildClient
from ci_exec.api.events import BuildStatus, exit_code_for
from ci_exec.api.pipes import Pipe, PipeClient
from ci_exec.errors import OutputDownloadFailed, TransportError
from ci_exec.execution.consumer import EventConsumer, EventRenderer, TerminalRenderer
from ci_exec.execution.interrupts import CancellationWatcher, interrupt_handlers
from ci_exec.plan.builder import PipeSource, build_plan
from ci_exec.task.bindings import (
    BindingOverride,
    InputBinding,
    OutputBinding,
    resolve_inputs,
    resolve_outputs,
)
from ci_exec.task.config import TaskConfig
from ci_exec.transfer.archive import pack, unpack

logger = logging.getLogger(__name__)


class ExecutionState(str, Enum):
    """Local lifecycle of one execution."""

    VALIDATING = "validating"
    PIPES_CREATED = "pipes_created"
    SUBMITTED = "submitted"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ERRORED = "errored"
    ABORTED = "aborted"
    ABORTED_LOCALLY = "aborted_locally"


_TERMINAL_STATES = {
    BuildStatus.SUCCEEDED: ExecutionState.SUCCEEDED,
    BuildStatus.FAILED: ExecutionState.FAILED,
    BuildStatus.ERRORED: ExecutionState.ERRORED,
    BuildStatus.ABORTED: ExecutionState.ABORTED,
}


@dataclass(slots=True)
class ExecutionRequest:
    """Everything a one-off execution needs, before validation."""

    task: TaskConfig
    working_dir: Path
    inputs: tuple[BindingOverride, ...] = ()
    outputs: tuple[BindingOverride, ...] = ()
    privileged: bool = False


@dataclass(slots=True)
class ExecutionOutcome:
    build_id: int
    status: BuildStatus
    state: ExecutionState
    exit_code: int
    aborted_locally: bool = False
    failed_uploads: tuple[str, ...] = ()


@dataclass(slots=True)
class _Upload:
    name: str
    thread: threading.Thread
    errors: list[Exception] = field(default_factory=list)


class _PendingAbort:
    """Sends at most one abort, as soon as both an interrupt and a build id exist.

    An interrupt that lands while the build is still being submitted is held
    until ``submitted`` reports the id.
    """

    def __init__(self, builds: BuildClient) -> None:
        self._builds = builds
        self._lock = threading.Lock()
        self._build_id: int | None = None
        self._requested = False
        self._sent = False

    def request(self) -> None:
        with self._lock:
            self._requested = True
            build_id = self._claim()
        if build_id is None:
            logger.info("Abort requested before the build was submitted; deferring")
            return
        self._builds.abort(build_id)

    def submitted(self, build_id: int) -> None:
        with self._lock:
            self._build_id = build_id
            pending = self._claim()
        if pending is not None:
            self._builds.abort(pending)

    def _claim(self) -> int | None:
        if not self._requested or self._sent or self._build_id is None:
            return None
        self._sent = True
        return self._build_id


class ExecutionOrchestrator:
    def __init__(
        self,
        *,
        pipes: PipeClient,
        builds: BuildClient,
        renderer: EventRenderer | None = None,
        authorization: str | None = None,
        upload_grace_seconds: float = 5.0,
    ) -> None:
        self._pipes = pipes
        self._builds = builds
        self._renderer = renderer or TerminalRenderer()
        self._authorization = authorization
        self._upload_grace_seconds = upload_grace_seconds
        self.state = ExecutionState.VALIDATING

    def run(self, request: ExecutionRequest) -> ExecutionOutcome:
        """Execute ``request`` remotely and return the mapped outcome.

        Raises ``ExecutionError`` subclasses for local failures (validation,
        transport, output download); remote outcomes are returned.
        """

        self._transition(ExecutionState.VALIDATING)
        task = request.task
        task.validate()
        inputs = resolve_inputs(task.input_names, request.working_dir, request.inputs)
        outputs = resolve_outputs(task.output_names, request.working_dir, request.outputs)

        input_pipes = [(binding, self._pipes.create()) for binding in inputs]
        output_pipes = [(binding, self._pipes.create()) for binding in outputs]
        self._transition(ExecutionState.PIPES_CREATED)

        plan = build_plan(
            task,
            [PipeSource(name=binding.name, url=pipe.read_url) for binding, pipe in input_pipes],
            [PipeSource(name=binding.name, url=pipe.write_url) for binding, pipe in output_pipes],
            privileged=request.privileged,
            authorization=self._authorization,
        )
        abort = _PendingAbort(self._builds)
        watcher = CancellationWatcher(abort.request)
        watcher.start()
        uploads: list[_Upload] = []
        try:
            with interrupt_handlers(watcher.notify):
                build_id = self._builds.submit(plan)
                self._transition(ExecutionState.SUBMITTED)
                abort.submitted(build_id)
                self._renderer.started(build_id)
                uploads = [self._start_upload(binding, pipe) for binding, pipe in input_pipes]
                self._transition(ExecutionState.RUNNING)
                with self._builds.events(build_id) as events:
                    reported = EventConsumer(self._renderer).consume(events)
        finally:
            watcher.stop()
            self._join_uploads(uploads)

        if reported is None:
            logger.info("Build %d stream ended without a terminal status", build_id)
            status = BuildStatus.SUCCEEDED
        else:
            status = reported

        if watcher.abort_requested:
            self._transition(ExecutionState.ABORTED_LOCALLY)
        else:
            self._transition(_TERMINAL_STATES[status])

        if status is BuildStatus.SUCCEEDED:
            self._download_outputs(output_pipes)

        return ExecutionOutcome(
            build_id=build_id,
            status=status,
            state=self.state,
            exit_code=exit_code_for(status),
            aborted_locally=watcher.abort_requested,
            failed_uploads=tuple(upload.name for upload in uploads if upload.errors),
        )

    def _start_upload(self, binding: InputBinding, pipe: Pipe) -> _Upload:
        errors: list[Exception] = []

        def _run() -> None:
            try:
                self._pipes.write(pipe, pack(binding.directory))
            except (TransportError, OSError, tarfile.TarError) as error:
                logger.error("Uploading input `%s` failed: %s", binding.name, error)
                errors.append(error)

        thread = threading.Thread(target=_run, daemon=True, name=f"upload-{binding.name}")
        thread.start()
        logger.debug("Uploading %s as input `%s`", binding.directory, binding.name)
        return _Upload(name=binding.name, thread=thread, errors=errors)

    def _join_uploads(self, uploads: list[_Upload]) -> None:
        deadline = time.monotonic() + self._upload_grace_seconds
        for upload in uploads:
            upload.thread.join(timeout=max(0.0, deadline - time.monotonic()))
            if upload.thread.is_alive():
                logger.warning("Upload of input `%s` still running at exit", upload.name)

    def _download_outputs(self, output_pipes: list[tuple[OutputBinding, Pipe]]) -> None:
        for binding, pipe in output_pipes:
            logger.debug("Downloading output `%s` into %s", binding.name, binding.directory)
            try:
                with self._pipes.read(pipe) as chunks:
                    unpack(chunks, binding.directory)
            except (TransportError, OSError, tarfile.TarError) as error:
                raise OutputDownloadFailed(binding.name, str(error)) from error

    def _transition(self, state: ExecutionState) -> None:
        logger.debug("Execution state %s -> %s", self.state.value, state.value)
        self.state = state
