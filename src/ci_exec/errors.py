"""Error taxonomy for one-off execution.

Every failure that ends the process carries the exit code it maps to. Remote
build outcomes (failed/errored) are not errors: they flow through the terminal
status and the exit-code table in ``ci_exec.api.events``.
"""

from __future__ import annotations


class ExecutionError(RuntimeError):
    """Base class for failures that terminate an execution locally."""

    exit_code = 1


class UsageError(ExecutionError):
    """Invalid invocation detected before any network call."""


class UnknownInputError(UsageError):
    def __init__(self, name: str) -> None:
        super().__init__(f"unknown input `{name}`")
        self.name = name


class MissingRequiredInputError(UsageError):
    def __init__(self, name: str) -> None:
        super().__init__(f"missing required input `{name}`")
        self.name = name


class UnknownOutputError(UsageError):
    def __init__(self, name: str) -> None:
        super().__init__(f"unknown output '{name}'")
        self.name = name


class UnknownTargetError(UsageError):
    def __init__(self, name: str) -> None:
        super().__init__(f"unknown target: {name!r} (not a URL and not a saved target)")
        self.name = name


class TaskConfigInvalid(UsageError):
    """Task definition could not be read or is structurally incomplete."""


class TransportError(ExecutionError):
    """Request to the build server could not be completed."""


class PipeCreationFailed(TransportError):
    pass


class BuildSubmissionFailed(TransportError):
    pass


class EventStreamFailed(TransportError):
    """The event stream could not be opened."""


class BuildConfigRejected(ExecutionError):
    """The server refused the submitted plan; message is the server's, verbatim."""


class OutputDownloadFailed(ExecutionError):
    """Build succeeded but an output could not be written locally."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"downloading output '{name}' failed: {reason}")
        self.name = name


class EventStreamInterrupted(ExecutionError):
    """Event stream ended without the end-of-stream marker."""

    exit_code = 2
