"""Controller for the execute CLI command."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import httpx

from ci_exec.api.builds import BuildClient
from ci_exec.api.pipes import PipeClient
from ci_exec.api.session import ApiSession
from ci_exec.config import Settings
from ci_exec.errors import UsageError
from ci_exec.execution.orchestrator import (
    ExecutionOrchestrator,
    ExecutionOutcome,
    ExecutionRequest,
)
from ci_exec.targets import TargetStore
from ci_exec.task.bindings import parse_binding
from ci_exec.task.config import load_task_config


@dataclass(slots=True)
class ExecuteCommand:
    """CLI input for a one-off execution."""

    target: str
    config_path: Path
    inputs: tuple[str, ...] = ()
    outputs: tuple[str, ...] = ()
    privileged: bool = False
    extra_args: tuple[str, ...] = ()
    working_dir: Path | None = None
    settings: Settings | None = None


class ExecuteCliController:
    """Resolves settings, target and task definition, then runs the orchestrator."""

    def __init__(
        self,
        *,
        transport: httpx.BaseTransport | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._transport = transport
        self._environ = environ

    def execute(self, command: ExecuteCommand) -> ExecutionOutcome:
        settings = command.settings
        if settings is None:
            settings = Settings.from_env()
            try:
                settings.validate()
            except ValueError as error:
                raise UsageError(str(error)) from error

        target = TargetStore.load(settings.rc_path).resolve(command.target)
        environ = os.environ if self._environ is None else self._environ
        task = (
            load_task_config(command.config_path)
            .with_env_params(environ)
            .with_extra_args(command.extra_args)
        )
        request = ExecutionRequest(
            task=task,
            working_dir=command.working_dir or Path.cwd(),
            inputs=tuple(parse_binding(raw) for raw in command.inputs),
            outputs=tuple(parse_binding(raw) for raw in command.outputs),
            privileged=command.privileged,
        )

        with ApiSession(
            target,
            connect_timeout_seconds=settings.http.connect_timeout_seconds,
            insecure=settings.http.insecure,
            transport=self._transport,
        ) as session:
            orchestrator = ExecutionOrchestrator(
                pipes=PipeClient(session),
                builds=BuildClient(session),
                authorization=session.authorization,
                upload_grace_seconds=settings.execution.upload_grace_seconds,
            )
            return orchestrator.run(request)
