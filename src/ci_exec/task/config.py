"""Task definition model and loader.

Only the fields a one-off execution forwards to the server are modelled here;
the server remains the authority on the full task schema.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from ci_exec.errors import TaskConfigInvalid


@dataclass(slots=True, frozen=True)
class TaskInputConfig:
    name: str
    path: str = ""


@dataclass(slots=True, frozen=True)
class TaskOutputConfig:
    name: str
    path: str = ""


@dataclass(slots=True, frozen=True)
class TaskRunConfig:
    path: str = ""
    args: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class TaskConfig:
    """Declared shape of a task: where it runs, what it consumes and produces."""

    platform: str = ""
    image: str = ""
    inputs: tuple[TaskInputConfig, ...] = ()
    outputs: tuple[TaskOutputConfig, ...] = ()
    params: dict[str, str] = field(default_factory=dict)
    run: TaskRunConfig = field(default_factory=TaskRunConfig)

    @property
    def input_names(self) -> tuple[str, ...]:
        return tuple(item.name for item in self.inputs)

    @property
    def output_names(self) -> tuple[str, ...]:
        return tuple(item.name for item in self.outputs)

    def validate(self) -> None:
        """Raise ``TaskConfigInvalid`` listing every structural problem found."""

        problems: list[str] = []
        if not self.platform:
            problems.append("missing 'platform'")
        if not self.run.path:
            problems.append("missing path to executable to run")
        for index, item in enumerate(self.inputs):
            if not item.name:
                problems.append(f"input in position {index} is missing a name")
        for index, item in enumerate(self.outputs):
            if not item.name:
                problems.append(f"output in position {index} is missing a name")
        if problems:
            details = "".join(f"\n  {problem}" for problem in problems)
            raise TaskConfigInvalid(f"invalid task configuration:{details}")

    def with_env_params(self, environ: Mapping[str, str]) -> TaskConfig:
        """Override declared params with same-named environment variables, empty values included."""

        params = {
            name: environ[name] if name in environ else value
            for name, value in self.params.items()
        }
        return replace(self, params=params)

    def with_extra_args(self, extra_args: Sequence[str]) -> TaskConfig:
        if not extra_args:
            return self
        run = replace(self.run, args=(*self.run.args, *extra_args))
        return replace(self, run=run)


def load_task_config(path: Path) -> TaskConfig:
    """Parse a YAML task definition file."""

    try:
        payload = yaml.safe_load(path.read_text("utf-8"))
    except OSError as error:
        raise TaskConfigInvalid(f"could not read task config {path}: {error}") from error
    except yaml.YAMLError as error:
        raise TaskConfigInvalid(f"could not parse task config {path}: {error}") from error
    return parse_task_config(payload or {})


def parse_task_config(payload: Any) -> TaskConfig:
    if not isinstance(payload, dict):
        raise TaskConfigInvalid("invalid task configuration: expected a mapping")

    run = payload.get("run") or {}
    if not isinstance(run, dict):
        raise TaskConfigInvalid("invalid task configuration: 'run' must be a mapping")
    params = payload.get("params") or {}
    if not isinstance(params, dict):
        raise TaskConfigInvalid("invalid task configuration: 'params' must be a mapping")

    return TaskConfig(
        platform=_string(payload.get("platform")),
        image=_string(payload.get("image")),
        inputs=tuple(
            TaskInputConfig(name=_string(item.get("name")), path=_string(item.get("path")))
            for item in _mappings(payload.get("inputs"), "inputs")
        ),
        outputs=tuple(
            TaskOutputConfig(name=_string(item.get("name")), path=_string(item.get("path")))
            for item in _mappings(payload.get("outputs"), "outputs")
        ),
        params={str(name): _string(value) for name, value in params.items()},
        run=TaskRunConfig(
            path=_string(run.get("path")),
            args=tuple(_string(arg) for arg in run.get("args") or ()),
        ),
    )


def _mappings(value: Any, field_name: str) -> list[dict[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        raise TaskConfigInvalid(
            f"invalid task configuration: '{field_name}' must be a list of mappings",
        )
    return value


def _string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
