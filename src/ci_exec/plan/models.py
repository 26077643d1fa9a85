"""Execution plan tree and its canonical JSON form.

A plan node holds exactly one step variant out of a closed set. The server
executes the tree; ``Location`` lets it attribute progress to a node.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from ci_exec.errors import ExecutionError
from ci_exec.task.config import (
    TaskConfig,
    TaskInputConfig,
    TaskOutputConfig,
    TaskRunConfig,
)

ARCHIVE_RESOURCE_TYPE = "archive"
ONE_OFF_TASK_NAME = "one-off"


class PlanDecodeError(ExecutionError):
    """Wire payload is not a valid plan node."""


@dataclass(slots=True, frozen=True)
class Location:
    id: int = 0
    parent_id: int = 0
    parallel_group: int = 0


@dataclass(slots=True, frozen=True)
class GetStep:
    name: str
    source: dict[str, str]
    type: str = ARCHIVE_RESOURCE_TYPE


@dataclass(slots=True, frozen=True)
class PutStep:
    name: str
    source: dict[str, str]
    params: dict[str, str] = field(default_factory=dict)
    type: str = ARCHIVE_RESOURCE_TYPE


@dataclass(slots=True, frozen=True)
class TaskStep:
    config: TaskConfig
    name: str = ONE_OFF_TASK_NAME
    privileged: bool = False


@dataclass(slots=True, frozen=True)
class AggregateStep:
    steps: tuple[Plan, ...] = ()


@dataclass(slots=True, frozen=True)
class OnSuccessStep:
    step: Plan
    next: Plan


@dataclass(slots=True, frozen=True)
class EnsureStep:
    step: Plan
    next: Plan


Step = GetStep | PutStep | TaskStep | AggregateStep | OnSuccessStep | EnsureStep


@dataclass(slots=True, frozen=True)
class Plan:
    step: Step
    location: Location | None = None


def plan_to_wire(plan: Plan) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    if plan.location is not None:
        payload["location"] = _location_to_wire(plan.location)

    match plan.step:
        case GetStep(name=name, source=source, type=resource_type):
            payload["get"] = {"name": name, "type": resource_type, "source": dict(source)}
        case PutStep(name=name, source=source, params=params, type=resource_type):
            put: dict[str, Any] = {"name": name, "type": resource_type, "source": dict(source)}
            if params:
                put["params"] = dict(params)
            payload["put"] = put
        case TaskStep(config=config, name=name, privileged=privileged):
            payload["task"] = {
                "name": name,
                "privileged": privileged,
                "config": _task_config_to_wire(config),
            }
        case AggregateStep(steps=steps):
            payload["aggregate"] = [plan_to_wire(child) for child in steps]
        case OnSuccessStep(step=step, next=next_plan):
            payload["on_success"] = {"step": plan_to_wire(step), "next": plan_to_wire(next_plan)}
        case EnsureStep(step=step, next=next_plan):
            payload["ensure"] = {"step": plan_to_wire(step), "next": plan_to_wire(next_plan)}
    return payload


def plan_from_wire(payload: Any) -> Plan:
    if not isinstance(payload, dict):
        raise PlanDecodeError(f"plan node must be an object, got {type(payload).__name__}")

    kinds = [key for key in _STEP_KEYS if key in payload]
    if len(kinds) != 1:
        raise PlanDecodeError(f"plan node must have exactly one step, found {kinds or 'none'}")

    location = None
    if "location" in payload:
        raw_location = payload["location"] or {}
        location = Location(
            id=int(raw_location.get("id", 0)),
            parent_id=int(raw_location.get("parent_id", 0)),
            parallel_group=int(raw_location.get("parallel_group", 0)),
        )

    kind = kinds[0]
    body = payload[kind]
    step: Step
    if kind == "get":
        step = GetStep(
            name=body.get("name", ""),
            source=dict(body.get("source") or {}),
            type=body.get("type", ARCHIVE_RESOURCE_TYPE),
        )
    elif kind == "put":
        step = PutStep(
            name=body.get("name", ""),
            source=dict(body.get("source") or {}),
            params=dict(body.get("params") or {}),
            type=body.get("type", ARCHIVE_RESOURCE_TYPE),
        )
    elif kind == "task":
        step = TaskStep(
            config=_task_config_from_wire(body.get("config") or {}),
            name=body.get("name", ONE_OFF_TASK_NAME),
            privileged=bool(body.get("privileged", False)),
        )
    elif kind == "aggregate":
        step = AggregateStep(steps=tuple(plan_from_wire(child) for child in body or ()))
    elif kind == "on_success":
        step = OnSuccessStep(step=plan_from_wire(body["step"]), next=plan_from_wire(body["next"]))
    else:
        step = EnsureStep(step=plan_from_wire(body["step"]), next=plan_from_wire(body["next"]))
    return Plan(step=step, location=location)


def dumps_plan(plan: Plan) -> str:
    """Serialize ``plan`` to its canonical JSON text."""

    return json.dumps(plan_to_wire(plan), sort_keys=True, separators=(",", ":"))


_STEP_KEYS = ("get", "put", "task", "aggregate", "on_success", "ensure")


def _location_to_wire(location: Location) -> dict[str, int]:
    payload: dict[str, int] = {}
    if location.id:
        payload["id"] = location.id
    if location.parent_id:
        payload["parent_id"] = location.parent_id
    if location.parallel_group:
        payload["parallel_group"] = location.parallel_group
    return payload


def _task_config_to_wire(config: TaskConfig) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "inputs": [_named_to_wire(item.name, item.path) for item in config.inputs],
        "run": {"path": config.run.path},
    }
    if config.run.args:
        payload["run"]["args"] = list(config.run.args)
    if config.platform:
        payload["platform"] = config.platform
    if config.image:
        payload["image"] = config.image
    if config.outputs:
        payload["outputs"] = [_named_to_wire(item.name, item.path) for item in config.outputs]
    if config.params:
        payload["params"] = dict(config.params)
    return payload


def _named_to_wire(name: str, path: str) -> dict[str, str]:
    if path:
        return {"name": name, "path": path}
    return {"name": name}


def _task_config_from_wire(payload: dict[str, Any]) -> TaskConfig:
    run = payload.get("run") or {}
    return TaskConfig(
        platform=payload.get("platform", ""),
        image=payload.get("image", ""),
        inputs=tuple(
            TaskInputConfig(name=item["name"], path=item.get("path", ""))
            for item in payload.get("inputs") or ()
        ),
        outputs=tuple(
            TaskOutputConfig(name=item["name"], path=item.get("path", ""))
            for item in payload.get("outputs") or ()
        ),
        params=dict(payload.get("params") or {}),
        run=TaskRunConfig(path=run.get("path", ""), args=tuple(run.get("args") or ())),
    )
