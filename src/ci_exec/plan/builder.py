"""Construction of the one-off execution plan."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from ci_exec.plan.models import (
    AggregateStep,
    EnsureStep,
    GetStep,
    Location,
    OnSuccessStep,
    Plan,
    PutStep,
    TaskStep,
)
from ci_exec.task.config import TaskConfig


@dataclass(slots=True, frozen=True)
class PipeSource:
    """A named artifact and the pipe URL it travels through."""

    name: str
    url: str


class _IdAllocator:
    def __init__(self) -> None:
        self._last = 0

    def next(self) -> int:
        self._last += 1
        return self._last


def build_plan(
    task: TaskConfig,
    inputs: Sequence[PipeSource],
    outputs: Sequence[PipeSource] = (),
    *,
    privileged: bool = False,
    authorization: str | None = None,
) -> Plan:
    """Compose ``inputs -> task [-> outputs]`` with depth-first location IDs.

    Inputs are fetched from their pipes' read endpoints, outputs are pushed to
    their pipes' write endpoints. Outputs run under ``ensure`` so they are
    collected even when the task fails.
    """

    ids = _IdAllocator()

    input_group = ids.next()
    fetches = tuple(
        Plan(
            step=GetStep(name=item.name, source=_source(item.url, authorization)),
            location=Location(id=ids.next(), parallel_group=input_group),
        )
        for item in inputs
    )
    input_aggregate = Plan(step=AggregateStep(steps=fetches))

    task_plan = Plan(
        step=TaskStep(config=task, privileged=privileged),
        location=Location(id=ids.next()),
    )

    if not outputs:
        return Plan(step=OnSuccessStep(step=input_aggregate, next=task_plan))

    output_group = ids.next()
    pushes = tuple(
        Plan(
            step=PutStep(
                name=item.name,
                source=_source(item.url, authorization),
                params={"directory": item.name},
            ),
            location=Location(id=ids.next(), parallel_group=output_group),
        )
        for item in outputs
    )
    output_aggregate = Plan(step=AggregateStep(steps=pushes))

    return Plan(
        step=OnSuccessStep(
            step=input_aggregate,
            next=Plan(step=EnsureStep(step=task_plan, next=output_aggregate)),
        ),
    )


def _source(url: str, authorization: str | None) -> dict[str, str]:
    source = {"uri": url}
    if authorization:
        source["authorization"] = authorization
    return source
