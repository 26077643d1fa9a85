"""Execution plan model and builder."""

from ci_exec.plan.builder import PipeSource, build_plan
from ci_exec.plan.models import Location, Plan, dumps_plan, plan_from_wire, plan_to_wire

__all__ = [
    "Location",
    "PipeSource",
    "Plan",
    "build_plan",
    "dumps_plan",
    "plan_from_wire",
    "plan_to_wire",
]
