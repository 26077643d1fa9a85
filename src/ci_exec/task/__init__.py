"""Task definitions and their local bindings."""

from ci_exec.task.bindings import (
    BindingOverride,
    InputBinding,
    OutputBinding,
    parse_binding,
    resolve_inputs,
    resolve_outputs,
)
from ci_exec.task.config import TaskConfig, load_task_config

__all__ = [
    "BindingOverride",
    "InputBinding",
    "OutputBinding",
    "TaskConfig",
    "load_task_config",
    "parse_binding",
    "resolve_inputs",
    "resolve_outputs",
]
