"""Binding of declared task inputs/outputs to local directories."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from ci_exec.errors import (
    MissingRequiredInputError,
    UnknownInputError,
    UnknownOutputError,
    UsageError,
)


@dataclass(slots=True, frozen=True)
class BindingOverride:
    """One ``name=path`` pair supplied on the command line."""

    name: str
    path: str


@dataclass(slots=True, frozen=True)
class InputBinding:
    name: str
    directory: Path


@dataclass(slots=True, frozen=True)
class OutputBinding:
    name: str
    directory: Path


def parse_binding(raw: str) -> BindingOverride:
    name, separator, path = raw.partition("=")
    if not separator or not name.strip() or not path.strip():
        raise UsageError(f"invalid binding {raw!r}: expected name=path")
    return BindingOverride(name=name.strip(), path=path.strip())


def resolve_inputs(
    declared: Sequence[str],
    working_dir: Path,
    overrides: Sequence[BindingOverride] = (),
) -> tuple[InputBinding, ...]:
    """Bind every declared input to a local directory.

    Without overrides, a task declaring exactly one input gets the working
    directory bound under the directory's own base name. Unknown names are
    reported before missing ones.
    """

    mappings = list(overrides)
    if not mappings and len(declared) == 1:
        mappings = [BindingOverride(name=working_dir.name, path=str(working_dir))]

    for mapping in mappings:
        if mapping.name not in declared:
            raise UnknownInputError(mapping.name)

    bound = {mapping.name: mapping.path for mapping in mappings}
    for name in declared:
        if name not in bound:
            raise MissingRequiredInputError(name)

    bindings: list[InputBinding] = []
    for name in declared:
        directory = working_dir / bound[name]
        if not directory.is_dir():
            raise UsageError(f"input `{name}` is not a directory: {directory}")
        bindings.append(InputBinding(name=name, directory=directory))
    return tuple(bindings)


def resolve_outputs(
    declared: Sequence[str],
    working_dir: Path,
    overrides: Sequence[BindingOverride] = (),
) -> tuple[OutputBinding, ...]:
    """Select the outputs to download; outputs without an override are skipped."""

    for mapping in overrides:
        if mapping.name not in declared:
            raise UnknownOutputError(mapping.name)

    bound = {mapping.name: mapping.path for mapping in overrides}
    return tuple(
        OutputBinding(name=name, directory=working_dir / bound[name])
        for name in declared
        if name in bound
    )
