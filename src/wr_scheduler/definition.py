"""definition.py — one concrete, already-decided unit of work for a function.

Definitions are produced upstream (see :mod:`wr_scheduler.eligibility`) and
arrive here as a mapping of function name to an ordered list.  The list
order matters: a definition's zero-based position is its *slot*, which
names its specific dependency group.

A function with nothing to do for a run is represented by a single
definition with ``excluded=True``.  It emits no job but keeps the function
present in the graph.

Typical definitions file (YAML or JSON)::

    seq_alignment:
      - identifier: 26
        created_by: seq_alignment
        created_on: "20240101-120000"
        job_name: seq_alignment_26_0
        command: bwa_wrapper --rpt 26:1:1
        composition: "26:1:1"
        cpu_count: [8, 16]
        memory_mb: 32000
        chunk: 0
    archive_to_irods:
      - identifier: 26
        created_by: archive_to_irods
        created_on: "20240101-120000"
        excluded: true
"""
from __future__ import annotations

__all__ = [
    "FunctionDefinition",
    "load_definitions",
    "validate_definitions",
]

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from wr_scheduler.composition import Composition
from wr_scheduler.errors import ConfigError, GraphError


@dataclass
class FunctionDefinition:
    """A single job request for one function and run."""

    identifier: int | str
    created_by: str
    created_on: str
    job_name: str = ""
    command: str = ""
    composition: Composition | None = None  # None means the whole run
    cpu_count: int | list[int] = 0  # 0 leaves the choice to the scheduler
    memory_mb: int | None = None
    queue: str | None = None
    chunk: int | None = None
    excluded: bool = False
    streams_output: bool = False  # job writes its own log; no tee

    def __post_init__(self) -> None:
        if self.excluded:
            if self.command:
                raise ValueError(
                    f"Excluded definition for run {self.identifier} "
                    f"({self.created_by}) must not carry a command"
                )
            return
        if not self.command:
            raise ValueError(
                f"Definition for run {self.identifier} ({self.created_by}) "
                "has no command"
            )
        if isinstance(self.cpu_count, list):
            if not self.cpu_count or any(c < 0 for c in self.cpu_count):
                raise ValueError(f"Invalid cpu_count {self.cpu_count!r}")
        elif self.cpu_count < 0:
            raise ValueError(f"Invalid cpu_count {self.cpu_count!r}")

    @property
    def min_cpus(self) -> int:
        """Number of CPUs to request; the minimum of a ``[min, max]`` range."""
        if isinstance(self.cpu_count, list):
            return min(self.cpu_count)
        return self.cpu_count

    @property
    def has_composition(self) -> bool:
        return self.composition is not None and not self.composition.is_empty

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FunctionDefinition":
        """Build a definition from a plain mapping.

        ``composition`` may be an rpt list string (``"26:1:1;26:2:1"``) or a
        list of rpt strings.  Unknown keys raise ``TypeError``, like the
        dataclass constructor would.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise TypeError(f"Unknown definition field(s): {sorted(unknown)}")
        values = dict(data)
        composition = values.get("composition")
        if composition is not None and not isinstance(composition, Composition):
            values["composition"] = Composition.from_rpt_list(composition)
        return cls(**values)


def validate_definitions(function_name: str, definitions: list[FunctionDefinition]) -> None:
    """Check the shape of one function's definition list.

    Raises
    ------
    GraphError
        If the list is empty, or an excluded placeholder shares the list
        with other definitions.
    """
    if not definitions:
        raise GraphError(f"Function {function_name!r} has an empty definition list")
    excluded = [d for d in definitions if d.excluded]
    if excluded and len(definitions) > 1:
        raise GraphError(
            f"Function {function_name!r} for run {definitions[0].identifier}: "
            "an excluded definition must be the only definition"
        )


def load_definitions(path: str | Path) -> dict[str, list[FunctionDefinition]]:
    """Load a ``function name -> [definition, ...]`` mapping from YAML or JSON.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ConfigError
        If the file is not valid YAML/JSON or does not hold a mapping of
        lists of definition objects.
    """
    with open(path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid definitions file {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Definitions file {path} must contain a mapping")

    definitions: dict[str, list[FunctionDefinition]] = {}
    for function_name, items in data.items():
        if not isinstance(items, list):
            raise ConfigError(
                f"Definitions for {function_name!r} in {path} must be a list"
            )
        try:
            definitions[function_name] = [FunctionDefinition.from_dict(i) for i in items]
        except (TypeError, ValueError) as exc:
            raise ConfigError(
                f"Invalid definition for {function_name!r} in {path}: {exc}"
            ) from exc
    return definitions
