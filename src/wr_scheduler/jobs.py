"""jobs.py — turn a function definition into a wr submission record.

A record is a plain dict ready for ``json.dumps``::

    {"cmd": "umask 0002 && (bwa ...) 2>&1 | tee -a \"/log/26/seq_alignment-20240101-26.0.out\"",
     "cpus": 8, "memory": "32000M", "priority": 0,
     "dep_grps": ["<generic>", "<generic>-0"],
     "deps": ["<predecessor group>", ...],
     "rep_grp": "26-seq_alignment"}

``deps`` is omitted for jobs without predecessors and ``limit_grps`` is
only present for archival functions.
"""
from __future__ import annotations

__all__ = ["Job", "build_job", "log_file_name", "run_log_dir", "wrap_command"]

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from wr_scheduler.definition import FunctionDefinition
from wr_scheduler.groups import GroupID
from wr_scheduler.resources import ResourcePolicy


@dataclass(frozen=True)
class Job:
    """A built submission record together with where it came from."""

    function_name: str
    slot: int
    definition: FunctionDefinition
    record: dict[str, Any]

    @property
    def dep_grps(self) -> list[str]:
        return list(self.record["dep_grps"])

    @property
    def deps(self) -> list[str]:
        return list(self.record.get("deps", []))


def run_log_dir(log_dir: Path, run_id: int | str) -> Path:
    """``<log_dir>/<run>``; every job of a run logs here."""
    return Path(log_dir) / str(run_id)


def log_file_name(function_name: str, definition: FunctionDefinition) -> str:
    """``<function>-<created_on>-<identifier>[.<chunk>].out``"""
    name = f"{function_name}-{definition.created_on}-{definition.identifier}"
    if definition.chunk is not None:
        name += f".{definition.chunk}"
    return name + ".out"


def wrap_command(command: str, umask: str, log_path: Path | None) -> str:
    """Prefix *command* with a umask and tee its output to *log_path*.

    With *log_path* None the command is assumed to manage its own output.
    """
    if log_path is None:
        return f"umask {umask} && {command}"
    return f'umask {umask} && ({command}) 2>&1 | tee -a "{log_path}"'


def build_job(
    function_name: str,
    slot: int,
    definition: FunctionDefinition,
    deps: Iterable[GroupID],
    policy: ResourcePolicy,
    log_dir: Path,
    umask: str = "0002",
) -> Job:
    """Build the wr record for one definition.

    Parameters
    ----------
    function_name:
        Name of the function the definition belongs to.
    slot:
        Position of *definition* in its function's list.
    deps:
        Groups resolved by :func:`~wr_scheduler.resolver.resolve_function`.
    policy:
        Resource policy supplying cpus, memory, queue extras and limits.
    log_dir:
        Base log directory; logs go to :func:`run_log_dir` beneath it.

    Raises
    ------
    ValueError
        If *definition* is excluded; excluded definitions have no job.
    """
    if definition.excluded:
        raise ValueError(
            f"Cannot build a job for excluded function {function_name!r} "
            f"(run {definition.identifier})"
        )

    log_path = None
    if not definition.streams_output:
        log_path = run_log_dir(log_dir, definition.identifier) / log_file_name(
            function_name, definition
        )
    resources = policy.merge(definition)
    generic = GroupID.generic_for(function_name, definition.identifier)

    record: dict[str, Any] = {
        "cmd": wrap_command(definition.command, umask, log_path),
        "cpus": resources.cpus,
        "memory": resources.memory,
        "priority": resources.priority,
        "dep_grps": [generic.render(), generic.specific(slot).render()],
        "rep_grp": f"{definition.identifier}-{function_name}",
    }
    rendered_deps = sorted({g.render() for g in deps})
    if rendered_deps:
        record["deps"] = rendered_deps
    limit = policy.limit_groups(function_name)
    if limit is not None:
        record["limit_grps"] = limit
    for key, value in resources.extra.items():
        record.setdefault(key, value)

    return Job(function_name=function_name, slot=slot, definition=definition, record=record)
