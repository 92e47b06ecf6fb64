"""driver.py — walk the function graph and emit wr submission records.

Functions are visited in topological order, so a function's jobs are only
built once every predecessor's definitions are known.  Each record is
appended to the submission file and flushed straight away, because wr
(or a person) may read the file while it is still being written.  The
file is then optionally handed to ``wr add``.

Typical usage::

    from wr_scheduler.config import SchedulerConfig
    from wr_scheduler.definition import load_definitions
    from wr_scheduler.driver import execute
    from wr_scheduler.graph import FunctionGraph

    config      = SchedulerConfig.from_yaml("/etc/wr_scheduler/config.yaml")
    graph       = FunctionGraph.from_file("function_list.json")
    definitions = load_definitions("definitions.yaml")
    manifest    = execute(graph, definitions, config)
"""
from __future__ import annotations

__all__ = ["run_identifier", "submission_path", "iter_jobs", "write_records", "execute"]

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Iterator, Mapping

import pandas as pd

from wr_scheduler.config import SchedulerConfig
from wr_scheduler.definition import FunctionDefinition, validate_definitions
from wr_scheduler.errors import GraphError
from wr_scheduler.graph import FunctionGraph
from wr_scheduler.jobs import Job, build_job
from wr_scheduler.manifest import jobs_to_manifest
from wr_scheduler.resolver import resolve_dependencies
from wr_scheduler.resources import ResourcePolicy
from wr_scheduler.submit import submit_file

if TYPE_CHECKING:
    from wr_scheduler.audit import AuditLogger

logger = logging.getLogger(__name__)

Definitions = Mapping[str, list[FunctionDefinition]]


def _check_definitions(graph: FunctionGraph, definitions: Definitions) -> None:
    missing = [name for name in graph.topological_order() if name not in definitions]
    if missing:
        raise GraphError(f"Function(s) without a definition list: {missing}")
    for name in graph.topological_order():
        validate_definitions(name, definitions[name])


def run_identifier(graph: FunctionGraph, definitions: Definitions) -> str:
    """The single run identifier shared by all definitions of *graph*.

    Raises
    ------
    GraphError
        If the graph is empty or its definitions name more than one run.
    """
    identifiers = {
        str(d.identifier)
        for name in graph.topological_order()
        for d in definitions.get(name, [])
    }
    if not identifiers:
        raise GraphError("No function definitions to schedule")
    if len(identifiers) > 1:
        raise GraphError(f"Definitions span several runs: {sorted(identifiers)}")
    return identifiers.pop()


def submission_path(
    config: SchedulerConfig, graph: FunctionGraph, definitions: Definitions
) -> Path:
    """``<submission_dir>/<run>-<created_on>.wr.json`` for the first function.

    Raises
    ------
    GraphError
        If a function of *graph* has no (or a malformed) definition list.
    """
    _check_definitions(graph, definitions)
    run_id = run_identifier(graph, definitions)
    first = definitions[graph.topological_order()[0]][0]
    return config.submission_dir / f"{run_id}-{first.created_on}.wr.json"


def iter_jobs(
    graph: FunctionGraph,
    definitions: Definitions,
    policy: ResourcePolicy,
    config: SchedulerConfig,
    audit: AuditLogger | None = None,
) -> Iterator[Job]:
    """Yield one :class:`~wr_scheduler.jobs.Job` per non-excluded definition.

    Jobs come out in topological order of their functions and, within a
    function, in slot order.

    Raises
    ------
    GraphError
        If a function has no (or a malformed) definition list.
    """
    _check_definitions(graph, definitions)
    resolved = resolve_dependencies(graph, definitions)

    for name in graph.topological_order():
        defs = definitions[name]
        if name not in resolved:
            logger.info("function %s is excluded for run %s; no jobs", name, defs[0].identifier)
            if audit is not None:
                audit.log("excluded", function=name, run_id=str(defs[0].identifier))
            continue

        logger.info("function %s: %d job(s)", name, len(defs))
        for slot, (definition, deps) in enumerate(zip(defs, resolved[name])):
            yield build_job(
                name,
                slot,
                definition,
                deps,
                policy,
                config.log_dir,
                umask=config.umask,
            )


def write_records(
    jobs: Iterable[Job],
    path: Path,
    audit: AuditLogger | None = None,
) -> list[Job]:
    """Append each job's record to *path* as one JSON line, flushing per line.

    The file is opened in append mode and is not removed if an error
    interrupts writing.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    written: list[Job] = []
    with path.open("a") as fh:
        for job in jobs:
            fh.write(json.dumps(job.record) + "\n")
            fh.flush()
            written.append(job)
            if audit is not None:
                audit.log_job("queued", job)
    return written


def execute(
    graph: FunctionGraph,
    definitions: Definitions,
    config: SchedulerConfig,
    policy: ResourcePolicy | None = None,
    output: Path | None = None,
    submit: bool = True,
    dry_run: bool = False,
    audit: AuditLogger | None = None,
) -> pd.DataFrame:
    """Write the submission file for a run and optionally pass it to wr.

    Parameters
    ----------
    graph:
        Function graph; validated acyclic when it was built.
    definitions:
        Function name to ordered definition list, for one run.
    config:
        Scheduler configuration (log dir, submission dir, wr settings).
    policy:
        Resource policy; loaded from ``config.resources_file`` when None.
    output:
        Submission file; defaults to :func:`submission_path`.
    submit:
        When *False*, only the submission file is written.
    dry_run:
        When *True*, the ``wr add`` command is printed instead of run.

    Returns
    -------
    pd.DataFrame
        Manifest of the emitted jobs (see :func:`~wr_scheduler.manifest.jobs_to_manifest`).

    Raises
    ------
    GraphError, ConfigError, SubmitError
        All fatal; nothing already written is cleaned up.
    """
    _check_definitions(graph, definitions)
    for name in sorted(set(definitions) - set(graph.nodes)):
        logger.warning("ignoring definitions for %r, which is not in the function graph", name)
    if policy is None:
        policy = config.load_resources()
    run_id = run_identifier(graph, definitions)
    path = output if output is not None else submission_path(config, graph, definitions)

    jobs = write_records(iter_jobs(graph, definitions, policy, config, audit=audit), path, audit=audit)
    logger.info("run %s: %d record(s) written to %s", run_id, len(jobs), path)

    if not jobs:
        logger.info("run %s: nothing to submit", run_id)
    elif submit or dry_run:
        submit_file(path, config, dry_run=dry_run, audit=audit, run_id=run_id)

    return jobs_to_manifest(jobs)
