from __future__ import annotations

import logging
from pathlib import Path

import click

from wr_scheduler.audit import get_logger, read_events
from wr_scheduler.config import SchedulerConfig
from wr_scheduler.definition import load_definitions
from wr_scheduler.driver import execute, iter_jobs, submission_path
from wr_scheduler.errors import ConfigError, GraphError, SubmitError
from wr_scheduler.graph import FunctionGraph
from wr_scheduler.manifest import jobs_to_manifest

_FATAL = (GraphError, ConfigError, SubmitError, FileNotFoundError)


def _load_inputs(graph_path: str, definitions_path: str):
    try:
        graph = FunctionGraph.from_file(graph_path)
        definitions = load_definitions(definitions_path)
    except _FATAL as exc:
        raise click.ClickException(str(exc)) from exc
    return graph, definitions


@click.group()
@click.option(
    "--config",
    "config_path",
    default=None,
    metavar="PATH",
    help="Path to YAML config file. Uses built-in defaults if omitted.",
)
@click.option(
    "--resources",
    "resources_file",
    default=None,
    metavar="PATH",
    help="Path to the JSON resource policy. Overrides config file.",
)
@click.option(
    "--log-dir",
    "log_dir",
    default=None,
    metavar="DIR",
    help="Directory for per-job log files. Overrides config file.",
)
@click.option(
    "--submission-dir",
    "submission_dir",
    default=None,
    metavar="DIR",
    help="Directory for wr submission files. Overrides config file.",
)
@click.pass_context
def main(
    ctx: click.Context,
    config_path: str | None,
    resources_file: str | None,
    log_dir: str | None,
    submission_dir: str | None,
) -> None:
    """wr-scheduler: translate a pipeline function graph into wr jobs."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    ctx.ensure_object(dict)
    try:
        config = SchedulerConfig.from_yaml(config_path) if config_path else SchedulerConfig()
    except (ValueError, FileNotFoundError) as exc:
        raise click.ClickException(str(exc)) from exc
    if resources_file is not None:
        config.resources_file = Path(resources_file)
    if log_dir is not None:
        config.log_dir = Path(log_dir)
    if submission_dir is not None:
        config.submission_dir = Path(submission_dir)
    ctx.obj["config"] = config


@main.command()
@click.argument("graph_path", metavar="GRAPH")
@click.argument("definitions_path", metavar="DEFINITIONS")
@click.option("--output", default=None, metavar="FILE", help="Submission file to append to.")
@click.option("--no-submit", is_flag=True, help="Write the submission file without calling wr.")
@click.option("--dry-run", is_flag=True, help="Print the wr add command without running it.")
@click.pass_context
def run(
    ctx: click.Context,
    graph_path: str,
    definitions_path: str,
    output: str | None,
    no_submit: bool,
    dry_run: bool,
) -> None:
    """Resolve dependencies, write wr records and submit them."""
    config: SchedulerConfig = ctx.obj["config"]
    graph, definitions = _load_inputs(graph_path, definitions_path)

    audit = get_logger(config)
    try:
        path = Path(output) if output else submission_path(config, graph, definitions)
        manifest = execute(
            graph,
            definitions,
            config,
            output=path,
            submit=not no_submit,
            dry_run=dry_run,
            audit=audit,
        )
    except _FATAL as exc:
        raise click.ClickException(str(exc)) from exc

    if manifest.empty:
        click.echo("Nothing to submit.")
        return
    click.echo(f"Wrote {len(manifest)} job(s) to {path}.")


@main.command(name="manifest")
@click.argument("graph_path", metavar="GRAPH")
@click.argument("definitions_path", metavar="DEFINITIONS")
@click.pass_context
def show_manifest(ctx: click.Context, graph_path: str, definitions_path: str) -> None:
    """Show the jobs that would be written, without writing anything."""
    config: SchedulerConfig = ctx.obj["config"]
    graph, definitions = _load_inputs(graph_path, definitions_path)

    try:
        policy = config.load_resources()
        manifest = jobs_to_manifest(iter_jobs(graph, definitions, policy, config))
    except _FATAL as exc:
        raise click.ClickException(str(exc)) from exc

    if manifest.empty:
        click.echo("No jobs.")
        return

    click.echo(
        manifest[["function", "slot", "job_name", "composition", "cpus", "memory", "deps"]]
        .to_string(index=False)
    )


@main.command()
@click.option("--run", "run_id", default=None, help="Only show events for this run.")
@click.pass_context
def history(ctx: click.Context, run_id: str | None) -> None:
    """Show the audit trail of queued and submitted jobs."""
    config: SchedulerConfig = ctx.obj["config"]
    events = read_events(get_logger(config).log_file, run_id=run_id)

    if events.empty:
        click.echo("No events recorded yet.")
        return

    click.echo(
        events[["ts", "event", "run_id", "function", "slot", "detail"]].to_string(index=False)
    )


@main.command()
@click.argument("graph_path", metavar="GRAPH")
def order(graph_path: str) -> None:
    """Print the functions of GRAPH in execution order."""
    try:
        graph = FunctionGraph.from_file(graph_path)
    except _FATAL as exc:
        raise click.ClickException(str(exc)) from exc
    for name in graph.topological_order():
        predecessors = graph.predecessors(name)
        suffix = f"  <- {', '.join(predecessors)}" if predecessors else ""
        click.echo(f"{name}{suffix}")
