from __future__ import annotations

__all__ = ["build_env_string", "build_add_command", "submit_file"]

import logging
import os
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING, Mapping

from wr_scheduler.config import SchedulerConfig
from wr_scheduler.errors import SubmitError

if TYPE_CHECKING:
    from wr_scheduler.audit import AuditLogger

logger = logging.getLogger(__name__)

_ENV_DELIM = ","


def build_env_string(whitelist: list[str], environ: Mapping[str, str] | None = None) -> str:
    """Return ``K=V,K=V`` for whitelisted variables that are set, sorted by name."""
    if environ is None:
        environ = os.environ
    pairs = [
        f"{name}={environ[name]}"
        for name in sorted(set(whitelist))
        if environ.get(name) is not None
    ]
    return _ENV_DELIM.join(pairs)


def build_add_command(
    submission_file: Path,
    config: SchedulerConfig,
    environ: Mapping[str, str] | None = None,
) -> list[str]:
    """Build the ``wr add`` command for a submission file.

    The ``--env`` flag is left out when no whitelisted variable is set.
    """
    cmd = [
        config.wr_executable,
        "add",
        "--cwd", str(config.wr_cwd),
        "--disk", str(config.wr_disk),
        "--override", str(config.wr_override),
        "--retries", str(config.wr_retries),
    ]
    env = build_env_string(config.env_whitelist, environ)
    if env:
        cmd.extend(["--env", env])
    cmd.extend(["-f", str(submission_file)])
    return cmd


def submit_file(
    submission_file: Path,
    config: SchedulerConfig,
    dry_run: bool = False,
    audit: AuditLogger | None = None,
    run_id: str = "",
    environ: Mapping[str, str] | None = None,
) -> list[str]:
    """Hand a submission file to wr.

    Parameters
    ----------
    submission_file:
        Newline-delimited JSON records written by the driver.
    config:
        Scheduler configuration supplying the wr settings.
    dry_run:
        When *True*, prints the command that would be run without calling wr.

    Returns
    -------
    list[str]
        The ``wr add`` command line.

    Raises
    ------
    SubmitError
        If wr cannot be started or exits with a non-zero status.  wr's own
        ``--retries`` applies to jobs on the cluster; nothing is retried here.
    """
    cmd = build_add_command(submission_file, config, environ)
    line = " ".join(cmd)

    if dry_run:
        logger.info("[DRY RUN] Would submit: %s", line)
        print(f"[DRY RUN] Would submit: {line}")
        if audit is not None:
            audit.log("dry_run", run_id=run_id, detail=line)
        return cmd

    logger.info("Submitting: %s", line)
    print(f"Submitting: {line}")
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=True)
    except subprocess.CalledProcessError as e:
        if audit is not None:
            audit.log("error", run_id=run_id, detail=f"{line}: {e.stderr or e}")
        raise SubmitError(
            f"wr add failed for run {run_id or '?'} (exit {e.returncode}): "
            f"{line}\n{(e.stderr or '').strip()}",
            cmd,
        ) from e
    except OSError as e:
        if audit is not None:
            audit.log("error", run_id=run_id, detail=f"{line}: {e}")
        raise SubmitError(f"Cannot run {line!r} for run {run_id or '?'}: {e}", cmd) from e

    output = (result.stdout or "").strip()
    if output:
        logger.info("wr: %s", output)
    if audit is not None:
        audit.log("submitted", run_id=run_id, detail=line)
    return cmd
