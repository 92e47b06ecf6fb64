"""audit.py — per-run trail of what the scheduler queued and submitted.

Every event is one JSON object per line in the audit file.  Job events
(``queued``) carry the function, slot and job name; run events
(``excluded``, ``submitted``, ``dry_run``, ``error``) leave the job fields
empty and usually put the ``wr add`` line in ``detail``.

    audit = get_logger(config)
    audit.log_job("queued", job)
    audit.log("submitted", run_id="26", detail="wr add ... -f 26.wr.json")

    history = read_events(audit.log_file, run_id="26")
"""
from __future__ import annotations

__all__ = ["AUDIT_EVENTS", "AuditLogger", "get_logger", "read_events"]

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pandas as pd

from wr_scheduler.config import SchedulerConfig

if TYPE_CHECKING:
    from wr_scheduler.jobs import Job

logger = logging.getLogger(__name__)

AUDIT_EVENTS = frozenset({"queued", "excluded", "submitted", "dry_run", "error"})

EVENT_COLUMNS = ["ts", "event", "run_id", "function", "slot", "job_name", "detail"]


class AuditLogger:
    """Append-only JSONL writer; the file and its directory appear on first use."""

    def __init__(self, log_file: Path) -> None:
        self.log_file = log_file

    def log(
        self,
        event: str,
        *,
        run_id: int | str = "",
        function: str = "",
        slot: int | None = None,
        job_name: str = "",
        detail: str = "",
        **extra: Any,
    ) -> None:
        """Write one *event* line.  Keyword arguments beyond the known
        fields are stored as-is.

        Raises
        ------
        ValueError
            If *event* is not one of :data:`AUDIT_EVENTS`.
        """
        if event not in AUDIT_EVENTS:
            raise ValueError(f"Unknown audit event {event!r}")
        entry = dict(
            zip(
                EVENT_COLUMNS,
                (
                    datetime.now(tz=timezone.utc).isoformat(),
                    event,
                    str(run_id),
                    function,
                    slot,
                    job_name,
                    detail,
                ),
            ),
            **extra,
        )
        self.log_file.parent.mkdir(parents=True, exist_ok=True)
        with self.log_file.open("a") as fh:
            fh.write(json.dumps(entry) + "\n")
        logger.debug("audit %s run=%s %s[%s]", event, run_id, function, slot)

    def log_job(self, event: str, job: Job, **extra: Any) -> None:
        """Record *event* for a built job."""
        self.log(
            event,
            run_id=job.definition.identifier,
            function=job.function_name,
            slot=job.slot,
            job_name=job.definition.job_name,
            **extra,
        )


def get_logger(config: SchedulerConfig) -> AuditLogger:
    """``config.log_file``, or ``<submission_dir>/wr_scheduler_audit.jsonl``."""
    log_file = config.log_file or config.submission_dir / "wr_scheduler_audit.jsonl"
    return AuditLogger(Path(log_file))


def read_events(log_file: Path, run_id: int | str | None = None) -> pd.DataFrame:
    """Load the audit file as a DataFrame, optionally for a single run.

    A missing file reads as no events.  Unparseable lines are skipped with a
    warning, since an interrupted write can leave a partial last line.
    """
    rows: list[dict[str, Any]] = []
    if Path(log_file).exists():
        with open(log_file) as fh:
            for lineno, line in enumerate(fh, start=1):
                if not line.strip():
                    continue
                try:
                    rows.append(json.loads(line))
                except json.JSONDecodeError:
                    logger.warning("%s:%d: skipping unreadable audit line", log_file, lineno)

    events = pd.DataFrame(rows)
    for column in EVENT_COLUMNS:
        if column not in events.columns:
            events[column] = pd.Series(dtype=object)
    if run_id is not None:
        events = events[events["run_id"] == str(run_id)].reset_index(drop=True)
    return events
