from __future__ import annotations

__all__ = ["MANIFEST_COLUMNS", "jobs_to_manifest"]

from typing import Iterable

import pandas as pd

from wr_scheduler.jobs import Job

MANIFEST_COLUMNS = [
    "function",
    "slot",
    "identifier",
    "job_name",
    "composition",
    "cpus",
    "memory",
    "dep_grps",
    "deps",
    "limit_grps",
]


def jobs_to_manifest(jobs: Iterable[Job]) -> pd.DataFrame:
    """Return one row per job, in emission order.

    ``composition`` is the rpt list, empty for whole-run jobs; ``deps`` is
    the number of groups the job waits on.
    """
    rows = []
    for job in jobs:
        definition = job.definition
        rows.append({
            "function": job.function_name,
            "slot": job.slot,
            "identifier": definition.identifier,
            "job_name": definition.job_name,
            "composition": definition.composition.to_rpt_list() if definition.composition else "",
            "cpus": job.record["cpus"],
            "memory": job.record["memory"],
            "dep_grps": ",".join(job.dep_grps),
            "deps": len(job.deps),
            "limit_grps": job.record.get("limit_grps", ""),
        })

    if not rows:
        return pd.DataFrame(columns=MANIFEST_COLUMNS)

    return pd.DataFrame(rows, columns=MANIFEST_COLUMNS)
