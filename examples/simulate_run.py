"""simulate_run.py — build and dry-run a small pipeline locally.

Builds a four-function graph for run 26, creates per-lane definitions for
the alignment step through an eligibility oracle, and writes the wr
submission file into a temp directory.  wr is never called: ``--dry-run``
only prints the ``wr add`` command.

Run with:
    python examples/simulate_run.py
"""

import json
import tempfile
from dataclasses import dataclass
from pathlib import Path

from wr_scheduler.composition import Composition
from wr_scheduler.config import SchedulerConfig
from wr_scheduler.definition import FunctionDefinition
from wr_scheduler.driver import execute
from wr_scheduler.eligibility import create_definitions
from wr_scheduler.graph import FunctionGraph
from wr_scheduler.resources import ResourcePolicy

RUN = 26
CREATED_ON = "20240101-120000"


@dataclass(frozen=True)
class Lane:
    composition: Composition
    released: bool


class ReleasedOnly:
    def is_eligible(self, product: Lane) -> bool:
        return product.released


def whole_run(function: str, command: str) -> list[FunctionDefinition]:
    return [
        FunctionDefinition(
            identifier=RUN,
            created_by=function,
            created_on=CREATED_ON,
            job_name=f"{function}_{RUN}",
            command=command,
        )
    ]


def main() -> None:
    graph = FunctionGraph.from_dependencies({
        "pipeline_start": [],
        "align": ["pipeline_start"],
        "qc_report": ["align"],
        "archive_to_irods_samplesheet": ["qc_report"],
    })

    lanes = [
        Lane(Composition.from_rpt_list(f"{RUN}:{position}"), released=position != 3)
        for position in (1, 2, 3)
    ]
    definitions = {
        "pipeline_start": whole_run("pipeline_start", "pipeline_start --run 26"),
        "align": create_definitions(
            "align",
            lanes,
            ReleasedOnly(),
            lambda lane: f"align --rpt {lane.composition.to_rpt_list()}",
            identifier=RUN,
            created_on=CREATED_ON,
            cpu_count=4,
            queue="p4stage",
        ),
        "qc_report": create_definitions(
            "qc_report",
            lanes,
            ReleasedOnly(),
            lambda lane: f"qc --rpt {lane.composition.to_rpt_list()}",
            identifier=RUN,
            created_on=CREATED_ON,
        ),
        "archive_to_irods_samplesheet": whole_run(
            "archive_to_irods_samplesheet", "archive_samplesheet --run 26"
        ),
    }

    policy = ResourcePolicy.from_dict({
        "default_queue": {"memory": 2000},
        "p4stage_queue": {"memory": 8000, "cloud_flavor": "ukb1.2xlarge"},
        "archival_limit": 2,
    })

    with tempfile.TemporaryDirectory() as tmp:
        root = Path(tmp)
        cfg = SchedulerConfig(log_dir=root / "log", submission_dir=root / "submit")
        manifest = execute(graph, definitions, cfg, policy=policy, dry_run=True)

        print("\nManifest:")
        print(manifest[["function", "slot", "job_name", "composition", "deps"]].to_string(index=False))

        print("\nRecords:")
        for path in sorted(cfg.submission_dir.glob("*.wr.json")):
            for line in path.read_text().splitlines():
                record = json.loads(line)
                print(f"  {record['rep_grp']:<40} deps={len(record.get('deps', []))}")


if __name__ == "__main__":
    main()
