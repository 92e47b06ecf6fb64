import pytest

from wr_scheduler.composition import Composition
from wr_scheduler.config import SchedulerConfig
from wr_scheduler.definition import FunctionDefinition
from wr_scheduler.graph import FunctionGraph

RUN = 26
CREATED_ON = "20240101-120000"


def _definition(function, slot=0, composition=None, **kwargs) -> FunctionDefinition:
    return FunctionDefinition(
        identifier=RUN,
        created_by=function,
        created_on=CREATED_ON,
        job_name=f"{function}_{RUN}_{slot}",
        command=f"run_{function} --slot {slot}",
        composition=Composition.from_rpt_list(composition) if composition else None,
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Generic config fixture
# ---------------------------------------------------------------------------

@pytest.fixture
def cfg(tmp_path):
    """Minimal SchedulerConfig pointing at a temporary directory tree."""
    return SchedulerConfig(
        log_dir=tmp_path / "log",
        submission_dir=tmp_path / "submit",
        log_file=tmp_path / "audit.jsonl",
        env_whitelist=["PATH"],
    )


# ---------------------------------------------------------------------------
# Diamond pipeline: start -> f1, start -> f2, f1 -> f3, f2 -> f3
# ---------------------------------------------------------------------------

@pytest.fixture
def diamond_graph():
    return FunctionGraph.from_dependencies({
        "start": [],
        "f1": ["start"],
        "f2": ["start"],
        "f3": ["f1", "f2"],
    })


@pytest.fixture
def diamond_definitions():
    """f1 runs once for lane 1; f2 and f3 are split per tag."""
    return {
        "start": [_definition("start")],
        "f1": [_definition("f1", 0, "26:1")],
        "f2": [
            _definition("f2", 0, "26:1:1"),
            _definition("f2", 1, "26:1:2"),
        ],
        "f3": [
            _definition("f3", 0, "26:1:1"),
            _definition("f3", 1, "26:1:2"),
        ],
    }


@pytest.fixture
def make_definition():
    """Factory for non-excluded definitions of run 26."""
    return _definition
