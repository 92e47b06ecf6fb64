"""CLI smoke tests using Click's CliRunner."""
import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from wr_scheduler.cli import main


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def cfg_path(tmp_path):
    """Write a minimal YAML config pointing at tmp_path directories."""
    yaml_file = tmp_path / "config.yaml"
    yaml_file.write_text(
        f"log_dir: {tmp_path / 'log'}\n"
        f"submission_dir: {tmp_path / 'submit'}\n"
        f"log_file: {tmp_path / 'audit.jsonl'}\n"
    )
    return yaml_file


@pytest.fixture
def graph_path(tmp_path):
    path = tmp_path / "graph.yaml"
    path.write_text(
        "functions:\n"
        "  pipeline_start: []\n"
        "  align: [pipeline_start]\n"
        "  archive_to_irods_samplesheet: [align]\n"
    )
    return path


@pytest.fixture
def definitions_path(tmp_path):
    base = {"identifier": 26, "created_on": "20240101-120000"}
    path = tmp_path / "definitions.json"
    path.write_text(json.dumps({
        "pipeline_start": [{**base, "created_by": "pipeline_start", "command": "start"}],
        "align": [
            {**base, "created_by": "align", "command": "bwa 1", "composition": "26:1:1", "job_name": "align_26_0"},
            {**base, "created_by": "align", "command": "bwa 2", "composition": "26:1:2", "job_name": "align_26_1"},
        ],
        "archive_to_irods_samplesheet": [
            {**base, "created_by": "archive_to_irods_samplesheet", "command": "archive"}
        ],
    }))
    return path


# ---------------------------------------------------------------------------
# --help
# ---------------------------------------------------------------------------

def test_main_help(runner):
    result = runner.invoke(main, ["--help"])
    assert result.exit_code == 0
    assert "wr-scheduler" in result.output


def test_run_help(runner):
    result = runner.invoke(main, ["run", "--help"])
    assert result.exit_code == 0
    assert "--dry-run" in result.output
    assert "--no-submit" in result.output


# ---------------------------------------------------------------------------
# order
# ---------------------------------------------------------------------------

def test_order(runner, graph_path):
    result = runner.invoke(main, ["order", str(graph_path)])
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0] == "pipeline_start"
    assert lines[1] == "align  <- pipeline_start"


def test_order_cycle_fails(runner, tmp_path):
    path = tmp_path / "graph.yaml"
    path.write_text("functions:\n  a: [b]\n  b: [a]\n")
    result = runner.invoke(main, ["order", str(path)])
    assert result.exit_code == 1
    assert "cycle" in result.output


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------

def test_run_no_submit_writes_file(runner, cfg_path, graph_path, definitions_path, tmp_path):
    with patch("subprocess.run") as mock_run:
        result = runner.invoke(
            main,
            ["--config", str(cfg_path), "run", str(graph_path), str(definitions_path), "--no-submit"],
        )
    assert result.exit_code == 0, result.output
    mock_run.assert_not_called()
    out = tmp_path / "submit" / "26-20240101-120000.wr.json"
    records = [json.loads(l) for l in out.read_text().splitlines()]
    assert len(records) == 4
    assert records[-1]["limit_grps"] == "irods:3"
    assert "Wrote 4 job(s)" in result.output


def test_run_dry_run(runner, cfg_path, graph_path, definitions_path):
    result = runner.invoke(
        main,
        ["--config", str(cfg_path), "run", str(graph_path), str(definitions_path), "--dry-run"],
    )
    assert result.exit_code == 0, result.output
    assert "[DRY RUN]" in result.output


def test_run_live_submits(runner, cfg_path, graph_path, definitions_path, tmp_path):
    out = tmp_path / "custom.wr.json"
    with patch("subprocess.run") as mock_run:
        mock_run.return_value.stdout = "Added 4 new commands\n"
        result = runner.invoke(
            main,
            ["--config", str(cfg_path), "run", str(graph_path), str(definitions_path),
             "--output", str(out)],
        )
    assert result.exit_code == 0, result.output
    cmd = mock_run.call_args[0][0]
    assert cmd[-2:] == ["-f", str(out)]


def test_run_resources_option(runner, cfg_path, graph_path, definitions_path, tmp_path):
    resources = tmp_path / "resources.json"
    resources.write_text(json.dumps({"default_queue": {"memory": 5000}, "archival_limit": 2}))
    out = tmp_path / "o.wr.json"
    result = runner.invoke(
        main,
        ["--config", str(cfg_path), "--resources", str(resources),
         "run", str(graph_path), str(definitions_path), "--no-submit", "--output", str(out)],
    )
    assert result.exit_code == 0, result.output
    records = [json.loads(l) for l in out.read_text().splitlines()]
    assert records[0]["memory"] == "5000M"
    assert records[-1]["limit_grps"] == "irods:2"


def test_run_missing_resources_fails(runner, cfg_path, graph_path, definitions_path, tmp_path):
    result = runner.invoke(
        main,
        ["--config", str(cfg_path), "--resources", str(tmp_path / "nope.json"),
         "run", str(graph_path), str(definitions_path), "--no-submit"],
    )
    assert result.exit_code == 1
    assert "not found" in result.output


def test_run_missing_definitions_for_function(runner, cfg_path, graph_path, tmp_path):
    path = tmp_path / "definitions.yaml"
    path.write_text(
        "pipeline_start:\n"
        "  - {identifier: 26, created_by: s, created_on: '1', command: start}\n"
    )
    result = runner.invoke(main, ["--config", str(cfg_path), "run", str(graph_path), str(path)])
    assert result.exit_code == 1
    assert "align" in result.output


def test_run_root_without_definitions(runner, cfg_path, tmp_path):
    graph = tmp_path / "root_graph.yaml"
    graph.write_text("functions:\n  a: []\n  b: [a]\n")
    defs = tmp_path / "b_only.yaml"
    defs.write_text(
        "b:\n"
        "  - {identifier: 26, created_by: b, created_on: '1', command: run_b}\n"
    )
    result = runner.invoke(
        main, ["--config", str(cfg_path), "run", str(graph), str(defs), "--no-submit"]
    )
    assert result.exit_code == 1
    assert "without a definition list" in result.output
    assert "'a'" in result.output


def test_run_submit_failure(runner, cfg_path, graph_path, definitions_path):
    with patch("subprocess.run", side_effect=FileNotFoundError("wr")):
        result = runner.invoke(
            main, ["--config", str(cfg_path), "run", str(graph_path), str(definitions_path)]
        )
    assert result.exit_code == 1
    assert "wr add" in result.output


# ---------------------------------------------------------------------------
# manifest
# ---------------------------------------------------------------------------

def test_manifest_shows_jobs(runner, cfg_path, graph_path, definitions_path, tmp_path):
    result = runner.invoke(
        main, ["--config", str(cfg_path), "manifest", str(graph_path), str(definitions_path)]
    )
    assert result.exit_code == 0, result.output
    assert "align_26_1" in result.output
    assert "26:1:2" in result.output
    assert not (tmp_path / "submit").exists()


# ---------------------------------------------------------------------------
# history
# ---------------------------------------------------------------------------

def test_history_empty(runner, cfg_path):
    result = runner.invoke(main, ["--config", str(cfg_path), "history"])
    assert result.exit_code == 0
    assert "No events recorded yet." in result.output


def test_history_after_run(runner, cfg_path, graph_path, definitions_path):
    runner.invoke(
        main,
        ["--config", str(cfg_path), "run", str(graph_path), str(definitions_path), "--dry-run"],
    )
    result = runner.invoke(main, ["--config", str(cfg_path), "history", "--run", "26"])
    assert result.exit_code == 0, result.output
    assert "queued" in result.output
    assert "dry_run" in result.output

    other = runner.invoke(main, ["--config", str(cfg_path), "history", "--run", "99"])
    assert "No events recorded yet." in other.output
