"""Tests for the lattice CLI."""

import json

import pytest
from typer.testing import CliRunner

from lattice.cli import main as cli_main
from lattice.cli.context import load_snapshot

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(cli_main, "configure_logging", lambda level: None)


@pytest.fixture
def snapshot_file(tmp_path):
    path = tmp_path / "records.json"
    path.write_text(json.dumps({"records": [
        {"id": "a", "crossRefs": ["gone", "b"]},
        {"id": "b", "parentId": "missing"},
    ]}))
    return path


def test_types_lists_every_agent_type():
    result = runner.invoke(cli_main.app, ["types"])
    assert result.exit_code == 0
    assert "hypothesis_tester" in result.output


def test_scan_writes_repaired_records(snapshot_file, tmp_path):
    out = tmp_path / "repaired.json"

    result = runner.invoke(cli_main.app, [
        "scan", str(snapshot_file), "--type", "integrity", "--output", str(out),
    ])

    assert result.exit_code == 0
    written = json.loads(out.read_text())
    assert written[0]["crossRefs"] == ["b"]
    assert written[1]["parentId"] == "missing"


def test_tick_runs_selected_types(snapshot_file, tmp_path):
    out = tmp_path / "repaired.json"

    result = runner.invoke(cli_main.app, [
        "tick", str(snapshot_file), "-t", "patrol", "-t", "integrity", "-o", str(out),
    ])

    assert result.exit_code == 0
    written = json.loads(out.read_text())
    assert written[0]["crossRefs"] == ["b"]
    assert written[1]["parentId"] is None


def test_scan_rejects_unknown_type(snapshot_file):
    result = runner.invoke(cli_main.app, ["scan", str(snapshot_file), "--type", "janitor"])
    assert result.exit_code == 1


def test_scan_rejects_unreadable_snapshot(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text('{"records": 42}')
    result = runner.invoke(cli_main.app, ["scan", str(bad), "--type", "patrol"])
    assert result.exit_code == 1


def test_load_snapshot_accepts_plain_list(tmp_path):
    path = tmp_path / "list.json"
    path.write_text(json.dumps([{"id": "x"}]))
    assert load_snapshot(path) == [{"id": "x"}]
