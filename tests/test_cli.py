"""CLI tests against a throwaway project root."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from typer.testing import CliRunner

from ui.cli.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _reset_taskgate_logger():
    yield
    logging.getLogger("taskgate").handlers.clear()


def invoke(root: Path, *args: str):
    return runner.invoke(app, ["--root", str(root), *args])


def test_add_list_and_cascade(tmp_path: Path) -> None:
    assert invoke(tmp_path, "tasks", "add", "Design").exit_code == 0
    added = invoke(tmp_path, "tasks", "add", "Build", "--blocker", "1")
    assert added.exit_code == 0
    assert "[BLOCKED]" in added.output

    result = invoke(tmp_path, "tasks", "set-state", "1", "DONE")
    assert result.exit_code == 0, result.output
    assert "task 2: BLOCKED -> TODO" in result.output

    listed = invoke(tmp_path, "tasks", "list", "--json")
    payload = json.loads(listed.output)
    assert [(item["id"], item["state"]) for item in payload] == [(1, "DONE"), (2, "TODO")]
    assert (tmp_path / "logs" / "audit.jsonl").exists()


def test_rejected_transition_exits_non_zero(tmp_path: Path) -> None:
    invoke(tmp_path, "tasks", "add", "Design")
    invoke(tmp_path, "tasks", "add", "Build", "--blocker", "1")

    result = invoke(tmp_path, "tasks", "set-state", "2", "DONE")

    assert result.exit_code == 1
    assert "task_blocked" in result.output


def test_graph_commands(tmp_path: Path) -> None:
    invoke(tmp_path, "tasks", "add", "A")
    invoke(tmp_path, "tasks", "add", "B", "-b", "1")
    invoke(tmp_path, "tasks", "add", "C", "-b", "2")

    check = invoke(tmp_path, "graph", "check")
    assert check.exit_code == 0
    assert "no findings" in check.output

    downstream = invoke(tmp_path, "graph", "downstream", "1")
    assert downstream.exit_code == 0
    assert downstream.output.splitlines() == ["2. [BLOCKED] B", "3. [BLOCKED] C"]

    cycle = invoke(tmp_path, "tasks", "set-blockers", "1", "3")
    assert cycle.exit_code == 1
    assert "cycle" in cycle.output


def test_remove_and_config_show(tmp_path: Path) -> None:
    invoke(tmp_path, "tasks", "add", "A")
    invoke(tmp_path, "tasks", "add", "B", "-b", "1")

    removed = invoke(tmp_path, "tasks", "remove", "1")
    assert removed.exit_code == 0
    assert "Re-derived tasks: 2" in removed.output

    shown = invoke(tmp_path, "config", "show")
    assert shown.exit_code == 0
    assert json.loads(shown.output)["ingestion"]["reject_cycles"] is True
