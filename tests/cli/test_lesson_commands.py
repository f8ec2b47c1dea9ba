"""CLI tests for the lesson and trace command groups."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from plansync.cli import cli
from tests.cli._helpers import make_plan, make_task


def _add_lesson(runner: CliRunner, *args: str) -> dict[str, object]:
    result = runner.invoke(cli, ["lesson", "add", *args, "--json"])
    assert result.exit_code == 0, result.output
    data: dict[str, object] = json.loads(result.output)
    return data


class TestLessonCommands:
    def test_add_and_show(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        make_plan(runner, "Launch")
        result = runner.invoke(cli, ["lesson", "add", "technique", "Pin versions", "--plan", "Launch", "--when", "adding deps"])
        assert result.exit_code == 0, result.output
        assert "Created lesson 1 (technique, confidence 0.50)" in result.output

        shown = runner.invoke(cli, ["lesson", "show", "1"])
        assert shown.exit_code == 0
        assert "When: adding deps" in shown.output
        assert "Pin versions" in shown.output

    def test_task_scope_in_json(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        plan_id = make_plan(runner, "Launch")
        task_id = make_task(runner, "Launch", "Build")
        data = _add_lesson(runner, "failure_pattern", "Forgot the changelog", "--task", str(task_id))
        assert data["task_id"] == task_id
        assert data["plan_id"] == plan_id

    def test_invalid_type_is_a_usage_error(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["lesson", "add", "hunch", "x"])
        assert result.exit_code == 2

    def test_confidence_out_of_range(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["lesson", "add", "technique", "x", "--confidence", "1.5"])
        assert result.exit_code == 2

    def test_list_validate_invalidate(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        _add_lesson(runner, "technique", "first", "--confidence", "0.3")
        _add_lesson(runner, "constraint", "second", "--confidence", "0.6")

        listed = runner.invoke(cli, ["lesson", "list", "--json"])
        assert [x["content"] for x in json.loads(listed.output)] == ["second", "first"]

        validated = runner.invoke(cli, ["lesson", "validate", "1", "--boost", "0.5", "--json"])
        data = json.loads(validated.output)
        assert data["confidence"] == pytest.approx(0.8)
        assert data["times_validated"] == 1

        invalidated = runner.invoke(cli, ["lesson", "invalidate", "2"])
        assert invalidated.exit_code == 0
        assert "confidence 0.50" in invalidated.output

        filtered = runner.invoke(cli, ["lesson", "list", "--type", "constraint"])
        assert "second" in filtered.output
        assert "first" not in filtered.output
        assert "1 lessons" in filtered.output

    def test_search_and_delete(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        _add_lesson(runner, "technique", "Retry flaky network calls with backoff")
        found = runner.invoke(cli, ["lesson", "search", "network"])
        assert "Retry flaky network calls" in found.output

        deleted = runner.invoke(cli, ["lesson", "delete", "1", "--json"])
        assert json.loads(deleted.output) == {"status": "deleted", "id": 1}
        missing = runner.invoke(cli, ["lesson", "show", "1", "--json"])
        assert missing.exit_code == 1
        assert json.loads(missing.output)["code"] == "not_found"

        empty = runner.invoke(cli, ["lesson", "search", "network"])
        assert "No matching lessons." in empty.output


class TestTraceCommands:
    def test_add_and_list(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        make_plan(runner, "Launch")
        design = make_task(runner, "Launch", "Design")
        build = make_task(runner, "Launch", "Build")

        result = runner.invoke(cli, ["trace", "add", str(design), "thought", "Sketch endpoints"])
        assert result.exit_code == 0, result.output
        assert f"#1 thought recorded for task {design}" in result.output
        runner.invoke(cli, ["trace", "add", str(build), "action", "Scaffold", "--metadata", '{"files": 3}'])

        plan_view = runner.invoke(cli, ["trace", "list", "--plan", "Launch"])
        assert "Sketch endpoints" in plan_view.output
        assert "Scaffold" in plan_view.output

        task_view = runner.invoke(cli, ["trace", "list", "--task", str(build), "--json"])
        traces = json.loads(task_view.output)
        assert [(t["sequence_num"], t["metadata"]) for t in traces] == [(2, {"files": 3})]

    def test_bad_metadata(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        make_plan(runner, "Launch")
        task = make_task(runner, "Launch", "Design")
        result = runner.invoke(cli, ["trace", "add", str(task), "thought", "x", "--metadata", "[1, 2]"])
        assert result.exit_code == 2
        assert "JSON object" in result.output

    def test_list_needs_one_scope(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["trace", "list"])
        assert result.exit_code == 2
        assert "exactly one of --plan or --task" in result.output

    def test_clear(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        make_plan(runner, "Launch")
        task = make_task(runner, "Launch", "Design")
        runner.invoke(cli, ["trace", "add", str(task), "thought", "a"])
        runner.invoke(cli, ["trace", "add", str(task), "action", "b"])
        result = runner.invoke(cli, ["trace", "clear", "--task", str(task), "--json"])
        assert json.loads(result.output) == {"status": "deleted", "count": 2}
        listed = runner.invoke(cli, ["trace", "list", "--plan", "Launch"])
        assert "No traces." in listed.output

    def test_unknown_task(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["trace", "add", "99", "thought", "x"])
        assert result.exit_code == 1
        assert "Task not found" in result.output
