"""CLI tests for tasks, status transitions, facts, and scheduling."""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from plansync.cli import cli
from tests.cli._helpers import make_plan, make_task


class TestTaskCommands:
    def test_create_and_show(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        make_plan(runner)
        task_id = make_task(runner, "Launch", "Design", "-d", "Sketch it", "--criteria", "reviewed")
        result = runner.invoke(cli, ["task", "show", str(task_id)])
        assert result.exit_code == 0
        assert f"Task {task_id}: Design" in result.output
        assert "Status:   pending" in result.output
        assert "Acceptance: reviewed" in result.output
        assert "in_progress, skipped" in result.output

    def test_list_with_status_filter(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        make_plan(runner)
        a = make_task(runner, "Launch", "A")
        make_task(runner, "Launch", "B")
        runner.invoke(cli, ["task", "start", str(a)])
        result = runner.invoke(cli, ["task", "list", "Launch", "--status", "in_progress", "--json"])
        assert [t["name"] for t in json.loads(result.output)] == ["A"]

    def test_negative_priority_rejected(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        make_plan(runner)
        result = runner.invoke(cli, ["task", "create", "Launch", "Bad", "--priority=-1"])
        assert result.exit_code == 1
        assert "Priority must be >= 0" in result.output

    def test_update_and_delete(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        make_plan(runner)
        task_id = make_task(runner, "Launch", "A")
        result = runner.invoke(cli, ["task", "update", str(task_id), "--name", "A2", "--json"])
        assert json.loads(result.output)["name"] == "A2"
        result = runner.invoke(cli, ["task", "delete", str(task_id)])
        assert result.exit_code == 0
        result = runner.invoke(cli, ["task", "show", str(task_id)])
        assert result.exit_code == 1
        assert "Task not found" in result.output


class TestTransitions:
    def test_trigger_commands(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        make_plan(runner)
        task_id = make_task(runner, "Launch", "A")
        for trigger, status in (("start", "in_progress"), ("block", "blocked"), ("unblock", "in_progress"), ("complete", "completed")):
            result = runner.invoke(cli, ["task", trigger, str(task_id)])
            assert result.exit_code == 0, result.output
            assert result.output.strip() == f"{task_id} A: {status}"

    def test_invalid_transition_lists_valid_targets(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        make_plan(runner)
        task_id = make_task(runner, "Launch", "A")
        result = runner.invoke(cli, ["task", "complete", str(task_id)])
        assert result.exit_code == 1
        assert "Invalid status transition" in result.output
        assert "Valid transitions: in_progress, skipped" in result.output

    def test_invalid_transition_json(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        make_plan(runner)
        task_id = make_task(runner, "Launch", "A")
        result = runner.invoke(cli, ["task", "status", str(task_id), "failed", "--json"])
        data = json.loads(result.output)
        assert data["code"] == "invalid_transition"
        assert data["valid_transitions"] == ["in_progress", "skipped"]

    def test_actor_recorded(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        make_plan(runner)
        task_id = make_task(runner, "Launch", "A")
        runner.invoke(cli, ["--actor", "carol", "task", "start", str(task_id)])
        result = runner.invoke(cli, ["events", str(task_id), "--json"])
        events = json.loads(result.output)
        assert events[0]["event_type"] == "status_changed"
        assert events[0]["actor"] == "carol"


class TestScheduling:
    def test_ready_next_and_dependencies(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        make_plan(runner)
        t1 = make_task(runner, "Launch", "T1", "-p", "10")
        t2 = make_task(runner, "Launch", "T2", "-p", "5")

        assert runner.invoke(cli, ["next", "Launch"]).output.startswith(f"P5 {t2} T2")

        result = runner.invoke(cli, ["add-dep", str(t1), str(t2)])
        assert result.output.strip() == f"Added: {t1} blocks {t2}"
        again = runner.invoke(cli, ["add-dep", str(t1), str(t2)])
        assert again.output.strip() == f"Already exists: {t1} blocks {t2}"

        ready = json.loads(runner.invoke(cli, ["ready", "Launch", "--json"]).output)
        assert [t["id"] for t in ready] == [t1]
        waiting = runner.invoke(cli, ["waiting", "Launch"])
        assert f"{t2} T2 <- {t1}" in waiting.output

        cycle = runner.invoke(cli, ["add-dep", str(t2), str(t1), "--json"])
        assert cycle.exit_code == 1
        assert json.loads(cycle.output)["code"] == "cycle"

        result = runner.invoke(cli, ["remove-dep", str(t1), str(t2)])
        assert result.output.strip() == f"Removed: {t1} blocks {t2}"

    def test_next_when_nothing_ready(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        make_plan(runner)
        result = runner.invoke(cli, ["next", "Launch"])
        assert result.exit_code == 0
        assert "Nothing ready" in result.output


class TestFactCommands:
    def test_create_link_list(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        make_plan(runner)
        task_id = make_task(runner, "Launch", "A")
        result = runner.invoke(cli, ["fact", "create", "Launch", "Stack", "-d", "Python", "--json"])
        fact_id = json.loads(result.output)["id"]
        result = runner.invoke(cli, ["fact", "link", str(fact_id), str(task_id)])
        assert result.exit_code == 0
        assert result.output.strip() == f"Linked: fact {fact_id} informs task {task_id}"
        result = runner.invoke(cli, ["fact", "list", "Launch"])
        assert "Stack" in result.output

    def test_search(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        make_plan(runner)
        make_task(runner, "Launch", "Write handbook")
        result = runner.invoke(cli, ["search", "handbook", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [t["name"] for t in data["tasks"]] == ["Write handbook"]
