"""CLI tests for init and the plan command group."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from plansync.cli import cli
from tests.cli._helpers import make_plan, make_task


class TestInit:
    def test_init_creates_directory(self, tmp_path: Path, cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        result = cli_runner.invoke(cli, ["init"])
        assert result.exit_code == 0
        assert "Initialized .plansync/" in result.output
        assert (tmp_path / ".plansync" / "plansync.db").exists()
        assert json.loads((tmp_path / ".plansync" / "config.json").read_text()) == {"version": 1}

    def test_init_twice(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["init"])
        assert result.exit_code == 0
        assert "already exists" in result.output

    def test_commands_need_a_project(self, tmp_path: Path, cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        result = cli_runner.invoke(cli, ["plan", "list"])
        assert result.exit_code == 1
        assert "plansync init" in result.output

    def test_db_path_env_skips_discovery(self, tmp_path: Path, cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("PLANSYNC_DB_PATH", str(tmp_path / "elsewhere" / "p.db"))
        result = cli_runner.invoke(cli, ["plan", "create", "Env plan"])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "elsewhere" / "p.db").exists()

    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "plansync" in result.output


class TestPlanCommands:
    def test_create_and_list(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        plan_id = make_plan(runner, "Launch")
        result = runner.invoke(cli, ["plan", "list"])
        assert result.exit_code == 0
        assert f"{plan_id} Launch" in result.output
        assert "1 plans" in result.output

    def test_create_duplicate_fails(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        make_plan(runner, "Launch")
        result = runner.invoke(cli, ["plan", "create", "Launch", "--json"])
        assert result.exit_code == 1
        assert json.loads(result.output)["code"] == "validation_error"

    def test_show_by_name(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        make_plan(runner, "Launch")
        make_task(runner, "Launch", "Design", "-p", "5")
        result = runner.invoke(cli, ["plan", "show", "Launch"])
        assert result.exit_code == 0
        assert "(0/1 complete, 1 ready)" in result.output
        assert "P5 Design" in result.output

    def test_show_json(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        make_plan(runner, "Launch")
        result = runner.invoke(cli, ["plan", "show", "Launch", "--json"])
        data = json.loads(result.output)
        assert data["plan"]["name"] == "Launch"
        assert data["progress"]["total"] == 0

    def test_show_missing(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["plan", "show", "Nope"])
        assert result.exit_code == 1
        assert "Plan not found: Nope" in result.output

    def test_update(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        make_plan(runner, "Launch")
        result = runner.invoke(cli, ["plan", "update", "Launch", "--completed", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output)["completed"] is True

    def test_update_nothing(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        make_plan(runner, "Launch")
        result = runner.invoke(cli, ["plan", "update", "Launch"])
        assert result.exit_code == 1
        assert "No fields to update" in result.output

    def test_delete_needs_confirmation(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        make_plan(runner, "Launch")
        result = runner.invoke(cli, ["plan", "delete", "Launch"], input="n\n")
        assert result.exit_code == 1
        assert "Launch" in runner.invoke(cli, ["plan", "list"]).output

    def test_delete_yes(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        plan_id = make_plan(runner, "Launch")
        result = runner.invoke(cli, ["plan", "delete", "Launch", "--yes"])
        assert result.exit_code == 0
        assert f"Deleted plan {plan_id}" in result.output
        assert "0 plans" in runner.invoke(cli, ["plan", "list"]).output
