"""CLI tests for import, preview, and export."""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from plansync.cli import cli

DOC = """\
---
tasks:
  - name: Design
    priority: 10
  - name: Build
    blocked_by: [Design]
facts:
  - name: Stack
---

# Launch

Plan body.
"""


class TestImport:
    def test_import_summary(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        (root / "launch.md").write_text(DOC)
        result = runner.invoke(cli, ["import", "launch.md"])
        assert result.exit_code == 0, result.output
        assert "Imported plan 1: Launch" in result.output
        assert "Tasks: 2 imported, 0 deleted" in result.output
        assert "Dependencies: 1" in result.output

    def test_import_json_then_ready(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        (root / "launch.md").write_text(DOC)
        data = json.loads(runner.invoke(cli, ["import", "launch.md", "--json"]).output)
        assert data["facts_imported"] == 1
        ready = json.loads(runner.invoke(cli, ["ready", "Launch", "--json"]).output)
        assert [t["name"] for t in ready] == ["Design"]

    def test_dry_run_writes_nothing(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        (root / "launch.md").write_text(DOC)
        result = runner.invoke(cli, ["import", "launch.md", "--dry-run"])
        assert result.exit_code == 0
        assert "Plan: Launch (new)" in result.output
        assert "create 2 (Design, Build)" in result.output
        assert "delete 0\n" in result.output
        assert "0 plans" in runner.invoke(cli, ["plan", "list"]).output

    def test_invalid_document(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        (root / "bad.md").write_text("---\ntasks:\n  - name: A\n    status: done\n---\n# P\n")
        result = runner.invoke(cli, ["import", "bad.md", "--json"])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["code"] == "validation_error"
        assert "Task 'A'" in data["error"]

    def test_missing_file(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["import", "nope.md"])
        assert result.exit_code == 2


class TestPreview:
    def test_preview_existing(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        (root / "launch.md").write_text(DOC)
        runner.invoke(cli, ["import", "launch.md"])
        (root / "next.md").write_text("---\ntasks:\n  - name: Build\n  - name: Ship\n---\n# Launch\n")
        data = json.loads(runner.invoke(cli, ["preview", "next.md", "--json"]).output)
        assert data["plan_exists"] is True
        assert data["tasks"] == {"create": 1, "update": 1, "delete": 1}
        assert data["task_names"] == {"create": ["Ship"], "update": ["Build"], "delete": ["Design"]}
        assert data["facts"] == {"create": 0, "update": 0, "delete": 1}
        assert data["fact_names"]["delete"] == ["Stack"]

    def test_preview_text_lists_names(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        (root / "launch.md").write_text(DOC)
        result = runner.invoke(cli, ["preview", "launch.md"])
        assert result.exit_code == 0
        assert "Plan: Launch (new)" in result.output
        assert "create 1 (Stack)" in result.output


class TestExport:
    def test_export_to_stdout(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        (root / "launch.md").write_text(DOC)
        runner.invoke(cli, ["import", "launch.md"])
        result = runner.invoke(cli, ["export", "Launch"])
        assert result.exit_code == 0
        assert result.output.startswith("---\nformat_version: 3\n")
        assert "# Launch\n\nPlan body.\n" in result.output
        assert "blocked_by:\n    - Design" in result.output or "blocked_by:\n  - Design" in result.output

    def test_export_to_file_and_reimport(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        (root / "launch.md").write_text(DOC)
        runner.invoke(cli, ["import", "launch.md"])
        result = runner.invoke(cli, ["export", "Launch", "out.md"])
        assert result.exit_code == 0
        assert "Exported plan 1 to out.md" in result.output

        again = json.loads(runner.invoke(cli, ["import", "out.md", "--json"]).output)
        assert again["tasks_deleted"] == 0
        assert again["dependencies_imported"] == 1

    def test_export_json(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, root = cli_in_project
        (root / "launch.md").write_text(DOC)
        runner.invoke(cli, ["import", "launch.md"])
        data = json.loads(runner.invoke(cli, ["export", "Launch", "--json"]).output)
        assert data["plan"]["name"] == "Launch"
        assert [t["name"] for t in data["tasks"]] == ["Design", "Build"]

    def test_export_missing_plan(self, cli_in_project: tuple[CliRunner, Path]) -> None:
        runner, _ = cli_in_project
        result = runner.invoke(cli, ["export", "Nope"])
        assert result.exit_code == 1
