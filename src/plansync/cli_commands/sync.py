"""CLI commands for document sync: import, preview, export."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from plansync import markdown
from plansync.cli_common import echo_json, fail, get_db, plan_id_or_exit
from plansync.errors import SynchronizationError
from plansync.operations import attempt
from plansync.types.sync import PreviewResult


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        click.echo(f"Error: cannot read {path}: {e}", err=True)
        sys.exit(1)


@click.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--dry-run", is_flag=True, help="Show what would change without writing")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def import_doc(ctx: click.Context, path: Path, dry_run: bool, as_json: bool) -> None:
    """Sync a Markdown plan document into the store.

    Tasks and facts missing from the document are deleted from the plan.
    """
    text = _read(path)
    with get_db() as db:
        parsed = attempt(markdown.parse, text)
        if not parsed.ok:
            fail(parsed, as_json)
        document = parsed.unwrap()

        if dry_run:
            preview = attempt(db.preview_document, document)
            if not preview.ok:
                fail(preview, as_json)
            _print_preview(preview.unwrap(), as_json)
            return

        try:
            result = attempt(db.import_document, document, actor=ctx.obj["actor"])
        except SynchronizationError as e:
            if as_json:
                echo_json({"error": str(e), "code": "sync_failed"})
            else:
                click.echo(f"Import failed: {e}", err=True)
            sys.exit(1)
        if not result.ok:
            fail(result, as_json)
        summary = result.unwrap()

        if as_json:
            echo_json(summary)
            return
        click.echo(f"Imported plan {summary['id']}: {summary['name']}")
        click.echo(f"  Tasks: {summary['tasks_imported']} imported, {summary['tasks_deleted']} deleted")
        click.echo(f"  Facts: {summary['facts_imported']} imported, {summary['facts_deleted']} deleted")
        click.echo(f"  Dependencies: {summary['dependencies_imported']}")


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def preview(path: Path, as_json: bool) -> None:
    """Show what importing a document would create, update and delete."""
    text = _read(path)
    with get_db() as db:
        result = attempt(lambda: db.preview_document(markdown.parse(text)))
        if not result.ok:
            fail(result, as_json)
        _print_preview(result.unwrap(), as_json)


def _print_preview(data: PreviewResult, as_json: bool) -> None:
    if as_json:
        echo_json(data)
        return
    state = "existing" if data["plan_exists"] else "new"
    click.echo(f"Plan: {data['plan_name']} ({state})")
    sections = (("Tasks", data["tasks"], data["task_names"]), ("Facts", data["facts"], data["fact_names"]))
    for kind, counts, names in sections:
        click.echo(f"  {kind}:")
        for action in ("create", "update", "delete"):
            listed = f" ({', '.join(names[action])})" if names[action] else ""
            click.echo(f"    {action:<6} {counts[action]}{listed}")


@click.command("export")
@click.argument("plan_ref")
@click.argument("path", required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output the document as JSON instead of Markdown")
def export_doc(plan_ref: str, path: Path | None, as_json: bool) -> None:
    """Export a plan as a Markdown document (to PATH, or stdout)."""
    with get_db() as db:
        plan_id = plan_id_or_exit(db, plan_ref, as_json)
        if as_json:
            echo_json(db.export_document(plan_id))
            return
        if path is None:
            click.echo(markdown.render_document(db.export_document(plan_id)), nl=False)
            return
        db.export_file(plan_id, path)
        click.echo(f"Exported plan {plan_id} to {path}")


def register(cli: click.Group) -> None:
    """Attach sync commands to the top-level group."""
    cli.add_command(import_doc)
    cli.add_command(preview)
    cli.add_command(export_doc)
