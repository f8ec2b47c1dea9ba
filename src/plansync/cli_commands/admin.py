"""CLI commands for admin and cross-cutting queries: init, search, events."""

from __future__ import annotations

from pathlib import Path

import click

from plansync.cli_common import echo_json, fail, get_db, plan_id_or_exit
from plansync.core import DB_FILENAME, PLANSYNC_DIR_NAME, PlanDB, write_config
from plansync.operations import attempt


@click.command()
def init() -> None:
    """Initialize .plansync/ in the current directory."""
    cwd = Path.cwd()
    plansync_dir = cwd / PLANSYNC_DIR_NAME

    if plansync_dir.exists():
        click.echo(f"{PLANSYNC_DIR_NAME}/ already exists in {cwd}")
        # Still ensure DB is initialized
        with PlanDB(plansync_dir / DB_FILENAME) as db:
            db.initialize()
        return

    plansync_dir.mkdir()
    write_config(plansync_dir, {"version": 1})
    with PlanDB(plansync_dir / DB_FILENAME) as db:
        db.initialize()

    click.echo(f"Initialized {PLANSYNC_DIR_NAME}/ in {cwd}")
    click.echo(f"  Database: {plansync_dir / DB_FILENAME}")


@click.command()
@click.argument("query")
@click.option("--plan", "plan_ref", default=None, help="Restrict tasks and facts to this plan (id or name)")
@click.option("--limit", default=50, type=int, help="Max results per kind (default 50)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def search(query: str, plan_ref: str | None, limit: int, as_json: bool) -> None:
    """Search plans, tasks and facts by name, description and content."""
    with get_db() as db:
        plan_id = plan_id_or_exit(db, plan_ref, as_json) if plan_ref is not None else None
        result = attempt(db.search, query, plan_id=plan_id, limit=limit)
        if not result.ok:
            fail(result, as_json)
        found = result.unwrap()

        if as_json:
            echo_json({kind: [item.to_dict() for item in items] for kind, items in found.items()})
            return

        for p in found["plans"]:
            click.echo(f"plan  {p.id:>4} {p.name}")
        for t in found["tasks"]:
            click.echo(f"task  {t.id:>4} {t.status:<12} {t.name}")
        for f in found["facts"]:
            click.echo(f"fact  {f.id:>4} {f.name}")
        total = sum(len(items) for items in found.values())
        click.echo(f"\n{total} results")


@click.command("events")
@click.argument("task_id", type=int)
@click.option("--limit", default=50, type=int, help="Max events (default 50)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def events_cmd(task_id: int, limit: int, as_json: bool) -> None:
    """Show the audit trail for a task, newest first."""
    with get_db() as db:
        result = attempt(db.get_task_events, task_id, limit=limit)
        if not result.ok:
            fail(result, as_json)
        event_list = result.unwrap()

        if as_json:
            echo_json(event_list)
            return

        for ev in event_list:
            change = ""
            if ev["old_value"] or ev["new_value"]:
                change = f" {ev['old_value'] or ''} -> {ev['new_value'] or ''}"
            actor = f" by {ev['actor']}" if ev["actor"] else ""
            click.echo(f"{ev['created_at']} {ev['event_type']}{change}{actor}")


def register(cli: click.Group) -> None:
    """Attach admin commands to the top-level group."""
    cli.add_command(init)
    cli.add_command(search)
    cli.add_command(events_cmd)
