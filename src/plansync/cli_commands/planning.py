"""CLI commands for scheduling: ready, next, waiting, add-dep, remove-dep."""

from __future__ import annotations

import click

from plansync.cli_common import echo_json, fail, get_db, plan_id_or_exit
from plansync.operations import attempt


@click.command()
@click.argument("plan_ref")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def ready(plan_ref: str, as_json: bool) -> None:
    """Show pending tasks with no unfinished blockers, most urgent first."""
    with get_db() as db:
        tasks = db.get_ready(plan_id_or_exit(db, plan_ref, as_json))
        if as_json:
            echo_json([t.to_dict() for t in tasks])
            return
        for t in tasks:
            click.echo(f"P{t.priority} {t.id} {t.name}")
        click.echo(f"\n{len(tasks)} ready")


@click.command("next")
@click.argument("plan_ref")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def next_task(plan_ref: str, as_json: bool) -> None:
    """Show the single task to work on next."""
    with get_db() as db:
        task = db.get_next(plan_id_or_exit(db, plan_ref, as_json))
        if as_json:
            echo_json(task.to_dict() if task else None)
            return
        if task is None:
            click.echo("Nothing ready")
            return
        click.echo(f"P{task.priority} {task.id} {task.name}")
        if task.description:
            click.echo(f"  {task.description}")


@click.command()
@click.argument("plan_ref")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def waiting(plan_ref: str, as_json: bool) -> None:
    """Show pending tasks that are held back by unfinished blockers."""
    with get_db() as db:
        tasks = db.get_waiting(plan_id_or_exit(db, plan_ref, as_json))
        if as_json:
            echo_json([t.to_dict() for t in tasks])
            return
        for t in tasks:
            blockers = ", ".join(str(b.id) for b in db.get_blocking(t.id))
            click.echo(f"P{t.priority} {t.id} {t.name} <- {blockers}")
        click.echo(f"\n{len(tasks)} waiting")


@click.command("add-dep")
@click.argument("blocker_id", type=int)
@click.argument("blocked_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def add_dep(ctx: click.Context, blocker_id: int, blocked_id: int, as_json: bool) -> None:
    """Add dependency: BLOCKER_ID blocks BLOCKED_ID."""
    with get_db() as db:
        result = attempt(db.add_dependency, blocker_id, blocked_id, actor=ctx.obj["actor"])
        if not result.ok:
            fail(result, as_json)
        status = "added" if result.unwrap() else "already_exists"
        if as_json:
            echo_json({"status": status, "blocker_id": blocker_id, "blocked_id": blocked_id})
        elif status == "added":
            click.echo(f"Added: {blocker_id} blocks {blocked_id}")
        else:
            click.echo(f"Already exists: {blocker_id} blocks {blocked_id}")


@click.command("remove-dep")
@click.argument("blocker_id", type=int)
@click.argument("blocked_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def remove_dep(ctx: click.Context, blocker_id: int, blocked_id: int, as_json: bool) -> None:
    """Remove dependency."""
    with get_db() as db:
        removed = db.remove_dependency(blocker_id, blocked_id, actor=ctx.obj["actor"])
        status = "removed" if removed else "not_found"
        if as_json:
            echo_json({"status": status, "blocker_id": blocker_id, "blocked_id": blocked_id})
        elif removed:
            click.echo(f"Removed: {blocker_id} blocks {blocked_id}")
        else:
            click.echo(f"No such dependency: {blocker_id} blocks {blocked_id}")


def register(cli: click.Group) -> None:
    """Attach scheduling commands to the top-level group."""
    cli.add_command(ready)
    cli.add_command(next_task)
    cli.add_command(waiting)
    cli.add_command(add_dep)
    cli.add_command(remove_dep)
