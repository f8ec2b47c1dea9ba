"""CLI commands for plans: plan list/create/show/update/delete."""

from __future__ import annotations

import click

from plansync.cli_common import echo_json, fail, get_db, plan_id_or_exit
from plansync.operations import attempt, show_plan

_STATUS_ICONS = {
    "pending": " ",
    "in_progress": ">",
    "completed": "x",
    "failed": "!",
    "blocked": "#",
    "skipped": "-",
}


@click.group("plan")
def plan_group() -> None:
    """Manage plans."""


@plan_group.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_plans(as_json: bool) -> None:
    """List all plans."""
    with get_db() as db:
        plans = db.list_plans()
        if as_json:
            echo_json([p.to_dict() for p in plans])
            return
        for p in plans:
            done = "[DONE] " if p.completed else ""
            click.echo(f"{p.id:>4} {done}{p.name}")
        click.echo(f"\n{len(plans)} plans")


@plan_group.command("create")
@click.argument("name")
@click.option("--description", "-d", default="", help="Short description")
@click.option("--content", default="", help="Free-form Markdown content")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def create_plan(name: str, description: str, content: str, as_json: bool) -> None:
    """Create a new plan."""
    with get_db() as db:
        result = attempt(db.create_plan, name, description=description, content=content)
        if not result.ok:
            fail(result, as_json)
        p = result.unwrap()
        if as_json:
            echo_json(p.to_dict())
        else:
            click.echo(f"Created plan {p.id}: {p.name}")


@plan_group.command("show")
@click.argument("plan_ref")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def show(plan_ref: str, as_json: bool) -> None:
    """Show a plan with its tasks, facts and progress."""
    with get_db() as db:
        result = show_plan(db, plan_id_or_exit(db, plan_ref, as_json))
        if not result.ok:
            fail(result, as_json)
        data = result.unwrap()
        if as_json:
            echo_json(data)
            return

        p = data["plan"]
        prog = data["progress"]
        click.echo(f"Plan {p['id']}: {p['name']} ({prog['completed']}/{prog['total']} complete, {prog['ready']} ready)")
        if p["description"]:
            click.echo(f"  {p['description']}")
        click.echo()
        for t in data["tasks"]:
            icon = _STATUS_ICONS.get(t["status"], "?")
            indent = "    " if t["parent_id"] else "  "
            click.echo(f"{indent}[{icon}] {t['id']:>4} P{t['priority']} {t['name']}")
        if data["facts"]:
            click.echo("\nFacts:")
            for f in data["facts"]:
                click.echo(f"  {f['id']:>4} {f['name']}")


@plan_group.command("update")
@click.argument("plan_ref")
@click.option("--name", default=None, help="New name")
@click.option("--description", "-d", default=None, help="New description")
@click.option("--content", default=None, help="New content")
@click.option("--completed/--not-completed", default=None, help="Mark plan completed or not")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def update(
    plan_ref: str,
    name: str | None,
    description: str | None,
    content: str | None,
    completed: bool | None,
    as_json: bool,
) -> None:
    """Update plan fields."""
    with get_db() as db:
        plan_id = plan_id_or_exit(db, plan_ref, as_json)
        result = attempt(db.update_plan, plan_id, name=name, description=description, content=content, completed=completed)
        if not result.ok:
            fail(result, as_json)
        p = result.unwrap()
        if as_json:
            echo_json(p.to_dict())
        else:
            click.echo(f"Updated plan {p.id}: {p.name}")


@plan_group.command("delete")
@click.argument("plan_ref")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def delete(plan_ref: str, yes: bool, as_json: bool) -> None:
    """Delete a plan and everything in it."""
    with get_db() as db:
        plan_id = plan_id_or_exit(db, plan_ref, as_json)
        if not yes and not as_json:
            click.confirm(f"Delete plan {plan_id} with all its tasks and facts?", abort=True)
        result = attempt(db.delete_plan, plan_id)
        if not result.ok:
            fail(result, as_json)
        if as_json:
            echo_json({"status": "deleted", "id": plan_id})
        else:
            click.echo(f"Deleted plan {plan_id}")


def register(cli: click.Group) -> None:
    """Attach the ``plan`` group to the top-level group."""
    cli.add_command(plan_group)
