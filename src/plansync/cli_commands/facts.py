"""CLI commands for facts: fact list/create/update/delete/link/unlink."""

from __future__ import annotations

import click

from plansync.cli_common import echo_json, fail, get_db, plan_id_or_exit
from plansync.operations import attempt
from plansync.validation import VALID_LINK_TYPES


@click.group("fact")
def fact_group() -> None:
    """Manage plan facts."""


@fact_group.command("list")
@click.argument("plan_ref")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_facts(plan_ref: str, as_json: bool) -> None:
    """List the facts of a plan."""
    with get_db() as db:
        facts = db.list_facts(plan_id_or_exit(db, plan_ref, as_json))
        if as_json:
            echo_json([f.to_dict() for f in facts])
            return
        for f in facts:
            desc = f": {f.description}" if f.description else ""
            click.echo(f"{f.id:>4} {f.name}{desc}")
        click.echo(f"\n{len(facts)} facts")


@fact_group.command("create")
@click.argument("plan_ref")
@click.argument("name")
@click.option("--description", "-d", default="", help="Short description")
@click.option("--content", default="", help="Fact body")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def create_fact(plan_ref: str, name: str, description: str, content: str, as_json: bool) -> None:
    """Record a fact in a plan."""
    with get_db() as db:
        result = attempt(db.create_fact, plan_id_or_exit(db, plan_ref, as_json), name, description=description, content=content)
        if not result.ok:
            fail(result, as_json)
        f = result.unwrap()
        if as_json:
            echo_json(f.to_dict())
        else:
            click.echo(f"Created fact {f.id}: {f.name}")


@fact_group.command("update")
@click.argument("fact_id", type=int)
@click.option("--name", default=None, help="New name")
@click.option("--description", "-d", default=None, help="New description")
@click.option("--content", default=None, help="New content")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def update(fact_id: int, name: str | None, description: str | None, content: str | None, as_json: bool) -> None:
    """Update fact fields."""
    with get_db() as db:
        result = attempt(db.update_fact, fact_id, name=name, description=description, content=content)
        if not result.ok:
            fail(result, as_json)
        f = result.unwrap()
        if as_json:
            echo_json(f.to_dict())
        else:
            click.echo(f"Updated fact {f.id}: {f.name}")


@fact_group.command("delete")
@click.argument("fact_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def delete(fact_id: int, as_json: bool) -> None:
    """Delete a fact and its links."""
    with get_db() as db:
        result = attempt(db.delete_fact, fact_id)
        if not result.ok:
            fail(result, as_json)
        if as_json:
            echo_json({"status": "deleted", "id": fact_id})
        else:
            click.echo(f"Deleted fact {fact_id}")


@fact_group.command("link")
@click.argument("fact_id", type=int)
@click.argument("task_id", type=int)
@click.option("--type", "link_type", type=click.Choice(sorted(VALID_LINK_TYPES)), default="informs", help="Link type")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def link(fact_id: int, task_id: int, link_type: str, as_json: bool) -> None:
    """Link a fact to a task in the same plan."""
    with get_db() as db:
        result = attempt(db.link_fact, fact_id, task_id, link_type)
        if not result.ok:
            fail(result, as_json)
        status = "linked" if result.unwrap() else "already_exists"
        if as_json:
            echo_json({"status": status, "fact_id": fact_id, "task_id": task_id, "link_type": link_type})
        else:
            click.echo(f"{status.replace('_', ' ').capitalize()}: fact {fact_id} {link_type} task {task_id}")


@fact_group.command("unlink")
@click.argument("fact_id", type=int)
@click.argument("task_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def unlink(fact_id: int, task_id: int, as_json: bool) -> None:
    """Remove all links between a fact and a task."""
    with get_db() as db:
        removed = db.unlink_fact(fact_id, task_id)
        status = "unlinked" if removed else "not_found"
        if as_json:
            echo_json({"status": status, "fact_id": fact_id, "task_id": task_id})
        else:
            click.echo(f"{status.replace('_', ' ').capitalize()}: fact {fact_id} / task {task_id}")


def register(cli: click.Group) -> None:
    """Attach the ``fact`` group to the top-level group."""
    cli.add_command(fact_group)
