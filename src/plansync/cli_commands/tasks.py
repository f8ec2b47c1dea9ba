"""CLI commands for tasks: task list/create/show/update/delete and status transitions."""

from __future__ import annotations

from collections.abc import Callable

import click

from plansync.cli_common import echo_json, fail, get_db, plan_id_or_exit
from plansync.core import Task
from plansync.db_base import DEFAULT_PRIORITY, VALID_STATUSES
from plansync.db_workflow import is_terminal
from plansync.operations import attempt, show_task


@click.group("task")
def task_group() -> None:
    """Manage tasks and move them through their lifecycle."""


@task_group.command("list")
@click.argument("plan_ref")
@click.option("--status", type=click.Choice(sorted(VALID_STATUSES)), default=None, help="Only tasks in this status")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_tasks(plan_ref: str, status: str | None, as_json: bool) -> None:
    """List the tasks of a plan."""
    with get_db() as db:
        tasks = db.list_tasks(plan_id_or_exit(db, plan_ref, as_json), status=status)
        if as_json:
            echo_json([t.to_dict() for t in tasks])
            return
        for t in tasks:
            click.echo(f"{t.id:>4} P{t.priority:<4} {t.status:<12} {t.name}")
        click.echo(f"\n{len(tasks)} tasks")


@task_group.command("create")
@click.argument("plan_ref")
@click.argument("name")
@click.option("--description", "-d", default="", help="Short description")
@click.option("--content", default="", help="Free-form Markdown content")
@click.option("--priority", "-p", default=DEFAULT_PRIORITY, type=int, help="Lower runs first (default 100)")
@click.option("--parent", "parent_id", default=None, type=int, help="Parent task id")
@click.option("--criteria", "acceptance_criteria", default="", help="Acceptance criteria")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def create_task(
    ctx: click.Context,
    plan_ref: str,
    name: str,
    description: str,
    content: str,
    priority: int,
    parent_id: int | None,
    acceptance_criteria: str,
    as_json: bool,
) -> None:
    """Create a task in a plan."""
    with get_db() as db:
        result = attempt(
            db.create_task,
            plan_id_or_exit(db, plan_ref, as_json),
            name,
            description=description,
            content=content,
            priority=priority,
            parent_id=parent_id,
            acceptance_criteria=acceptance_criteria,
            actor=ctx.obj["actor"],
        )
        if not result.ok:
            fail(result, as_json)
        t = result.unwrap()
        if as_json:
            echo_json(t.to_dict())
        else:
            click.echo(f"Created task {t.id}: {t.name}")


@task_group.command("show")
@click.argument("task_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def show(task_id: int, as_json: bool) -> None:
    """Show a task with its blockers and the tasks it blocks."""
    with get_db() as db:
        result = show_task(db, task_id)
        if not result.ok:
            fail(result, as_json)
        data = result.unwrap()
        if as_json:
            echo_json(data)
            return

        t = data["task"]
        click.echo(f"Task {t['id']}: {t['name']}")
        click.echo(f"  Status:   {t['status']}")
        click.echo(f"  Priority: {t['priority']}")
        if t["parent_id"]:
            click.echo(f"  Parent:   {t['parent_id']}")
        if t["description"]:
            click.echo(f"  {t['description']}")
        if t["acceptance_criteria"]:
            click.echo(f"  Acceptance: {t['acceptance_criteria']}")
        for label, refs in (("Blocked by", data["blocked_by"]), ("Blocks", data["blocks"])):
            if refs:
                click.echo(f"  {label}: " + ", ".join(f"{r['id']} {r['name']} ({r['status']})" for r in refs))
        if data["facts"]:
            click.echo("  Facts: " + ", ".join(f["name"] for f in data["facts"]))
        if data["valid_transitions"]:
            click.echo(f"  Next:     {', '.join(data['valid_transitions'])}")
        elif is_terminal(t["status"]):
            click.echo("  (terminal)")


@task_group.command("update")
@click.argument("task_id", type=int)
@click.option("--name", default=None, help="New name")
@click.option("--description", "-d", default=None, help="New description")
@click.option("--content", default=None, help="New content")
@click.option("--priority", "-p", default=None, type=int, help="New priority")
@click.option("--parent", "parent_id", default=None, type=int, help="New parent task id")
@click.option("--no-parent", "clear_parent", is_flag=True, help="Detach from parent")
@click.option("--criteria", "acceptance_criteria", default=None, help="New acceptance criteria")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def update(
    ctx: click.Context,
    task_id: int,
    name: str | None,
    description: str | None,
    content: str | None,
    priority: int | None,
    parent_id: int | None,
    clear_parent: bool,
    acceptance_criteria: str | None,
    as_json: bool,
) -> None:
    """Update task fields (use the transition commands to change status)."""
    with get_db() as db:
        result = attempt(
            db.update_task,
            task_id,
            name=name,
            description=description,
            content=content,
            priority=priority,
            parent_id=parent_id,
            clear_parent=clear_parent,
            acceptance_criteria=acceptance_criteria,
            actor=ctx.obj["actor"],
        )
        if not result.ok:
            fail(result, as_json)
        t = result.unwrap()
        if as_json:
            echo_json(t.to_dict())
        else:
            click.echo(f"Updated task {t.id}: {t.name}")


@task_group.command("delete")
@click.argument("task_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def delete(task_id: int, as_json: bool) -> None:
    """Delete a task, its subtasks and their dependency edges."""
    with get_db() as db:
        result = attempt(db.delete_task, task_id)
        if not result.ok:
            fail(result, as_json)
        if as_json:
            echo_json({"status": "deleted", "id": task_id})
        else:
            click.echo(f"Deleted task {task_id}")


@task_group.command("status")
@click.argument("task_id", type=int)
@click.argument("new_status", type=click.Choice(sorted(VALID_STATUSES)))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def set_status(ctx: click.Context, task_id: int, new_status: str, as_json: bool) -> None:
    """Move a task to NEW_STATUS if the transition is allowed."""
    with get_db() as db:
        _transition(lambda: db.set_status(task_id, new_status, actor=ctx.obj["actor"]), as_json)


def _transition(change: Callable[[], Task], as_json: bool) -> None:
    result = attempt(change)
    if not result.ok:
        fail(result, as_json)
    t = result.unwrap()
    if as_json:
        echo_json(t.to_dict())
    else:
        click.echo(f"{t.id} {t.name}: {t.status}")


def _make_trigger(trigger: str, method_name: str, summary: str) -> click.Command:
    @click.command(trigger, help=summary)
    @click.argument("task_id", type=int)
    @click.option("--json", "as_json", is_flag=True, help="Output as JSON")
    @click.pass_context
    def _cmd(ctx: click.Context, task_id: int, as_json: bool) -> None:
        with get_db() as db:
            method = getattr(db, method_name)
            _transition(lambda: method(task_id, actor=ctx.obj["actor"]), as_json)

    return _cmd


_TRIGGERS = (
    ("start", "start_task", "pending -> in_progress"),
    ("complete", "complete_task", "in_progress -> completed"),
    ("fail", "fail_task", "in_progress -> failed"),
    ("block", "block_task", "in_progress -> blocked"),
    ("unblock", "unblock_task", "blocked -> in_progress"),
    ("skip", "skip_task", "pending -> skipped"),
    ("retry", "retry_task", "failed -> pending"),
)

for _trigger, _method, _summary in _TRIGGERS:
    task_group.add_command(_make_trigger(_trigger, _method, _summary))


def register(cli: click.Group) -> None:
    """Attach the ``task`` group to the top-level group."""
    cli.add_command(task_group)
