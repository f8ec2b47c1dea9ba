"""CLI commands for reasoning traces: trace add/list/clear."""

from __future__ import annotations

import json as json_mod
from typing import Any

import click

from plansync.cli_common import echo_json, fail, get_db, plan_id_or_exit
from plansync.operations import attempt
from plansync.validation import VALID_TRACE_TYPES


def _parse_metadata(ctx: click.Context, param: click.Parameter, value: str | None) -> dict[str, Any] | None:
    if value is None:
        return None
    try:
        data = json_mod.loads(value)
    except json_mod.JSONDecodeError as e:
        msg = f"not valid JSON: {e}"
        raise click.BadParameter(msg) from e
    if not isinstance(data, dict):
        msg = "must be a JSON object"
        raise click.BadParameter(msg)
    return data


@click.group("trace")
def trace_group() -> None:
    """Record the reasoning behind task work."""


@trace_group.command("add")
@click.argument("task_id", type=int)
@click.argument("trace_type", type=click.Choice(sorted(VALID_TRACE_TYPES)))
@click.argument("content")
@click.option("--metadata", callback=_parse_metadata, default=None, help="Extra data as a JSON object")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def add(task_id: int, trace_type: str, content: str, metadata: dict[str, Any] | None, as_json: bool) -> None:
    """Append a trace step to a task."""
    with get_db() as db:
        result = attempt(db.add_trace, task_id, trace_type, content, metadata=metadata)
        if not result.ok:
            fail(result, as_json)
        trace = result.unwrap()
        if as_json:
            echo_json(trace.to_dict())
        else:
            click.echo(f"#{trace.sequence_num} {trace.trace_type} recorded for task {task_id}")


@trace_group.command("list")
@click.option("--plan", "plan_ref", default=None, help="Every trace in this plan")
@click.option("--task", "task_id", type=int, default=None, help="Traces of one task")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_traces(plan_ref: str | None, task_id: int | None, as_json: bool) -> None:
    """Show traces in sequence order. Give exactly one of --plan or --task."""
    if (plan_ref is None) == (task_id is None):
        msg = "Give exactly one of --plan or --task"
        raise click.UsageError(msg)
    with get_db() as db:
        if task_id is not None:
            result = attempt(db.get_task_traces, task_id)
        else:
            result = attempt(db.get_plan_traces, plan_id_or_exit(db, plan_ref or "", as_json))
        if not result.ok:
            fail(result, as_json)
        traces = result.unwrap()
        if as_json:
            echo_json([t.to_dict() for t in traces])
            return
        for t in traces:
            task = f" task {t.task_id}" if t.task_id is not None else ""
            click.echo(f"#{t.sequence_num:<4} {t.trace_type:<11}{task}: {t.content}")
        if not traces:
            click.echo("No traces.")


@trace_group.command("clear")
@click.option("--plan", "plan_ref", default=None, help="Delete every trace in this plan")
@click.option("--task", "task_id", type=int, default=None, help="Delete one task's traces")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def clear(plan_ref: str | None, task_id: int | None, as_json: bool) -> None:
    """Delete traces. Give exactly one of --plan or --task."""
    if (plan_ref is None) == (task_id is None):
        msg = "Give exactly one of --plan or --task"
        raise click.UsageError(msg)
    with get_db() as db:
        if task_id is not None:
            result = attempt(db.delete_task_traces, task_id)
        else:
            result = attempt(db.delete_plan_traces, plan_id_or_exit(db, plan_ref or "", as_json))
        if not result.ok:
            fail(result, as_json)
        count = result.unwrap()
        if as_json:
            echo_json({"status": "deleted", "count": count})
        else:
            click.echo(f"Deleted {count} traces")


def register(cli: click.Group) -> None:
    """Attach the ``trace`` group to the top-level group."""
    cli.add_command(trace_group)
