"""MCP tools for task CRUD and status changes."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from mcp.types import TextContent, Tool

from plansync.db_base import VALID_STATUSES
from plansync.mcp_tools.common import (
    ACTOR_PROPERTY,
    PLAN_PROPERTY,
    _op_error,
    _require_id,
    _resolve_plan_arg,
    _text,
    _validate_actor,
    _validate_int_range,
    _validate_str,
)
from plansync.operations import attempt, show_task

_STATUS_PROPERTY: dict[str, Any] = {"type": "string", "enum": sorted(VALID_STATUSES)}
_TEXT_FIELDS = ("description", "content", "acceptance_criteria")


def register() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    """Return (tool_definitions, handler_map) for task-domain tools."""
    tools = [
        Tool(
            name="list_tasks",
            description="List the tasks of a plan, optionally filtered by status",
            inputSchema={
                "type": "object",
                "properties": {"plan": PLAN_PROPERTY, "status": _STATUS_PROPERTY},
                "required": ["plan"],
            },
        ),
        Tool(
            name="create_task",
            description="Create a task in a plan. Lower priority numbers are worked first (default 100).",
            inputSchema={
                "type": "object",
                "properties": {
                    "plan": PLAN_PROPERTY,
                    "name": {"type": "string", "description": "Task name, unique within the plan"},
                    "description": {"type": "string", "default": ""},
                    "content": {"type": "string", "default": ""},
                    "acceptance_criteria": {"type": "string", "default": ""},
                    "priority": {"type": "integer", "minimum": 0, "default": 100},
                    "parent_id": {"type": "integer", "description": "Parent task id (one level of nesting)"},
                    "actor": ACTOR_PROPERTY,
                },
                "required": ["plan", "name"],
            },
        ),
        Tool(
            name="get_task",
            description="Get a task with its blockers, the tasks it blocks, valid status transitions, and linked facts",
            inputSchema={
                "type": "object",
                "properties": {"task_id": {"type": "integer"}},
                "required": ["task_id"],
            },
        ),
        Tool(
            name="update_task",
            description="Update task fields (not status). Omitted fields are left unchanged.",
            inputSchema={
                "type": "object",
                "properties": {
                    "task_id": {"type": "integer"},
                    "name": {"type": "string"},
                    "description": {"type": "string"},
                    "content": {"type": "string"},
                    "acceptance_criteria": {"type": "string"},
                    "priority": {"type": "integer", "minimum": 0},
                    "parent_id": {"type": "integer"},
                    "clear_parent": {"type": "boolean", "description": "Detach from the parent task"},
                    "actor": ACTOR_PROPERTY,
                },
                "required": ["task_id"],
            },
        ),
        Tool(
            name="delete_task",
            description="Delete a task, its subtasks, and all dependencies touching them",
            inputSchema={
                "type": "object",
                "properties": {"task_id": {"type": "integer"}},
                "required": ["task_id"],
            },
        ),
        Tool(
            name="set_task_status",
            description=(
                "Move a task to a new status. Allowed: pending->in_progress|skipped, "
                "in_progress->completed|failed|blocked, blocked->in_progress, failed->pending."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "task_id": {"type": "integer"},
                    "status": _STATUS_PROPERTY,
                    "actor": ACTOR_PROPERTY,
                },
                "required": ["task_id", "status"],
            },
        ),
    ]

    handlers: dict[str, Callable[..., Any]] = {
        "list_tasks": _handle_list_tasks,
        "create_task": _handle_create_task,
        "get_task": _handle_get_task,
        "update_task": _handle_update_task,
        "delete_task": _handle_delete_task,
        "set_task_status": _handle_set_task_status,
    }

    return tools, handlers


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_list_tasks(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    tracker = _get_db()
    plan_id, err = _resolve_plan_arg(tracker, arguments)
    if err:
        return err
    result = attempt(tracker.list_tasks, plan_id, status=arguments.get("status"))
    if not result.ok:
        return _op_error(result)
    return _text([t.to_dict() for t in result.unwrap()])


async def _handle_create_task(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    actor, actor_err = _validate_actor(arguments.get("actor", "mcp"))
    if actor_err:
        return actor_err
    for key in _TEXT_FIELDS:
        str_err = _validate_str(arguments.get(key), key)
        if str_err:
            return str_err
    parent_err = _validate_int_range(arguments.get("parent_id"), "parent_id", min_val=1)
    if parent_err:
        return parent_err
    tracker = _get_db()
    plan_id, err = _resolve_plan_arg(tracker, arguments)
    if err:
        return err
    result = attempt(
        tracker.create_task,
        plan_id,
        arguments.get("name", ""),
        description=arguments.get("description", ""),
        content=arguments.get("content", ""),
        acceptance_criteria=arguments.get("acceptance_criteria", ""),
        priority=arguments.get("priority", 100),
        parent_id=arguments.get("parent_id"),
        actor=actor,
    )
    if not result.ok:
        return _op_error(result)
    return _text(result.unwrap().to_dict())


async def _handle_get_task(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    task_id, err = _require_id(arguments, "task_id")
    if err:
        return err
    result = show_task(_get_db(), task_id)
    if not result.ok:
        return _op_error(result)
    return _text(result.unwrap())


async def _handle_update_task(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    actor, actor_err = _validate_actor(arguments.get("actor", "mcp"))
    if actor_err:
        return actor_err
    task_id, err = _require_id(arguments, "task_id")
    if err:
        return err
    for key in ("name", *_TEXT_FIELDS):
        str_err = _validate_str(arguments.get(key), key)
        if str_err:
            return str_err
    parent_err = _validate_int_range(arguments.get("parent_id"), "parent_id", min_val=1)
    if parent_err:
        return parent_err
    tracker = _get_db()
    result = attempt(
        tracker.update_task,
        task_id,
        name=arguments.get("name"),
        description=arguments.get("description"),
        content=arguments.get("content"),
        acceptance_criteria=arguments.get("acceptance_criteria"),
        priority=arguments.get("priority"),
        parent_id=arguments.get("parent_id"),
        clear_parent=bool(arguments.get("clear_parent", False)),
        actor=actor,
    )
    if not result.ok:
        return _op_error(result)
    return _text(result.unwrap().to_dict())


async def _handle_delete_task(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    task_id, err = _require_id(arguments, "task_id")
    if err:
        return err
    result = attempt(_get_db().delete_task, task_id)
    if not result.ok:
        return _op_error(result)
    return _text({"status": "deleted", "id": task_id})


async def _handle_set_task_status(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    actor, actor_err = _validate_actor(arguments.get("actor", "mcp"))
    if actor_err:
        return actor_err
    task_id, err = _require_id(arguments, "task_id")
    if err:
        return err
    tracker = _get_db()
    result = attempt(tracker.set_status, task_id, arguments.get("status"), actor=actor)
    if not result.ok:
        return _op_error(result)
    task = result.unwrap()
    return _text({**task.to_dict(), "valid_transitions": tracker.get_valid_transitions(task_id)})
