"""MCP tools for dependencies and ready/next queries."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from mcp.types import TextContent, Tool

from plansync.mcp_tools.common import (
    ACTOR_PROPERTY,
    PLAN_PROPERTY,
    _op_error,
    _require_id,
    _resolve_plan_arg,
    _text,
    _validate_actor,
)
from plansync.operations import attempt


def register() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    """Return (tool_definitions, handler_map) for planning-domain tools."""
    tools = [
        Tool(
            name="add_dependency",
            description="Add dependency: blocker_id blocks blocked_id (blocked_id is not ready until blocker_id is done)",
            inputSchema={
                "type": "object",
                "properties": {
                    "blocker_id": {"type": "integer", "description": "Task that blocks"},
                    "blocked_id": {"type": "integer", "description": "Task that is blocked"},
                    "actor": ACTOR_PROPERTY,
                },
                "required": ["blocker_id", "blocked_id"],
            },
        ),
        Tool(
            name="remove_dependency",
            description="Remove a dependency between two tasks",
            inputSchema={
                "type": "object",
                "properties": {
                    "blocker_id": {"type": "integer", "description": "Task that was blocking"},
                    "blocked_id": {"type": "integer", "description": "Task that was blocked"},
                    "actor": ACTOR_PROPERTY,
                },
                "required": ["blocker_id", "blocked_id"],
            },
        ),
        Tool(
            name="get_ready",
            description="Get the pending tasks of a plan whose blockers are all done, lowest priority number first",
            inputSchema={
                "type": "object",
                "properties": {"plan": PLAN_PROPERTY},
                "required": ["plan"],
            },
        ),
        Tool(
            name="get_next",
            description="Get the single task to work on next in a plan, or null when nothing is ready",
            inputSchema={
                "type": "object",
                "properties": {"plan": PLAN_PROPERTY},
                "required": ["plan"],
            },
        ),
    ]

    handlers: dict[str, Callable[..., Any]] = {
        "add_dependency": _handle_add_dependency,
        "remove_dependency": _handle_remove_dependency,
        "get_ready": _handle_get_ready,
        "get_next": _handle_get_next,
    }

    return tools, handlers


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_add_dependency(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    actor, actor_err = _validate_actor(arguments.get("actor", "mcp"))
    if actor_err:
        return actor_err
    blocker_id, err = _require_id(arguments, "blocker_id")
    if err:
        return err
    blocked_id, err = _require_id(arguments, "blocked_id")
    if err:
        return err
    result = attempt(_get_db().add_dependency, blocker_id, blocked_id, actor=actor)
    if not result.ok:
        return _op_error(result)
    status = "added" if result.unwrap() else "already_exists"
    return _text({"status": status, "blocker_id": blocker_id, "blocked_id": blocked_id})


async def _handle_remove_dependency(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    actor, actor_err = _validate_actor(arguments.get("actor", "mcp"))
    if actor_err:
        return actor_err
    blocker_id, err = _require_id(arguments, "blocker_id")
    if err:
        return err
    blocked_id, err = _require_id(arguments, "blocked_id")
    if err:
        return err
    removed = _get_db().remove_dependency(blocker_id, blocked_id, actor=actor)
    status = "removed" if removed else "not_found"
    return _text({"status": status, "blocker_id": blocker_id, "blocked_id": blocked_id})


async def _handle_get_ready(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    tracker = _get_db()
    plan_id, err = _resolve_plan_arg(tracker, arguments)
    if err:
        return err
    return _text([{"id": t.id, "name": t.name, "priority": t.priority} for t in tracker.get_ready(plan_id)])


async def _handle_get_next(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    tracker = _get_db()
    plan_id, err = _resolve_plan_arg(tracker, arguments)
    if err:
        return err
    task = tracker.get_next(plan_id)
    return _text({"task": task.to_dict() if task is not None else None})
