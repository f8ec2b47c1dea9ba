"""MCP tools for plan CRUD."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from mcp.types import TextContent, Tool

from plansync.mcp_tools.common import PLAN_PROPERTY, _op_error, _resolve_plan_arg, _text, _validate_str
from plansync.operations import attempt, show_plan


def register() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    """Return (tool_definitions, handler_map) for plan-domain tools."""
    tools = [
        Tool(
            name="list_plans",
            description="List all plans with their completion progress",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="get_plan",
            description="Get a plan with its tasks, facts, and progress counts",
            inputSchema={
                "type": "object",
                "properties": {"plan": PLAN_PROPERTY},
                "required": ["plan"],
            },
        ),
        Tool(
            name="create_plan",
            description="Create a new, empty plan. Plan names are unique.",
            inputSchema={
                "type": "object",
                "properties": {
                    "name": {"type": "string", "description": "Unique plan name"},
                    "description": {"type": "string", "default": ""},
                    "content": {"type": "string", "default": "", "description": "Free-form Markdown body"},
                },
                "required": ["name"],
            },
        ),
        Tool(
            name="update_plan",
            description="Update plan fields. Omitted fields are left unchanged.",
            inputSchema={
                "type": "object",
                "properties": {
                    "plan": PLAN_PROPERTY,
                    "name": {"type": "string"},
                    "description": {"type": "string"},
                    "content": {"type": "string"},
                    "completed": {"type": "boolean"},
                },
                "required": ["plan"],
            },
        ),
        Tool(
            name="delete_plan",
            description="Delete a plan and everything it owns: tasks, facts, dependencies, and history",
            inputSchema={
                "type": "object",
                "properties": {"plan": PLAN_PROPERTY},
                "required": ["plan"],
            },
        ),
    ]

    handlers: dict[str, Callable[..., Any]] = {
        "list_plans": _handle_list_plans,
        "get_plan": _handle_get_plan,
        "create_plan": _handle_create_plan,
        "update_plan": _handle_update_plan,
        "delete_plan": _handle_delete_plan,
    }

    return tools, handlers


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_list_plans(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    tracker = _get_db()
    plans = []
    for plan in tracker.list_plans():
        progress = tracker.get_plan_progress(plan.id)
        plans.append({**plan.to_dict(), "total": progress["total"], "pct": progress["pct"]})
    return _text(plans)


async def _handle_get_plan(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    tracker = _get_db()
    plan_id, err = _resolve_plan_arg(tracker, arguments)
    if err:
        return err
    result = show_plan(tracker, plan_id)
    if not result.ok:
        return _op_error(result)
    return _text(result.unwrap())


async def _handle_create_plan(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    for key in ("description", "content"):
        str_err = _validate_str(arguments.get(key), key)
        if str_err:
            return str_err
    tracker = _get_db()
    result = attempt(
        tracker.create_plan,
        arguments.get("name", ""),
        description=arguments.get("description", ""),
        content=arguments.get("content", ""),
    )
    if not result.ok:
        return _op_error(result)
    return _text(result.unwrap().to_dict())


async def _handle_update_plan(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    for key in ("name", "description", "content"):
        str_err = _validate_str(arguments.get(key), key)
        if str_err:
            return str_err
    tracker = _get_db()
    plan_id, err = _resolve_plan_arg(tracker, arguments)
    if err:
        return err
    result = attempt(
        tracker.update_plan,
        plan_id,
        name=arguments.get("name"),
        description=arguments.get("description"),
        content=arguments.get("content"),
        completed=arguments.get("completed"),
    )
    if not result.ok:
        return _op_error(result)
    return _text(result.unwrap().to_dict())


async def _handle_delete_plan(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    tracker = _get_db()
    plan_id, err = _resolve_plan_arg(tracker, arguments)
    if err:
        return err
    result = attempt(tracker.delete_plan, plan_id)
    if not result.ok:
        return _op_error(result)
    return _text({"status": "deleted", "id": plan_id})
