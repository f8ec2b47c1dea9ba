"""MCP tools for facts and fact-to-task links."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from mcp.types import TextContent, Tool

from plansync.mcp_tools.common import PLAN_PROPERTY, _op_error, _require_id, _resolve_plan_arg, _text, _validate_str
from plansync.operations import attempt
from plansync.validation import VALID_LINK_TYPES


def register() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    """Return (tool_definitions, handler_map) for fact-domain tools."""
    tools = [
        Tool(
            name="list_facts",
            description="List the facts recorded for a plan",
            inputSchema={
                "type": "object",
                "properties": {"plan": PLAN_PROPERTY},
                "required": ["plan"],
            },
        ),
        Tool(
            name="create_fact",
            description="Record a named piece of knowledge in a plan",
            inputSchema={
                "type": "object",
                "properties": {
                    "plan": PLAN_PROPERTY,
                    "name": {"type": "string", "description": "Fact name, unique within the plan"},
                    "description": {"type": "string", "default": ""},
                    "content": {"type": "string", "default": ""},
                },
                "required": ["plan", "name"],
            },
        ),
        Tool(
            name="delete_fact",
            description="Delete a fact and its task links",
            inputSchema={
                "type": "object",
                "properties": {"fact_id": {"type": "integer"}},
                "required": ["fact_id"],
            },
        ),
        Tool(
            name="link_fact",
            description="Link a fact to a task in the same plan",
            inputSchema={
                "type": "object",
                "properties": {
                    "fact_id": {"type": "integer"},
                    "task_id": {"type": "integer"},
                    "link_type": {"type": "string", "enum": sorted(VALID_LINK_TYPES), "default": "informs"},
                },
                "required": ["fact_id", "task_id"],
            },
        ),
    ]

    handlers: dict[str, Callable[..., Any]] = {
        "list_facts": _handle_list_facts,
        "create_fact": _handle_create_fact,
        "delete_fact": _handle_delete_fact,
        "link_fact": _handle_link_fact,
    }

    return tools, handlers


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_list_facts(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    tracker = _get_db()
    plan_id, err = _resolve_plan_arg(tracker, arguments)
    if err:
        return err
    return _text([f.to_dict() for f in tracker.list_facts(plan_id)])


async def _handle_create_fact(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    for key in ("description", "content"):
        str_err = _validate_str(arguments.get(key), key)
        if str_err:
            return str_err
    tracker = _get_db()
    plan_id, err = _resolve_plan_arg(tracker, arguments)
    if err:
        return err
    result = attempt(
        tracker.create_fact,
        plan_id,
        arguments.get("name", ""),
        description=arguments.get("description", ""),
        content=arguments.get("content", ""),
    )
    if not result.ok:
        return _op_error(result)
    return _text(result.unwrap().to_dict())


async def _handle_delete_fact(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    fact_id, err = _require_id(arguments, "fact_id")
    if err:
        return err
    result = attempt(_get_db().delete_fact, fact_id)
    if not result.ok:
        return _op_error(result)
    return _text({"status": "deleted", "id": fact_id})


async def _handle_link_fact(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    fact_id, err = _require_id(arguments, "fact_id")
    if err:
        return err
    task_id, err = _require_id(arguments, "task_id")
    if err:
        return err
    link_type = arguments.get("link_type", "informs")
    result = attempt(_get_db().link_fact, fact_id, task_id, link_type)
    if not result.ok:
        return _op_error(result)
    status = "linked" if result.unwrap() else "already_exists"
    return _text({"status": status, "fact_id": fact_id, "task_id": task_id, "link_type": link_type})
