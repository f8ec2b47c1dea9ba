"""MCP tools for reasoning traces recorded against tasks."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from mcp.types import TextContent, Tool

from plansync.mcp_tools.common import PLAN_PROPERTY, _op_error, _require_id, _resolve_plan_arg, _text
from plansync.operations import attempt
from plansync.validation import VALID_TRACE_TYPES


def register() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    """Return (tool_definitions, handler_map) for trace-domain tools."""
    tools = [
        Tool(
            name="add_trace",
            description=(
                "Record one reasoning step for a task: a thought, an action, an observation, or a reflection. "
                "Steps are numbered in order across the whole plan."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "task_id": {"type": "integer"},
                    "trace_type": {"type": "string", "enum": sorted(VALID_TRACE_TYPES)},
                    "content": {"type": "string"},
                    "metadata": {"type": "object", "description": "Extra structured data kept with the step"},
                },
                "required": ["task_id", "trace_type", "content"],
            },
        ),
        Tool(
            name="get_traces",
            description="Traces in sequence order, for one task or for a whole plan. Pass exactly one of task_id or plan.",
            inputSchema={
                "type": "object",
                "properties": {"task_id": {"type": "integer"}, "plan": PLAN_PROPERTY},
            },
        ),
    ]

    handlers: dict[str, Callable[..., Any]] = {
        "add_trace": _handle_add_trace,
        "get_traces": _handle_get_traces,
    }

    return tools, handlers


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_add_trace(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    task_id, err = _require_id(arguments, "task_id")
    if err:
        return err
    result = attempt(
        _get_db().add_trace,
        task_id,
        arguments.get("trace_type", ""),
        arguments.get("content", ""),
        metadata=arguments.get("metadata"),
    )
    if not result.ok:
        return _op_error(result)
    return _text(result.unwrap().to_dict())


async def _handle_get_traces(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    tracker = _get_db()
    if (arguments.get("task_id") is None) == (arguments.get("plan") is None):
        return _text({"error": "Provide exactly one of task_id or plan", "code": "validation_error"})
    if arguments.get("task_id") is not None:
        task_id, err = _require_id(arguments, "task_id")
        if err:
            return err
        result = attempt(tracker.get_task_traces, task_id)
    else:
        plan_id, err = _resolve_plan_arg(tracker, arguments)
        if err:
            return err
        result = attempt(tracker.get_plan_traces, plan_id)
    if not result.ok:
        return _op_error(result)
    return _text([t.to_dict() for t in result.unwrap()])
