"""MCP tools for lessons learned and their confidence scores."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from mcp.types import TextContent, Tool

from plansync.mcp_tools.common import (
    _MAX_SEARCH_RESULTS,
    PLAN_PROPERTY,
    _op_error,
    _require_id,
    _resolve_plan_arg,
    _text,
    _validate_int_range,
    _validate_str,
)
from plansync.operations import attempt
from plansync.validation import VALID_LESSON_TYPES

if TYPE_CHECKING:
    from plansync.core import PlanDB

_CONFIDENCE_PROPERTY: dict[str, Any] = {"type": "number", "minimum": 0.0, "maximum": 1.0}


def register() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    """Return (tool_definitions, handler_map) for lesson-domain tools."""
    tools = [
        Tool(
            name="create_lesson",
            description=(
                "Record a lesson learned: a success or failure pattern, a constraint, or a technique. "
                "Scope it to a plan or task when it came from one."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "lesson_type": {"type": "string", "enum": sorted(VALID_LESSON_TYPES)},
                    "content": {"type": "string", "description": "What was learned"},
                    "trigger_condition": {"type": "string", "description": "When the lesson applies", "default": ""},
                    "plan": PLAN_PROPERTY,
                    "task_id": {"type": "integer"},
                    "confidence": {**_CONFIDENCE_PROPERTY, "default": 0.5},
                },
                "required": ["lesson_type", "content"],
            },
        ),
        Tool(
            name="list_lessons",
            description="List lessons, most trusted first, optionally filtered by plan, task, type and confidence",
            inputSchema={
                "type": "object",
                "properties": {
                    "plan": PLAN_PROPERTY,
                    "task_id": {"type": "integer"},
                    "lesson_type": {"type": "string", "enum": sorted(VALID_LESSON_TYPES)},
                    "min_confidence": _CONFIDENCE_PROPERTY,
                    "max_confidence": _CONFIDENCE_PROPERTY,
                },
            },
        ),
        Tool(
            name="validate_lesson",
            description="Report that a lesson held true: raises its confidence and validation count",
            inputSchema={
                "type": "object",
                "properties": {"lesson_id": {"type": "integer"}, "boost": {**_CONFIDENCE_PROPERTY, "default": 0.1}},
                "required": ["lesson_id"],
            },
        ),
        Tool(
            name="invalidate_lesson",
            description="Report that a lesson misled: lowers its confidence",
            inputSchema={
                "type": "object",
                "properties": {"lesson_id": {"type": "integer"}, "penalty": {**_CONFIDENCE_PROPERTY, "default": 0.1}},
                "required": ["lesson_id"],
            },
        ),
        Tool(
            name="delete_lesson",
            description="Delete a lesson",
            inputSchema={
                "type": "object",
                "properties": {"lesson_id": {"type": "integer"}},
                "required": ["lesson_id"],
            },
        ),
        Tool(
            name="search_lessons",
            description="Find lessons whose trigger condition or content matches a query",
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {"type": "string"},
                    "min_confidence": {**_CONFIDENCE_PROPERTY, "default": 0.0},
                    "limit": {"type": "integer", "default": 50, "minimum": 1, "maximum": _MAX_SEARCH_RESULTS},
                },
                "required": ["query"],
            },
        ),
    ]

    handlers: dict[str, Callable[..., Any]] = {
        "create_lesson": _handle_create_lesson,
        "list_lessons": _handle_list_lessons,
        "validate_lesson": _handle_validate_lesson,
        "invalidate_lesson": _handle_invalidate_lesson,
        "delete_lesson": _handle_delete_lesson,
        "search_lessons": _handle_search_lessons,
    }

    return tools, handlers


def _optional_scope(tracker: PlanDB, arguments: dict[str, Any]) -> tuple[int | None, int | None, list[TextContent] | None]:
    """Resolve the optional ``plan`` and ``task_id`` arguments."""
    plan_id: int | None = None
    if arguments.get("plan") is not None:
        plan_id, err = _resolve_plan_arg(tracker, arguments)
        if err:
            return None, None, err
    task_id = arguments.get("task_id")
    err = _validate_int_range(task_id, "task_id", min_val=1)
    if err:
        return None, None, err
    return plan_id, task_id, None


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_create_lesson(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    str_err = _validate_str(arguments.get("trigger_condition"), "trigger_condition")
    if str_err:
        return str_err
    tracker = _get_db()
    plan_id, task_id, err = _optional_scope(tracker, arguments)
    if err:
        return err
    result = attempt(
        tracker.create_lesson,
        arguments.get("lesson_type", ""),
        arguments.get("content", ""),
        plan_id=plan_id,
        task_id=task_id,
        trigger_condition=arguments.get("trigger_condition", ""),
        confidence=arguments.get("confidence", 0.5),
    )
    if not result.ok:
        return _op_error(result)
    return _text(result.unwrap().to_dict())


async def _handle_list_lessons(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    tracker = _get_db()
    plan_id, task_id, err = _optional_scope(tracker, arguments)
    if err:
        return err
    result = attempt(
        tracker.list_lessons,
        plan_id=plan_id,
        task_id=task_id,
        lesson_type=arguments.get("lesson_type"),
        min_confidence=arguments.get("min_confidence"),
        max_confidence=arguments.get("max_confidence"),
    )
    if not result.ok:
        return _op_error(result)
    return _text([lesson.to_dict() for lesson in result.unwrap()])


async def _handle_validate_lesson(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    lesson_id, err = _require_id(arguments, "lesson_id")
    if err:
        return err
    result = attempt(_get_db().validate_lesson, lesson_id, boost=arguments.get("boost", 0.1))
    if not result.ok:
        return _op_error(result)
    return _text(result.unwrap().to_dict())


async def _handle_invalidate_lesson(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    lesson_id, err = _require_id(arguments, "lesson_id")
    if err:
        return err
    result = attempt(_get_db().invalidate_lesson, lesson_id, penalty=arguments.get("penalty", 0.1))
    if not result.ok:
        return _op_error(result)
    return _text(result.unwrap().to_dict())


async def _handle_delete_lesson(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    lesson_id, err = _require_id(arguments, "lesson_id")
    if err:
        return err
    result = attempt(_get_db().delete_lesson, lesson_id)
    if not result.ok:
        return _op_error(result)
    return _text({"status": "deleted", "id": lesson_id})


async def _handle_search_lessons(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    query = arguments.get("query")
    str_err = _validate_str(query, "query")
    if str_err:
        return str_err
    limit = arguments.get("limit", 50)
    limit_err = _validate_int_range(limit, "limit", min_val=1, max_val=_MAX_SEARCH_RESULTS)
    if limit_err:
        return limit_err
    result = attempt(
        _get_db().search_lessons, query or "", min_confidence=arguments.get("min_confidence", 0.0), limit=limit
    )
    if not result.ok:
        return _op_error(result)
    return _text([lesson.to_dict() for lesson in result.unwrap()])
