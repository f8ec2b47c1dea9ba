"""MCP tools for Markdown import/preview/export and full-text search."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from mcp.types import TextContent, Tool

from plansync import markdown
from plansync.errors import SynchronizationError
from plansync.mcp_tools.common import (
    _MAX_SEARCH_RESULTS,
    ACTOR_PROPERTY,
    PLAN_PROPERTY,
    _op_error,
    _resolve_plan_arg,
    _text,
    _validate_actor,
    _validate_int_range,
    _validate_str,
)
from plansync.operations import attempt, resolve_plan

_SOURCE_PROPERTIES: dict[str, Any] = {
    "content": {"type": "string", "description": "Markdown document text"},
    "path": {"type": "string", "description": "Path to a Markdown file, relative to the project root"},
}


def register() -> tuple[list[Tool], dict[str, Callable[..., Any]]]:
    """Return (tool_definitions, handler_map) for sync-domain tools."""
    tools = [
        Tool(
            name="import_plan",
            description=(
                "Sync a Markdown plan document into the store. The plan is created or updated by name; "
                "tasks and facts missing from the document are deleted. Pass either content or path."
            ),
            inputSchema={
                "type": "object",
                "properties": {**_SOURCE_PROPERTIES, "actor": ACTOR_PROPERTY},
            },
        ),
        Tool(
            name="preview_import",
            description="Show which tasks and facts an import would create, update, and delete. Writes nothing.",
            inputSchema={"type": "object", "properties": dict(_SOURCE_PROPERTIES)},
        ),
        Tool(
            name="export_plan",
            description="Render a plan as a Markdown document. With path, also write it there (relative to the project root).",
            inputSchema={
                "type": "object",
                "properties": {
                    "plan": PLAN_PROPERTY,
                    "path": {"type": "string", "description": "Output file, relative to the project root"},
                },
                "required": ["plan"],
            },
        ),
        Tool(
            name="search",
            description="Full-text search over plan, task, and fact names, descriptions, and content",
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {"type": "string"},
                    "plan": PLAN_PROPERTY,
                    "limit": {"type": "integer", "default": 50, "minimum": 1, "maximum": _MAX_SEARCH_RESULTS},
                },
                "required": ["query"],
            },
        ),
    ]

    handlers: dict[str, Callable[..., Any]] = {
        "import_plan": _handle_import_plan,
        "preview_import": _handle_preview_import,
        "export_plan": _handle_export_plan,
        "search": _handle_search,
    }

    return tools, handlers


def _read_source(arguments: dict[str, Any]) -> tuple[str, list[TextContent] | None]:
    """Document text from ``content`` or from the project-relative ``path``."""
    from plansync.mcp_server import _safe_path

    content = arguments.get("content")
    path = arguments.get("path")
    if (content is None) == (path is None):
        return ("", _text({"error": "Provide exactly one of content or path", "code": "validation_error"}))
    if content is not None:
        err = _validate_str(content, "content")
        return (content, None) if err is None else ("", err)
    err = _validate_str(path, "path")
    if err:
        return ("", err)
    try:
        return (_safe_path(path).read_text(encoding="utf-8"), None)
    except ValueError as e:
        return ("", _text({"error": str(e), "code": "validation_error"}))
    except OSError as e:
        return ("", _text({"error": f"Cannot read {path}: {e}", "code": "not_found"}))


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_import_plan(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    actor, actor_err = _validate_actor(arguments.get("actor", "mcp"))
    if actor_err:
        return actor_err
    text, err = _read_source(arguments)
    if err:
        return err
    parsed = attempt(markdown.parse, text)
    if not parsed.ok:
        return _op_error(parsed)
    tracker = _get_db()
    try:
        result = attempt(tracker.import_document, parsed.unwrap(), actor=actor)
    except SynchronizationError as e:
        return _text({"error": str(e), "code": "sync_failed"})
    if not result.ok:
        return _op_error(result)
    return _text(result.unwrap())


async def _handle_preview_import(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    text, err = _read_source(arguments)
    if err:
        return err
    tracker = _get_db()
    result = attempt(lambda: tracker.preview_document(markdown.parse(text)))
    if not result.ok:
        return _op_error(result)
    return _text(result.unwrap())


async def _handle_export_plan(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db, _safe_path

    tracker = _get_db()
    plan_id, err = _resolve_plan_arg(tracker, arguments)
    if err:
        return err
    rendered = markdown.render_document(tracker.export_document(plan_id))
    path = arguments.get("path")
    if path is None:
        return _text({"id": plan_id, "content": rendered})
    path_err = _validate_str(path, "path")
    if path_err:
        return path_err
    try:
        target = _safe_path(path)
    except ValueError as e:
        return _text({"error": str(e), "code": "validation_error"})
    tracker.export_file(plan_id, target)
    return _text({"id": plan_id, "path": path, "content": rendered})


async def _handle_search(arguments: dict[str, Any]) -> list[TextContent]:
    from plansync.mcp_server import _get_db

    limit = arguments.get("limit", 50)
    limit_err = _validate_int_range(limit, "limit", min_val=1, max_val=_MAX_SEARCH_RESULTS)
    if limit_err:
        return limit_err
    query_err = _validate_str(arguments.get("query"), "query")
    if query_err:
        return query_err
    tracker = _get_db()
    plan_id: int | None = None
    if arguments.get("plan") is not None:
        resolved = resolve_plan(tracker, arguments["plan"])
        if not resolved.ok:
            return _op_error(resolved)
        plan_id = resolved.unwrap()
    result = attempt(tracker.search, arguments.get("query", ""), plan_id=plan_id, limit=limit)
    if not result.ok:
        return _op_error(result)
    found = result.unwrap()
    return _text(
        {
            "plans": [{"id": p.id, "name": p.name} for p in found["plans"]],
            "tasks": [{"id": t.id, "plan_id": t.plan_id, "name": t.name, "status": t.status} for t in found["tasks"]],
            "facts": [{"id": f.id, "plan_id": f.plan_id, "name": f.name} for f in found["facts"]],
        }
    )
