"""Pure helpers and constants shared across MCP tool modules.

This module has NO dependency on ``mcp_server`` module globals, so it can
be imported freely without triggering circular-import issues.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from mcp.types import TextContent

from plansync.operations import OpResult, resolve_plan
from plansync.validation import sanitize_actor

if TYPE_CHECKING:
    from plansync.core import PlanDB

# Hard cap on search results to keep MCP responses within token limits.
_MAX_SEARCH_RESULTS = 100

ACTOR_PROPERTY: dict[str, str] = {"type": "string", "description": "Agent/user identity for audit trail"}
PLAN_PROPERTY: dict[str, Any] = {
    "type": ["integer", "string"],
    "description": "Plan id, or plan name",
}


def _text(content: object) -> list[TextContent]:
    if isinstance(content, str):
        return [TextContent(type="text", text=content)]
    return [TextContent(type="text", text=json.dumps(content, indent=2, default=str))]


def _op_error(result: OpResult[Any]) -> list[TextContent]:
    """Error envelope for a failed ``OpResult``."""
    return _text(result.to_error_dict())


def _validate_str(value: Any, name: str) -> list[TextContent] | None:
    """Return a validation error if *value* is not ``None`` and not a ``str``."""
    if value is not None and not isinstance(value, str):
        return _text({"error": f"{name} must be a string", "code": "validation_error"})
    return None


def _validate_int_range(
    value: Any,
    name: str,
    min_val: int | None = None,
    max_val: int | None = None,
) -> list[TextContent] | None:
    """Return a validation error if *value* is not ``None`` and outside range.

    When *value* is ``None`` it is considered optional and passes.
    """
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        return _text({"error": f"{name} must be an integer", "code": "validation_error"})
    if min_val is not None and value < min_val:
        return _text({"error": f"{name} must be >= {min_val}", "code": "validation_error"})
    if max_val is not None and value > max_val:
        return _text({"error": f"{name} must be <= {max_val}", "code": "validation_error"})
    return None


def _validate_actor(value: Any) -> tuple[str, list[TextContent] | None]:
    """Sanitize actor, returning (cleaned, None) or ("", error_response)."""
    cleaned, err = sanitize_actor(value)
    if err:
        return ("", _text({"error": err, "code": "validation_error"}))
    return (cleaned, None)


def _require_id(arguments: dict[str, Any], name: str) -> tuple[int, list[TextContent] | None]:
    """Pull a required positive integer id out of *arguments*."""
    value = arguments.get(name)
    if value is None:
        return (0, _text({"error": f"{name} is required", "code": "validation_error"}))
    err = _validate_int_range(value, name, min_val=1)
    if err:
        return (0, err)
    return (value, None)


def _resolve_plan_arg(tracker: PlanDB, arguments: dict[str, Any]) -> tuple[int, list[TextContent] | None]:
    """Resolve the ``plan`` argument (id or name) to a plan id."""
    ref = arguments.get("plan")
    if ref is None or isinstance(ref, bool) or not isinstance(ref, (int, str)):
        return (0, _text({"error": "plan must be a plan id or name", "code": "validation_error"}))
    result = resolve_plan(tracker, ref)
    if not result.ok:
        return (0, _op_error(result))
    return (result.unwrap(), None)
