"""Shared validation functions for all entry points.

Pure functions with no MCP or Click dependencies. The ``require_*`` helpers
raise ``ValidationError``; ``sanitize_actor`` returns an error string instead
so MCP handlers can build their own envelope.
"""

from __future__ import annotations

import unicodedata
from typing import Any

from plansync.db_base import VALID_STATUSES
from plansync.errors import ValidationError

_MAX_ACTOR_LENGTH = 128
_MAX_NAME_LENGTH = 500

VALID_LINK_TYPES: frozenset[str] = frozenset({"informs", "discovered_during", "blocks", "required_context"})


def sanitize_actor(value: Any) -> tuple[str, str | None]:
    """Validate and clean an actor name.

    Returns (cleaned_actor, None) on success or ("", error_message) on failure.
    Strips whitespace, then checks: non-empty, max length, no control/format chars.
    """
    if not isinstance(value, str):
        return ("", "actor must be a string")
    # Check for control/format chars before stripping; reject "\nbad" rather
    # than silently absorbing the newline via strip().
    for ch in value:
        cat = unicodedata.category(ch)
        if cat.startswith("C"):  # Cc (control) and Cf (format)
            return ("", f"actor must not contain control characters (found U+{ord(ch):04X})")
    cleaned = value.strip()
    if not cleaned:
        return ("", "actor must not be empty")
    if len(cleaned) > _MAX_ACTOR_LENGTH:
        return ("", f"actor must be at most {_MAX_ACTOR_LENGTH} characters")
    return (cleaned, None)


def require_name(value: Any, what: str = "name") -> str:
    """Return *value* stripped, or raise if it is not a usable name.

    Names are single-line: control characters (newlines and tabs included)
    are rejected because a name is written to one line of front matter.
    """
    if value is None:
        msg = f"{what} cannot be empty"
        raise ValidationError(msg)
    if not isinstance(value, str):
        msg = f"{what} must be a string, got {type(value).__name__}"
        raise ValidationError(msg)
    for ch in value:
        if unicodedata.category(ch).startswith("C"):
            msg = f"{what} must not contain control characters (found U+{ord(ch):04X})"
            raise ValidationError(msg)
    cleaned = value.strip()
    if not cleaned:
        msg = f"{what} cannot be empty"
        raise ValidationError(msg)
    if len(cleaned) > _MAX_NAME_LENGTH:
        msg = f"{what} must be at most {_MAX_NAME_LENGTH} characters"
        raise ValidationError(msg)
    return cleaned


def require_priority(value: Any) -> int:
    # bool is an int subclass; True would otherwise become priority 1
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"Priority must be an integer, got {type(value).__name__}"
        raise ValidationError(msg)
    if value < 0:
        msg = f"Priority must be >= 0, got {value}"
        raise ValidationError(msg)
    return value


def require_status(value: Any) -> str:
    if not isinstance(value, str) or value not in VALID_STATUSES:
        msg = f"Invalid status '{value}'. Valid statuses: {', '.join(sorted(VALID_STATUSES))}"
        raise ValidationError(msg)
    return str(value)


def require_link_type(value: Any) -> str:
    if not isinstance(value, str) or value not in VALID_LINK_TYPES:
        msg = f"Invalid link type '{value}'. Valid types: {', '.join(sorted(VALID_LINK_TYPES))}"
        raise ValidationError(msg)
    return str(value)


VALID_LESSON_TYPES: frozenset[str] = frozenset({"success_pattern", "failure_pattern", "constraint", "technique"})
VALID_TRACE_TYPES: frozenset[str] = frozenset({"thought", "action", "observation", "reflection"})


def require_lesson_type(value: Any) -> str:
    if not isinstance(value, str) or value not in VALID_LESSON_TYPES:
        msg = f"Invalid lesson type '{value}'. Valid types: {', '.join(sorted(VALID_LESSON_TYPES))}"
        raise ValidationError(msg)
    return str(value)


def require_trace_type(value: Any) -> str:
    if not isinstance(value, str) or value not in VALID_TRACE_TYPES:
        msg = f"Invalid trace type '{value}'. Valid types: {', '.join(sorted(VALID_TRACE_TYPES))}"
        raise ValidationError(msg)
    return str(value)


def require_confidence(value: Any, what: str = "Confidence") -> float:
    """Accept an int or float in [0.0, 1.0]."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        msg = f"{what} must be a number, got {type(value).__name__}"
        raise ValidationError(msg)
    if not 0.0 <= value <= 1.0:
        msg = f"{what} must be between 0.0 and 1.0, got {value}"
        raise ValidationError(msg)
    return float(value)


def require_text(value: Any, what: str) -> str:
    """Free text that may span lines but must not be blank."""
    if not isinstance(value, str):
        msg = f"{what} must be a string, got {type(value).__name__}"
        raise ValidationError(msg)
    if not value.strip():
        msg = f"{what} cannot be empty"
        raise ValidationError(msg)
    return value
