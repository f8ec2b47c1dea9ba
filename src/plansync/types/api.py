"""TypedDicts for CLI and MCP tool handler responses."""

from __future__ import annotations

from typing import Literal, NotRequired, TypedDict

from plansync.types.core import TaskDict
from plansync.types.planning import TaskRef

ErrorCode = Literal["not_found", "validation_error", "invalid_transition", "cycle", "sync_failed", "internal_error"]


class ErrorResponse(TypedDict):
    """Standard error envelope returned by MCP and ``--json`` CLI error paths."""

    error: str
    code: str


class TransitionError(TypedDict):
    """Extended error for invalid status transitions.

    Includes the valid targets to guide the caller toward a legal state.
    """

    error: str
    code: Literal["invalid_transition"]
    valid_transitions: NotRequired[list[str]]


class TaskDetail(TypedDict):
    """Task plus its immediate neighbours in the dependency graph."""

    task: TaskDict
    blocked_by: list[TaskRef]
    blocks: list[TaskRef]
    valid_transitions: list[str]
