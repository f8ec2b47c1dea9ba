"""Typed success/failure results for callers of the store.

The store raises on bad input and missing entities. Interactive callers
(the CLI and the MCP tools) would rather branch on a result, so this module
turns the expected domain errors into ``OpResult`` failures carrying a
stable error code. Anything else is not a domain condition and propagates:
``SynchronizationError`` and ``sqlite3.Error`` are fatal to the caller.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from plansync.errors import CycleError, InvalidTransitionError, NotFoundError, ValidationError

if TYPE_CHECKING:
    from plansync.core import PlanDB

_T = TypeVar("_T")

# Most specific first: InvalidTransitionError is also a ValidationError.
_ERROR_CODES: tuple[tuple[type[Exception], str], ...] = (
    (InvalidTransitionError, "invalid_transition"),
    (CycleError, "cycle"),
    (NotFoundError, "not_found"),
    (ValidationError, "validation_error"),
)


@dataclass(frozen=True)
class OpResult(Generic[_T]):
    """Outcome of one operation: either ``value`` or ``error`` + ``code``."""

    ok: bool
    value: _T | None = None
    error: str = ""
    code: str = ""
    details: dict[str, Any] | None = None

    @classmethod
    def success(cls, value: _T) -> OpResult[_T]:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str, code: str, details: dict[str, Any] | None = None) -> OpResult[_T]:
        return cls(ok=False, error=error, code=code, details=details)

    def unwrap(self) -> _T:
        """Return the value, or raise ``ValueError`` on a failed result."""
        if not self.ok:
            msg = f"{self.code}: {self.error}"
            raise ValueError(msg)
        return self.value  # type: ignore[return-value]

    def to_error_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"error": self.error, "code": self.code}
        if self.details:
            data.update(self.details)
        return data


def error_code(exc: BaseException) -> str | None:
    """Stable code for a domain error, or None if *exc* is not one."""
    for exc_type, code in _ERROR_CODES:
        if isinstance(exc, exc_type):
            return code
    return None


def attempt(fn: Callable[..., _T], *args: Any, **kwargs: Any) -> OpResult[_T]:
    """Call ``fn(*args, **kwargs)`` and wrap domain errors as failures."""
    try:
        return OpResult.success(fn(*args, **kwargs))
    except (NotFoundError, ValidationError, CycleError) as e:
        code = error_code(e)
        assert code is not None
        details: dict[str, Any] | None = None
        if isinstance(e, InvalidTransitionError):
            details = {"valid_transitions": e.valid}
        return OpResult.failure(str(e), code, details)


# ---------------------------------------------------------------------------
# Composite operations
# ---------------------------------------------------------------------------


def show_plan(db: PlanDB, plan_id: int) -> OpResult[dict[str, Any]]:
    """Plan with its tasks, facts and progress counts."""

    def _show() -> dict[str, Any]:
        plan = db.get_plan(plan_id)
        return {
            "plan": plan.to_dict(),
            "tasks": [t.to_dict() for t in db.list_tasks(plan_id)],
            "facts": [f.to_dict() for f in db.list_facts(plan_id)],
            "progress": db.get_plan_progress(plan_id),
        }

    return attempt(_show)


def show_task(db: PlanDB, task_id: int) -> OpResult[dict[str, Any]]:
    """Task with its direct blockers, the tasks it blocks, and linked facts."""

    def _show() -> dict[str, Any]:
        detail: dict[str, Any] = dict(db.get_task_detail(task_id))
        detail["facts"] = [{"id": f.id, "name": f.name} for f in db.get_task_facts(task_id)]
        return detail

    return attempt(_show)


def resolve_plan(db: PlanDB, ref: str | int) -> OpResult[int]:
    """Accept a plan id or a plan name and return the id."""
    if isinstance(ref, int) or (isinstance(ref, str) and ref.isdigit()):
        return attempt(lambda: db.get_plan(int(ref)).id)
    plan = db.get_plan_by_name(ref)
    if plan is None:
        return OpResult.failure(f"Plan not found: {ref}", "not_found")
    return OpResult.success(plan.id)
