"""Exception types raised by the plansync store.

Missing entities raise ``NotFoundError`` (a ``KeyError``) and bad input
raises ``ValidationError`` (a ``ValueError``), so callers that only know the
builtin types keep working.
"""

from __future__ import annotations


class PlanSyncError(Exception):
    """Base class for every error raised by plansync."""


class NotFoundError(PlanSyncError, KeyError):
    """A referenced plan, task, or fact does not exist."""

    def __str__(self) -> str:
        # KeyError.__str__ repr()s its argument; keep messages readable.
        return str(self.args[0]) if self.args else ""


class ValidationError(PlanSyncError, ValueError):
    """Input failed validation (missing field, bad enum value, empty update)."""


class InvalidTransitionError(ValidationError):
    """Raised when a status change is not in the transition table."""

    def __init__(self, from_status: str, to_status: str, valid: list[str] | None = None) -> None:
        self.from_status = from_status
        self.to_status = to_status
        self.valid = list(valid or [])
        hint = f" Valid targets: {', '.join(self.valid)}." if self.valid else " No transitions out of this state."
        super().__init__(f"Invalid status transition '{from_status}' -> '{to_status}'.{hint}")


class CycleError(PlanSyncError, ValueError):
    """Adding the dependency edge would create a cycle."""

    def __init__(self, blocker_id: int, blocked_id: int) -> None:
        self.blocker_id = blocker_id
        self.blocked_id = blocked_id
        if blocker_id == blocked_id:
            msg = f"Task {blocker_id} cannot block itself (cycle)"
        else:
            msg = f"Dependency {blocker_id} -> {blocked_id} would create a cycle"
        super().__init__(msg)


class SynchronizationError(PlanSyncError, RuntimeError):
    """Import failed part-way; the transaction was rolled back."""
