"""WorkflowMixin: the task status state machine.

Every status change made outside of document import goes through
``set_status``, which checks the transition table below. The named
trigger methods (``start_task``, ``complete_task`` ...) are thin wrappers.

All methods access ``self.conn``, ``self.get_task()``, etc. via
Python's MRO when composed into ``PlanDB``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from plansync.db_base import DONE_STATUSES, DBMixinProtocol, _now_iso
from plansync.errors import InvalidTransitionError
from plansync.validation import require_status

if TYPE_CHECKING:
    from plansync.core import Task


@dataclass(frozen=True)
class Transition:
    """One edge of the status state machine."""

    from_status: str
    to_status: str
    trigger: str


TRANSITIONS: tuple[Transition, ...] = (
    Transition("pending", "in_progress", "start"),
    Transition("pending", "skipped", "skip"),
    Transition("in_progress", "completed", "complete"),
    Transition("in_progress", "failed", "fail"),
    Transition("in_progress", "blocked", "block"),
    Transition("blocked", "in_progress", "unblock"),
    Transition("failed", "pending", "retry"),
)

_ALLOWED: frozenset[tuple[str, str]] = frozenset((t.from_status, t.to_status) for t in TRANSITIONS)


def valid_targets(status: str) -> list[str]:
    """Statuses reachable from *status* in one step, in table order."""
    return [t.to_status for t in TRANSITIONS if t.from_status == status]


def is_terminal(status: str) -> bool:
    return status in DONE_STATUSES


class WorkflowMixin(DBMixinProtocol):
    """Status transitions for PlanDB.

    Inherits ``DBMixinProtocol`` for type-safe access to shared attributes.
    Actual implementations provided by ``PlanDB`` at composition time via MRO.
    """

    if TYPE_CHECKING:
        # From EventsMixin
        def _record_event(
            self,
            task_id: int,
            event_type: str,
            *,
            actor: str = "",
            old_value: str | None = None,
            new_value: str | None = None,
        ) -> None: ...

    def get_valid_transitions(self, task_id: int) -> list[str]:
        return valid_targets(self.get_task(task_id).status)

    def set_status(self, task_id: int, new_status: str, *, actor: str = "") -> Task:
        """Move a task to *new_status* if the transition table allows it.

        Raises ``ValidationError`` for an unknown status and
        ``InvalidTransitionError`` for a disallowed move; the task is left
        untouched in both cases. ``status_changed_at`` never moves backwards.
        """
        new_status = require_status(new_status)
        current = self.get_task(task_id)
        if (current.status, new_status) not in _ALLOWED:
            raise InvalidTransitionError(current.status, new_status, valid_targets(current.status))

        now = _now_iso()
        changed_at = max(now, current.status_changed_at or now)
        try:
            self.conn.execute(
                "UPDATE tasks SET status = ?, completed = ?, status_changed_at = ?, updated_at = ? WHERE id = ?",
                (new_status, int(new_status == "completed"), changed_at, changed_at, task_id),
            )
            self._record_event(task_id, "status_changed", actor=actor, old_value=current.status, new_value=new_status)
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        return self.get_task(task_id)

    # -- Named triggers ------------------------------------------------------

    def start_task(self, task_id: int, *, actor: str = "") -> Task:
        return self.set_status(task_id, "in_progress", actor=actor)

    def complete_task(self, task_id: int, *, actor: str = "") -> Task:
        return self.set_status(task_id, "completed", actor=actor)

    def fail_task(self, task_id: int, *, actor: str = "") -> Task:
        return self.set_status(task_id, "failed", actor=actor)

    def block_task(self, task_id: int, *, actor: str = "") -> Task:
        return self.set_status(task_id, "blocked", actor=actor)

    def unblock_task(self, task_id: int, *, actor: str = "") -> Task:
        return self.set_status(task_id, "in_progress", actor=actor)

    def skip_task(self, task_id: int, *, actor: str = "") -> Task:
        return self.set_status(task_id, "skipped", actor=actor)

    def retry_task(self, task_id: int, *, actor: str = "") -> Task:
        return self.set_status(task_id, "pending", actor=actor)
