"""EventsMixin: per-task audit trail of lifecycle changes.

All methods access ``self.conn``, ``self.get_task()``, etc. via
Python's MRO when composed into ``PlanDB``.
"""

from __future__ import annotations

from typing import cast

from plansync.db_base import DBMixinProtocol, _now_iso
from plansync.types.events import EventRecord

EVENT_TYPES = frozenset(
    {
        "created",
        "status_changed",
        "priority_changed",
        "dependency_added",
        "dependency_removed",
        "imported",
    }
)


class EventsMixin(DBMixinProtocol):
    """Event recording and retrieval.

    Inherits ``DBMixinProtocol`` for type-safe access to shared attributes
    (``self.conn``, ``self.get_task()``, etc.). Actual implementations
    provided by ``PlanDB`` at composition time via MRO.
    """

    # -- Events (private) ----------------------------------------------------

    def _record_event(
        self,
        task_id: int,
        event_type: str,
        *,
        actor: str = "",
        old_value: str | None = None,
        new_value: str | None = None,
    ) -> None:
        """Append an event row. Does not commit; the caller owns the transaction."""
        self.conn.execute(
            "INSERT INTO task_events (task_id, event_type, actor, old_value, new_value, created_at) VALUES (?, ?, ?, ?, ?, ?)",
            (task_id, event_type, actor, old_value, new_value, _now_iso()),
        )

    def _delete_task_events(self, task_ids: list[int]) -> None:
        if not task_ids:
            return
        ph = ",".join("?" * len(task_ids))
        self.conn.execute(f"DELETE FROM task_events WHERE task_id IN ({ph})", task_ids)

    # -- Events (public) -----------------------------------------------------

    def get_task_events(self, task_id: int, *, limit: int = 50) -> list[EventRecord]:
        """Get events for a specific task, newest first."""
        self.get_task(task_id)  # raises NotFoundError if missing
        rows = self.conn.execute(
            "SELECT * FROM task_events WHERE task_id = ? ORDER BY created_at DESC, id DESC LIMIT ?",
            (task_id, limit),
        ).fetchall()
        return cast(list[EventRecord], [dict(r) for r in rows])
