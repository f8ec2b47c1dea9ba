"""PlanningMixin: dependency edges, cycle prevention, and readiness queries.

An edge (A, B) means "A blocks B": B is not ready until A is completed or
skipped. Edges only join tasks of the same plan, and the graph of each plan
stays acyclic.

All methods access ``self.conn``, ``self.get_task()``, etc. via
Python's MRO when composed into ``PlanDB``.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING

from plansync.db_base import DONE_STATUSES, DBMixinProtocol, _now_iso
from plansync.db_workflow import valid_targets
from plansync.errors import CycleError, ValidationError
from plansync.types.api import TaskDetail
from plansync.types.planning import DependencyMapEntry, DependencyRecord, PlanProgress, TaskRef

if TYPE_CHECKING:
    import sqlite3

    from plansync.core import Task

logger = logging.getLogger(__name__)

_DONE_PH = ",".join("?" * len(DONE_STATUSES))


class PlanningMixin(DBMixinProtocol):
    """Dependencies and DAG queries (ready/next/blocked/progress).

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

        # From TasksMixin
        def _build_tasks(self, rows: list[sqlite3.Row]) -> list[Task]: ...

    # -- Dependencies --------------------------------------------------------

    def add_dependency(self, blocker_id: int, blocked_id: int, *, dep_type: str = "blocks", actor: str = "") -> bool:
        """Record that *blocker_id* blocks *blocked_id*.

        Returns False when the edge already exists (no-op, no event).
        Raises ``CycleError`` if the edge would close a cycle, including a
        self-loop; the edge set is unchanged in that case.
        """
        blocker = self.get_task(blocker_id)  # raises NotFoundError if not found
        blocked = self.get_task(blocked_id)
        if blocker.plan_id != blocked.plan_id:
            msg = f"Tasks {blocker_id} and {blocked_id} belong to different plans"
            raise ValidationError(msg)
        if blocker_id == blocked_id or self._would_create_cycle(blocker_id, blocked_id):
            raise CycleError(blocker_id, blocked_id)

        try:
            added = self._insert_edge(blocker_id, blocked_id, dep_type)
            if added:
                self._record_event(blocked_id, "dependency_added", actor=actor, new_value=f"{dep_type}:{blocker_id}")
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        return added

    def _would_create_cycle(self, blocker_id: int, blocked_id: int) -> bool:
        """Check if adding blocker_id -> blocked_id would create a cycle.

        Uses BFS from blocked_id following existing "blocks" edges.
        If blocker_id is reachable, adding the new edge would close a cycle.
        """
        visited: set[int] = set()
        queue = deque([blocked_id])
        while queue:
            current = queue.popleft()
            if current == blocker_id:
                return True
            if current in visited:
                continue
            visited.add(current)
            for r in self.conn.execute("SELECT blocked_id FROM task_dependencies WHERE blocker_id = ?", (current,)).fetchall():
                queue.append(r["blocked_id"])
        return False

    def _insert_edge(self, blocker_id: int, blocked_id: int, dep_type: str = "blocks") -> bool:
        cursor = self.conn.execute(
            "INSERT OR IGNORE INTO task_dependencies (blocker_id, blocked_id, dependency_type, created_at) VALUES (?, ?, ?, ?)",
            (blocker_id, blocked_id, dep_type, _now_iso()),
        )
        return cursor.rowcount > 0

    def remove_dependency(self, blocker_id: int, blocked_id: int, *, actor: str = "") -> bool:
        """Delete the edge. Returns False if it did not exist."""
        try:
            cursor = self.conn.execute(
                "DELETE FROM task_dependencies WHERE blocker_id = ? AND blocked_id = ?",
                (blocker_id, blocked_id),
            )
            removed = cursor.rowcount > 0
            if removed:
                self._record_event(blocked_id, "dependency_removed", actor=actor, old_value=str(blocker_id))
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        return removed

    def _delete_edges(self, task_ids: list[int]) -> int:
        """Remove every edge touching any of *task_ids*. Does not commit."""
        if not task_ids:
            return 0
        ph = ",".join("?" * len(task_ids))
        cursor = self.conn.execute(
            f"DELETE FROM task_dependencies WHERE blocker_id IN ({ph}) OR blocked_id IN ({ph})",
            [*task_ids, *task_ids],
        )
        return cursor.rowcount

    def _delete_plan_edges(self, plan_id: int) -> int:
        cursor = self.conn.execute(
            "DELETE FROM task_dependencies WHERE blocked_id IN (SELECT id FROM tasks WHERE plan_id = ?)",
            (plan_id,),
        )
        return cursor.rowcount

    def delete_task_edges(self, task_id: int) -> int:
        """Remove all edges where *task_id* is blocker or blocked. Returns the count."""
        self.get_task(task_id)
        try:
            removed = self._delete_edges([task_id])
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        return removed

    def get_blocking(self, task_id: int) -> list[Task]:
        """Tasks that block *task_id*."""
        self.get_task(task_id)
        rows = self.conn.execute(
            "SELECT t.* FROM tasks t JOIN task_dependencies d ON d.blocker_id = t.id WHERE d.blocked_id = ? ORDER BY t.id",
            (task_id,),
        ).fetchall()
        return self._build_tasks(rows)

    def get_blocked(self, task_id: int) -> list[Task]:
        """Tasks that *task_id* blocks."""
        self.get_task(task_id)
        rows = self.conn.execute(
            "SELECT t.* FROM tasks t JOIN task_dependencies d ON d.blocked_id = t.id WHERE d.blocker_id = ? ORDER BY t.id",
            (task_id,),
        ).fetchall()
        return self._build_tasks(rows)

    def get_dependencies_for_plan(self, plan_id: int) -> list[DependencyRecord]:
        self.get_plan(plan_id)
        rows = self.conn.execute(
            "SELECT d.blocker_id, d.blocked_id, d.dependency_type FROM task_dependencies d "
            "JOIN tasks t ON d.blocked_id = t.id WHERE t.plan_id = ? ORDER BY d.blocker_id, d.blocked_id",
            (plan_id,),
        ).fetchall()
        return [{"from": r["blocker_id"], "to": r["blocked_id"], "type": r["dependency_type"]} for r in rows]

    def get_dependency_map(self, plan_id: int) -> dict[int, DependencyMapEntry]:
        """Per-task adjacency lists: ``{task_id: {"blocked_by": [...], "blocks": [...]}}``."""
        deps: dict[int, DependencyMapEntry] = {}
        for edge in self.get_dependencies_for_plan(plan_id):
            deps.setdefault(edge["to"], {"blocked_by": [], "blocks": []})["blocked_by"].append(edge["from"])
            deps.setdefault(edge["from"], {"blocked_by": [], "blocks": []})["blocks"].append(edge["to"])
        return deps

    # -- Ready / Blocked -----------------------------------------------------

    def get_ready(self, plan_id: int) -> list[Task]:
        """Pending tasks whose blockers are all completed or skipped, by (priority, id)."""
        self.get_plan(plan_id)
        rows = self.conn.execute(
            f"SELECT t.* FROM tasks t "
            f"WHERE t.plan_id = ? AND t.status = 'pending' "
            f"AND NOT EXISTS ("
            f"  SELECT 1 FROM task_dependencies d "
            f"  JOIN tasks blocker ON d.blocker_id = blocker.id "
            f"  WHERE d.blocked_id = t.id AND blocker.status NOT IN ({_DONE_PH})"
            f") ORDER BY t.priority ASC, t.id ASC",
            (plan_id, *DONE_STATUSES),
        ).fetchall()
        return self._build_tasks(rows)

    def get_next(self, plan_id: int) -> Task | None:
        """The single most urgent ready task, or None."""
        ready = self.get_ready(plan_id)
        return ready[0] if ready else None

    def get_waiting(self, plan_id: int) -> list[Task]:
        """Pending tasks held back by at least one unfinished blocker."""
        self.get_plan(plan_id)
        rows = self.conn.execute(
            f"SELECT DISTINCT t.* FROM tasks t "
            f"JOIN task_dependencies d ON d.blocked_id = t.id "
            f"JOIN tasks blocker ON d.blocker_id = blocker.id "
            f"WHERE t.plan_id = ? AND t.status = 'pending' AND blocker.status NOT IN ({_DONE_PH}) "
            f"ORDER BY t.priority, t.id",
            (plan_id, *DONE_STATUSES),
        ).fetchall()
        return self._build_tasks(rows)

    def get_plan_progress(self, plan_id: int) -> PlanProgress:
        self.get_plan(plan_id)
        counts = {
            r["status"]: r["n"]
            for r in self.conn.execute(
                "SELECT status, COUNT(*) AS n FROM tasks WHERE plan_id = ? GROUP BY status", (plan_id,)
            ).fetchall()
        }
        total = sum(counts.values())
        done = counts.get("completed", 0) + counts.get("skipped", 0)
        return PlanProgress(
            total=total,
            pending=counts.get("pending", 0),
            in_progress=counts.get("in_progress", 0),
            completed=counts.get("completed", 0),
            failed=counts.get("failed", 0),
            blocked=counts.get("blocked", 0),
            skipped=counts.get("skipped", 0),
            ready=len(self.get_ready(plan_id)),
            pct=round(done * 100 / total) if total else 0,
        )

    def get_task_detail(self, task_id: int) -> TaskDetail:
        """A task with its direct blockers, the tasks it blocks, and its legal next statuses."""
        task = self.get_task(task_id)

        def _refs(tasks: list[Task]) -> list[TaskRef]:
            return [TaskRef(id=t.id, name=t.name, status=t.status) for t in tasks]

        return TaskDetail(
            task=task.to_dict(),
            blocked_by=_refs(self.get_blocking(task_id)),
            blocks=_refs(self.get_blocked(task_id)),
            valid_transitions=valid_targets(task.status),
        )
