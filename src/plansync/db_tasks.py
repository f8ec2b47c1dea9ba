"""TasksMixin: task CRUD, parent validation, and name-keyed upsert.

Status changes do not go through this module: ``update_task`` rejects them
and callers use ``set_status`` (db_workflow.py). The only other writer of
``status`` is ``_upsert_task``, which the sync engine uses because an imported
document is authoritative.

All methods access ``self.conn``, ``self.get_task()``, etc. via
Python's MRO when composed into ``PlanDB``.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import TYPE_CHECKING

from plansync.db_base import DEFAULT_PRIORITY, DBMixinProtocol, _now_iso
from plansync.errors import NotFoundError, ValidationError
from plansync.validation import require_name, require_priority, require_status

if TYPE_CHECKING:
    from plansync.core import Task

logger = logging.getLogger(__name__)


class TasksMixin(DBMixinProtocol):
    """Task CRUD and upsert.

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

        def _delete_task_events(self, task_ids: list[int]) -> None: ...

        # From PlanningMixin
        def _delete_edges(self, task_ids: list[int]) -> int: ...

        # From FactsMixin
        def _delete_links_for_tasks(self, task_ids: list[int]) -> None: ...

        # From TracesMixin / LessonsMixin
        def _delete_traces_for_tasks(self, task_ids: list[int]) -> int: ...
        def _detach_lessons_from_tasks(self, task_ids: list[int]) -> None: ...

    def _build_task(self, row: sqlite3.Row) -> Task:
        from plansync.core import Task

        return Task(
            id=row["id"],
            plan_id=row["plan_id"],
            name=row["name"],
            parent_id=row["parent_id"],
            description=row["description"] or "",
            content=row["content"] or "",
            status=row["status"],
            priority=row["priority"],
            acceptance_criteria=row["acceptance_criteria"] or "",
            completed=bool(row["completed"]),
            status_changed_at=row["status_changed_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _build_tasks(self, rows: list[sqlite3.Row]) -> list[Task]:
        return [self._build_task(r) for r in rows]

    def _validate_parent(self, plan_id: int, parent_id: int, *, task_id: int | None = None) -> None:
        """Raise unless *parent_id* can be the parent of a task in *plan_id*.

        Hierarchy is limited to two levels: a parent may not have a parent,
        and a task with children may not become a child.
        """
        if task_id is not None and parent_id == task_id:
            msg = f"Task {task_id} cannot be its own parent"
            raise ValidationError(msg)
        row = self.conn.execute("SELECT plan_id, parent_id FROM tasks WHERE id = ?", (parent_id,)).fetchone()
        if row is None:
            msg = f"Parent task not found: {parent_id}"
            raise NotFoundError(msg)
        if row["plan_id"] != plan_id:
            msg = f"Parent task {parent_id} belongs to a different plan"
            raise ValidationError(msg)
        if row["parent_id"] is not None:
            msg = f"Parent task {parent_id} is itself a subtask; nesting is limited to two levels"
            raise ValidationError(msg)
        if task_id is not None:
            has_children = self.conn.execute("SELECT 1 FROM tasks WHERE parent_id = ? LIMIT 1", (task_id,)).fetchone()
            if has_children:
                msg = f"Task {task_id} has subtasks and cannot itself become a subtask"
                raise ValidationError(msg)

    # -- Task CRUD -----------------------------------------------------------

    def create_task(
        self,
        plan_id: int,
        name: str,
        *,
        description: str = "",
        content: str = "",
        parent_id: int | None = None,
        status: str = "pending",
        priority: int = DEFAULT_PRIORITY,
        acceptance_criteria: str = "",
        actor: str = "",
    ) -> Task:
        # Validate everything BEFORE any writes
        self.get_plan(plan_id)
        name = require_name(name, "Task name")
        status = require_status(status)
        priority = require_priority(priority)
        if self.get_task_by_name(plan_id, name) is not None:
            msg = f"Task '{name}' already exists in plan {plan_id}"
            raise ValidationError(msg)
        if parent_id is not None:
            self._validate_parent(plan_id, parent_id)

        now = _now_iso()
        try:
            cursor = self.conn.execute(
                "INSERT INTO tasks (plan_id, name, parent_id, description, content, status, priority, "
                "acceptance_criteria, completed, status_changed_at, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    plan_id,
                    name,
                    parent_id,
                    description,
                    content,
                    status,
                    priority,
                    acceptance_criteria,
                    int(status == "completed"),
                    now,
                    now,
                    now,
                ),
            )
            task_id = cursor.lastrowid
            assert task_id is not None
            self._record_event(task_id, "created", actor=actor, new_value=name)
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        return self.get_task(task_id)

    def get_task(self, task_id: int) -> Task:
        row = self.conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if row is None:
            msg = f"Task not found: {task_id}"
            raise NotFoundError(msg)
        return self._build_task(row)

    def get_task_by_name(self, plan_id: int, name: str) -> Task | None:
        row = self.conn.execute("SELECT * FROM tasks WHERE plan_id = ? AND name = ?", (plan_id, name)).fetchone()
        return self._build_task(row) if row is not None else None

    def list_tasks(self, plan_id: int, *, status: str | None = None) -> list[Task]:
        self.get_plan(plan_id)
        if status is not None:
            require_status(status)
            rows = self.conn.execute(
                "SELECT * FROM tasks WHERE plan_id = ? AND status = ? ORDER BY id", (plan_id, status)
            ).fetchall()
        else:
            rows = self.conn.execute("SELECT * FROM tasks WHERE plan_id = ? ORDER BY id", (plan_id,)).fetchall()
        return self._build_tasks(rows)

    def get_children(self, task_id: int) -> list[Task]:
        self.get_task(task_id)
        rows = self.conn.execute("SELECT * FROM tasks WHERE parent_id = ? ORDER BY id", (task_id,)).fetchall()
        return self._build_tasks(rows)

    def update_task(
        self,
        task_id: int,
        *,
        name: str | None = None,
        description: str | None = None,
        content: str | None = None,
        parent_id: int | None = None,
        clear_parent: bool = False,
        priority: int | None = None,
        acceptance_criteria: str | None = None,
        actor: str = "",
    ) -> Task:
        """Update non-status fields of a task. ``None`` means "leave unchanged".

        Use ``clear_parent=True`` to detach a subtask from its parent.
        Status changes go through ``set_status()``.
        """
        current = self.get_task(task_id)

        # --- Validate all inputs BEFORE any writes ---
        if all(v is None for v in (name, description, content, parent_id, priority, acceptance_criteria)) and not clear_parent:
            msg = "No fields to update provided"
            raise ValidationError(msg)
        if parent_id is not None and clear_parent:
            msg = "Cannot set parent_id and clear_parent together"
            raise ValidationError(msg)
        if name is not None:
            name = require_name(name, "Task name")
            clash = self.get_task_by_name(current.plan_id, name)
            if clash is not None and clash.id != task_id:
                msg = f"Task '{name}' already exists in plan {current.plan_id}"
                raise ValidationError(msg)
        if priority is not None:
            priority = require_priority(priority)
        if parent_id is not None:
            self._validate_parent(current.plan_id, parent_id, task_id=task_id)

        updates: list[str] = []
        params: list[object] = []
        for column, value in (
            ("name", name),
            ("description", description),
            ("content", content),
            ("parent_id", parent_id),
            ("priority", priority),
            ("acceptance_criteria", acceptance_criteria),
        ):
            if value is not None:
                updates.append(f"{column} = ?")
                params.append(value)
        if clear_parent:
            updates.append("parent_id = NULL")

        try:
            if priority is not None and priority != current.priority:
                self._record_event(task_id, "priority_changed", actor=actor, old_value=str(current.priority), new_value=str(priority))
            self.conn.execute(
                f"UPDATE tasks SET {', '.join(updates)}, updated_at = ? WHERE id = ?",
                (*params, _now_iso(), task_id),
            )
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        return self.get_task(task_id)

    def delete_task(self, task_id: int) -> None:
        """Delete a task, its subtasks, and every edge, fact link and event touching them."""
        self.get_task(task_id)
        child_ids = [r["id"] for r in self.conn.execute("SELECT id FROM tasks WHERE parent_id = ?", (task_id,)).fetchall()]
        try:
            self._purge_tasks([*child_ids, task_id])
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise

    def _purge_tasks(self, task_ids: list[int]) -> None:
        """Remove tasks with their edges, links, events and traces. Does not commit.

        Lessons learned on these tasks are kept, without the task reference.
        """
        if not task_ids:
            return
        self._delete_edges(task_ids)
        self._delete_links_for_tasks(task_ids)
        self._delete_traces_for_tasks(task_ids)
        self._detach_lessons_from_tasks(task_ids)
        self._delete_task_events(task_ids)
        ph = ",".join("?" * len(task_ids))
        self.conn.execute(f"DELETE FROM tasks WHERE id IN ({ph})", task_ids)

    # -- Upsert (no commit; used inside sync transactions) -------------------

    def _upsert_task(
        self,
        plan_id: int,
        name: str,
        *,
        description: str = "",
        content: str = "",
        status: str = "pending",
        priority: int = DEFAULT_PRIORITY,
        acceptance_criteria: str = "",
        actor: str = "",
    ) -> int:
        """Insert or overwrite the task keyed by (plan_id, name). Returns its id.

        Writes ``status`` directly without consulting the transition table;
        ``status_changed_at`` only moves when the status actually differs.
        """
        now = _now_iso()
        existing = self.conn.execute(
            "SELECT id, status, status_changed_at FROM tasks WHERE plan_id = ? AND name = ?", (plan_id, name)
        ).fetchone()
        if existing is None:
            cursor = self.conn.execute(
                "INSERT INTO tasks (plan_id, name, description, content, status, priority, acceptance_criteria, "
                "completed, status_changed_at, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (plan_id, name, description, content, status, priority, acceptance_criteria, int(status == "completed"), now, now, now),
            )
            task_id = cursor.lastrowid
            assert task_id is not None
            self._record_event(task_id, "created", actor=actor, new_value=name)
            return task_id

        task_id = existing["id"]
        changed_at = existing["status_changed_at"]
        if existing["status"] != status:
            changed_at = max(now, changed_at or now)
            self._record_event(task_id, "imported", actor=actor, old_value=existing["status"], new_value=status)
        self.conn.execute(
            "UPDATE tasks SET description = ?, content = ?, status = ?, priority = ?, acceptance_criteria = ?, "
            "completed = ?, status_changed_at = ?, updated_at = ? WHERE id = ?",
            (description, content, status, priority, acceptance_criteria, int(status == "completed"), changed_at, now, task_id),
        )
        return int(task_id)

    def _set_parent(self, task_id: int, parent_id: int | None) -> None:
        self.conn.execute("UPDATE tasks SET parent_id = ? WHERE id = ?", (parent_id, task_id))

    def upsert_task(
        self,
        plan_id: int,
        name: str,
        *,
        description: str = "",
        content: str = "",
        status: str = "pending",
        priority: int = DEFAULT_PRIORITY,
        acceptance_criteria: str = "",
        actor: str = "",
    ) -> Task:
        """Create the task if *name* is new in the plan, otherwise overwrite its fields."""
        self.get_plan(plan_id)
        name = require_name(name, "Task name")
        status = require_status(status)
        priority = require_priority(priority)
        try:
            task_id = self._upsert_task(
                plan_id,
                name,
                description=description,
                content=content,
                status=status,
                priority=priority,
                acceptance_criteria=acceptance_criteria,
                actor=actor,
            )
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        return self.get_task(task_id)
