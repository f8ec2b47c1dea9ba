"""PlansMixin: plan CRUD and name-keyed upsert.

All methods access ``self.conn`` via Python's MRO when composed into ``PlanDB``.
"""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING, Any

from plansync.db_base import DBMixinProtocol, _now_iso
from plansync.errors import NotFoundError, ValidationError
from plansync.validation import require_name

if TYPE_CHECKING:
    from plansync.core import Plan


class PlansMixin(DBMixinProtocol):
    """Plan CRUD. Deleting a plan removes everything it owns.

    Inherits ``DBMixinProtocol`` for type-safe access to shared attributes.
    Actual implementations provided by ``PlanDB`` at composition time via MRO.
    """

    if TYPE_CHECKING:
        # From TasksMixin / FactsMixin
        def _purge_tasks(self, task_ids: list[int]) -> None: ...
        def _purge_facts(self, fact_ids: list[int]) -> None: ...

        # From TracesMixin / LessonsMixin
        def _delete_plan_traces(self, plan_id: int) -> int: ...
        def _delete_plan_lessons(self, plan_id: int) -> None: ...

    def _build_plan(self, row: sqlite3.Row) -> Plan:
        from plansync.core import Plan

        return Plan(
            id=row["id"],
            name=row["name"],
            description=row["description"] or "",
            content=row["content"] or "",
            completed=bool(row["completed"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    # -- Plan CRUD -----------------------------------------------------------

    def create_plan(self, name: str, *, description: str = "", content: str = "", completed: bool = False) -> Plan:
        name = require_name(name, "Plan name")
        if self.get_plan_by_name(name) is not None:
            msg = f"Plan already exists: {name}"
            raise ValidationError(msg)
        now = _now_iso()
        try:
            cursor = self.conn.execute(
                "INSERT INTO plans (name, description, content, completed, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?)",
                (name, description, content, int(completed), now, now),
            )
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        plan_id = cursor.lastrowid
        assert plan_id is not None
        return self.get_plan(plan_id)

    def get_plan(self, plan_id: int) -> Plan:
        row = self.conn.execute("SELECT * FROM plans WHERE id = ?", (plan_id,)).fetchone()
        if row is None:
            msg = f"Plan not found: {plan_id}"
            raise NotFoundError(msg)
        return self._build_plan(row)

    def get_plan_by_name(self, name: str) -> Plan | None:
        row = self.conn.execute("SELECT * FROM plans WHERE name = ?", (name,)).fetchone()
        return self._build_plan(row) if row is not None else None

    def list_plans(self) -> list[Plan]:
        rows = self.conn.execute("SELECT * FROM plans ORDER BY id").fetchall()
        return [self._build_plan(r) for r in rows]

    def update_plan(
        self,
        plan_id: int,
        *,
        name: str | None = None,
        description: str | None = None,
        content: str | None = None,
        completed: bool | None = None,
    ) -> Plan:
        """Update plan fields. ``None`` means "leave unchanged"."""
        self.get_plan(plan_id)
        updates: dict[str, Any] = {
            k: v
            for k, v in (("name", name), ("description", description), ("content", content), ("completed", completed))
            if v is not None
        }
        if not updates:
            msg = "No fields to update provided"
            raise ValidationError(msg)
        if "name" in updates:
            updates["name"] = require_name(updates["name"], "Plan name")
            existing = self.get_plan_by_name(updates["name"])
            if existing is not None and existing.id != plan_id:
                msg = f"Plan already exists: {updates['name']}"
                raise ValidationError(msg)
        if "completed" in updates:
            updates["completed"] = int(bool(updates["completed"]))

        assignments = ", ".join(f"{k} = ?" for k in updates)
        try:
            self.conn.execute(
                f"UPDATE plans SET {assignments}, updated_at = ? WHERE id = ?",
                (*updates.values(), _now_iso(), plan_id),
            )
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        return self.get_plan(plan_id)

    def delete_plan(self, plan_id: int) -> None:
        """Delete a plan and, in one transaction, everything it owns.

        That covers tasks, facts, edges, links, traces and lessons scoped to the plan.
        """
        self.get_plan(plan_id)
        task_ids = [r["id"] for r in self.conn.execute("SELECT id FROM tasks WHERE plan_id = ?", (plan_id,)).fetchall()]
        fact_ids = [r["id"] for r in self.conn.execute("SELECT id FROM facts WHERE plan_id = ?", (plan_id,)).fetchall()]
        try:
            self._purge_tasks(task_ids)
            self._purge_facts(fact_ids)
            self._delete_plan_traces(plan_id)
            self._delete_plan_lessons(plan_id)
            self.conn.execute("DELETE FROM plans WHERE id = ?", (plan_id,))
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise

    # -- Upsert (no commit; used inside sync transactions) -------------------

    def _upsert_plan(self, name: str, *, description: str = "", content: str = "", completed: bool = False) -> int:
        now = _now_iso()
        self.conn.execute(
            "INSERT INTO plans (name, description, content, completed, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(name) DO UPDATE SET description = excluded.description, content = excluded.content, "
            "completed = excluded.completed, updated_at = excluded.updated_at",
            (name, description, content, int(completed), now, now),
        )
        row = self.conn.execute("SELECT id FROM plans WHERE name = ?", (name,)).fetchone()
        plan_id: int = row["id"]
        return plan_id

    def upsert_plan(self, name: str, *, description: str = "", content: str = "", completed: bool = False) -> Plan:
        """Create the plan if *name* is new, otherwise overwrite its fields."""
        name = require_name(name, "Plan name")
        try:
            plan_id = self._upsert_plan(name, description=description, content=content, completed=completed)
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        return self.get_plan(plan_id)
