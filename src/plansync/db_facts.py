"""FactsMixin: plan-scoped facts and their advisory links to tasks.

Fact links never influence scheduling; they record which facts inform,
were discovered during, or are required context for a task.
"""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING, cast

from plansync.db_base import DBMixinProtocol, _now_iso
from plansync.errors import NotFoundError, ValidationError
from plansync.types.planning import FactLinkRecord
from plansync.validation import require_link_type, require_name

if TYPE_CHECKING:
    from plansync.core import Fact


class FactsMixin(DBMixinProtocol):
    """Fact CRUD, upsert, and fact-task links.

    Inherits ``DBMixinProtocol`` for type-safe access to shared attributes.
    Actual implementations provided by ``PlanDB`` at composition time via MRO.
    """

    def _build_fact(self, row: sqlite3.Row) -> Fact:
        from plansync.core import Fact

        return Fact(
            id=row["id"],
            plan_id=row["plan_id"],
            name=row["name"],
            description=row["description"] or "",
            content=row["content"] or "",
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    # -- Fact CRUD -----------------------------------------------------------

    def create_fact(self, plan_id: int, name: str, *, description: str = "", content: str = "") -> Fact:
        self.get_plan(plan_id)
        name = require_name(name, "Fact name")
        if self.get_fact_by_name(plan_id, name) is not None:
            msg = f"Fact '{name}' already exists in plan {plan_id}"
            raise ValidationError(msg)
        now = _now_iso()
        try:
            cursor = self.conn.execute(
                "INSERT INTO facts (plan_id, name, description, content, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?)",
                (plan_id, name, description, content, now, now),
            )
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        fact_id = cursor.lastrowid
        assert fact_id is not None
        return self.get_fact(fact_id)

    def get_fact(self, fact_id: int) -> Fact:
        row = self.conn.execute("SELECT * FROM facts WHERE id = ?", (fact_id,)).fetchone()
        if row is None:
            msg = f"Fact not found: {fact_id}"
            raise NotFoundError(msg)
        return self._build_fact(row)

    def get_fact_by_name(self, plan_id: int, name: str) -> Fact | None:
        row = self.conn.execute("SELECT * FROM facts WHERE plan_id = ? AND name = ?", (plan_id, name)).fetchone()
        return self._build_fact(row) if row is not None else None

    def list_facts(self, plan_id: int) -> list[Fact]:
        self.get_plan(plan_id)
        rows = self.conn.execute("SELECT * FROM facts WHERE plan_id = ? ORDER BY id", (plan_id,)).fetchall()
        return [self._build_fact(r) for r in rows]

    def update_fact(
        self,
        fact_id: int,
        *,
        name: str | None = None,
        description: str | None = None,
        content: str | None = None,
    ) -> Fact:
        current = self.get_fact(fact_id)
        if name is None and description is None and content is None:
            msg = "No fields to update provided"
            raise ValidationError(msg)
        if name is not None:
            name = require_name(name, "Fact name")
            clash = self.get_fact_by_name(current.plan_id, name)
            if clash is not None and clash.id != fact_id:
                msg = f"Fact '{name}' already exists in plan {current.plan_id}"
                raise ValidationError(msg)

        updates: list[str] = []
        params: list[object] = []
        for column, value in (("name", name), ("description", description), ("content", content)):
            if value is not None:
                updates.append(f"{column} = ?")
                params.append(value)
        try:
            self.conn.execute(
                f"UPDATE facts SET {', '.join(updates)}, updated_at = ? WHERE id = ?",
                (*params, _now_iso(), fact_id),
            )
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        return self.get_fact(fact_id)

    def delete_fact(self, fact_id: int) -> None:
        self.get_fact(fact_id)
        try:
            self._purge_facts([fact_id])
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise

    def _purge_facts(self, fact_ids: list[int]) -> None:
        """Remove facts and their links. Does not commit."""
        if not fact_ids:
            return
        ph = ",".join("?" * len(fact_ids))
        self.conn.execute(f"DELETE FROM fact_links WHERE fact_id IN ({ph})", fact_ids)
        self.conn.execute(f"DELETE FROM facts WHERE id IN ({ph})", fact_ids)

    # -- Upsert (no commit; used inside sync transactions) -------------------

    def _upsert_fact(self, plan_id: int, name: str, *, description: str = "", content: str = "") -> int:
        now = _now_iso()
        self.conn.execute(
            "INSERT INTO facts (plan_id, name, description, content, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(plan_id, name) DO UPDATE SET description = excluded.description, "
            "content = excluded.content, updated_at = excluded.updated_at",
            (plan_id, name, description, content, now, now),
        )
        row = self.conn.execute("SELECT id FROM facts WHERE plan_id = ? AND name = ?", (plan_id, name)).fetchone()
        fact_id: int = row["id"]
        return fact_id

    def upsert_fact(self, plan_id: int, name: str, *, description: str = "", content: str = "") -> Fact:
        self.get_plan(plan_id)
        name = require_name(name, "Fact name")
        try:
            fact_id = self._upsert_fact(plan_id, name, description=description, content=content)
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        return self.get_fact(fact_id)

    # -- Fact links ----------------------------------------------------------

    def link_fact(self, fact_id: int, task_id: int, link_type: str = "informs") -> bool:
        """Link a fact to a task in the same plan. Returns False if the link already exists."""
        fact = self.get_fact(fact_id)
        task = self.get_task(task_id)
        link_type = require_link_type(link_type)
        if fact.plan_id != task.plan_id:
            msg = f"Fact {fact_id} and task {task_id} belong to different plans"
            raise ValidationError(msg)
        try:
            cursor = self.conn.execute(
                "INSERT OR IGNORE INTO fact_links (fact_id, task_id, link_type, created_at) VALUES (?, ?, ?, ?)",
                (fact_id, task_id, link_type, _now_iso()),
            )
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        return cursor.rowcount > 0

    def unlink_fact(self, fact_id: int, task_id: int, link_type: str | None = None) -> bool:
        """Remove links between a fact and a task (all types unless *link_type* is given)."""
        sql = "DELETE FROM fact_links WHERE fact_id = ? AND task_id = ?"
        params: tuple[object, ...] = (fact_id, task_id)
        if link_type is not None:
            sql += " AND link_type = ?"
            params = (*params, link_type)
        try:
            cursor = self.conn.execute(sql, params)
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        return cursor.rowcount > 0

    def get_fact_links(self, fact_id: int) -> list[FactLinkRecord]:
        self.get_fact(fact_id)
        rows = self.conn.execute(
            "SELECT fl.fact_id, fl.task_id, t.name AS task_name, fl.link_type, fl.created_at "
            "FROM fact_links fl JOIN tasks t ON fl.task_id = t.id "
            "WHERE fl.fact_id = ? ORDER BY fl.task_id, fl.link_type",
            (fact_id,),
        ).fetchall()
        return cast(list[FactLinkRecord], [dict(r) for r in rows])

    def get_task_facts(self, task_id: int) -> list[Fact]:
        """Facts linked to a task, in fact id order."""
        self.get_task(task_id)
        rows = self.conn.execute(
            "SELECT DISTINCT f.* FROM facts f JOIN fact_links fl ON fl.fact_id = f.id WHERE fl.task_id = ? ORDER BY f.id",
            (task_id,),
        ).fetchall()
        return [self._build_fact(r) for r in rows]

    def _delete_links_for_tasks(self, task_ids: list[int]) -> None:
        if not task_ids:
            return
        ph = ",".join("?" * len(task_ids))
        self.conn.execute(f"DELETE FROM fact_links WHERE task_id IN ({ph})", task_ids)
