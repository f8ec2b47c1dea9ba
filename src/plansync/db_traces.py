"""TracesMixin: ordered reasoning traces recorded against tasks.

Each trace is one step (a thought, an action, an observation or a
reflection) and carries a sequence number that increases across the whole
plan, so a plan's traces read as a single timeline.
"""

from __future__ import annotations

import json
import sqlite3
from typing import TYPE_CHECKING, Any

from plansync.db_base import DBMixinProtocol, _now_iso
from plansync.errors import ValidationError
from plansync.validation import require_text, require_trace_type

if TYPE_CHECKING:
    from plansync.core import Trace


class TracesMixin(DBMixinProtocol):
    """Trace recording and retrieval.

    Inherits ``DBMixinProtocol`` for type-safe access to shared attributes.
    Actual implementations provided by ``PlanDB`` at composition time via MRO.
    """

    def _build_trace(self, row: sqlite3.Row) -> Trace:
        from plansync.core import Trace

        return Trace(
            id=row["id"],
            plan_id=row["plan_id"],
            task_id=row["task_id"],
            trace_type=row["trace_type"],
            sequence_num=row["sequence_num"],
            content=row["content"],
            metadata=json.loads(row["metadata"]) if row["metadata"] else None,
            created_at=row["created_at"],
        )

    def add_trace(self, task_id: int, trace_type: str, content: str, *, metadata: dict[str, Any] | None = None) -> Trace:
        """Append a trace for *task_id* at the end of its plan's timeline."""
        task = self.get_task(task_id)
        trace_type = require_trace_type(trace_type)
        content = require_text(content, "Trace content")
        encoded: str | None = None
        if metadata is not None:
            if not isinstance(metadata, dict):
                msg = f"Trace metadata must be an object, got {type(metadata).__name__}"
                raise ValidationError(msg)
            try:
                encoded = json.dumps(metadata, sort_keys=True)
            except (TypeError, ValueError) as e:
                msg = f"Trace metadata is not JSON-serializable: {e}"
                raise ValidationError(msg) from e
        try:
            row = self.conn.execute(
                "SELECT COALESCE(MAX(sequence_num), 0) AS seq FROM traces WHERE plan_id = ?", (task.plan_id,)
            ).fetchone()
            cursor = self.conn.execute(
                "INSERT INTO traces (plan_id, task_id, trace_type, sequence_num, content, metadata, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (task.plan_id, task_id, trace_type, row["seq"] + 1, content, encoded, _now_iso()),
            )
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        trace_id = cursor.lastrowid
        assert trace_id is not None
        return self._get_trace(trace_id)

    def _get_trace(self, trace_id: int) -> Trace:
        row = self.conn.execute("SELECT * FROM traces WHERE id = ?", (trace_id,)).fetchone()
        return self._build_trace(row)

    def get_task_traces(self, task_id: int) -> list[Trace]:
        self.get_task(task_id)
        rows = self.conn.execute(
            "SELECT * FROM traces WHERE task_id = ? ORDER BY sequence_num", (task_id,)
        ).fetchall()
        return [self._build_trace(r) for r in rows]

    def get_plan_traces(self, plan_id: int) -> list[Trace]:
        self.get_plan(plan_id)
        rows = self.conn.execute(
            "SELECT * FROM traces WHERE plan_id = ? ORDER BY sequence_num", (plan_id,)
        ).fetchall()
        return [self._build_trace(r) for r in rows]

    def delete_task_traces(self, task_id: int) -> int:
        """Delete a task's traces. Returns how many were removed."""
        self.get_task(task_id)
        try:
            count = self._delete_traces_for_tasks([task_id])
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        return count

    def delete_plan_traces(self, plan_id: int) -> int:
        """Delete every trace in a plan. Returns how many were removed."""
        self.get_plan(plan_id)
        try:
            count = self._delete_plan_traces(plan_id)
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        return count

    # -- Cascades (no commit) ------------------------------------------------

    def _delete_traces_for_tasks(self, task_ids: list[int]) -> int:
        if not task_ids:
            return 0
        ph = ",".join("?" * len(task_ids))
        cursor = self.conn.execute(f"DELETE FROM traces WHERE task_id IN ({ph})", task_ids)
        return cursor.rowcount

    def _delete_plan_traces(self, plan_id: int) -> int:
        cursor = self.conn.execute("DELETE FROM traces WHERE plan_id = ?", (plan_id,))
        return cursor.rowcount
