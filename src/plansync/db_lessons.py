"""LessonsMixin: lessons learned while executing tasks.

A lesson records a pattern worth repeating or avoiding, with a trigger
condition describing when it applies and a confidence score in [0, 1].
Validating a lesson raises its confidence; invalidating lowers it. Lessons
may be scoped to a plan, to a task (and so its plan), or to neither.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import TYPE_CHECKING

from plansync.db_base import DBMixinProtocol, _now_iso
from plansync.db_search import build_fts_query
from plansync.errors import NotFoundError, ValidationError
from plansync.validation import require_confidence, require_lesson_type, require_text

if TYPE_CHECKING:
    from plansync.core import Lesson

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.5
DEFAULT_CONFIDENCE_STEP = 0.1


class LessonsMixin(DBMixinProtocol):
    """Lesson CRUD, confidence adjustment, and lesson search.

    Inherits ``DBMixinProtocol`` for type-safe access to shared attributes.
    Actual implementations provided by ``PlanDB`` at composition time via MRO.
    """

    def _build_lesson(self, row: sqlite3.Row) -> Lesson:
        from plansync.core import Lesson

        return Lesson(
            id=row["id"],
            plan_id=row["plan_id"],
            task_id=row["task_id"],
            lesson_type=row["lesson_type"],
            trigger_condition=row["trigger_condition"] or "",
            content=row["content"],
            confidence=row["confidence"],
            times_validated=row["times_validated"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def create_lesson(
        self,
        lesson_type: str,
        content: str,
        *,
        plan_id: int | None = None,
        task_id: int | None = None,
        trigger_condition: str = "",
        confidence: float = DEFAULT_CONFIDENCE,
    ) -> Lesson:
        """Record a lesson. A task-scoped lesson takes its task's plan unless *plan_id* is given."""
        lesson_type = require_lesson_type(lesson_type)
        content = require_text(content, "Lesson content")
        confidence = require_confidence(confidence)
        if plan_id is not None:
            self.get_plan(plan_id)
        if task_id is not None:
            task = self.get_task(task_id)
            if plan_id is None:
                plan_id = task.plan_id
            elif plan_id != task.plan_id:
                msg = f"Task {task_id} does not belong to plan {plan_id}"
                raise ValidationError(msg)
        now = _now_iso()
        try:
            cursor = self.conn.execute(
                "INSERT INTO lessons (plan_id, task_id, lesson_type, trigger_condition, content, confidence, "
                "times_validated, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, 0, ?, ?)",
                (plan_id, task_id, lesson_type, trigger_condition, content, confidence, now, now),
            )
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        lesson_id = cursor.lastrowid
        assert lesson_id is not None
        return self.get_lesson(lesson_id)

    def get_lesson(self, lesson_id: int) -> Lesson:
        row = self.conn.execute("SELECT * FROM lessons WHERE id = ?", (lesson_id,)).fetchone()
        if row is None:
            msg = f"Lesson not found: {lesson_id}"
            raise NotFoundError(msg)
        return self._build_lesson(row)

    def list_lessons(
        self,
        *,
        plan_id: int | None = None,
        task_id: int | None = None,
        lesson_type: str | None = None,
        min_confidence: float | None = None,
        max_confidence: float | None = None,
    ) -> list[Lesson]:
        """Lessons matching every given filter, most trusted first."""
        conditions: list[str] = []
        params: list[object] = []
        if plan_id is not None:
            self.get_plan(plan_id)
            conditions.append("plan_id = ?")
            params.append(plan_id)
        if task_id is not None:
            self.get_task(task_id)
            conditions.append("task_id = ?")
            params.append(task_id)
        if lesson_type is not None:
            conditions.append("lesson_type = ?")
            params.append(require_lesson_type(lesson_type))
        if min_confidence is not None:
            conditions.append("confidence >= ?")
            params.append(require_confidence(min_confidence, "min_confidence"))
        if max_confidence is not None:
            conditions.append("confidence <= ?")
            params.append(require_confidence(max_confidence, "max_confidence"))
        where = f"WHERE {' AND '.join(conditions)} " if conditions else ""
        rows = self.conn.execute(
            f"SELECT * FROM lessons {where}ORDER BY confidence DESC, times_validated DESC, id",
            params,
        ).fetchall()
        return [self._build_lesson(r) for r in rows]

    def validate_lesson(self, lesson_id: int, *, boost: float = DEFAULT_CONFIDENCE_STEP) -> Lesson:
        """The lesson held: count the validation and raise confidence by *boost* (capped at 1.0)."""
        current = self.get_lesson(lesson_id)
        boost = require_confidence(boost, "boost")
        new_confidence = min(1.0, current.confidence + boost)
        try:
            self.conn.execute(
                "UPDATE lessons SET confidence = ?, times_validated = times_validated + 1, updated_at = ? WHERE id = ?",
                (new_confidence, _now_iso(), lesson_id),
            )
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        return self.get_lesson(lesson_id)

    def invalidate_lesson(self, lesson_id: int, *, penalty: float = DEFAULT_CONFIDENCE_STEP) -> Lesson:
        """The lesson misled: lower confidence by *penalty* (floored at 0.0)."""
        current = self.get_lesson(lesson_id)
        penalty = require_confidence(penalty, "penalty")
        new_confidence = max(0.0, current.confidence - penalty)
        try:
            self.conn.execute(
                "UPDATE lessons SET confidence = ?, updated_at = ? WHERE id = ?",
                (new_confidence, _now_iso(), lesson_id),
            )
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise
        return self.get_lesson(lesson_id)

    def delete_lesson(self, lesson_id: int) -> None:
        self.get_lesson(lesson_id)
        try:
            self.conn.execute("DELETE FROM lessons WHERE id = ?", (lesson_id,))
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise

    def search_lessons(self, query: str, *, min_confidence: float = 0.0, limit: int = 50) -> list[Lesson]:
        """Match trigger conditions and content, most relevant first."""
        if not query or not query.strip():
            msg = "Search query cannot be empty"
            raise ValidationError(msg)
        min_confidence = require_confidence(min_confidence, "min_confidence")
        try:
            rows = self.conn.execute(
                "SELECT l.* FROM lessons l "
                "JOIN lessons_fts ON lessons_fts.rowid = l.id "
                "WHERE lessons_fts MATCH ? AND l.confidence >= ? "
                "ORDER BY lessons_fts.rank, l.confidence DESC LIMIT ?",
                (build_fts_query(query), min_confidence, limit),
            ).fetchall()
        except sqlite3.OperationalError as exc:
            if "no such table" not in str(exc) and "no such module" not in str(exc):
                raise
            logger.debug("lessons_fts unavailable, falling back to LIKE: %s", exc)
            escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            pattern = f"%{escaped}%"
            rows = self.conn.execute(
                "SELECT * FROM lessons "
                "WHERE (trigger_condition LIKE ? ESCAPE '\\' OR content LIKE ? ESCAPE '\\') AND confidence >= ? "
                "ORDER BY confidence DESC, id LIMIT ?",
                (pattern, pattern, min_confidence, limit),
            ).fetchall()
        return [self._build_lesson(r) for r in rows]

    # -- Cascades (no commit) ------------------------------------------------

    def _detach_lessons_from_tasks(self, task_ids: list[int]) -> None:
        """Lessons outlive the tasks they came from; only the task reference goes."""
        if not task_ids:
            return
        ph = ",".join("?" * len(task_ids))
        self.conn.execute(f"UPDATE lessons SET task_id = NULL WHERE task_id IN ({ph})", task_ids)

    def _delete_plan_lessons(self, plan_id: int) -> None:
        self.conn.execute("DELETE FROM lessons WHERE plan_id = ?", (plan_id,))
