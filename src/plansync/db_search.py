"""SearchMixin: full-text search over plans, tasks, and facts.

Uses the FTS5 tables from db_schema.py with prefix matching on every term,
and falls back to LIKE when the SQLite build lacks FTS5.
"""

from __future__ import annotations

import re as _re
import sqlite3
from typing import TYPE_CHECKING, TypedDict

from plansync.db_base import DBMixinProtocol
from plansync.errors import ValidationError

if TYPE_CHECKING:
    from plansync.core import Fact, Plan, Task


class SearchResults(TypedDict):
    plans: list[Plan]
    tasks: list[Task]
    facts: list[Fact]


def build_fts_query(query: str) -> str:
    """Turn free text into an FTS5 MATCH expression: every term quoted, prefix-matched, ANDed."""
    # Sanitize: strip non-alphanumeric chars except whitespace
    sanitized = _re.sub(r"[^\w\s]", " ", query)
    tokens = [t for t in sanitized.split() if t]
    return " AND ".join(f'"{t}"*' for t in tokens) if tokens else '""'


class SearchMixin(DBMixinProtocol):
    """Search for PlanDB.

    Inherits ``DBMixinProtocol`` for type-safe access to shared attributes.
    Actual implementations provided by ``PlanDB`` at composition time via MRO.
    """

    if TYPE_CHECKING:

        def _build_plan(self, row: sqlite3.Row) -> Plan: ...
        def _build_task(self, row: sqlite3.Row) -> Task: ...
        def _build_fact(self, row: sqlite3.Row) -> Fact: ...

    def search(self, query: str, *, plan_id: int | None = None, limit: int = 50) -> SearchResults:
        """Search names, descriptions and content. Optionally restrict tasks and facts to one plan."""
        if not query or not query.strip():
            msg = "Search query cannot be empty"
            raise ValidationError(msg)
        plans = [self._build_plan(r) for r in self._search_table("plans", query, None, limit)]
        tasks = [self._build_task(r) for r in self._search_table("tasks", query, plan_id, limit)]
        facts = [self._build_fact(r) for r in self._search_table("facts", query, plan_id, limit)]
        if plan_id is not None:
            plans = [p for p in plans if p.id == plan_id]
        return SearchResults(plans=plans, tasks=tasks, facts=facts)

    def _search_table(self, table: str, query: str, plan_id: int | None, limit: int) -> list[sqlite3.Row]:
        """*table* is always a hardcoded literal at the call site (never user input)."""
        plan_filter = " AND x.plan_id = ?" if plan_id is not None else ""
        plan_args: tuple[int, ...] = (plan_id,) if plan_id is not None else ()
        try:
            rows = self.conn.execute(
                f"SELECT x.* FROM {table} x "
                f"JOIN {table}_fts ON {table}_fts.rowid = x.id "
                f"WHERE {table}_fts MATCH ?{plan_filter} "
                f"ORDER BY {table}_fts.rank LIMIT ?",
                (build_fts_query(query), *plan_args, limit),
            ).fetchall()
        except sqlite3.OperationalError as exc:
            if "no such table" not in str(exc) and "no such module" not in str(exc):
                raise
            # FTS5 not available; fall back to LIKE
            escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            pattern = f"%{escaped}%"
            rows = self.conn.execute(
                f"SELECT x.* FROM {table} x "
                f"WHERE (x.name LIKE ? ESCAPE '\\' OR x.description LIKE ? ESCAPE '\\' OR x.content LIKE ? ESCAPE '\\')"
                f"{plan_filter} ORDER BY x.id LIMIT ?",
                (pattern, pattern, pattern, *plan_args, limit),
            ).fetchall()
        return list(rows)
