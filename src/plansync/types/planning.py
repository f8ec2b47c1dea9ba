"""TypedDicts for db_planning.py and db_facts.py return types."""

from __future__ import annotations

from typing import TypedDict

# ---------------------------------------------------------------------------
# db_planning.py types
# ---------------------------------------------------------------------------


# DependencyRecord uses "from" as a key at runtime (a Python keyword).
# TypedDict cannot express this with class syntax; we use functional form.
DependencyRecord = TypedDict("DependencyRecord", {"from": int, "to": int, "type": str})


class DependencyMapEntry(TypedDict):
    """Per-task adjacency returned by ``get_dependency_map()``."""

    blocked_by: list[int]
    blocks: list[int]


class TaskRef(TypedDict):
    """Slim task reference used in show/detail responses."""

    id: int
    name: str
    status: str


class PlanProgress(TypedDict):
    """Status counts returned by ``get_plan_progress()``."""

    total: int
    pending: int
    in_progress: int
    completed: int
    failed: int
    blocked: int
    skipped: int
    ready: int
    pct: int


# ---------------------------------------------------------------------------
# db_facts.py types
# ---------------------------------------------------------------------------


class FactLinkRecord(TypedDict):
    """Row from the fact_links table returned by ``get_fact_links()``."""

    fact_id: int
    task_id: int
    task_name: str
    link_type: str
    created_at: str
