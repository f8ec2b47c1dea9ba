"""Shared utilities, types, and Protocol for DB mixins."""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Literal, Protocol

if TYPE_CHECKING:
    from plansync.core import Fact, Plan, Task

TaskStatus = Literal["pending", "in_progress", "completed", "failed", "blocked", "skipped"]

VALID_STATUSES: frozenset[str] = frozenset({"pending", "in_progress", "completed", "failed", "blocked", "skipped"})

# Blockers in these states no longer hold back the tasks they block.
DONE_STATUSES: tuple[str, ...] = ("completed", "skipped")

DEFAULT_PRIORITY = 100


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class DBMixinProtocol(Protocol):
    """Shared attributes and methods that DB mixins access via self.

    Mixins inherit this Protocol so mypy can type-check self.conn,
    self.get_task(), etc. without ``type: ignore`` on every call.
    Actual implementations are provided by PlanDB at composition time.
    """

    db_path: Path
    _conn: sqlite3.Connection | None

    @property
    def conn(self) -> sqlite3.Connection: ...

    def get_plan(self, plan_id: int) -> Plan: ...

    def get_task(self, task_id: int) -> Task: ...

    def get_fact(self, fact_id: int) -> Fact: ...
