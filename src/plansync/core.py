"""Core database operations for plansync.

Single source of truth for all SQLite operations. Both CLI and MCP server
import from this module. No daemon, just direct SQLite with WAL mode.

Convention-based discovery: each project has a `.plansync/` directory
containing `plansync.db` (SQLite) and `config.json`. The ``PLANSYNC_DB_PATH``
environment variable points the store somewhere else entirely.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from plansync.db_base import DEFAULT_PRIORITY
from plansync.db_events import EventsMixin
from plansync.db_facts import FactsMixin
from plansync.db_lessons import LessonsMixin
from plansync.db_planning import PlanningMixin
from plansync.db_plans import PlansMixin
from plansync.db_schema import CURRENT_SCHEMA_VERSION, SCHEMA_SQL
from plansync.db_search import SearchMixin
from plansync.db_sync import SyncMixin
from plansync.db_tasks import TasksMixin
from plansync.db_traces import TracesMixin
from plansync.db_workflow import WorkflowMixin
from plansync.types.core import FactDict, ISOTimestamp, LessonDict, PlanDict, ProjectConfig, TaskDict, TraceDict

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Convention-based discovery
# ---------------------------------------------------------------------------

PLANSYNC_DIR_NAME = ".plansync"
DB_FILENAME = "plansync.db"
CONFIG_FILENAME = "config.json"
DB_PATH_ENV = "PLANSYNC_DB_PATH"


def find_plansync_root(start: Path | None = None) -> Path:
    """Walk up from start (default cwd) looking for .plansync/ directory.

    Returns the .plansync/ directory path (not the project root).
    """
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        candidate = parent / PLANSYNC_DIR_NAME
        if candidate.is_dir():
            return candidate
    msg = f"No {PLANSYNC_DIR_NAME}/ directory found in {current} or any parent"
    raise FileNotFoundError(msg)


def read_config(plansync_dir: Path) -> ProjectConfig:
    """Read .plansync/config.json. Returns defaults if missing or corrupt."""
    defaults = ProjectConfig(version=1)
    config_path = plansync_dir / CONFIG_FILENAME
    if not config_path.exists():
        return defaults
    try:
        result: ProjectConfig = json.loads(config_path.read_text())
        return result
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read %s, using defaults: %s", config_path, exc)
        return defaults


def write_config(plansync_dir: Path, config: dict[str, Any] | ProjectConfig) -> None:
    """Write .plansync/config.json."""
    config_path = plansync_dir / CONFIG_FILENAME
    config_path.write_text(json.dumps(config, indent=2) + "\n")


def resolve_db_path(plansync_dir: Path | None = None) -> Path:
    """Pick the database file: $PLANSYNC_DB_PATH, then config ``db_path``, then .plansync/plansync.db."""
    env_path = os.environ.get(DB_PATH_ENV)
    if env_path:
        return Path(env_path).expanduser()
    if plansync_dir is None:
        plansync_dir = find_plansync_root()
    configured = read_config(plansync_dir).get("db_path")
    if configured:
        path = Path(configured).expanduser()
        return path if path.is_absolute() else plansync_dir / path
    return plansync_dir / DB_FILENAME


def write_atomic(path: Path, content: str) -> None:
    """Write content to path atomically via temp file + os.replace()."""
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(content, encoding="utf-8")
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class Plan:
    id: int
    name: str
    description: str = ""
    content: str = ""
    completed: bool = False
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> PlanDict:
        return PlanDict(
            id=self.id,
            name=self.name,
            description=self.description,
            content=self.content,
            completed=self.completed,
            created_at=ISOTimestamp(self.created_at),
            updated_at=ISOTimestamp(self.updated_at),
        )


@dataclass
class Task:
    id: int
    plan_id: int
    name: str
    parent_id: int | None = None
    description: str = ""
    content: str = ""
    status: str = "pending"
    priority: int = DEFAULT_PRIORITY
    acceptance_criteria: str = ""
    # Mirrors status == "completed"; kept for format-2 documents
    completed: bool = False
    status_changed_at: str | None = None
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> TaskDict:
        return TaskDict(
            id=self.id,
            plan_id=self.plan_id,
            name=self.name,
            parent_id=self.parent_id,
            description=self.description,
            content=self.content,
            status=self.status,
            priority=self.priority,
            acceptance_criteria=self.acceptance_criteria,
            completed=self.completed,
            status_changed_at=ISOTimestamp(self.status_changed_at) if self.status_changed_at else None,
            created_at=ISOTimestamp(self.created_at),
            updated_at=ISOTimestamp(self.updated_at),
        )


@dataclass
class Fact:
    id: int
    plan_id: int
    name: str
    description: str = ""
    content: str = ""
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> FactDict:
        return FactDict(
            id=self.id,
            plan_id=self.plan_id,
            name=self.name,
            description=self.description,
            content=self.content,
            created_at=ISOTimestamp(self.created_at),
            updated_at=ISOTimestamp(self.updated_at),
        )


@dataclass
class Lesson:
    id: int
    lesson_type: str
    content: str
    plan_id: int | None = None
    task_id: int | None = None
    trigger_condition: str = ""
    confidence: float = 0.5
    times_validated: int = 0
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> LessonDict:
        return LessonDict(
            id=self.id,
            plan_id=self.plan_id,
            task_id=self.task_id,
            lesson_type=self.lesson_type,
            trigger_condition=self.trigger_condition,
            content=self.content,
            confidence=self.confidence,
            times_validated=self.times_validated,
            created_at=ISOTimestamp(self.created_at),
            updated_at=ISOTimestamp(self.updated_at),
        )


@dataclass
class Trace:
    id: int
    plan_id: int
    trace_type: str
    sequence_num: int
    content: str
    task_id: int | None = None
    metadata: dict[str, Any] | None = None
    created_at: str = ""

    def to_dict(self) -> TraceDict:
        return TraceDict(
            id=self.id,
            plan_id=self.plan_id,
            task_id=self.task_id,
            trace_type=self.trace_type,
            sequence_num=self.sequence_num,
            content=self.content,
            metadata=self.metadata,
            created_at=ISOTimestamp(self.created_at),
        )


# ---------------------------------------------------------------------------
# PlanDB
# ---------------------------------------------------------------------------


class PlanDB(
    EventsMixin,
    PlansMixin,
    TasksMixin,
    FactsMixin,
    WorkflowMixin,
    PlanningMixin,
    SyncMixin,
    SearchMixin,
    LessonsMixin,
    TracesMixin,
):
    """Direct SQLite operations. No daemon. Importable by CLI and MCP.

    Every operation takes this handle explicitly; there is no module-level
    connection. Use one instance per thread.
    """

    def __init__(self, db_path: str | Path, *, check_same_thread: bool = True) -> None:
        self.db_path = Path(db_path)
        self._conn = None
        self._check_same_thread = check_same_thread

    @classmethod
    def from_project(cls, project_path: Path | None = None) -> PlanDB:
        """Create a PlanDB by discovering .plansync/ from project_path (or cwd)."""
        if os.environ.get(DB_PATH_ENV):
            db_path = resolve_db_path(None)
        else:
            db_path = resolve_db_path(find_plansync_root(project_path))
        db = cls(db_path)
        db.initialize()
        return db

    def __enter__(self) -> PlanDB:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(
                str(self.db_path),
                isolation_level="DEFERRED",
                check_same_thread=self._check_same_thread,
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._conn.execute("PRAGMA busy_timeout=5000")
        return self._conn

    def initialize(self) -> None:
        """Create missing tables and stamp the schema version.

        Version 1 databases gain the lessons and traces tables. Refuses to
        open a database written by a newer plansync.
        """
        current_version = self.get_schema_version()
        if current_version < CURRENT_SCHEMA_VERSION:
            if current_version:
                logger.info("Upgrading schema v%d -> v%d at %s", current_version, CURRENT_SCHEMA_VERSION, self.db_path)
            self.conn.executescript(SCHEMA_SQL)
            self.conn.execute(f"PRAGMA user_version = {CURRENT_SCHEMA_VERSION}")
        elif current_version > CURRENT_SCHEMA_VERSION:
            msg = f"Database schema v{current_version} is newer than this plansync (v{CURRENT_SCHEMA_VERSION})"
            raise RuntimeError(msg)
        self.conn.commit()

    def get_schema_version(self) -> int:
        """Return the current schema version from PRAGMA user_version."""
        result: int = self.conn.execute("PRAGMA user_version").fetchone()[0]
        return result

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
