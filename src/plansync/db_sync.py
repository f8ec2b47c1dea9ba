"""SyncMixin: import, preview, and export of name-keyed plan documents.

A document names its plan, tasks, and facts; database ids never appear in
it. Import makes the store match the document inside one transaction:
upsert everything named, delete what is not named (orphans), then rebuild
the plan's dependency edges from the document's ``blocked_by``/``blocks``
lists. Any failure rolls the whole import back.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from plansync import markdown
from plansync.db_base import DEFAULT_PRIORITY, DBMixinProtocol
from plansync.errors import SynchronizationError, ValidationError
from plansync.types.sync import (
    ChangeCounts,
    ChangeNames,
    DocumentFact,
    DocumentPlan,
    DocumentTask,
    ImportResult,
    PlanDocument,
    PreviewResult,
)
from plansync.validation import require_name, require_priority, require_status

if TYPE_CHECKING:
    from plansync.core import Fact, Plan, Task
    from plansync.types.planning import DependencyMapEntry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Document normalization
# ---------------------------------------------------------------------------


def _str_field(entry: Mapping[str, Any], key: str) -> str:
    value = entry.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        return str(value)
    return value


def _name_list(entry: Mapping[str, Any], key: str, owner: str) -> list[str]:
    value = entry.get(key) or []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        msg = f"Task '{owner}': {key} must be a list of task names"
        raise ValidationError(msg)
    return [v.strip() for v in value if v.strip()]


def _normalize_task(entry: Any) -> DocumentTask:
    """Apply defaults to one task entry.

    A task without ``status`` takes ``completed`` if its legacy ``completed``
    flag is set, else ``pending``. ``completed`` is always re-derived.
    """
    if not isinstance(entry, Mapping):
        msg = f"Task entries must be mappings, got {type(entry).__name__}"
        raise ValidationError(msg)
    name = require_name(entry.get("name"), "Task name")
    raw_status = entry.get("status")
    if raw_status is None:
        raw_status = "completed" if entry.get("completed") else "pending"
    try:
        status = require_status(raw_status)
        priority = require_priority(entry.get("priority", DEFAULT_PRIORITY))
    except ValidationError as e:
        msg = f"Task '{name}': {e}"
        raise ValidationError(msg) from e
    task = DocumentTask(
        name=name,
        description=_str_field(entry, "description"),
        content=_str_field(entry, "content"),
        status=status,
        priority=priority,
        acceptance_criteria=_str_field(entry, "acceptance_criteria"),
        completed=status == "completed",
        blocked_by=_name_list(entry, "blocked_by", name),
        blocks=_name_list(entry, "blocks", name),
    )
    parent = entry.get("parent")
    if isinstance(parent, str) and parent.strip():
        task["parent"] = parent.strip()
    return task


def _normalize_fact(entry: Any) -> DocumentFact:
    if not isinstance(entry, Mapping):
        msg = f"Fact entries must be mappings, got {type(entry).__name__}"
        raise ValidationError(msg)
    return DocumentFact(
        name=require_name(entry.get("name"), "Fact name"),
        description=_str_field(entry, "description"),
        content=_str_field(entry, "content"),
    )


def _reject_duplicates(names: Iterable[str], what: str) -> None:
    seen: set[str] = set()
    dupes: list[str] = []
    for n in names:
        if n in seen and n not in dupes:
            dupes.append(n)
        seen.add(n)
    if dupes:
        msg = f"Duplicate {what} names in document: {', '.join(dupes)}"
        raise ValidationError(msg)


def normalize_document(document: Mapping[str, Any]) -> PlanDocument:
    """Validate a document and fill in defaults. Raises ``ValidationError``."""
    plan_entry = document.get("plan")
    if not isinstance(plan_entry, Mapping):
        msg = "Document has no plan section"
        raise ValidationError(msg)
    plan = DocumentPlan(
        name=require_name(plan_entry.get("name"), "Plan name"),
        description=_str_field(plan_entry, "description"),
        content=_str_field(plan_entry, "content"),
        completed=bool(plan_entry.get("completed", False)),
    )
    raw_tasks = document.get("tasks") or []
    raw_facts = document.get("facts") or []
    if not isinstance(raw_tasks, list) or not isinstance(raw_facts, list):
        msg = "Document tasks and facts must be lists"
        raise ValidationError(msg)
    tasks = [_normalize_task(t) for t in raw_tasks]
    facts = [_normalize_fact(f) for f in raw_facts]
    _reject_duplicates((t["name"] for t in tasks), "task")
    _reject_duplicates((f["name"] for f in facts), "fact")
    return PlanDocument(plan=plan, tasks=tasks, facts=facts)


def document_edges(tasks: Iterable[DocumentTask]) -> list[tuple[str, str]]:
    """(blocker, blocked) name pairs from every ``blocked_by``/``blocks`` list, deduplicated in order."""
    edges: dict[tuple[str, str], None] = {}
    for task in tasks:
        for blocker in task.get("blocked_by", []):
            edges[(blocker, task["name"])] = None
        for blocked in task.get("blocks", []):
            edges[(task["name"], blocked)] = None
    return list(edges)


def _resolve_parents(tasks: list[DocumentTask]) -> dict[str, str]:
    """Map child name -> parent name for parents that keep nesting at two levels.

    Parents that are not in the document, point at the task itself, or are
    themselves children are dropped.
    """
    names = {t["name"] for t in tasks}
    wanted = {t["name"]: t["parent"] for t in tasks if t.get("parent") in names and t.get("parent") != t["name"]}
    resolved: dict[str, str] = {}
    for child, parent in wanted.items():
        if parent in wanted:
            logger.warning("Dropping parent '%s' of task '%s': parent is itself a subtask", parent, child)
            continue
        resolved[child] = parent
    return resolved


class SyncMixin(DBMixinProtocol):
    """Document import/preview/export for PlanDB.

    Inherits ``DBMixinProtocol`` for type-safe access to shared attributes.
    Actual implementations provided by ``PlanDB`` at composition time via MRO.
    """

    if TYPE_CHECKING:
        # From PlansMixin
        def _upsert_plan(self, name: str, *, description: str = "", content: str = "", completed: bool = False) -> int: ...
        def get_plan_by_name(self, name: str) -> Plan | None: ...

        # From TasksMixin
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
        ) -> int: ...
        def _set_parent(self, task_id: int, parent_id: int | None) -> None: ...
        def _purge_tasks(self, task_ids: list[int]) -> None: ...
        def list_tasks(self, plan_id: int, *, status: str | None = None) -> list[Task]: ...

        # From FactsMixin
        def _upsert_fact(self, plan_id: int, name: str, *, description: str = "", content: str = "") -> int: ...
        def _purge_facts(self, fact_ids: list[int]) -> None: ...
        def list_facts(self, plan_id: int) -> list[Fact]: ...

        # From PlanningMixin
        def _delete_plan_edges(self, plan_id: int) -> int: ...
        def _would_create_cycle(self, blocker_id: int, blocked_id: int) -> bool: ...
        def _insert_edge(self, blocker_id: int, blocked_id: int, dep_type: str = "blocks") -> bool: ...
        def get_dependency_map(self, plan_id: int) -> dict[int, DependencyMapEntry]: ...

    # -- Import --------------------------------------------------------------

    def import_document(self, document: Mapping[str, Any], *, actor: str = "") -> ImportResult:
        """Make the store match *document* in a single transaction.

        Validation errors are raised before anything is written. Any error
        after the transaction starts rolls it back and is re-raised as
        ``SynchronizationError``.
        """
        doc = normalize_document(document)
        plan_meta = doc["plan"]
        plan_name = plan_meta["name"]

        conn = self.conn
        if conn.in_transaction:
            msg = "Cannot import: connection already has an open transaction"
            raise SynchronizationError(msg)
        conn.execute("BEGIN IMMEDIATE")
        try:
            plan_id = self._upsert_plan(
                plan_name,
                description=plan_meta.get("description", ""),
                content=plan_meta.get("content", ""),
                completed=plan_meta.get("completed", False),
            )

            # name -> id for every task named in the document, built once
            ids: dict[str, int] = {}
            for task in doc["tasks"]:
                ids[task["name"]] = self._upsert_task(
                    plan_id,
                    task["name"],
                    description=task.get("description", ""),
                    content=task.get("content", ""),
                    status=task.get("status", "pending"),
                    priority=task.get("priority", DEFAULT_PRIORITY),
                    acceptance_criteria=task.get("acceptance_criteria", ""),
                    actor=actor,
                )

            parents = _resolve_parents(doc["tasks"])
            for name, task_id in ids.items():
                parent = parents.get(name)
                self._set_parent(task_id, ids[parent] if parent is not None else None)

            orphan_tasks = self._orphan_ids("tasks", plan_id, list(ids.values()))
            self._purge_tasks(orphan_tasks)

            fact_ids = [
                self._upsert_fact(plan_id, f["name"], description=f.get("description", ""), content=f.get("content", ""))
                for f in doc["facts"]
            ]
            orphan_facts = self._orphan_ids("facts", plan_id, fact_ids)
            self._purge_facts(orphan_facts)

            self._delete_plan_edges(plan_id)
            edges_created = 0
            for blocker_name, blocked_name in document_edges(doc["tasks"]):
                blocker_id = ids.get(blocker_name)
                blocked_id = ids.get(blocked_name)
                if blocker_id is None or blocked_id is None:
                    logger.debug("Dropping dependency %s -> %s: unknown task name", blocker_name, blocked_name)
                    continue
                if blocker_id == blocked_id or self._would_create_cycle(blocker_id, blocked_id):
                    logger.warning("Dropping dependency %s -> %s: would create a cycle", blocker_name, blocked_name)
                    continue
                if self._insert_edge(blocker_id, blocked_id):
                    edges_created += 1

            conn.commit()
        except Exception as e:
            conn.rollback()
            msg = f"Import of plan '{plan_name}' failed: {e}"
            raise SynchronizationError(msg) from e

        result = ImportResult(
            id=plan_id,
            name=plan_name,
            tasks_imported=len(doc["tasks"]),
            tasks_deleted=len(orphan_tasks),
            facts_imported=len(doc["facts"]),
            facts_deleted=len(orphan_facts),
            dependencies_imported=edges_created,
        )
        logger.info("Imported plan '%s'", plan_name, extra={"plan": plan_name, "counts": dict(result)})
        return result

    def _orphan_ids(self, table: str, plan_id: int, keep_ids: list[int]) -> list[int]:
        """Ids in *table* for *plan_id* that are not in *keep_ids*.

        *table* is always a hardcoded literal at the call site (never user input).
        """
        if keep_ids:
            ph = ",".join("?" * len(keep_ids))
            rows = self.conn.execute(
                f"SELECT id FROM {table} WHERE plan_id = ? AND id NOT IN ({ph}) ORDER BY id", (plan_id, *keep_ids)
            ).fetchall()
        else:
            rows = self.conn.execute(f"SELECT id FROM {table} WHERE plan_id = ? ORDER BY id", (plan_id,)).fetchall()
        return [r["id"] for r in rows]

    # -- Preview -------------------------------------------------------------

    def preview_document(self, document: Mapping[str, Any]) -> PreviewResult:
        """Count what ``import_document`` would create, update, and delete. Writes nothing.

        The counts are under ``tasks`` and ``facts``; the names behind them are
        under ``task_names`` and ``fact_names``.
        """
        doc = normalize_document(document)
        plan = self.get_plan_by_name(doc["plan"]["name"])
        existing_tasks = [t.name for t in self.list_tasks(plan.id)] if plan else []
        existing_facts = [f.name for f in self.list_facts(plan.id)] if plan else []
        task_names = _changes([t["name"] for t in doc["tasks"]], existing_tasks)
        fact_names = _changes([f["name"] for f in doc["facts"]], existing_facts)
        return PreviewResult(
            plan_name=doc["plan"]["name"],
            plan_exists=plan is not None,
            tasks=_counts(task_names),
            facts=_counts(fact_names),
            task_names=task_names,
            fact_names=fact_names,
        )

    # -- Export --------------------------------------------------------------

    def export_document(self, plan_id: int) -> PlanDocument:
        """Read a plan back into name-keyed document form."""
        return markdown.build_document(
            self.get_plan(plan_id),
            self.list_tasks(plan_id),
            self.list_facts(plan_id),
            self.get_dependency_map(plan_id),
        )

    # -- File helpers --------------------------------------------------------

    def import_file(self, path: str | Path, *, actor: str = "") -> ImportResult:
        text = Path(path).read_text(encoding="utf-8")
        return self.import_document(markdown.parse(text), actor=actor)

    def preview_file(self, path: str | Path) -> PreviewResult:
        text = Path(path).read_text(encoding="utf-8")
        return self.preview_document(markdown.parse(text))

    def export_file(self, plan_id: int, path: str | Path) -> Path:
        """Render a plan to Markdown and write it atomically. Returns the path written."""
        from plansync.core import write_atomic

        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        write_atomic(target, markdown.render_document(self.export_document(plan_id)))
        return target


def _changes(incoming: list[str], existing: list[str]) -> ChangeNames:
    existing_set = set(existing)
    incoming_set = set(incoming)
    return ChangeNames(
        create=[n for n in incoming if n not in existing_set],
        update=[n for n in incoming if n in existing_set],
        delete=[n for n in existing if n not in incoming_set],
    )


def _counts(names: ChangeNames) -> ChangeCounts:
    return ChangeCounts(create=len(names["create"]), update=len(names["update"]), delete=len(names["delete"]))
