"""TypedDicts for the document sync engine (db_sync.py) and the codec.

Documents identify plans, tasks, and facts by name only. Database ids never
appear in a ``PlanDocument``.
"""

from __future__ import annotations

from typing import NotRequired, TypedDict


class DocumentPlan(TypedDict):
    name: str
    description: NotRequired[str]
    content: NotRequired[str]
    completed: NotRequired[bool]


class DocumentTask(TypedDict):
    name: str
    description: NotRequired[str]
    content: NotRequired[str]
    status: NotRequired[str]
    priority: NotRequired[int]
    acceptance_criteria: NotRequired[str]
    completed: NotRequired[bool]
    parent: NotRequired[str]
    blocked_by: NotRequired[list[str]]
    blocks: NotRequired[list[str]]


class DocumentFact(TypedDict):
    name: str
    description: NotRequired[str]
    content: NotRequired[str]


class PlanDocument(TypedDict):
    """A full plan in name-keyed form, as parsed from or rendered to Markdown."""

    plan: DocumentPlan
    tasks: list[DocumentTask]
    facts: list[DocumentFact]


class ImportResult(TypedDict):
    """Summary returned by ``import_document()``."""

    id: int
    name: str
    tasks_imported: int
    tasks_deleted: int
    facts_imported: int
    facts_deleted: int
    dependencies_imported: int


class ChangeCounts(TypedDict):
    """How many entities an import would create, update, or delete."""

    create: int
    update: int
    delete: int


class ChangeNames(TypedDict):
    """The names behind a ``ChangeCounts``, in document order (deletes in store order)."""

    create: list[str]
    update: list[str]
    delete: list[str]


class PreviewResult(TypedDict):
    """Dry-run summary returned by ``preview_document()``."""

    plan_name: str
    plan_exists: bool
    tasks: ChangeCounts
    facts: ChangeCounts
    task_names: ChangeNames
    fact_names: ChangeNames
