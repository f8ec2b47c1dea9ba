"""Markdown codec for plan documents.

A document is YAML front matter between ``---`` lines followed by a Markdown
body. The plan name is the body's first ``# H1`` heading; the rest of the
body is the plan's content. Tasks and facts live in the front matter and
refer to each other by name only.

Format version 3 adds task ``status``, ``priority``, ``acceptance_criteria``
and the ``blocked_by``/``blocks`` lists. Version 2 documents, whose tasks
carry only a ``completed`` flag, still parse; the sync engine derives their
status.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

import yaml

from plansync.db_base import DEFAULT_PRIORITY
from plansync.errors import ValidationError
from plansync.types.sync import DocumentFact, DocumentPlan, DocumentTask, PlanDocument

if TYPE_CHECKING:
    from plansync.core import Fact, Plan, Task
    from plansync.types.planning import DependencyMapEntry

FORMAT_VERSION = 3

_FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)^---[ \t]*$\r?\n?", re.DOTALL | re.MULTILINE)
_H1_RE = re.compile(r"^ {0,3}#[ \t]+(.+?)[ \t]*$")

_TASK_KEYS = ("name", "description", "content", "status", "priority", "acceptance_criteria", "completed", "parent", "blocked_by", "blocks")


class _BlockDumper(yaml.SafeDumper):
    """SafeDumper that writes multi-line strings as ``|`` blocks."""


def _represent_str(dumper: yaml.SafeDumper, value: str) -> yaml.ScalarNode:
    if "\n" in value:
        return dumper.represent_scalar("tag:yaml.org,2002:str", value, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", value)


_BlockDumper.add_representer(str, _represent_str)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Return (front_matter, body). A document without front matter has empty metadata."""
    match = _FRONT_MATTER_RE.match(text)
    if match is None:
        return {}, text
    try:
        meta = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        msg = f"Invalid YAML front matter: {e}"
        raise ValidationError(msg) from e
    if meta is None:
        meta = {}
    if not isinstance(meta, dict):
        msg = "Front matter must be a YAML mapping"
        raise ValidationError(msg)
    return meta, text[match.end() :]


def _trim_blank_lines(lines: list[str]) -> str:
    """Join *lines*, dropping blank lines at either end. Indentation is kept."""
    start, end = 0, len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return "\n".join(lines[start:end])


def _take_h1(body: str) -> tuple[str | None, str]:
    """Pull the first H1 heading out of *body*. Returns (title, remaining body)."""
    lines = body.splitlines()
    for i, line in enumerate(lines):
        match = _H1_RE.match(line)
        if match:
            return match.group(1), _trim_blank_lines(lines[:i] + lines[i + 1 :])
    return None, _trim_blank_lines(lines)


def _scalar_name(value: Any) -> Any:
    """YAML reads ``name: 2024`` as an int. Numbers become their text; anything else passes through."""
    if value is None:
        return ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def _entries(meta: dict[str, Any], key: str) -> list[dict[str, Any]]:
    value = meta.get(key) or []
    if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
        msg = f"Front matter '{key}' must be a list of mappings"
        raise ValidationError(msg)
    return value


def parse(text: str) -> PlanDocument:
    """Parse Markdown text into a name-keyed plan document."""
    meta, body = split_front_matter(text)
    title, content = _take_h1(body)
    name = title if title is not None else str(meta.get("name") or "")

    plan = DocumentPlan(name=name, content=content)
    if meta.get("description") is not None:
        plan["description"] = str(meta["description"])
    if meta.get("completed") is not None:
        plan["completed"] = bool(meta["completed"])

    tasks: list[DocumentTask] = []
    for entry in _entries(meta, "tasks"):
        task: dict[str, Any] = {k: entry[k] for k in _TASK_KEYS if entry.get(k) is not None}
        task["name"] = _scalar_name(entry.get("name"))
        if "parent" in task:
            task["parent"] = _scalar_name(task["parent"])
        for key in ("blocked_by", "blocks"):
            if isinstance(task.get(key), list):
                task[key] = [_scalar_name(v) for v in task[key]]
        tasks.append(task)  # type: ignore[arg-type]

    facts = [
        DocumentFact(
            name=_scalar_name(entry.get("name")),  # type: ignore[arg-type]
            description=str(entry.get("description") or ""),
            content=str(entry.get("content") or ""),
        )
        for entry in _entries(meta, "facts")
    ]
    return PlanDocument(plan=plan, tasks=tasks, facts=facts)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _task_front_matter(task: DocumentTask) -> dict[str, Any]:
    entry: dict[str, Any] = {"name": task["name"]}
    for key in ("description", "content"):
        if task.get(key):
            entry[key] = task[key]  # type: ignore[literal-required]
    status = task.get("status", "pending")
    if status == "completed":
        entry["completed"] = True  # read by format-2 consumers
    entry["status"] = status
    priority = task.get("priority", DEFAULT_PRIORITY)
    if priority != DEFAULT_PRIORITY:
        entry["priority"] = priority
    if task.get("acceptance_criteria"):
        entry["acceptance_criteria"] = task["acceptance_criteria"]
    if task.get("parent"):
        entry["parent"] = task["parent"]
    if task.get("blocked_by"):
        entry["blocked_by"] = list(task["blocked_by"])
    if task.get("blocks"):
        entry["blocks"] = list(task["blocks"])
    return entry


def render_document(document: PlanDocument) -> str:
    """Render a name-keyed document (as produced by ``export_document``) to Markdown."""
    plan = document["plan"]
    fm: dict[str, Any] = {"format_version": FORMAT_VERSION}
    if plan.get("description"):
        fm["description"] = plan["description"]
    fm["completed"] = bool(plan.get("completed", False))
    if document["tasks"]:
        fm["tasks"] = [_task_front_matter(t) for t in document["tasks"]]
    if document["facts"]:
        fm["facts"] = [{k: v for k, v in f.items() if v or k == "name"} for f in document["facts"]]

    yaml_str = yaml.dump(fm, Dumper=_BlockDumper, default_flow_style=False, sort_keys=False, allow_unicode=True)
    parts = ["---", yaml_str.rstrip(), "---", "", f"# {plan['name']}"]
    content = plan.get("content", "")
    if content:
        parts.extend(["", content])
    return "\n".join(parts) + "\n"


def build_document(
    plan: Plan, tasks: list[Task], facts: list[Fact], dependencies: dict[int, DependencyMapEntry] | None = None
) -> PlanDocument:
    """Convert store entities to a name-keyed document.

    *dependencies* is the id-keyed map from ``get_dependency_map``; ids are
    converted to names here and never leave this function.
    """
    deps = dependencies or {}
    names = {t.id: t.name for t in tasks}
    doc_tasks: list[DocumentTask] = []
    for t in tasks:
        entry = DocumentTask(
            name=t.name,
            description=t.description,
            content=t.content,
            status=t.status,
            priority=t.priority,
            acceptance_criteria=t.acceptance_criteria,
            completed=t.completed,
        )
        if t.parent_id is not None and t.parent_id in names:
            entry["parent"] = names[t.parent_id]
        adjacency = deps.get(t.id)
        if adjacency:
            entry["blocked_by"] = [names[i] for i in adjacency["blocked_by"] if i in names]
            entry["blocks"] = [names[i] for i in adjacency["blocks"] if i in names]
        doc_tasks.append(entry)
    return PlanDocument(
        plan=DocumentPlan(name=plan.name, description=plan.description, content=plan.content, completed=plan.completed),
        tasks=doc_tasks,
        facts=[DocumentFact(name=f.name, description=f.description, content=f.content) for f in facts],
    )


def render(plan: Plan, tasks: list[Task], facts: list[Fact], dependencies: dict[int, DependencyMapEntry] | None = None) -> str:
    """Render store entities straight to Markdown."""
    return render_document(build_document(plan, tasks, facts, dependencies))
