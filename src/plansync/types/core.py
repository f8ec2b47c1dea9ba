"""Foundational TypedDicts for dataclass to_dict() returns."""

from __future__ import annotations

from typing import Any, NewType, TypedDict

ISOTimestamp = NewType("ISOTimestamp", str)


class ProjectConfig(TypedDict, total=False):
    """Shape of .plansync/config.json."""

    version: int
    db_path: str


class PlanDict(TypedDict):
    id: int
    name: str
    description: str
    content: str
    completed: bool
    created_at: ISOTimestamp
    updated_at: ISOTimestamp


class TaskDict(TypedDict):
    id: int
    plan_id: int
    name: str
    parent_id: int | None
    description: str
    content: str
    status: str
    priority: int
    acceptance_criteria: str
    completed: bool
    status_changed_at: ISOTimestamp | None
    created_at: ISOTimestamp
    updated_at: ISOTimestamp


class FactDict(TypedDict):
    id: int
    plan_id: int
    name: str
    description: str
    content: str
    created_at: ISOTimestamp
    updated_at: ISOTimestamp


class LessonDict(TypedDict):
    id: int
    plan_id: int | None
    task_id: int | None
    lesson_type: str
    trigger_condition: str
    content: str
    confidence: float
    times_validated: int
    created_at: ISOTimestamp
    updated_at: ISOTimestamp


class TraceDict(TypedDict):
    id: int
    plan_id: int
    task_id: int | None
    trace_type: str
    sequence_num: int
    content: str
    metadata: dict[str, Any] | None
    created_at: ISOTimestamp
