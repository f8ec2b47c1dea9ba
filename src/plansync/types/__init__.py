# IMPORT CONSTRAINT: types/ modules must only import from typing, stdlib, and each other.
# NEVER import from core.py, db_base.py, or any mixin; this prevents circular imports.
"""Typed return-value contracts for plansync core, sync, and API layers."""

from __future__ import annotations

from plansync.types.core import (
    FactDict,
    ISOTimestamp,
    LessonDict,
    PlanDict,
    ProjectConfig,
    TaskDict,
    TraceDict,
)
from plansync.types.sync import (
    DocumentFact,
    DocumentPlan,
    DocumentTask,
    ImportResult,
    PlanDocument,
    PreviewResult,
)

__all__ = [
    "DocumentFact",
    "DocumentPlan",
    "DocumentTask",
    "FactDict",
    "ISOTimestamp",
    "ImportResult",
    "LessonDict",
    "PlanDict",
    "PlanDocument",
    "PreviewResult",
    "ProjectConfig",
    "TaskDict",
    "TraceDict",
]
