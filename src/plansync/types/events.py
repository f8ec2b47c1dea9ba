"""TypedDicts for db_events.py return types."""

from __future__ import annotations

from typing import TypedDict

from plansync.types.core import ISOTimestamp


class EventRecord(TypedDict):
    """Row from the task_events table (SELECT * FROM task_events).

    Returned by ``get_task_events()``.
    """

    id: int
    task_id: int
    event_type: str
    actor: str
    old_value: str | None
    new_value: str | None
    created_at: ISOTimestamp
