# src/flow_mentor/tasks/task_models.py

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_db(cls, raw: Any) -> Priority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.MEDIUM


# Python attribute -> store field name (the web client's camelCase wire names).
WIRE_NAMES: dict[str, str] = {
    "title": "title",
    "description": "description",
    "due_date": "dueDate",
    "priority": "priority",
    "assignee": "assignee",
    "completed": "completed",
    "created_at": "createdAt",
    "completed_at": "completedAt",
    "completion_notes": "completionNotes",
}

# Fields a caller may set through create()/update().
EDITABLE_FIELDS = ("title", "description", "due_date", "priority", "assignee")


def _as_str(raw: Any) -> str:
    return raw if isinstance(raw, str) else ("" if raw is None else str(raw))


def _as_ms(raw: Any) -> int:
    if isinstance(raw, bool):
        return 0
    try:
        return int(raw)
    except (TypeError, ValueError, OverflowError):
        return 0


@dataclass(frozen=True, slots=True)
class Task:
    key: str
    title: str
    description: str
    due_date: str
    priority: Priority
    assignee: str
    completed: bool
    created_at: int

    completed_at: int | None = None
    completion_notes: str | None = None

    @classmethod
    def from_record(cls, key: str, raw: Any) -> Task:
        """
        Materialize a store record.

        Missing or mistyped fields fall back to defaults instead of failing, so a
        malformed remote record can never break a snapshot rebuild. The
        completion fields are only kept when the task is completed.
        """
        rec = raw if isinstance(raw, dict) else {}
        completed = rec.get("completed") is True
        return cls(
            key=str(key),
            title=_as_str(rec.get("title")),
            description=_as_str(rec.get("description")),
            due_date=_as_str(rec.get("dueDate")),
            priority=Priority.from_db(rec.get("priority")),
            assignee=_as_str(rec.get("assignee")),
            completed=completed,
            created_at=_as_ms(rec.get("createdAt")),
            completed_at=_as_ms(rec.get("completedAt")) if completed else None,
            completion_notes=_as_str(rec.get("completionNotes")) if completed else None,
        )

    def sort_key(self) -> tuple[int, str]:
        # Newest first; equal timestamps fall back to key (creation) order.
        return (-self.created_at, self.key)


@dataclass(frozen=True, slots=True)
class TaskStats:
    total: int
    completed: int
    progress_percent: int

    @classmethod
    def of(cls, tasks: tuple[Task, ...]) -> TaskStats:
        total = len(tasks)
        done = sum(1 for t in tasks if t.completed)
        # Half-up rounding, like the web dashboard (Math.round).
        pct = math.floor(done * 100 / total + 0.5) if total else 0
        return cls(total=total, completed=done, progress_percent=pct)
