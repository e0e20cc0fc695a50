# src/flow_mentor/tasks/repository.py

"""
Task repository for one user's partition (tasks/{user_id}).

Mutations go straight to the store; nothing here edits the in-memory list.
The live snapshot is rebuilt from scratch on every store notification, so the
UI sees a change only once the store has accepted it.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from ..core.errors import StoreUnavailable, ValidationError
from ..core.live import LiveSnapshot
from ..core.ports import Clock, Fields, RemoteStore, Subscription
from ..store.push_ids import now_ms
from ..store.tree import join_path, split_path
from .task_models import EDITABLE_FIELDS, WIRE_NAMES, Priority, Task, TaskStats

logger = logging.getLogger(__name__)

_BY_WIRE_NAME = {wire: attr for attr, wire in WIRE_NAMES.items()}


def _check_due_date(value: str) -> None:
    if not value:
        return
    try:
        date.fromisoformat(value)
        return
    except ValueError:
        pass
    try:
        datetime.fromisoformat(value)
    except ValueError as e:
        raise ValidationError(f"dueDate must be an ISO date, got {value!r}", field="due_date") from e


def clean_task_fields(fields: dict[str, Any], *, creating: bool) -> Fields:
    """
    Validate caller input and translate it to wire names.

    Accepts attribute names (due_date) as well as wire names (dueDate).
    Identity, creation time and completion fields are never accepted here.
    """
    if not isinstance(fields, dict):
        raise ValidationError("Task fields must be a mapping")

    out: Fields = {}
    for name, value in fields.items():
        attr = _BY_WIRE_NAME.get(name, name)
        if attr not in EDITABLE_FIELDS:
            raise ValidationError(f"Field {name!r} cannot be set here", field=str(name))

        if attr == "priority":
            try:
                value = Priority(str(value).strip().lower()).value
            except ValueError as e:
                raise ValidationError(f"Invalid priority: {value!r}", field="priority") from e
        else:
            if value is None:
                value = ""
            if not isinstance(value, str):
                raise ValidationError(f"{attr} must be a string", field=attr)
            if attr == "title":
                value = value.strip()
                if not value:
                    raise ValidationError("Task title is required", field="title")
            elif attr == "due_date":
                value = value.strip()
                _check_due_date(value)

        out[WIRE_NAMES[attr]] = value

    if creating and "title" not in out:
        raise ValidationError("Task title is required", field="title")
    return out


def _check_key(key: str) -> str:
    segs = split_path(key) if isinstance(key, str) else ()
    if len(segs) != 1:
        raise ValidationError(f"Invalid task id: {key!r}", field="key")
    return segs[0]


def build_task_snapshot(raw: Any) -> tuple[Task, ...]:
    if not isinstance(raw, dict):
        return ()
    tasks: list[Task] = []
    for key, rec in raw.items():
        try:
            tasks.append(Task.from_record(key, rec))
        except Exception:
            logger.exception("Skipping unreadable task record key=%s", key)
    tasks.sort(key=Task.sort_key)
    return tuple(tasks)


class TaskRepository:
    def __init__(self, store: RemoteStore, user_id: str, *, clock: Clock = now_ms) -> None:
        user_segs = split_path(user_id) if user_id else ()
        if len(user_segs) != 1:
            raise ValidationError(f"Invalid user id: {user_id!r}", field="user_id")
        self._store = store
        self._clock = clock
        self.user_id = user_segs[0]
        self.path = join_path("tasks", self.user_id)
        self.live: LiveSnapshot[Task] = LiveSnapshot(f"tasks[{self.user_id}]")
        self._sub: Subscription | None = None

    # ---- lifecycle ----

    async def start(self) -> None:
        if self._sub is not None:
            return
        self._sub = await self._store.subscribe(self.path, self._on_change)
        logger.info("TaskRepository subscribed path=%s tasks=%d", self.path, len(self.live.value))

    async def close(self) -> None:
        if self._sub is not None:
            self._sub.cancel()
            self._sub = None
        self.live.close()

    async def _on_change(self, raw: Any) -> None:
        await self.live.publish(build_task_snapshot(raw))

    # ---- reads (live snapshot) ----

    def snapshot(self) -> tuple[Task, ...]:
        return self.live.value

    def get(self, key: str) -> Task | None:
        for t in self.live.value:
            if t.key == key:
                return t
        return None

    def recent(self, limit: int = 5) -> tuple[Task, ...]:
        return self.live.value[: max(0, int(limit))]

    def stats(self) -> TaskStats:
        return TaskStats.of(self.live.value)

    # ---- mutations ----

    async def create(self, fields: dict[str, Any]) -> None:
        wire = clean_task_fields(fields, creating=True)
        record: Fields = {
            "title": wire["title"],
            "description": wire.get("description", ""),
            "dueDate": wire.get("dueDate", ""),
            "priority": wire.get("priority", Priority.MEDIUM.value),
            "assignee": wire.get("assignee", ""),
            "completed": False,
            "createdAt": int(self._clock()),
        }
        key = await self._store.append(self.path, record)
        logger.info("Task created key=%s user=%s", key, self.user_id)

    async def update(self, key: str, fields: dict[str, Any]) -> bool:
        key = _check_key(key)
        wire = clean_task_fields(fields, creating=False)
        if not wire:
            return False
        if self.get(key) is None:
            logger.warning("update skipped: unknown task key=%s", key)
            return False
        return await self._write(key, wire, "update")

    async def complete(self, key: str, notes: str = "") -> bool:
        key = _check_key(key)
        if self.get(key) is None:
            logger.warning("complete skipped: unknown task key=%s", key)
            return False
        wire: Fields = {
            "completed": True,
            "completedAt": int(self._clock()),
            "completionNotes": "" if notes is None else str(notes),
        }
        return await self._write(key, wire, "complete")

    async def toggle(self, key: str) -> bool:
        """
        Flip `completed` based on the last seen snapshot.

        This is a read-then-write against the local cache, not an atomic store
        operation: two concurrent toggles can both write the same value.
        """
        key = _check_key(key)
        task = self.get(key)
        if task is None:
            logger.warning("toggle skipped: unknown task key=%s", key)
            return False
        if not task.completed:
            return await self.complete(key, "")
        wire: Fields = {"completed": False, "completedAt": None, "completionNotes": None}
        return await self._write(key, wire, "toggle")

    async def delete(self, key: str) -> None:
        key = _check_key(key)
        try:
            await self._store.remove(join_path(self.path, key))
            logger.info("Task deleted key=%s user=%s", key, self.user_id)
        except StoreUnavailable:
            logger.exception("delete failed key=%s", key)

    async def _write(self, key: str, wire: Fields, op: str) -> bool:
        try:
            await self._store.write(join_path(self.path, key), wire)
        except StoreUnavailable:
            logger.exception("%s failed key=%s", op, key)
            return False
        logger.debug("Task %s key=%s fields=%s", op, key, sorted(wire))
        return True
