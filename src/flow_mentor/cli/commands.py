# src/flow_mentor/cli/commands.py

from __future__ import annotations

import inspect
import logging
import shlex
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import cast

from ..core.errors import ValidationError
from ..core.state import AppState
from ..tasks.task_models import Task

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], Awaitable[str]]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError:
            parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        try:
            if nparams >= 3:
                return await cast(CommandHandler3, handler)(state, args, emit)
            return await cast(CommandHandler2, handler)(state, args)
        except ValidationError as e:
            return f"Invalid input: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _fmt_ms(ms: int | None) -> str:
    if not ms:
        return "-"
    return datetime.fromtimestamp(ms / 1000).astimezone().strftime("%Y-%m-%d %H:%M")


def format_task_line(i: int, t: Task) -> str:
    mark = "x" if t.completed else " "
    bits = [f"{i}. [{mark}] {t.title} ({t.priority.value})"]
    if t.due_date:
        bits.append(f"due {t.due_date}")
    if t.assignee:
        bits.append(f"assignee: {t.assignee}")
    line = " | ".join(bits)
    if t.description:
        desc = t.description if len(t.description) <= 100 else t.description[:100] + "..."
        line += f"\n     {desc}"
    if t.completed and t.completion_notes:
        line += f"\n     done {_fmt_ms(t.completed_at)}: {t.completion_notes}"
    return line


def _pick_task(state: AppState, args: list[str]) -> Task | str:
    """Resolve a 1-based index into the current snapshot (or an error text)."""
    if not args:
        return "Task number is required (see /tasks)."
    try:
        idx = int(args[0])
    except ValueError:
        return f"Not a task number: {args[0]}"
    tasks = state.tasks.snapshot()
    if not 1 <= idx <= len(tasks):
        return f"No task #{idx} (there are {len(tasks)})."
    return tasks[idx - 1]


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_tasks(state: AppState, args: list[str]) -> str:
    tasks = state.tasks.snapshot()
    if not tasks:
        return "No tasks yet. Use /add <title> to create one."
    return "\n".join(format_task_line(i, t) for i, t in enumerate(tasks, start=1))


async def cmd_add(state: AppState, args: list[str]) -> str:
    """/add <title> [| description]"""
    raw = " ".join(args)
    title, _, description = raw.partition("|")
    await state.tasks.create({"title": title, "description": description.strip()})
    return "Task created."


async def cmd_edit(state: AppState, args: list[str]) -> str:
    """/edit <n> field=value ...  (fields: title, description, due_date, priority, assignee)"""
    task = _pick_task(state, args)
    if isinstance(task, str):
        return task
    fields: dict[str, str] = {}
    for pair in args[1:]:
        name, sep, value = pair.partition("=")
        if not sep:
            return f"Expected field=value, got {pair!r}."
        fields[name.strip()] = value
    if not fields:
        return "Nothing to change. Example: /edit 1 priority=high due_date=2025-01-31"
    ok = await state.tasks.update(task.key, fields)
    return "Task updated." if ok else "Task update failed (see log)."


async def cmd_done(state: AppState, args: list[str]) -> str:
    """/done <n> [notes]"""
    task = _pick_task(state, args)
    if isinstance(task, str):
        return task
    ok = await state.tasks.complete(task.key, " ".join(args[1:]))
    return f"Completed: {task.title}" if ok else "Completing the task failed (see log)."


async def cmd_toggle(state: AppState, args: list[str]) -> str:
    task = _pick_task(state, args)
    if isinstance(task, str):
        return task
    ok = await state.tasks.toggle(task.key)
    return f"Toggled: {task.title}" if ok else "Toggle failed (see log)."


async def cmd_delete(state: AppState, args: list[str]) -> str:
    task = _pick_task(state, args)
    if isinstance(task, str):
        return task
    await state.tasks.delete(task.key)
    return f"Deleted: {task.title}"


async def cmd_stats(state: AppState, args: list[str]) -> str:
    s = state.tasks.stats()
    limit = int(getattr(state.settings, "recent_tasks_limit", 5) or 5)
    lines = [
        f"Total tasks: {s.total}",
        f"Completed: {s.completed}",
        f"Progress: {s.progress_percent}%",
    ]
    recent = state.tasks.recent(limit)
    if recent:
        lines.append("Recent:")
        lines.extend(format_task_line(i, t) for i, t in enumerate(recent, start=1))
    return "\n".join(lines)


async def cmd_history(state: AppState, args: list[str]) -> str:
    """/history [n] -> last n chat messages (default 10)"""
    try:
        n = int(args[0]) if args else 10
    except ValueError:
        return "Usage: /history [n]"
    msgs = state.transcript.snapshot()[-max(1, n) :]
    if not msgs:
        return "No conversation yet. Type a message to talk to the assistant."
    return "\n".join(f"[{_fmt_ms(m.timestamp)}] {m.role.value}: {m.text}" for m in msgs)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("tasks", cmd_tasks, help_text="List tasks (newest first).", aliases=["ls"])
registry.register("add", cmd_add, help_text="Create a task: /add <title> [| description].")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <n> field=value ...")
registry.register("done", cmd_done, help_text="Complete a task: /done <n> [notes].")
registry.register("toggle", cmd_toggle, help_text="Flip a task's completed flag: /toggle <n>.")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <n>.", aliases=["rm"])
registry.register("stats", cmd_stats, help_text="Totals, progress and recent tasks.")
registry.register("history", cmd_history, help_text="Show recent chat messages: /history [n].")
