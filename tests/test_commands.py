# tests/test_commands.py

from __future__ import annotations

import pytest

from flow_mentor.cli.commands import CommandRegistry, registry


@pytest.mark.asyncio
async def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}

    async def h2(state, args):
        called["h2"] += 1
        return "h2"

    async def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    notes: list[str] = []
    reg.register("a", h2, "a")
    reg.register("b", h3, "b", aliases=["bee"])

    assert await reg.handle(state, "/a x") == "h2"
    assert await reg.handle(state, "/BEE y", emit=notes.append) == "h3"
    assert called == {"h2": 1, "h3": 1}
    assert notes == ["note"]


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")


@pytest.mark.asyncio
async def test_add_list_and_stats(state) -> None:
    assert await registry.handle(state, "/add Buy milk | 2 litres") == "Task created."
    assert await registry.handle(state, "/add 'Book flights'") == "Task created."

    listing = await registry.handle(state, "/tasks")
    assert "[ ] Book flights (medium)" in listing
    assert "Buy milk" in listing and "2 litres" in listing

    await registry.handle(state, "/done 2 bought two")
    stats = await registry.handle(state, "/stats")
    assert "Total tasks: 2" in stats
    assert "Completed: 1" in stats
    assert "Progress: 50%" in stats


@pytest.mark.asyncio
async def test_validation_errors_are_reported_not_raised(state, store) -> None:
    reply = await registry.handle(state, "/add   ")
    assert reply.startswith("Invalid input:")
    assert store.append_calls == []

    await registry.handle(state, "/add Report")
    reply = await registry.handle(state, "/edit 1 priority=urgent")
    assert reply.startswith("Invalid input:")
    reply = await registry.handle(state, "/edit 1 completed=true")
    assert reply.startswith("Invalid input:")


@pytest.mark.asyncio
async def test_edit_toggle_and_delete_by_index(state) -> None:
    await registry.handle(state, "/add Draft")
    assert await registry.handle(state, "/edit 1 priority=high assignee=lee") == "Task updated."
    t = state.tasks.snapshot()[0]
    assert (t.priority.value, t.assignee) == ("high", "lee")

    assert await registry.handle(state, "/toggle 1") == "Toggled: Draft"
    assert state.tasks.snapshot()[0].completed

    assert await registry.handle(state, "/rm 1") == "Deleted: Draft"
    assert state.tasks.snapshot() == ()
    assert "No task #1" in await registry.handle(state, "/done 1")
    assert "Not a task number" in await registry.handle(state, "/done first")


@pytest.mark.asyncio
async def test_history_shows_transcript(state) -> None:
    assert "No conversation yet" in await registry.handle(state, "/history")
    await state.orchestrator.submit("what's next?")
    history = await registry.handle(state, "/history 5")
    assert "user: what's next?" in history
    assert "assistant: Sure, I'll keep that in mind." in history


@pytest.mark.asyncio
async def test_help_lists_commands(state) -> None:
    text = await registry.handle(state, "/help")
    for name in ("/tasks", "/add", "/edit", "/done", "/toggle", "/delete", "/stats", "/history"):
        assert name in text
