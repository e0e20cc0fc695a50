# tests/test_console.py

from __future__ import annotations

import builtins

import pytest

from flow_mentor.cli import main as cli_main
from flow_mentor.connectors.console_connector import run_console_loop


def feed(monkeypatch, lines: list[str]) -> None:
    it = iter(lines)

    def fake_input(prompt: str = "") -> str:
        try:
            return next(it)
        except StopIteration:
            raise EOFError from None

    monkeypatch.setattr(builtins, "input", fake_input)


@pytest.mark.asyncio
async def test_console_routes_commands_and_chat(state, backend, monkeypatch, capsys) -> None:
    feed(monkeypatch, ["/add Water plants", "", "how is my day?", "/exit", "never read"])
    await run_console_loop(state)

    out = capsys.readouterr().out
    assert "Task created." in out
    assert "[tasks] 1 task(s), 0 completed." in out
    assert "Sure, I'll keep that in mind." in out
    assert backend.calls == ["how is my day?"]


@pytest.mark.asyncio
async def test_console_reports_unsaved_message(state, store, monkeypatch, capsys) -> None:
    store.fail_appends = {1}
    feed(monkeypatch, ["hello"])
    await run_console_loop(state)

    assert "Message could not be saved" in capsys.readouterr().out
    assert state.transcript.snapshot() == ()


@pytest.mark.asyncio
async def test_cli_run_with_offline_backend_exits_on_eof(settings, monkeypatch, capsys) -> None:
    feed(monkeypatch, ["ping"])
    assert await cli_main._run(settings) == 0
    assert "You said: ping" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_cli_run_reports_missing_firebase_url(settings) -> None:
    settings.store_backend = "firebase"
    assert await cli_main._run(settings) == 2
