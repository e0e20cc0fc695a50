# tests/test_bootstrap.py

from __future__ import annotations

import pytest

from flow_mentor.cli.bootstrap import create_backend, create_initial_state, create_store
from flow_mentor.llm.client import OpenRouterBackend
from flow_mentor.llm.gemini import GeminiBackend
from flow_mentor.llm.offline import OfflineBackend
from flow_mentor.store.memory import InMemoryStore
from flow_mentor.store.sqlite_store import SqliteStore


@pytest.mark.asyncio
async def test_auto_backend_prefers_gemini_then_openrouter_then_offline(settings) -> None:
    assert isinstance(create_backend(settings), OfflineBackend)

    settings.openrouter_api_key = "or-key"
    b = create_backend(settings)
    assert isinstance(b, OpenRouterBackend)
    await b.aclose()

    settings.gemini_api_key = "g-key"
    b = create_backend(settings)
    assert isinstance(b, GeminiBackend)
    await b.aclose()


def test_unconfigured_explicit_backend_falls_back_to_offline(settings) -> None:
    settings.assistant_backend = "gemini"
    assert isinstance(create_backend(settings), OfflineBackend)


def test_store_choice(settings) -> None:
    assert isinstance(create_store(settings), InMemoryStore)
    settings.store_backend = "sqlite"
    assert isinstance(create_store(settings), SqliteStore)
    settings.store_backend = "firebase"
    with pytest.raises(ValueError):
        create_store(settings)


@pytest.mark.asyncio
async def test_initial_state_is_wired_for_one_user(settings) -> None:
    state = create_initial_state(settings=settings, user_id="alice")
    assert state.user_id == "alice"
    assert state.tasks.path == "tasks/alice"
    assert state.transcript.path == "chats/alice"
    assert state.bridge.backend.name == "offline"

    await state.start()
    await state.tasks.create({"title": "Hello"})
    assert state.tasks.stats().total == 1
    await state.close()
