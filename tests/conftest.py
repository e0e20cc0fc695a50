# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest
import pytest_asyncio

from flow_mentor.chat.transcript import ChatTranscript
from flow_mentor.cli.bootstrap import create_initial_state
from flow_mentor.core.state import AppState
from flow_mentor.tasks.repository import TaskRepository

from .fakes import FakeBackend, FlakyStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and connectors.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="flow-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        user_id="u1",
        store_backend="memory",
        store_db_path=tmp_path / "store.sqlite3",
        firebase_database_url="",
        firebase_auth_token=None,
        stream_reconnect_seconds=0.01,
        assistant_backend="auto",
        gemini_api_key=None,
        gemini_model="gemini-1.5-flash",
        gemini_base_url="https://generativelanguage.googleapis.com/v1",
        openrouter_api_key=None,
        openrouter_base_url="https://openrouter.ai/api/v1",
        llm_models=["test/model"],
        extra_headers={},
        http_connect_timeout=1.0,
        http_read_timeout=2.0,
        recent_tasks_limit=5,
    )


@pytest.fixture()
def store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend("Sure, I'll keep that in mind.")


@pytest_asyncio.fixture()
async def tasks(store: FlakyStore):
    repo = TaskRepository(store, "u1")
    await repo.start()
    yield repo
    await repo.close()


@pytest_asyncio.fixture()
async def transcript(store: FlakyStore):
    chat = ChatTranscript(store, "u1")
    await chat.start()
    yield chat
    await chat.close()


@pytest_asyncio.fixture()
async def state(settings: SimpleNamespace, store: FlakyStore, backend: FakeBackend):
    """
    AppState wired with deterministic fakes.

    NOTE: the store is a real InMemoryStore behind FlakyStore, because the
    subscription fan-out is part of what we want to test.
    """
    app: AppState = create_initial_state(settings=settings, store=store, backend=backend)
    await app.start()
    yield app
    await app.close()
