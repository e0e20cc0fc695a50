# src/flow_mentor/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the store adapter and the assistant backend,
- wires repositories, bridge and orchestrator into AppState.
"""

from __future__ import annotations

import logging

from ..chat.transcript import ChatTranscript
from ..config import get_settings
from ..core.orchestrator import ConversationOrchestrator
from ..core.ports import GenerationBackend, RemoteStore
from ..core.state import AppState
from ..llm.bridge import AssistantBridge
from ..llm.client import OpenRouterBackend
from ..llm.gemini import GeminiBackend
from ..llm.offline import OfflineBackend
from ..store.firebase import FirebaseStore
from ..store.memory import InMemoryStore
from ..store.sqlite_store import SqliteStore
from ..tasks.repository import TaskRepository

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.store_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_store(settings) -> RemoteStore:
    backend = str(getattr(settings, "store_backend", "sqlite"))
    if backend == "memory":
        return InMemoryStore()
    if backend == "firebase":
        return FirebaseStore(
            settings.firebase_database_url,
            auth_token=settings.firebase_auth_token,
            connect_timeout=settings.http_connect_timeout,
            read_timeout=settings.http_read_timeout,
            reconnect_delay=settings.stream_reconnect_seconds,
        )
    return SqliteStore(settings.store_db_path)


def create_backend(settings) -> GenerationBackend:
    """
    Pick the generation backend.

    "auto" prefers Gemini, then OpenRouter, then the offline demo backend.
    An explicitly requested backend that cannot be configured also falls back
    to offline mode (logged), so the app still starts.
    """
    choice = str(getattr(settings, "assistant_backend", "auto"))

    def _gemini() -> GenerationBackend:
        return GeminiBackend(
            settings.gemini_api_key or "",
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            connect_timeout=settings.http_connect_timeout,
            read_timeout=settings.http_read_timeout,
        )

    def _openrouter() -> GenerationBackend:
        return OpenRouterBackend(
            settings.openrouter_api_key,
            base_url=settings.openrouter_base_url,
            models=list(settings.llm_models),
            extra_headers=dict(settings.extra_headers),
            connect_timeout=settings.http_connect_timeout,
            read_timeout=settings.http_read_timeout,
        )

    if choice == "offline":
        return OfflineBackend()

    if choice == "auto":
        if settings.gemini_api_key:
            choice = "gemini"
        elif settings.openrouter_api_key:
            choice = "openrouter"
        else:
            logger.info("No assistant API key configured; using offline backend.")
            return OfflineBackend()

    try:
        return _gemini() if choice == "gemini" else _openrouter()
    except Exception:
        # Fallback for demos / local runs without external services.
        logger.warning("Assistant backend %r is not configured; using offline backend.", choice, exc_info=True)
        return OfflineBackend()


def create_initial_state(
    *,
    settings=None,
    user_id: str | None = None,
    store: RemoteStore | None = None,
    backend: GenerationBackend | None = None,
) -> AppState:
    """
    Create AppState for one user.

    Keeping settings (and the store/backend) injectable makes the app easier to
    test and avoids hidden global config reads. If settings is None, falls back
    to get_settings(). Subscriptions are opened by AppState.start().
    """
    if settings is None:
        settings = get_settings()

    if store is None:
        _ensure_local_dirs(settings)
        store = create_store(settings)

    uid = user_id or settings.user_id
    transcript = ChatTranscript(store, uid)
    bridge = AssistantBridge(backend or create_backend(settings))

    state = AppState(
        settings=settings,
        user_id=transcript.user_id,
        store=store,
        tasks=TaskRepository(store, uid),
        transcript=transcript,
        bridge=bridge,
        orchestrator=ConversationOrchestrator(transcript, bridge),
    )
    logger.info(
        "State ready user=%s store=%s assistant=%s",
        state.user_id,
        store.__class__.__name__,
        bridge.backend.name,
    )
    return state
