# src/flow_mentor/core/state.py

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..chat.transcript import ChatTranscript
from ..llm.bridge import AssistantBridge
from ..tasks.repository import TaskRepository
from .orchestrator import ConversationOrchestrator
from .ports import RemoteStore

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    """Everything one signed-in user's session needs, wired once at startup."""

    # Store Settings on the state for easy access in connectors.
    settings: object

    user_id: str
    store: RemoteStore
    tasks: TaskRepository
    transcript: ChatTranscript
    bridge: AssistantBridge
    orchestrator: ConversationOrchestrator

    async def start(self) -> None:
        """Open both live subscriptions (tasks and chat are independent)."""
        await self.tasks.start()
        await self.transcript.start()

    async def close(self) -> None:
        """Best-effort shutdown; each step runs even if an earlier one fails."""
        for name, step in (
            ("tasks", self.tasks.close),
            ("transcript", self.transcript.close),
            ("bridge", self.bridge.aclose),
            ("store", self.store.close),
        ):
            try:
                await step()
            except Exception:
                logger.debug("%s close failed.", name, exc_info=True)
