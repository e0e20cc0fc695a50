# src/flow_mentor/llm/bridge.py

from __future__ import annotations

import logging

from ..core.errors import AssistantUnavailable
from ..core.ports import GenerationBackend

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "I'm having trouble connecting. Please check your connection and try again."


class AssistantBridge:
    """
    Stateless utterance -> reply text.

    Each call sends the utterance alone (no conversation history). The bridge
    never raises to its caller: any backend failure degrades to FALLBACK_REPLY.
    """

    def __init__(self, backend: GenerationBackend, *, fallback_text: str = FALLBACK_REPLY) -> None:
        self.backend = backend
        self.fallback_text = fallback_text

    async def complete(self, utterance: str) -> str:
        try:
            text = await self.backend.generate(utterance)
        except AssistantUnavailable as e:
            logger.warning("Assistant unavailable (%s): %s", self.backend.name, e)
            return self.fallback_text
        except Exception:
            logger.exception("Assistant backend %s crashed", getattr(self.backend, "name", "?"))
            return self.fallback_text

        if not isinstance(text, str) or not text.strip():
            logger.warning("Assistant backend %s returned an empty reply", self.backend.name)
            return self.fallback_text
        return text

    async def aclose(self) -> None:
        try:
            await self.backend.aclose()
        except Exception:
            logger.debug("Assistant backend close failed.", exc_info=True)
