# src/flow_mentor/llm/offline.py

from __future__ import annotations


class OfflineBackend:
    """
    Offline deterministic backend used for demos when no external API is configured.

    Reflects the prompt back so the whole turn (persist, reply, persist) can be
    exercised without network access.
    """

    name = "offline"

    async def generate(self, prompt: str) -> str:
        return (
            "Offline demo mode: no assistant service is configured.\n"
            "Set FLOW_GEMINI_API_KEY (or FLOW_OPENROUTER_API_KEY) to enable real responses.\n\n"
            f"You said: {prompt}"
        )

    async def aclose(self) -> None:
        return
