# src/flow_mentor/llm/gemini.py

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from ..core.errors import AssistantUnavailable
from ..net import describe_http_error, error_detail, make_timeout

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1"
DEFAULT_MODEL = "gemini-1.5-flash"


def build_request_body(prompt: str) -> dict[str, Any]:
    return {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}


def extract_reply_text(data: Any) -> str | None:
    """candidates[0].content.parts[0].text, or None when the body does not have it."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    if not isinstance(text, str) or not text.strip():
        return None
    return text


class GeminiBackend:
    """
    generateContent over plain HTTPS: one POST per prompt, no history.

    Every failure (transport, non-2xx, body without reply text) is raised as
    AssistantUnavailable; AssistantBridge turns it into the fallback reply.
    """

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        *,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        client: httpx.AsyncClient | None = None,
        connect_timeout: float = 5.0,
        read_timeout: float = 25.0,
    ) -> None:
        if not api_key or not str(api_key).strip():
            raise RuntimeError("Gemini API key is not set. Set FLOW_GEMINI_API_KEY in your .env.")
        self._api_key = str(api_key).strip()
        self._model = (model or DEFAULT_MODEL).strip()
        self._base_url = (base_url or DEFAULT_BASE_URL).strip().rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=make_timeout(connect_timeout, read_timeout))

    @property
    def url(self) -> str:
        return f"{self._base_url}/models/{self._model}:generateContent"

    async def generate(self, prompt: str) -> str:
        t0 = time.monotonic()
        try:
            resp = await self._client.post(
                self.url,
                params={"key": self._api_key},
                json=build_request_body(prompt),
            )
        except httpx.HTTPError as e:
            raise AssistantUnavailable(f"Gemini request failed: {describe_http_error(e)}") from e

        if not resp.is_success:
            raise AssistantUnavailable(f"Gemini API error: HTTP {resp.status_code} {error_detail(resp)}".strip())

        try:
            data = resp.json()
        except ValueError as e:
            raise AssistantUnavailable("Gemini returned a non-JSON body") from e

        text = extract_reply_text(data)
        if text is None:
            raise AssistantUnavailable("Gemini response has no candidate text")

        logger.info("Gemini: reply from model=%s (%.2fs)", self._model, time.monotonic() - t0)
        return text

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
