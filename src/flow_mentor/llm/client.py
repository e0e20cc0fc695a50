# src/flow_mentor/llm/client.py

from __future__ import annotations

import logging
import time
from typing import Any

import openai
from openai import AsyncOpenAI

from ..core.errors import AssistantUnavailable
from ..net import make_timeout

logger = logging.getLogger(__name__)

_BAD_MODELS: dict[str, float] = {}  # model -> retry_at (monotonic)


def _is_auth_error(exc: Exception) -> bool:
    return isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError))


def _is_rate_limit_error(exc: Exception) -> bool:
    return isinstance(exc, openai.RateLimitError)


def _is_connection_error(exc: Exception) -> bool:
    # APITimeoutError is a subclass of APIConnectionError.
    return isinstance(exc, openai.APIConnectionError)


def _is_not_found_error(exc: Exception) -> bool:
    return isinstance(exc, openai.NotFoundError)


def friendly_error_message(err: Exception) -> str:
    msg = str(err).strip() or "Assistant error."
    if "API key is not set" in msg:
        return "Assistant is not configured (missing API key). Set FLOW_GEMINI_API_KEY or FLOW_OPENROUTER_API_KEY in .env."
    if "model list is empty" in msg:
        return "Assistant is not configured (no models). Set FLOW_LLM_MODELS in .env."
    if "base URL is not set" in msg:
        return "Assistant is not configured (missing base URL). Set FLOW_OPENROUTER_BASE_URL in .env."
    if "database URL is not set" in msg:
        return "Store is not configured. Set FLOW_FIREBASE_DATABASE_URL in .env or pick another FLOW_STORE_BACKEND."
    return msg


def _reply_text(completion: Any) -> str | None:
    try:
        content = completion.choices[0].message.content
    except (AttributeError, IndexError, TypeError):
        return None
    if not isinstance(content, str) or not content.strip():
        return None
    return content


class OpenRouterBackend:
    """
    OpenAI-compatible chat completion (OpenRouter by default), one prompt per call.

    Behavior:
    - Tries models in the configured order (FLOW_LLM_MODELS).
    - 404 (model not available) -> remember for an hour, try next.
    - Rate limit / network issues / empty reply -> try next.
    - Auth issues -> fail fast (no retries across models).
    - Automatic SDK retries are disabled to allow quick fallback across models.
    """

    name = "openrouter"

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str,
        models: list[str],
        extra_headers: dict[str, str] | None = None,
        connect_timeout: float = 5.0,
        read_timeout: float = 25.0,
        client: AsyncOpenAI | None = None,
    ) -> None:
        if not api_key or not str(api_key).strip():
            raise RuntimeError("LLM API key is not set. Set FLOW_OPENROUTER_API_KEY in your .env.")
        if not (base_url or "").strip():
            raise RuntimeError("LLM base URL is not set. Set FLOW_OPENROUTER_BASE_URL in your .env.")
        self._models = [m.strip() for m in models if m and m.strip()]
        if not self._models:
            raise RuntimeError("LLM model list is empty. Set FLOW_LLM_MODELS in your .env.")

        self._headers = dict(extra_headers or {})
        self._client = client or AsyncOpenAI(
            base_url=str(base_url).strip(),
            api_key=str(api_key).strip(),
            timeout=make_timeout(connect_timeout, read_timeout),
            max_retries=0,
        )

    async def generate(self, prompt: str) -> str:
        last_error: Exception | None = None
        now = time.monotonic()

        for model in self._models:
            retry_at = _BAD_MODELS.get(model)
            if retry_at is not None and retry_at > now:
                continue

            logger.info("LLM: trying model=%s", model)
            t0 = time.monotonic()
            try:
                completion = await self._client.chat.completions.create(
                    model=model,
                    messages=[{"role": "user", "content": prompt}],
                    extra_headers=self._headers or None,
                )
            except Exception as e:
                last_error = e

                if _is_auth_error(e):
                    raise AssistantUnavailable(
                        "LLM authentication failed. Check your API key (FLOW_OPENROUTER_API_KEY)."
                    ) from e

                if _is_not_found_error(e):
                    _BAD_MODELS[model] = time.monotonic() + 3600.0  # 1 hour
                    logger.info("LLM: model not available (404): %s", model)
                    continue

                if _is_rate_limit_error(e):
                    logger.info("LLM: rate-limited on model=%s, trying next", model)
                    continue

                if _is_connection_error(e):
                    logger.info("LLM: network/timeout error on model=%s, trying next", model)
                    continue

                logger.info("LLM: error on model=%s (%s), trying next", model, e.__class__.__name__)
                continue

            text = _reply_text(completion)
            if text is None:
                last_error = AssistantUnavailable(f"Model returned no content: {model}")
                logger.info("LLM: empty reply from model=%s, trying next", model)
                continue

            logger.info("LLM: reply from model=%s (%.2fs)", model, time.monotonic() - t0)
            return text

        if last_error is not None:
            if _is_rate_limit_error(last_error):
                raise AssistantUnavailable("LLM is rate-limited. Try again later.") from last_error
            if _is_connection_error(last_error):
                raise AssistantUnavailable("LLM network/timeout error.") from last_error
            raise AssistantUnavailable("All LLM models failed.") from last_error

        raise AssistantUnavailable("All LLM models failed.")

    async def aclose(self) -> None:
        await self._client.close()
