# src/flow_mentor/core/orchestrator.py

"""
Conversation orchestrator.

One turn at a time:

    IDLE --submit--> SENDING --user msg stored--> AWAITING_REPLY
         --reply received--> PERSISTING_REPLY --reply stored--> IDLE

Key invariants:
- the user message is stored before the assistant is asked, so a crash after
  that point still leaves the user turn on record,
- a failed user write ends the turn without calling the assistant,
- every stored user turn gets exactly one assistant message, except when the
  reply write and the single fallback write both fail (logged, left as is),
- a submit while a turn is in flight is dropped, not queued.

The live transcript snapshot is not touched here; it follows the store.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from ..chat.chat_models import Role
from ..chat.transcript import ChatTranscript
from ..llm.bridge import AssistantBridge
from .errors import StoreUnavailable

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "I encountered an error. Please try again later."


class TurnState(StrEnum):
    IDLE = "idle"
    SENDING = "sending"
    AWAITING_REPLY = "awaiting_reply"
    PERSISTING_REPLY = "persisting_reply"


class TurnOutcome(StrEnum):
    COMPLETED = "completed"  # user + assistant message stored
    REJECTED_EMPTY = "rejected_empty"  # blank input, nothing happened
    REJECTED_BUSY = "rejected_busy"  # another turn in flight, dropped
    ABORTED = "aborted"  # user message could not be stored
    DANGLING = "dangling"  # user message stored, no reply could be stored


@dataclass(frozen=True, slots=True)
class TurnResult:
    outcome: TurnOutcome
    user_key: str | None = None
    reply_key: str | None = None
    reply_text: str | None = None

    @property
    def accepted(self) -> bool:
        return self.outcome not in (TurnOutcome.REJECTED_EMPTY, TurnOutcome.REJECTED_BUSY)


StateListener = Callable[[TurnState], None]


class ConversationOrchestrator:
    def __init__(
        self,
        transcript: ChatTranscript,
        bridge: AssistantBridge,
        *,
        fallback_message: str = FALLBACK_MESSAGE,
    ) -> None:
        self._transcript = transcript
        self._bridge = bridge
        self._fallback = fallback_message
        self._state = TurnState.IDLE
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> TurnState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state is not TurnState.IDLE

    def add_state_listener(self, fn: StateListener) -> Callable[[], None]:
        self._listeners.append(fn)

        def _remove() -> None:
            if fn in self._listeners:
                self._listeners.remove(fn)

        return _remove

    def _set_state(self, new: TurnState) -> None:
        if new is self._state:
            return
        logger.debug("Turn state %s -> %s", self._state.value, new.value)
        self._state = new
        for fn in list(self._listeners):
            try:
                fn(new)
            except Exception:
                logger.exception("Turn state listener failed")

    async def submit(self, text: str) -> TurnResult:
        if not isinstance(text, str) or not text.strip():
            logger.debug("submit ignored: empty text")
            return TurnResult(TurnOutcome.REJECTED_EMPTY)

        # Check-and-set happens before the first await, so it cannot interleave.
        if self._state is not TurnState.IDLE:
            logger.info("submit dropped: turn already in flight (state=%s)", self._state.value)
            return TurnResult(TurnOutcome.REJECTED_BUSY)

        self._set_state(TurnState.SENDING)
        try:
            try:
                user_key = await self._transcript.append(Role.USER, text)
            except StoreUnavailable:
                logger.exception("Turn aborted: user message could not be stored")
                return TurnResult(TurnOutcome.ABORTED)

            self._set_state(TurnState.AWAITING_REPLY)
            try:
                reply = await self._bridge.complete(text)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Assistant bridge raised; using fallback reply")
                reply = self._fallback

            self._set_state(TurnState.PERSISTING_REPLY)
            return await self._persist_reply(user_key, reply)
        finally:
            self._set_state(TurnState.IDLE)

    async def _persist_reply(self, user_key: str, reply: str) -> TurnResult:
        try:
            reply_key = await self._transcript.append(Role.ASSISTANT, reply)
            return TurnResult(TurnOutcome.COMPLETED, user_key, reply_key, reply)
        except StoreUnavailable:
            logger.exception("Reply write failed for user message key=%s", user_key)

        if reply == self._fallback:
            logger.error("Dangling user turn key=%s: fallback reply could not be stored", user_key)
            return TurnResult(TurnOutcome.DANGLING, user_key)

        try:
            reply_key = await self._transcript.append(Role.ASSISTANT, self._fallback)
            return TurnResult(TurnOutcome.COMPLETED, user_key, reply_key, self._fallback)
        except StoreUnavailable:
            logger.exception("Dangling user turn key=%s: fallback reply could not be stored", user_key)
            return TurnResult(TurnOutcome.DANGLING, user_key)
