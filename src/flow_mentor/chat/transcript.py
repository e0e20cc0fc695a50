# src/flow_mentor/chat/transcript.py

"""
Append-only chat transcript for one user (chats/{user_id}).

There is deliberately no edit or delete: the transcript is a conversation log.
"""

from __future__ import annotations

import logging
from typing import Any

from ..core.errors import ValidationError
from ..core.live import LiveSnapshot
from ..core.ports import Clock, RemoteStore, Subscription
from ..store.push_ids import now_ms
from ..store.tree import join_path, split_path
from .chat_models import ChatMessage, Role

logger = logging.getLogger(__name__)


def build_chat_snapshot(raw: Any) -> tuple[ChatMessage, ...]:
    if not isinstance(raw, dict):
        return ()
    msgs: list[ChatMessage] = []
    for key, rec in raw.items():
        try:
            msgs.append(ChatMessage.from_record(key, rec))
        except Exception:
            logger.exception("Skipping unreadable chat record key=%s", key)
    msgs.sort(key=ChatMessage.sort_key)
    return tuple(msgs)


class ChatTranscript:
    def __init__(self, store: RemoteStore, user_id: str, *, clock: Clock = now_ms) -> None:
        user_segs = split_path(user_id) if user_id else ()
        if len(user_segs) != 1:
            raise ValidationError(f"Invalid user id: {user_id!r}", field="user_id")
        self._store = store
        self._clock = clock
        self.user_id = user_segs[0]
        self.path = join_path("chats", self.user_id)
        self.live: LiveSnapshot[ChatMessage] = LiveSnapshot(f"chats[{self.user_id}]")
        self._sub: Subscription | None = None

    async def start(self) -> None:
        if self._sub is not None:
            return
        self._sub = await self._store.subscribe(self.path, self._on_change)
        logger.info("ChatTranscript subscribed path=%s messages=%d", self.path, len(self.live.value))

    async def close(self) -> None:
        if self._sub is not None:
            self._sub.cancel()
            self._sub = None
        self.live.close()

    async def _on_change(self, raw: Any) -> None:
        await self.live.publish(build_chat_snapshot(raw))

    def snapshot(self) -> tuple[ChatMessage, ...]:
        return self.live.value

    async def append(self, role: Role | str, text: str) -> str:
        """
        Persist one message stamped with the current time and return its key.

        StoreUnavailable propagates: the caller decides whether to surface it.
        """
        try:
            role = Role(role)
        except ValueError as e:
            raise ValidationError(f"Invalid role: {role!r}", field="role") from e
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Chat message text must not be empty", field="text")

        key = await self._store.append(
            self.path,
            {"role": role.value, "text": text, "timestamp": int(self._clock())},
        )
        logger.debug("Chat message appended key=%s role=%s", key, role.value)
        return key
