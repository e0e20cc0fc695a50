# src/flow_mentor/chat/chat_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class Role(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"

    @classmethod
    def from_db(cls, raw: Any) -> Role:
        # Transcripts written by the web client label replies "model".
        s = str(raw or "").strip().lower()
        if s in ("assistant", "model"):
            return cls.ASSISTANT
        return cls.USER


@dataclass(frozen=True, slots=True)
class ChatMessage:
    key: str
    role: Role
    text: str
    timestamp: int

    @classmethod
    def from_record(cls, key: str, raw: Any) -> ChatMessage:
        rec = raw if isinstance(raw, dict) else {}
        ts = rec.get("timestamp")
        try:
            timestamp = 0 if isinstance(ts, bool) else int(ts)
        except (TypeError, ValueError, OverflowError):
            timestamp = 0
        text = rec.get("text")
        return cls(
            key=str(key),
            role=Role.from_db(rec.get("role")),
            text=text if isinstance(text, str) else ("" if text is None else str(text)),
            timestamp=timestamp,
        )

    def sort_key(self) -> tuple[int, str]:
        return (self.timestamp, self.key)
