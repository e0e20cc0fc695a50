# src/flow_mentor/core/errors.py

from __future__ import annotations


class FlowMentorError(Exception):
    """Base class for all errors raised by flow_mentor."""


class ValidationError(FlowMentorError, ValueError):
    """Caller-correctable input (rejected before any store call)."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class StoreUnavailable(FlowMentorError):
    """Transport, auth or quota failure reported by the remote store."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class AssistantUnavailable(FlowMentorError):
    """
    External generation service failure.

    Raised by backends only. AssistantBridge converts it into the fallback text,
    so it never reaches the orchestrator or the UI.
    """
