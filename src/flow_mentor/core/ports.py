# src/flow_mentor/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

Repositories and the orchestrator depend on Protocols instead of concrete
implementations. This keeps store adapters and generation backends swappable
and makes testing easier.
"""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol

Fields = dict[str, Any]
# Flat field map of one record. A None value in a write means "delete this field".

ChangeCallback = Callable[[Any], Awaitable[None] | None]
# Receives the full current value under the subscribed path (None when empty).

Clock = Callable[[], int]
# Returns the current time in epoch milliseconds.


class Subscription(Protocol):
    @property
    def path(self) -> str: ...

    @property
    def active(self) -> bool: ...

    def cancel(self) -> None: ...


class RemoteStore(Protocol):
    """
    Hierarchical, path-addressed store ("tasks/u1/-Nx...").

    Writes are partial-field merges; removes delete the whole subtree.
    Subscriptions always receive the full snapshot at their path.
    """

    async def read(self, path: str) -> Any: ...

    async def write(self, path: str, fields: Fields) -> None: ...

    async def append(self, collection_path: str, fields: Fields) -> str: ...

    async def remove(self, path: str) -> None: ...

    async def subscribe(self, path: str, on_change: ChangeCallback) -> Subscription: ...

    async def close(self) -> None: ...


class GenerationBackend(Protocol):
    """One prompt in, one generated text out. Raises AssistantUnavailable on failure."""

    name: str

    async def generate(self, prompt: str) -> str: ...

    async def aclose(self) -> None: ...
