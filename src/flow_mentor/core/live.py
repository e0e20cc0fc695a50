# src/flow_mentor/core/live.py

"""
Live snapshot channel.

A LiveSnapshot holds the latest fully rebuilt, immutable snapshot of a
collection. Producers call publish() with a complete replacement, consumers
either read .value, register a listener, or iterate updates() as an async
stream. Nothing is ever patched in place.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[tuple[T, ...]], None]

_CLOSED = object()


class LiveSnapshot(Generic[T]):
    def __init__(self, name: str) -> None:
        self.name = name
        self._value: tuple[T, ...] = ()
        self._version = 0
        self._listeners: list[Listener] = []
        self._queues: list[asyncio.Queue] = []
        self._changed = asyncio.Condition()
        self._closed = False

    @property
    def value(self) -> tuple[T, ...]:
        return self._value

    @property
    def version(self) -> int:
        """Number of snapshots published so far (0 until the initial one arrives)."""
        return self._version

    @property
    def loaded(self) -> bool:
        return self._version > 0

    @property
    def closed(self) -> bool:
        return self._closed

    def add_listener(self, fn: Listener) -> Callable[[], None]:
        self._listeners.append(fn)

        def _remove() -> None:
            if fn in self._listeners:
                self._listeners.remove(fn)

        return _remove

    async def publish(self, items: tuple[T, ...]) -> None:
        if self._closed:
            logger.debug("Dropping %s snapshot after close", self.name)
            return
        self._value = items
        self._version += 1
        for fn in list(self._listeners):
            try:
                fn(items)
            except Exception:
                logger.exception("%s listener failed", self.name)
        for q in list(self._queues):
            q.put_nowait(items)
        async with self._changed:
            self._changed.notify_all()

    async def updates(self) -> AsyncIterator[tuple[T, ...]]:
        """Yield the current snapshot (if any), then every later one until close()."""
        if self._closed:
            if self.loaded:
                yield self._value
            return
        q: asyncio.Queue = asyncio.Queue()
        if self.loaded:
            q.put_nowait(self._value)
        self._queues.append(q)
        try:
            while True:
                item = await q.get()
                if item is _CLOSED:
                    return
                yield item
        finally:
            if q in self._queues:
                self._queues.remove(q)

    async def wait_for(
        self,
        predicate: Callable[[tuple[T, ...]], bool],
        timeout: float | None = None,
    ) -> tuple[T, ...]:
        async def _wait() -> tuple[T, ...]:
            async with self._changed:
                await self._changed.wait_for(lambda: self.loaded and predicate(self._value))
                return self._value

        return await asyncio.wait_for(_wait(), timeout)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._listeners.clear()
        for q in list(self._queues):
            q.put_nowait(_CLOSED)
