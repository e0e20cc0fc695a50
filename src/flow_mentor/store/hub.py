# src/flow_mentor/store/hub.py

"""
Subscription fan-out shared by the store adapters.

Delivery contract:
- every delivery carries the full snapshot at the subscribed path,
- deliveries for one subscription never overlap (per-subscription asyncio.Lock,
  which is FIFO, so they also stay in order),
- after cancel() nothing more is delivered, including deliveries that were
  already waiting on the lock.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

from ..core.ports import ChangeCallback
from .tree import is_related, split_path

logger = logging.getLogger(__name__)


class StoreSubscription:
    def __init__(
        self,
        hub: SubscriptionHub,
        path: str,
        on_change: ChangeCallback,
        on_cancel: Callable[[], None] | None = None,
    ) -> None:
        self._hub = hub
        self._path = path
        self._segs = split_path(path)
        self._on_change = on_change
        self._on_cancel = on_cancel
        self._lock = asyncio.Lock()
        self._active = True
        self.delivered = 0

    @property
    def path(self) -> str:
        return self._path

    @property
    def segs(self) -> tuple[str, ...]:
        return self._segs

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._hub.discard(self)
        if self._on_cancel is not None:
            self._on_cancel()
        logger.debug("Subscription cancelled path=%s delivered=%s", self._path, self.delivered)

    async def deliver(self, snapshot: Any) -> None:
        async with self._lock:
            if not self._active:
                return
            try:
                res = self._on_change(snapshot)
                if inspect.isawaitable(res):
                    await res
                self.delivered += 1
            except Exception:
                # A broken consumer must not break the writer that triggered the fan-out.
                logger.exception("Subscription callback failed path=%s", self._path)


class SubscriptionHub:
    def __init__(self) -> None:
        self._subs: list[StoreSubscription] = []

    def add(
        self,
        path: str,
        on_change: ChangeCallback,
        on_cancel: Callable[[], None] | None = None,
    ) -> StoreSubscription:
        sub = StoreSubscription(self, path, on_change, on_cancel)
        self._subs.append(sub)
        return sub

    def discard(self, sub: StoreSubscription) -> None:
        if sub in self._subs:
            self._subs.remove(sub)

    def affected(self, changed_path: str) -> list[StoreSubscription]:
        segs = split_path(changed_path)
        return [s for s in self._subs if s.active and is_related(s.segs, segs)]

    def cancel_all(self) -> None:
        for sub in list(self._subs):
            sub.cancel()
