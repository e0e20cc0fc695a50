# src/flow_mentor/store/base.py

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from ..core.errors import StoreUnavailable, ValidationError
from ..core.ports import ChangeCallback, Fields
from .hub import StoreSubscription, SubscriptionHub
from .push_ids import PushIdGenerator
from .tree import join_path, snapshot_copy, split_path

logger = logging.getLogger(__name__)


def check_fields(fields: Fields) -> None:
    if not isinstance(fields, dict):
        raise ValidationError("fields must be a mapping", field="fields")
    for k in fields:
        if not isinstance(k, str) or not k or "/" in k:
            raise ValidationError(f"Invalid field name: {k!r}", field="fields")
        split_path(k)


class LocalStore(ABC):
    """
    Shared behavior of the in-process adapters (InMemoryStore, SqliteStore).

    Subclasses implement the three storage primitives; this class owns key
    generation, validation and the subscription fan-out. Subscribers see
    local writes as soon as the write coroutine returns.
    """

    def __init__(self, *, key_gen: PushIdGenerator | None = None) -> None:
        self._keys = key_gen or PushIdGenerator()
        self._hub = SubscriptionHub()
        self._closed = False

    # ---- storage primitives (subclasses) ----

    @abstractmethod
    async def _load(self, segs: tuple[str, ...]) -> Any:
        """Current value at segs (None when absent)."""

    @abstractmethod
    async def _merge(self, segs: tuple[str, ...], fields: Fields) -> None:
        """Merge fields into the record at segs; None deletes a field."""

    @abstractmethod
    async def _delete(self, segs: tuple[str, ...]) -> bool:
        """Remove the subtree at segs; True when something was removed."""

    # ---- RemoteStore ----

    def _check_open(self, path: str) -> None:
        if self._closed:
            raise StoreUnavailable("Store is closed", path=path)

    @staticmethod
    def _record_segs(path: str) -> tuple[str, ...]:
        segs = split_path(path)
        if not segs:
            raise ValidationError("Refusing to address the store root", field="path")
        return segs

    async def read(self, path: str) -> Any:
        self._check_open(path)
        return snapshot_copy(await self._load(split_path(path)))

    async def write(self, path: str, fields: Fields) -> None:
        self._check_open(path)
        segs = self._record_segs(path)
        check_fields(fields)
        await self._merge(segs, fields)
        logger.debug("write path=%s fields=%s", path, sorted(fields))
        await self._notify(path)

    async def append(self, collection_path: str, fields: Fields) -> str:
        self._check_open(collection_path)
        segs = self._record_segs(collection_path)
        check_fields(fields)
        key = self._keys.next_id()
        await self._merge((*segs, key), fields)
        logger.debug("append path=%s key=%s", collection_path, key)
        await self._notify(join_path(collection_path, key))
        return key

    async def remove(self, path: str) -> None:
        self._check_open(path)
        segs = self._record_segs(path)
        if await self._delete(segs):
            logger.debug("remove path=%s", path)
            await self._notify(path)

    async def subscribe(self, path: str, on_change: ChangeCallback) -> StoreSubscription:
        self._check_open(path)
        sub = self._hub.add(path, on_change)
        await sub.deliver(snapshot_copy(await self._load(sub.segs)))
        return sub

    async def close(self) -> None:
        self._closed = True
        self._hub.cancel_all()

    async def _notify(self, changed_path: str) -> None:
        # Mutation already committed; a failed reload skips this delivery only.
        for sub in self._hub.affected(changed_path):
            try:
                snap = snapshot_copy(await self._load(sub.segs))
            except StoreUnavailable:
                logger.exception("Snapshot reload failed path=%s after change at %s", sub.path, changed_path)
                continue
            await sub.deliver(snap)
