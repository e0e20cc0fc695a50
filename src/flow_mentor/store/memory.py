# src/flow_mentor/store/memory.py

from __future__ import annotations

import copy
from typing import Any

from ..core.ports import Fields
from .base import LocalStore
from .push_ids import PushIdGenerator
from .tree import get_node, merge_node, remove_node


class InMemoryStore(LocalStore):
    """Process-local store. Used by tests and by the offline demo (FLOW_STORE_BACKEND=memory)."""

    def __init__(self, initial: dict[str, Any] | None = None, *, key_gen: PushIdGenerator | None = None) -> None:
        super().__init__(key_gen=key_gen)
        self._tree: dict[str, Any] = copy.deepcopy(initial or {})

    async def _load(self, segs: tuple[str, ...]) -> Any:
        return get_node(self._tree, segs)

    async def _merge(self, segs: tuple[str, ...], fields: Fields) -> None:
        merge_node(self._tree, segs, fields)

    async def _delete(self, segs: tuple[str, ...]) -> bool:
        return remove_node(self._tree, segs)
