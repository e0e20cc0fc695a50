# src/flow_mentor/store/tree.py

"""
Helpers for path-addressed nested dict trees.

Paths are slash-separated ("tasks/u1/-Nx..."). Leading/trailing slashes are
ignored. Segment rules follow the Realtime Database key rules so that a path
valid for the local adapters is also valid for FirebaseStore.
"""

from __future__ import annotations

import copy
from typing import Any

from ..core.errors import ValidationError

_FORBIDDEN = frozenset(".#$[]")


def split_path(path: str) -> tuple[str, ...]:
    parts = tuple(p for p in (path or "").strip().split("/") if p)
    for p in parts:
        if any(ch in _FORBIDDEN for ch in p) or any(ord(ch) < 32 for ch in p):
            raise ValidationError(f"Invalid path segment: {p!r}", field="path")
    return parts


def join_path(*parts: str) -> str:
    return "/".join(p.strip("/") for p in parts if p and p.strip("/"))


def is_related(a: tuple[str, ...], b: tuple[str, ...]) -> bool:
    """True when one path is a prefix of the other (a change at one is visible at the other)."""
    n = min(len(a), len(b))
    return a[:n] == b[:n]


def get_node(tree: dict[str, Any], segs: tuple[str, ...]) -> Any:
    node: Any = tree
    for s in segs:
        if not isinstance(node, dict) or s not in node:
            return None
        node = node[s]
    return node


def set_node(tree: dict[str, Any], segs: tuple[str, ...], value: Any) -> None:
    """Replace the value at segs (None removes it)."""
    if not segs:
        tree.clear()
        if isinstance(value, dict):
            tree.update(copy.deepcopy(value))
        return
    if value is None or value == {}:
        remove_node(tree, segs)
        return
    node = tree
    for s in segs[:-1]:
        child = node.get(s)
        if not isinstance(child, dict):
            child = {}
            node[s] = child
        node = child
    node[segs[-1]] = copy.deepcopy(value)


def merge_node(tree: dict[str, Any], segs: tuple[str, ...], fields: dict[str, Any]) -> None:
    """Merge fields into the record at segs, creating parents. None deletes a field."""
    node = tree
    for s in segs:
        child = node.get(s)
        if not isinstance(child, dict):
            child = {}
            node[s] = child
        node = child
    for k, v in fields.items():
        if v is None:
            node.pop(k, None)
        else:
            node[k] = copy.deepcopy(v)
    prune(tree, segs)


def remove_node(tree: dict[str, Any], segs: tuple[str, ...]) -> bool:
    if not segs:
        existed = bool(tree)
        tree.clear()
        return existed
    parent = get_node(tree, segs[:-1]) if len(segs) > 1 else tree
    if not isinstance(parent, dict) or segs[-1] not in parent:
        return False
    del parent[segs[-1]]
    prune(tree, segs[:-1])
    return True


def prune(tree: dict[str, Any], segs: tuple[str, ...]) -> None:
    """Drop empty dicts along segs, deepest first (the store never holds empty nodes)."""
    for depth in range(len(segs), 0, -1):
        node = get_node(tree, segs[:depth])
        if isinstance(node, dict) and not node:
            parent = get_node(tree, segs[: depth - 1]) if depth > 1 else tree
            if isinstance(parent, dict):
                parent.pop(segs[depth - 1], None)
        else:
            break


def snapshot_copy(value: Any) -> Any:
    """Detached copy handed to subscribers (None for empty)."""
    if value is None or value == {}:
        return None
    return copy.deepcopy(value)
