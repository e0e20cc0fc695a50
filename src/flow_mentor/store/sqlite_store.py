# src/flow_mentor/store/sqlite_store.py

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

from ..core.errors import StoreUnavailable
from ..core.ports import Fields
from .base import LocalStore
from .push_ids import PushIdGenerator
from .tree import merge_node

logger = logging.getLogger(__name__)


class SqliteStore(LocalStore):
    """
    SQLite-backed store: one row per record, keyed by its full path.

    The schema is intentionally simple:
    - records(path TEXT PRIMARY KEY, fields TEXT) where fields is a JSON object
    - a subtree is every row whose path equals the prefix or starts with "prefix/"

    Thread-safety:
    - each call opens its own SQLite connection and runs in a worker thread
      (asyncio.to_thread), so the event loop never blocks on disk.

    Subscribers are notified by this process only; other processes writing the
    same file are picked up on the next local mutation.
    """

    def __init__(self, db_path: str | Path = "store.sqlite3", *, key_gen: PushIdGenerator | None = None) -> None:
        super().__init__(key_gen=key_gen)
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_records()
        except Exception:
            total = -1
        logger.info("SqliteStore ready db=%s records=%s", self._db_path, total)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS records (
                    path TEXT PRIMARY KEY,
                    fields TEXT NOT NULL DEFAULT '{}'
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _str_to_fields(s: str | None) -> dict[str, Any]:
        if not s:
            return {}
        try:
            val = json.loads(s)
            return val if isinstance(val, dict) else {}
        except Exception:
            logger.warning("Skipping undecodable record payload")
            return {}

    async def _run(self, fn, *args: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args)
        except sqlite3.Error as e:
            raise StoreUnavailable(f"SQLite error: {e}") from e

    def count_records(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM records").fetchone()
            return int(n)
        finally:
            conn.close()

    # ---- storage primitives ----

    def _load_sync(self, segs: tuple[str, ...]) -> Any:
        prefix = "/".join(segs)
        conn = self._get_conn()
        try:
            if prefix:
                rows = conn.execute(
                    "SELECT path, fields FROM records WHERE path = ? OR substr(path, 1, ?) = ?",
                    (prefix, len(prefix) + 1, prefix + "/"),
                ).fetchall()
            else:
                rows = conn.execute("SELECT path, fields FROM records").fetchall()
        finally:
            conn.close()

        if not rows:
            return None

        tree: dict[str, Any] = {}
        for row in rows:
            rel = row["path"][len(prefix) :].strip("/")
            rel_segs = tuple(p for p in rel.split("/") if p)
            fields = self._str_to_fields(row["fields"])
            if fields:
                merge_node(tree, rel_segs, fields)
        return tree or None

    def _merge_sync(self, segs: tuple[str, ...], fields: Fields) -> None:
        path = "/".join(segs)
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT fields FROM records WHERE path = ?", (path,))
            row = cur.fetchone()
            current = self._str_to_fields(row["fields"]) if row else {}
            for k, v in fields.items():
                if v is None:
                    current.pop(k, None)
                else:
                    current[k] = v
            if current:
                cur.execute(
                    "INSERT INTO records(path, fields) VALUES (?, ?) "
                    "ON CONFLICT(path) DO UPDATE SET fields = excluded.fields",
                    (path, json.dumps(current, ensure_ascii=False)),
                )
            else:
                cur.execute("DELETE FROM records WHERE path = ?", (path,))
            conn.commit()
        finally:
            conn.close()

    def _delete_sync(self, segs: tuple[str, ...]) -> bool:
        prefix = "/".join(segs)
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "DELETE FROM records WHERE path = ? OR substr(path, 1, ?) = ?",
                (prefix, len(prefix) + 1, prefix + "/"),
            )
            conn.commit()
            return cur.rowcount > 0
        finally:
            conn.close()

    async def _load(self, segs: tuple[str, ...]) -> Any:
        return await self._run(self._load_sync, segs)

    async def _merge(self, segs: tuple[str, ...], fields: Fields) -> None:
        await self._run(self._merge_sync, segs, fields)

    async def _delete(self, segs: tuple[str, ...]) -> bool:
        return await self._run(self._delete_sync, segs)
