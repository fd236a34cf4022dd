# src/cache/sqlite_store.py — v2
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3 — no external dependency. One row per record, each
write committed in its own transaction.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from reqcache.cache.base_cache_store import BaseCacheStore, HashMismatchPolicy
from reqcache.core.errors import StorageError

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS cache_records (
    namespace TEXT NOT NULL,
    key TEXT NOT NULL,
    payload TEXT NOT NULL,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (namespace, key)
);
"""


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed cache store for larger caches."""

    def __init__(
        self,
        db_path: Path | str,
        on_hash_mismatch: HashMismatchPolicy = "accept",
    ) -> None:
        super().__init__(on_hash_mismatch=on_hash_mismatch)
        self._db_path = Path(db_path).expanduser()
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self._db_path))
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(_SCHEMA)
        except (OSError, sqlite3.Error) as e:
            raise StorageError("init", str(self._db_path), e) from e

    async def read_record(self, namespace: str, key: str) -> str | None:
        """Fetch one row."""
        try:
            row = self._conn.execute(
                "SELECT payload FROM cache_records WHERE namespace = ? AND key = ?",
                (namespace, key),
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageError("read", key, e) from e
        return None if row is None else row[0]

    async def write_record(self, namespace: str, key: str, payload: str) -> None:
        """Upsert one row."""
        try:
            with self._conn:
                self._conn.execute(
                    """INSERT OR REPLACE INTO cache_records
                       (namespace, key, payload, updated_at)
                       VALUES (?, ?, ?, CURRENT_TIMESTAMP)""",
                    (namespace, key, payload),
                )
        except sqlite3.Error as e:
            raise StorageError("write", key, e) from e

    async def delete_record(self, namespace: str, key: str) -> bool:
        """Delete one row."""
        try:
            with self._conn:
                cursor = self._conn.execute(
                    "DELETE FROM cache_records WHERE namespace = ? AND key = ?",
                    (namespace, key),
                )
        except sqlite3.Error as e:
            raise StorageError("delete", key, e) from e
        return cursor.rowcount > 0

    async def scan_records(self, namespace: str) -> list[str]:
        """Fetch every row of a namespace, ordered by key."""
        try:
            rows = self._conn.execute(
                "SELECT payload FROM cache_records WHERE namespace = ? ORDER BY key",
                (namespace,),
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageError("scan", namespace, e) from e
        return [row[0] for row in rows]

    async def purge_namespace(self, namespace: str) -> int:
        """Delete every row of a namespace."""
        try:
            with self._conn:
                cursor = self._conn.execute(
                    "DELETE FROM cache_records WHERE namespace = ?", (namespace,)
                )
        except sqlite3.Error as e:
            raise StorageError("purge", namespace, e) from e
        return cursor.rowcount

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
