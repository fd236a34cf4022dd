# src/cache/json_store.py — v2
"""JSON file-based cache store (default CACHE_BACKEND=json).

One JSON file per record under ``CACHE_ROOT/<namespace>/``. Writes go to a
temporary file in the same directory and are moved into place with
``os.replace`` so readers never observe a partial entry.
"""

from __future__ import annotations

import hashlib
import logging
import os
import re
import tempfile
from pathlib import Path

from reqcache.cache.base_cache_store import BaseCacheStore, HashMismatchPolicy
from reqcache.core.errors import StorageError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_MAX_STEM = 80


class JsonCacheStore(BaseCacheStore):
    """File-based cache store using one JSON file per record."""

    def __init__(
        self,
        cache_root: Path | str,
        on_hash_mismatch: HashMismatchPolicy = "accept",
    ) -> None:
        super().__init__(on_hash_mismatch=on_hash_mismatch)
        self._root = Path(cache_root).expanduser()
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError("init", str(self._root), e) from e

    @property
    def root(self) -> Path:
        return self._root

    async def read_record(self, namespace: str, key: str) -> str | None:
        """Read one record file."""
        path = self._record_path(namespace, key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError("read", key, e) from e

    async def write_record(self, namespace: str, key: str, payload: str) -> None:
        """Write one record file atomically."""
        path = self._record_path(namespace, key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=path.parent, prefix=".", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError("write", key, e) from e

    async def delete_record(self, namespace: str, key: str) -> bool:
        """Remove one record file."""
        path = self._record_path(namespace, key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError("delete", key, e) from e
        return True

    async def scan_records(self, namespace: str) -> list[str]:
        """Read every record file of a namespace, sorted by file name."""
        directory = self._root / namespace
        if not directory.is_dir():
            return []

        payloads: list[str] = []
        try:
            paths = sorted(directory.glob("*.json"))
        except OSError as e:
            raise StorageError("scan", namespace, e) from e
        for path in paths:
            try:
                payloads.append(path.read_text(encoding="utf-8"))
            except FileNotFoundError:
                # Deleted between glob and read.
                continue
            except OSError as e:
                raise StorageError("scan", path.name, e) from e
        return payloads

    async def purge_namespace(self, namespace: str) -> int:
        """Delete every record file of a namespace."""
        directory = self._root / namespace
        if not directory.is_dir():
            return 0
        removed = 0
        try:
            for path in directory.glob("*.json"):
                path.unlink(missing_ok=True)
                removed += 1
        except OSError as e:
            raise StorageError("purge", namespace, e) from e
        return removed

    def _record_path(self, namespace: str, key: str) -> Path:
        """Return file path for a record key.

        The readable stem is truncated, so a short key hash keeps names unique.
        """
        stem = _UNSAFE_CHARS.sub("_", key).strip("_.")[:_MAX_STEM]
        suffix = hashlib.sha256(key.encode("utf-8")).hexdigest()[:12]
        return self._root / namespace / f"{stem}.{suffix}.json"
