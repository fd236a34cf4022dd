# src/cache/redis_store.py — v2
"""Redis-based cache store (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
One Redis string per record plus a per-namespace index set used for scans.
"""

from __future__ import annotations

import logging
from typing import Any

from reqcache.cache.base_cache_store import BaseCacheStore, HashMismatchPolicy
from reqcache.core.errors import StorageError

logger = logging.getLogger(__name__)

_INDEX_SUFFIX = "__index__"


class RedisCacheStore(BaseCacheStore):
    """Redis-backed cache store for shared deployments."""

    def __init__(
        self,
        redis_url: str = "",
        prefix: str = "reqcache:",
        on_hash_mismatch: HashMismatchPolicy = "accept",
        client: Any | None = None,
    ) -> None:
        super().__init__(on_hash_mismatch=on_hash_mismatch)
        try:
            import redis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._errors: tuple[type[BaseException], ...] = (redis.RedisError,)
        self._prefix = prefix
        if client is not None:
            self._client = client
        else:
            if not redis_url:
                raise ValueError("CACHE_REDIS_URL must be set when CACHE_BACKEND=redis")
            self._client = redis.Redis.from_url(redis_url, decode_responses=True)

    async def read_record(self, namespace: str, key: str) -> str | None:
        """GET one record."""
        try:
            return self._client.get(self._redis_key(namespace, key))
        except self._errors as e:
            raise StorageError("read", key, e) from e

    async def write_record(self, namespace: str, key: str, payload: str) -> None:
        """SET one record and index it for scans."""
        try:
            self._client.set(self._redis_key(namespace, key), payload)
            self._client.sadd(self._index_key(namespace), key)
        except self._errors as e:
            raise StorageError("write", key, e) from e

    async def delete_record(self, namespace: str, key: str) -> bool:
        """DEL one record and drop it from the index."""
        try:
            deleted = self._client.delete(self._redis_key(namespace, key))
            self._client.srem(self._index_key(namespace), key)
        except self._errors as e:
            raise StorageError("delete", key, e) from e
        return bool(deleted)

    async def scan_records(self, namespace: str) -> list[str]:
        """Read every indexed record of a namespace, ordered by key."""
        try:
            keys = sorted(self._client.smembers(self._index_key(namespace)))
            payloads: list[str] = []
            for key in keys:
                payload = self._client.get(self._redis_key(namespace, key))
                if payload is not None:
                    payloads.append(payload)
        except self._errors as e:
            raise StorageError("scan", namespace, e) from e
        return payloads

    async def purge_namespace(self, namespace: str) -> int:
        """Delete every indexed record of a namespace and its index."""
        removed = 0
        try:
            for key in list(self._client.smembers(self._index_key(namespace))):
                removed += int(bool(self._client.delete(self._redis_key(namespace, key))))
            self._client.delete(self._index_key(namespace))
        except self._errors as e:
            raise StorageError("purge", namespace, e) from e
        return removed

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()

    def _redis_key(self, namespace: str, key: str) -> str:
        return f"{self._prefix}{namespace}:{key}"

    def _index_key(self, namespace: str) -> str:
        return f"{self._prefix}{namespace}:{_INDEX_SUFFIX}"
