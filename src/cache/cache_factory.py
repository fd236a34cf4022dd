# src/cache/cache_factory.py — v3
"""Factory for cache store instantiation."""

from __future__ import annotations

from reqcache.cache.base_cache_store import BaseCacheStore
from reqcache.config.settings import Settings

_DEFAULT_ROOT = "~/.reqcache/cache"
_SQLITE_FILE = "reqcache.db"


def create_cache_store(settings: Settings | None = None) -> BaseCacheStore:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings. Defaults to the JSON backend.

    Returns:
        Configured BaseCacheStore implementation.
    """
    backend = "json" if settings is None else settings.cache_backend
    policy = "accept" if settings is None else settings.on_hash_mismatch
    cache_root = _DEFAULT_ROOT if settings is None else str(settings.cache_root)

    if backend == "json":
        from reqcache.cache.json_store import JsonCacheStore
        return JsonCacheStore(cache_root=cache_root, on_hash_mismatch=policy)

    if backend == "sqlite":
        from reqcache.cache.sqlite_store import SqliteCacheStore
        return SqliteCacheStore(
            db_path=f"{cache_root}/{_SQLITE_FILE}", on_hash_mismatch=policy
        )

    if backend == "redis":
        from reqcache.cache.redis_store import RedisCacheStore
        if settings is None or not settings.cache_redis_url:
            raise ValueError(
                "CACHE_REDIS_URL must be set when CACHE_BACKEND=redis"
            )
        return RedisCacheStore(
            redis_url=settings.cache_redis_url,
            prefix=settings.cache_redis_prefix,
            on_hash_mismatch=policy,
        )

    raise ValueError(f"Unsupported cache backend: {backend!r}")
