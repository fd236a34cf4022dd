# src/cache/lookup.py — v1
"""Read-precedence lookup shared by every caller.

A document-keyed entry is the latest accepted version of a named document and
always supersedes a digest-keyed entry for the same artifact.
"""

from __future__ import annotations

import logging

from reqcache.cache.base_cache_store import BaseCacheStore
from reqcache.cache.models import ArtifactKind, CacheLookupResult, ContentDigest

logger = logging.getLogger(__name__)


async def resolve_entry(
    store: BaseCacheStore,
    kind: ArtifactKind | str,
    *,
    document_name: str | None = None,
    digest: ContentDigest | str | None = None,
) -> CacheLookupResult:
    """Probe the document key first, then the digest key."""
    if document_name:
        entry = await store.get_by_document(document_name, kind)
        if entry is not None:
            logger.debug("Cache hit (document) for %r/%s", document_name, kind)
            return CacheLookupResult(hit_level="document", entry=entry)

    if digest is not None:
        entry = await store.get_by_digest(digest, kind)
        if entry is not None:
            logger.debug("Cache hit (digest) for %s", str(digest)[:12])
            return CacheLookupResult(hit_level="digest", entry=entry)

    return CacheLookupResult()
