# src/cache/base_cache_store.py — v2
"""Abstract cache store with two addressing schemes over one artifact space.

Digest-keyed entries are content-addressed and immutable: a digest+kind pair
always maps to the same content. Document-keyed entries are mutable and hold
the current accepted version of a named document (the user-edit path).
Callers probe the document key before the digest key (see ``cache.lookup``).

Backends implement four record primitives over ``(namespace, key)`` pairs;
every record is an independently addressable unit and every write is atomic.
"""

from __future__ import annotations

import asyncio
import logging
import warnings
import weakref
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import ValidationError

from reqcache.cache.fingerprint import content_hash
from reqcache.cache.models import (
    ArtifactKind,
    CacheEntry,
    CachedDocument,
    CacheStats,
    ContentDigest,
    DeletionReport,
    FailedDeletion,
    KindStats,
)
from reqcache.consistency.table_parser import count_requirement_rows
from reqcache.core.errors import HashMismatchError, HashMismatchWarning, StorageError

logger = logging.getLogger(__name__)

DIGEST_NAMESPACE = "digest"
DOCUMENT_NAMESPACE = "document"
PUSHED_NAMESPACE = "pushed"

_KEY_SEPARATOR = ":"

HashMismatchPolicy = Literal["accept", "reject"]


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    def __init__(self, on_hash_mismatch: HashMismatchPolicy = "accept") -> None:
        self._on_hash_mismatch = on_hash_mismatch
        self._write_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    # --- Backend primitives ---

    @abstractmethod
    async def read_record(self, namespace: str, key: str) -> str | None:
        """Return the raw record payload, or None when absent."""

    @abstractmethod
    async def write_record(self, namespace: str, key: str, payload: str) -> None:
        """Atomically create or replace a record."""

    @abstractmethod
    async def delete_record(self, namespace: str, key: str) -> bool:
        """Remove a record. Returns False when it did not exist."""

    @abstractmethod
    async def scan_records(self, namespace: str) -> list[str]:
        """Return every record payload stored in a namespace."""

    @abstractmethod
    async def purge_namespace(self, namespace: str) -> int:
        """Remove every record in a namespace and return how many were removed."""

    def close(self) -> None:
        """Release backend resources (no-op by default)."""

    # --- Digest-keyed (immutable) entries ---

    async def get_by_digest(
        self, digest: ContentDigest | str, kind: ArtifactKind | str
    ) -> CacheEntry | None:
        """Retrieve the content-addressed entry for a digest and kind."""
        return await self._load_entry(
            DIGEST_NAMESPACE, self._digest_key(digest, kind)
        )

    async def put_by_digest(
        self,
        digest: ContentDigest | str,
        kind: ArtifactKind | str,
        content: Any,
        *,
        document_name: str | None = None,
        source_content_length: int = 0,
    ) -> CacheEntry:
        """Store a content-addressed entry.

        Re-putting identical content is a no-op. Different content under the
        same digest+kind is a hash-space violation: logged and accepted, or
        rejected with HashMismatchError when the store is configured so.
        Writes to one key are serialized.

        Raises:
            StorageError: On backend I/O failure.
            HashMismatchError: On collision with the reject policy.
        """
        kind = ArtifactKind(kind)
        key = self._digest_key(digest, kind)
        new_hash = content_hash(content)

        lock = self._write_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._write_locks[key] = lock

        async with lock:
            existing = await self._load_entry(DIGEST_NAMESPACE, key)
            if existing is not None:
                if existing.content_hash == new_hash:
                    logger.debug("Digest entry %s unchanged, skipping write", key[:24])
                    return existing
                if self._on_hash_mismatch == "reject":
                    raise HashMismatchError(key, existing.content_hash, new_hash)
                message = (
                    f"Digest entry {key[:24]} rewritten with different content "
                    f"({existing.content_hash[:12]} -> {new_hash[:12]}); "
                    "accepting last write"
                )
                logger.warning(
                    "%s",
                    message,
                    extra={"data": {"category": HashMismatchWarning.__name__}},
                )
                warnings.warn(message, HashMismatchWarning, stacklevel=2)

            entry = CacheEntry(
                key=key,
                kind=kind,
                content=content,
                content_hash=new_hash,
                created_at=datetime.now(timezone.utc),
                document_name=document_name,
                source_content_length=source_content_length,
            )
            await self.write_record(DIGEST_NAMESPACE, key, entry.model_dump_json())
            return entry

    async def remove(self, digest: ContentDigest | str) -> int:
        """Remove the entries of every kind stored under a digest."""
        removed = 0
        for kind in ArtifactKind:
            if await self.delete_record(
                DIGEST_NAMESPACE, self._digest_key(digest, kind)
            ):
                removed += 1
        return removed

    # --- Document-keyed (mutable) entries ---

    async def get_by_document(
        self, name: str, kind: ArtifactKind | str
    ) -> CacheEntry | None:
        """Retrieve the current accepted version of a named document."""
        return await self._load_entry(
            DOCUMENT_NAMESPACE, self._document_key(name, kind)
        )

    async def put_by_document(
        self,
        name: str,
        kind: ArtifactKind | str,
        content: Any,
        *,
        source_content_length: int = 0,
    ) -> CacheEntry:
        """Store (always overwrite) the current version of a named document."""
        kind = ArtifactKind(kind)
        key = self._document_key(name, kind)
        entry = CacheEntry(
            key=key,
            kind=kind,
            content=content,
            content_hash=content_hash(content),
            created_at=datetime.now(timezone.utc),
            document_name=name,
            source_content_length=source_content_length,
        )
        await self.write_record(DOCUMENT_NAMESPACE, key, entry.model_dump_json())
        return entry

    async def remove_document(self, name: str) -> int:
        """Remove a document's entries: its document keys and tagged digest keys."""
        removed = 0
        for kind in ArtifactKind:
            if await self.delete_record(
                DOCUMENT_NAMESPACE, self._document_key(name, kind)
            ):
                removed += 1
        for entry in await self._scan_entries(DIGEST_NAMESPACE):
            if entry.document_name == name and await self.delete_record(
                DIGEST_NAMESPACE, entry.key
            ):
                removed += 1
        if removed:
            logger.info("Removed %d cache entries for document %r", removed, name)
        return removed

    async def remove_documents(self, names: list[str]) -> DeletionReport:
        """Remove several documents; failures are reported, never raised."""
        report = DeletionReport()
        for name in names:
            try:
                removed = await self.remove_document(name)
            except StorageError as e:
                logger.error("Failed to delete document %r: %s", name, e)
                report.failed_documents.append(FailedDeletion(name=name, error=str(e)))
                continue
            if removed == 0:
                report.failed_documents.append(
                    FailedDeletion(name=name, error="Document not found")
                )
                continue
            report.deleted_count += 1
            report.deleted_documents.append(name)
        return report

    # --- Listing, stats, clear ---

    async def list_documents(self) -> list[CachedDocument]:
        """List cached documents, newest first."""
        documents: dict[str, CachedDocument] = {}
        requirement_sources: dict[str, tuple[int, CacheEntry]] = {}

        # Document-keyed entries are scanned last so they win for requirements.
        scans = (
            (0, await self._scan_entries(DIGEST_NAMESPACE)),
            (1, await self._scan_entries(DOCUMENT_NAMESPACE)),
        )
        for rank, entries in scans:
            for entry in entries:
                if not entry.document_name:
                    continue
                doc = documents.setdefault(
                    entry.document_name, CachedDocument(name=entry.document_name)
                )
                if entry.kind not in doc.kinds_present:
                    doc.kinds_present.append(entry.kind)
                if doc.date_cached is None or entry.created_at > doc.date_cached:
                    doc.date_cached = entry.created_at
                if entry.kind is ArtifactKind.REQUIREMENTS:
                    current = requirement_sources.get(entry.document_name)
                    if current is None or (rank, entry.created_at) > (
                        current[0],
                        current[1].created_at,
                    ):
                        requirement_sources[entry.document_name] = (rank, entry)

        kind_order = list(ArtifactKind)
        for name, doc in documents.items():
            doc.kinds_present.sort(key=kind_order.index)
            source = requirement_sources.get(name)
            if source is not None:
                doc.requirement_count = count_requirement_rows(
                    artifact_text(source[1].content)
                )

        return sorted(
            documents.values(),
            key=lambda d: (-(d.date_cached.timestamp() if d.date_cached else 0), d.name),
        )

    async def stats(self) -> CacheStats:
        """Aggregate entry count and payload size per kind."""
        result = CacheStats(by_kind={kind: KindStats() for kind in ArtifactKind})
        names: set[str] = set()
        for namespace in (DIGEST_NAMESPACE, DOCUMENT_NAMESPACE):
            for payload in await self.scan_records(namespace):
                entry = self._parse_entry(payload, namespace)
                if entry is None:
                    continue
                size = len(payload.encode("utf-8"))
                result.total_entries += 1
                result.total_bytes += size
                result.by_kind[entry.kind].entries += 1
                result.by_kind[entry.kind].bytes += size
                if entry.document_name:
                    names.add(entry.document_name)
        result.document_count = len(names)
        return result

    async def clear(self) -> int:
        """Remove every digest- and document-keyed entry. Pushed states survive."""
        removed = await self.purge_namespace(DIGEST_NAMESPACE)
        removed += await self.purge_namespace(DOCUMENT_NAMESPACE)
        logger.info("Cleared %d cache entries", removed)
        return removed

    # --- Helpers ---

    async def _load_entry(self, namespace: str, key: str) -> CacheEntry | None:
        payload = await self.read_record(namespace, key)
        if payload is None:
            return None
        return self._parse_entry(payload, key)

    async def _scan_entries(self, namespace: str) -> list[CacheEntry]:
        entries: list[CacheEntry] = []
        for payload in await self.scan_records(namespace):
            entry = self._parse_entry(payload, namespace)
            if entry is not None:
                entries.append(entry)
        return entries

    @staticmethod
    def _parse_entry(payload: str, label: str) -> CacheEntry | None:
        try:
            return CacheEntry.model_validate_json(payload)
        except ValidationError as e:
            logger.warning("Failed to read cache entry %s: %s", label, e)
            return None

    @staticmethod
    def _digest_key(digest: ContentDigest | str, kind: ArtifactKind | str) -> str:
        value = digest.hash if isinstance(digest, ContentDigest) else digest
        return f"{ArtifactKind(kind).value}{_KEY_SEPARATOR}{value}"

    @staticmethod
    def _document_key(name: str, kind: ArtifactKind | str) -> str:
        return f"{ArtifactKind(kind).value}{_KEY_SEPARATOR}{name}"


def artifact_text(content: Any) -> str:
    """Extract the generated text from a stored artifact payload."""
    if isinstance(content, str):
        return content
    if isinstance(content, dict):
        for field in ("content", "requirements", "tests", "text"):
            value = content.get(field)
            if isinstance(value, str):
                return value
    return ""
