# src/cache/models.py — v2
"""Cache domain models: ContentDigest, CacheEntry, listings and stats."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


class ArtifactKind(str, Enum):
    """Partition of the artifact space."""

    ANALYSIS = "analysis"
    REQUIREMENTS = "requirements"
    TESTS = "tests"


class ContentDigest(BaseModel):
    """Fingerprint of a payload used as the content-addressed cache key."""

    hash: str
    algorithm: Literal["sha256"] = "sha256"
    source_length: int = 0
    mode: Literal["bytes", "text"] = "bytes"

    def __str__(self) -> str:
        return self.hash


class CacheEntry(BaseModel):
    """Single cached artifact, addressed by digest or by document name."""

    key: str
    kind: ArtifactKind
    content: Any
    content_hash: str
    created_at: datetime
    document_name: str | None = None
    source_content_length: int = 0


class CacheLookupResult(BaseModel):
    """Outcome of a precedence lookup (document key first, then digest)."""

    hit_level: Literal["document", "digest"] | None = None
    entry: CacheEntry | None = None

    @property
    def hit(self) -> bool:
        return self.entry is not None


class CachedDocument(BaseModel):
    """One row of ``list_documents``."""

    name: str
    kinds_present: list[ArtifactKind] = Field(default_factory=list)
    requirement_count: int = 0
    date_cached: datetime | None = None


class KindStats(BaseModel):
    entries: int = 0
    bytes: int = 0


class CacheStats(BaseModel):
    """Aggregate size of the cache, split per artifact kind."""

    total_entries: int = 0
    total_bytes: int = 0
    document_count: int = 0
    by_kind: dict[ArtifactKind, KindStats] = Field(default_factory=dict)

    @property
    def total_megabytes(self) -> float:
        return round(self.total_bytes / (1024 * 1024), 2)


class FailedDeletion(BaseModel):
    name: str
    error: str


class DeletionReport(BaseModel):
    """Result of a bulk document deletion; partial failure is not fatal."""

    deleted_count: int = 0
    deleted_documents: list[str] = Field(default_factory=list)
    failed_documents: list[FailedDeletion] = Field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failed_documents)
