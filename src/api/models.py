# src/api/models.py — v2
"""API-level models returned by the facade generation flow."""

from __future__ import annotations

from pydantic import BaseModel, Field

from reqcache.cache.models import (
    ArtifactKind,
    CacheEntry,
    CacheLookupResult,
    ContentDigest,
)
from reqcache.classification.constraint import GenerationConstraint
from reqcache.classification.models import ClassificationResult
from reqcache.consistency.models import ConsistencyReport


class GenerationPlan(BaseModel):
    """Outcome of ``prepare_generation``: a cached artifact or a target to meet.

    When ``lookup.hit`` is true the caller returns the cached content and
    never calls the generator. Otherwise ``classification`` and
    ``constraint`` describe what the generator must produce.
    """

    request_id: str
    digest: ContentDigest
    kind: ArtifactKind
    document_name: str | None = None
    lookup: CacheLookupResult = Field(default_factory=CacheLookupResult)
    classification: ClassificationResult | None = None
    constraint: GenerationConstraint | None = None

    @property
    def needs_generation(self) -> bool:
        return not self.lookup.hit

    @property
    def cached_entry(self) -> CacheEntry | None:
        return self.lookup.entry


class GenerationOutcome(BaseModel):
    """Return value of ``accept_generation``."""

    entry: CacheEntry
    document_entry: CacheEntry | None = None
    report: ConsistencyReport
