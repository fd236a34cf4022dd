# src/api/facade.py — v2
"""Public API facade — single entry point for controllers.

Usage:
    from reqcache.api.facade import CacheFacade
    facade = CacheFacade.from_settings(load_settings())
    plan = await facade.prepare_generation(text, name="spec.docx")
    if plan.needs_generation:
        artifact = await generator(plan.constraint.to_prompt(), text)
        outcome = await facade.accept_generation(plan, artifact)

The generator itself is external; this facade only decides whether it has to
be called, what target it must meet, and how far its output drifted.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from datetime import timedelta
from typing import Any

from reqcache.api.models import GenerationOutcome, GenerationPlan
from reqcache.cache.base_cache_store import BaseCacheStore, artifact_text
from reqcache.cache.cache_factory import create_cache_store
from reqcache.cache.fingerprint import compute_digest
from reqcache.cache.lookup import resolve_entry
from reqcache.cache.models import (
    ArtifactKind,
    CacheEntry,
    CachedDocument,
    CacheStats,
    ContentDigest,
    DeletionReport,
)
from reqcache.classification.classifier import ElementClassifier
from reqcache.classification.constraint import build_generation_constraint
from reqcache.classification.models import ClassifierOptions
from reqcache.config.settings import Settings
from reqcache.consistency.history import ConsistencyHistory
from reqcache.consistency.validator import ConsistencyValidator
from reqcache.logging.context import set_operation_context, set_request_context
from reqcache.tracking.models import PushedState, PushedStateUpdate
from reqcache.tracking.pushed_state import PushedStateTracker

logger = logging.getLogger(__name__)

Digest = ContentDigest | str


class CacheFacade:
    """Controller-facing coroutines over the cache, classifier and validator."""

    def __init__(
        self,
        store: BaseCacheStore,
        classifier: ElementClassifier | None = None,
        validator: ConsistencyValidator | None = None,
        pushed: PushedStateTracker | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._store = store
        self._classifier = classifier or ElementClassifier(
            _classifier_options(self._settings)
        )
        self._validator = validator or ConsistencyValidator.from_settings(
            self._settings, _history(self._settings)
        )
        self._pushed = pushed or PushedStateTracker(store)

    @classmethod
    def from_settings(cls, settings: Settings) -> CacheFacade:
        """Wire every component from one Settings instance."""
        return cls(create_cache_store(settings), settings=settings)

    @property
    def store(self) -> BaseCacheStore:
        return self._store

    @property
    def validator(self) -> ConsistencyValidator:
        return self._validator

    @property
    def pushed(self) -> PushedStateTracker:
        return self._pushed

    def close(self) -> None:
        self._store.close()

    # --- Analysis results (digest-keyed, document precedence on read) ---

    async def has_cached_results(self, digest: Digest, name: str | None = None) -> bool:
        return (await self.get_cached_results(digest, name)) is not None

    async def get_cached_results(self, digest: Digest, name: str | None = None) -> Any:
        """Return cached analysis content, preferring the named document."""
        set_operation_context("get_cached_results")
        lookup = await resolve_entry(
            self._store, ArtifactKind.ANALYSIS, document_name=name, digest=digest
        )
        return lookup.entry.content if lookup.entry is not None else None

    async def store_cached_results(
        self, digest: Digest, results: Any, name: str | None = None
    ) -> CacheEntry:
        set_operation_context("store_cached_results")
        return await self._store.put_by_digest(
            digest,
            ArtifactKind.ANALYSIS,
            results,
            document_name=name,
            source_content_length=_source_length(digest),
        )

    # --- Document-keyed results ---

    async def has_document_cached_results(
        self, name: str, kind: ArtifactKind | str = ArtifactKind.ANALYSIS
    ) -> bool:
        return (await self._store.get_by_document(name, kind)) is not None

    async def get_document_cached_results(
        self, name: str, kind: ArtifactKind | str = ArtifactKind.ANALYSIS
    ) -> Any:
        entry = await self._store.get_by_document(name, kind)
        return entry.content if entry is not None else None

    async def store_document_cached_results(
        self, name: str, kind: ArtifactKind | str, results: Any
    ) -> CacheEntry:
        set_operation_context("store_document_cached_results")
        return await self._store.put_by_document(name, kind, results)

    # --- Test results ---

    async def get_cached_test_results(
        self, digest: Digest, name: str | None = None
    ) -> Any:
        lookup = await resolve_entry(
            self._store, ArtifactKind.TESTS, document_name=name, digest=digest
        )
        return lookup.entry.content if lookup.entry is not None else None

    async def store_cached_test_results(
        self,
        digest: Digest,
        results: Any,
        source_content: str,
        name: str | None = None,
    ) -> CacheEntry:
        set_operation_context("store_cached_test_results")
        return await self._store.put_by_digest(
            digest,
            ArtifactKind.TESTS,
            results,
            document_name=name,
            source_content_length=len(source_content or ""),
        )

    # --- Maintenance ---

    async def get_cache_stats(self) -> CacheStats:
        return await self._store.stats()

    async def clear_cache(self) -> int:
        """Drop every cached artifact and the drift history."""
        set_operation_context("clear_cache")
        removed = await self._store.clear()
        self._validator.history.clear()
        return removed

    async def remove_cached_file(self, digest: Digest) -> bool:
        set_operation_context("remove_cached_file")
        return (await self._store.remove(digest)) > 0

    async def list_cached_documents(self) -> list[CachedDocument]:
        return await self._store.list_documents()

    async def delete_multiple_documents(self, names: list[str]) -> DeletionReport:
        """Delete documents with their pushed state; failures are reported."""
        set_operation_context("delete_multiple_documents")
        report = await self._store.remove_documents(names)
        for name in report.deleted_documents:
            await self._pushed.clear(name)
        logger.info(
            "Deleted %d documents (%d failed)", report.deleted_count, report.failed_count
        )
        return report

    # --- Pushed state ---

    async def get_pushed_state(self, name: str) -> PushedState | None:
        return await self._pushed.get(name)

    async def store_pushed_state(
        self, name: str, state: PushedStateUpdate | Mapping[str, Any]
    ) -> PushedState:
        set_operation_context("store_pushed_state")
        return await self._pushed.put(name, state)

    async def clear_pushed_state(self, name: str) -> bool:
        return await self._pushed.clear(name)

    async def get_all_pushed_states(self) -> list[PushedState]:
        return await self._pushed.list_all()

    # --- Generation flow ---

    async def prepare_generation(
        self,
        content: bytes | str,
        context: str = "",
        name: str | None = None,
        kind: ArtifactKind | str = ArtifactKind.REQUIREMENTS,
        *,
        text: str | None = None,
        force: bool = False,
        request_id: str | None = None,
    ) -> GenerationPlan:
        """Digest the content and decide whether the generator must run.

        Args:
            content: Uploaded bytes or extracted/pasted text.
            context: Additional generation context (text mode only).
            name: Document name; its accepted version wins over the digest.
            kind: Artifact kind about to be generated.
            text: Extracted text of an uploaded file; required on a cache
                miss when ``content`` is bytes, since only text is classified.
            force: Skip the cache lookup and always classify.
            request_id: Caller correlation ID; generated when omitted.

        Returns:
            GenerationPlan holding either the cached entry or the
            classification and generator constraint.

        Raises:
            ValueError: If classification is needed and ``content`` is bytes
                without ``text``.
        """
        kind = ArtifactKind(kind)
        request_id = request_id or uuid.uuid4().hex[:12]
        digest = compute_digest(content, context)
        set_request_context(request_id, content_hash=digest.hash, document_name=name)
        set_operation_context("prepare_generation")

        plan = GenerationPlan(
            request_id=request_id, digest=digest, kind=kind, document_name=name
        )
        if not force:
            plan.lookup = await resolve_entry(
                self._store, kind, document_name=name, digest=digest
            )
            if plan.lookup.hit:
                logger.info("Cache hit (%s), generator not needed", plan.lookup.hit_level)
                return plan

        if text is None:
            if not isinstance(content, str):
                raise ValueError("Byte content needs its extracted text to be classified")
            text = content
        plan.classification = self._classifier.classify(text)
        plan.constraint = build_generation_constraint(
            plan.classification, id_prefix=self._id_prefix(kind)
        )
        logger.info(
            "Cache miss, target %d elements (%s)",
            plan.classification.count,
            plan.classification.complexity.value,
        )
        return plan

    async def accept_generation(
        self,
        plan: GenerationPlan,
        artifact: Any,
        request_id: str | None = None,
    ) -> GenerationOutcome:
        """Validate generator output and store it under digest and document keys.

        The artifact is always stored; consistency issues are reported in the
        outcome, never raised.

        Raises:
            ValueError: If the plan was a cache hit (nothing was classified).
            StorageError: On backend failure.
            HashMismatchError: On digest collision with the reject policy.
        """
        if plan.classification is None:
            raise ValueError("Plan has no classification; it was served from cache")
        request_id = request_id or plan.request_id
        set_request_context(
            request_id, content_hash=plan.digest.hash, document_name=plan.document_name
        )
        set_operation_context("accept_generation")

        report = self._validator.validate(
            artifact_text(artifact),
            content_hash=plan.digest.hash,
            expected_count=plan.classification.count,
            source_length=plan.digest.source_length,
            request_id=request_id,
            id_prefix=self._id_prefix(plan.kind),
        )
        entry = await self._store.put_by_digest(
            plan.digest,
            plan.kind,
            artifact,
            document_name=plan.document_name,
            source_content_length=plan.digest.source_length,
        )
        document_entry = None
        if plan.document_name:
            document_entry = await self._store.put_by_document(
                plan.document_name,
                plan.kind,
                artifact,
                source_content_length=plan.digest.source_length,
            )
        return GenerationOutcome(entry=entry, document_entry=document_entry, report=report)

    async def update_document_section(
        self,
        name: str,
        kind: ArtifactKind | str,
        section: int,
        content: Any,
    ) -> CacheEntry:
        """Replace one section of a document's accepted version.

        Sections are stored under ``content["sections"][str(section)]``; other
        keys of the stored payload are preserved.

        Raises:
            SectionPublishedError: If the section was already pushed.
        """
        set_operation_context("update_document_section")
        await self._pushed.assert_editable(name, section)

        current = await self._store.get_by_document(name, kind)
        payload: dict[str, Any] = {}
        source_length = 0
        if current is not None:
            source_length = current.source_content_length
            if isinstance(current.content, dict):
                payload = dict(current.content)
            elif isinstance(current.content, str):
                payload = {"content": current.content}
        sections = dict(payload.get("sections") or {})
        sections[str(section)] = content
        payload["sections"] = sections
        return await self._store.put_by_document(
            name, kind, payload, source_content_length=source_length
        )

    def _id_prefix(self, kind: ArtifactKind) -> str:
        if kind is ArtifactKind.TESTS:
            return self._settings.test_id_prefix
        return self._settings.requirement_id_prefix


def _classifier_options(settings: Settings) -> ClassifierOptions:
    return ClassifierOptions(
        min_line_length=settings.classifier_min_line_length,
        max_line_length=settings.classifier_max_line_length,
        enable_strict_mode=settings.classifier_strict_mode,
        include_low_priority=settings.classifier_include_low_priority,
    )


def _history(settings: Settings) -> ConsistencyHistory:
    max_age = (
        timedelta(seconds=settings.history_max_age_seconds)
        if settings.history_max_age_seconds
        else None
    )
    return ConsistencyHistory(
        max_records_per_digest=settings.history_max_records_per_digest,
        max_age=max_age,
    )


def _source_length(digest: Digest) -> int:
    return digest.source_length if isinstance(digest, ContentDigest) else 0

