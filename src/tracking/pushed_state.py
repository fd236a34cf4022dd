# src/tracking/pushed_state.py — v1
"""Record of generated sections already pushed to an external system.

A section moves one way, unpublished -> published. Re-pushing a published
section is an explicit update that refreshes its external IDs; the normal
local-edit path must refuse it (``assert_editable``).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from reqcache.cache.base_cache_store import PUSHED_NAMESPACE, BaseCacheStore
from reqcache.core.errors import SectionPublishedError
from reqcache.tracking.models import PushedState, PushedStateUpdate, TicketLink

logger = logging.getLogger(__name__)


class PushedStateTracker:
    """Persist pushed state per document name in the shared cache backend."""

    def __init__(self, store: BaseCacheStore) -> None:
        self._store = store

    async def get(self, document_name: str) -> PushedState | None:
        """Return the pushed state of a document, or None."""
        payload = await self._store.read_record(PUSHED_NAMESPACE, document_name)
        if payload is None:
            return None
        return _parse_state(payload, document_name)

    async def put(
        self,
        document_name: str,
        update: PushedStateUpdate | Mapping[str, Any],
    ) -> PushedState:
        """Replace the whole record (called after every push or update)."""
        if not isinstance(update, PushedStateUpdate):
            update = PushedStateUpdate.model_validate(update)
        state = PushedState(
            document_name=document_name,
            timestamp=datetime.now(timezone.utc),
            **update.model_dump(),
        )
        await self._store.write_record(
            PUSHED_NAMESPACE, document_name, state.model_dump_json()
        )
        logger.info(
            "Stored pushed state for %r (%d sections)",
            document_name,
            len(state.pushed_sections),
        )
        return state

    async def mark_published(
        self,
        document_name: str,
        section: int,
        external_ids: Iterable[str],
        ticket_link: TicketLink | None = None,
    ) -> PushedState:
        """Publish a section, or refresh the IDs of an already published one."""
        current = await self.get(document_name)
        update = (
            PushedStateUpdate(
                pushed_sections=set(current.pushed_sections),
                external_ids=dict(current.external_ids),
                ticket_links=dict(current.ticket_links),
            )
            if current is not None
            else PushedStateUpdate()
        )
        if section in update.pushed_sections:
            logger.info("Updating published section %d of %r", section, document_name)
        update.pushed_sections.add(section)
        update.external_ids[section] = list(external_ids)
        if ticket_link is not None:
            update.ticket_links[section] = ticket_link
        return await self.put(document_name, update)

    async def is_published(self, document_name: str, section: int) -> bool:
        state = await self.get(document_name)
        return state is not None and state.is_published(section)

    async def editable_sections(
        self, document_name: str, sections: Iterable[int]
    ) -> list[int]:
        """Filter candidate sections down to those still open for local edits."""
        state = await self.get(document_name)
        if state is None:
            return list(sections)
        return [s for s in sections if not state.is_published(s)]

    async def assert_editable(self, document_name: str, section: int) -> None:
        """Raise SectionPublishedError when a section was already pushed."""
        if await self.is_published(document_name, section):
            raise SectionPublishedError(document_name, section)

    async def clear(self, document_name: str) -> bool:
        """Forget the pushed state of a document."""
        removed = await self._store.delete_record(PUSHED_NAMESPACE, document_name)
        if removed:
            logger.info("Cleared pushed state for %r", document_name)
        return removed

    async def list_all(self) -> list[PushedState]:
        """Every stored pushed state, sorted by document name."""
        states: list[PushedState] = []
        for payload in await self._store.scan_records(PUSHED_NAMESPACE):
            state = _parse_state(payload, PUSHED_NAMESPACE)
            if state is not None:
                states.append(state)
        return sorted(states, key=lambda s: s.document_name)


def _parse_state(payload: str, label: str) -> PushedState | None:
    try:
        return PushedState.model_validate_json(payload)
    except ValidationError as e:
        logger.warning("Failed to read pushed state %s: %s", label, e)
        return None
