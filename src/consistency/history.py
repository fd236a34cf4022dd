# src/consistency/history.py — v1
"""Per-digest extraction history for drift detection.

An explicitly owned object: create one at process start and inject it into
the validator. Bounded per digest and optionally by record age.
"""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timedelta, timezone

from reqcache.consistency.models import ConsistencyRecord

logger = logging.getLogger(__name__)


class ConsistencyHistory:
    """In-memory history of consistency records keyed by content hash."""

    def __init__(
        self,
        max_records_per_digest: int = 50,
        max_age: timedelta | None = None,
    ) -> None:
        if max_records_per_digest < 1:
            raise ValueError("max_records_per_digest must be >= 1")
        self._max_records = max_records_per_digest
        self._max_age = max_age
        self._records: dict[str, deque[ConsistencyRecord]] = {}

    def append(self, record: ConsistencyRecord) -> None:
        """Add a record, evicting the oldest beyond the per-digest bound."""
        records = self._records.get(record.content_hash)
        if records is None:
            records = deque(maxlen=self._max_records)
            self._records[record.content_hash] = records
        records.append(record)
        self._evict_expired(record.content_hash, now=record.timestamp)

    def latest(self, content_hash: str) -> ConsistencyRecord | None:
        """Most recent record for a digest, ignoring expired ones."""
        self._evict_expired(content_hash)
        records = self._records.get(content_hash)
        return records[-1] if records else None

    def records(self, content_hash: str) -> list[ConsistencyRecord]:
        """All retained records for a digest, oldest first."""
        self._evict_expired(content_hash)
        return list(self._records.get(content_hash, ()))

    def digests(self) -> list[str]:
        return sorted(self._records)

    def clear(self, content_hash: str | None = None) -> None:
        """Drop one digest's history, or everything."""
        if content_hash is None:
            self._records.clear()
        else:
            self._records.pop(content_hash, None)

    def __len__(self) -> int:
        return sum(len(records) for records in self._records.values())

    def _evict_expired(self, content_hash: str, now: datetime | None = None) -> None:
        if self._max_age is None:
            return
        records = self._records.get(content_hash)
        if not records:
            return
        cutoff = (now or datetime.now(timezone.utc)) - self._max_age
        while records and records[0].timestamp < cutoff:
            records.popleft()
        if not records:
            del self._records[content_hash]
            logger.debug("History for %s expired", content_hash[:12])
