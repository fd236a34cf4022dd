# src/core/errors.py — v1
"""Error taxonomy.

Only storage failures and explicit integrity/edit violations are raised.
Cache misses are ``None``, an all-noise classification is ``count == 0`` and
consistency problems are returned as data (``ConsistencyIssue``).
"""

from __future__ import annotations


class ReqCacheError(Exception):
    """Base class for all reqcache errors."""


class StorageError(ReqCacheError):
    """Backend I/O failure while reading or writing persisted state."""

    def __init__(self, operation: str, key: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.key = key
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Storage {operation} failed for {key!r}{detail}")


class HashMismatchError(ReqCacheError):
    """Digest-keyed entry rewritten with different content (reject policy)."""

    def __init__(self, key: str, existing_hash: str, new_hash: str) -> None:
        self.key = key
        self.existing_hash = existing_hash
        self.new_hash = new_hash
        super().__init__(
            f"Digest entry {key!r} already holds content {existing_hash[:12]}, "
            f"refusing {new_hash[:12]}",
        )


class HashMismatchWarning(UserWarning):
    """Digest-keyed entry rewritten with different content (accept policy)."""


class SectionPublishedError(ReqCacheError):
    """Attempt to edit a section that was already pushed to an external system."""

    def __init__(self, document_name: str, section: int) -> None:
        self.document_name = document_name
        self.section = section
        super().__init__(
            f"Section {section} of {document_name!r} is published; "
            "use an explicit update push instead of a local edit"
        )
