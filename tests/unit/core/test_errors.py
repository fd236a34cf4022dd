# tests/unit/core/test_errors.py — v1
"""Tests for core/errors.py — error taxonomy."""

from __future__ import annotations

from reqcache.core.errors import (
    HashMismatchError,
    HashMismatchWarning,
    ReqCacheError,
    SectionPublishedError,
    StorageError,
)


class TestErrors:
    def test_storage_error_chains_cause(self):
        cause = OSError("disk full")
        err = StorageError("write", "analysis:abc", cause)
        assert err.operation == "write"
        assert err.cause is cause
        assert "disk full" in str(err)
        assert isinstance(err, ReqCacheError)

    def test_hash_mismatch_is_not_storage_error(self):
        err = HashMismatchError("analysis:abc", "1" * 64, "2" * 64)
        assert isinstance(err, ReqCacheError)
        assert not isinstance(err, StorageError)
        assert err.key == "analysis:abc"
        assert err.existing_hash == "1" * 64
        assert "111111111111" in str(err)

    def test_warning_category(self):
        assert issubclass(HashMismatchWarning, UserWarning)

    def test_section_published(self):
        err = SectionPublishedError("a.docx", 3)
        assert err.section == 3
        assert "a.docx" in str(err)
