# src/cache/fingerprint.py — v3
"""Content digests used as cache keys.

Byte mode hashes uploaded files as-is. Text mode hashes the trimmed
``text|context`` concatenation so the same text under a different context
gets a different key.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from reqcache.cache.models import ContentDigest

_CONTEXT_SEPARATOR = "|"


def digest_bytes(raw_bytes: bytes) -> ContentDigest:
    """SHA-256 over raw document bytes."""
    return ContentDigest(
        hash=hashlib.sha256(raw_bytes).hexdigest(),
        source_length=len(raw_bytes),
        mode="bytes",
    )


def digest_text(text: str, context: str = "") -> ContentDigest:
    """SHA-256 over normalized text plus context.

    Args:
        text: Extracted or pasted content.
        context: Additional generation context (may be empty).

    Returns:
        ContentDigest whose ``source_length`` is the normalized length.
    """
    normalized = normalize_payload(text, context)
    return ContentDigest(
        hash=hashlib.sha256(normalized.encode("utf-8")).hexdigest(),
        source_length=len(normalized),
        mode="text",
    )


def compute_digest(payload: bytes | str, context: str = "") -> ContentDigest:
    """Dispatch to byte or text mode depending on the payload type."""
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return digest_bytes(bytes(payload))
    return digest_text(payload, context)


def normalize_payload(text: str, context: str = "") -> str:
    """Join text and context, trimming outer whitespace only."""
    return f"{text}{_CONTEXT_SEPARATOR}{context}".strip()


def content_hash(content: Any) -> str:
    """Stable SHA-256 of a JSON-serializable artifact (sorted keys)."""
    if isinstance(content, str):
        data = content
    else:
        data = json.dumps(
            content, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str
        )
    return hashlib.sha256(data.encode("utf-8")).hexdigest()
