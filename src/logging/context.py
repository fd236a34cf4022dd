# src/logging/context.py — v2
"""Contextual logging support — attach document_name, content_hash and
request_id to log records.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging — set per request.
_document_name: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "document_name", default=None
)
_content_hash: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "content_hash", default=None
)
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_operation: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "operation", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    document_name: str | None = None
    content_hash: str | None = None
    request_id: str | None = None
    operation: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        document_name=_document_name.get(),
        content_hash=_content_hash.get(),
        request_id=_request_id.get(),
        operation=_operation.get(),
    )


def set_request_context(
    request_id: str,
    content_hash: str | None = None,
    document_name: str | None = None,
) -> None:
    """Set request-level context (called once per facade request)."""
    _request_id.set(request_id)
    # Short prefix is enough to correlate log lines.
    _content_hash.set(content_hash[:12] if content_hash else None)
    _document_name.set(document_name)


def set_operation_context(operation: str | None) -> None:
    """Set the store/validator operation currently running."""
    _operation.set(operation)


def clear_context() -> None:
    """Reset all context variables."""
    _document_name.set(None)
    _content_hash.set(None)
    _request_id.set(None)
    _operation.set(None)
