# src/logging/handlers.py — v2
"""Rotating file handler for the reqcache log file."""

from __future__ import annotations

import logging
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

_SIZE_UNITS = {"B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3}


def parse_size(size: str | int) -> int:
    """Parse a size such as ``"10MB"``, ``"512 KB"`` or ``4096`` into bytes."""
    if isinstance(size, int):
        return size
    match = re.match(r"^(\d+)\s*(B|KB|MB|GB)?$", size.strip(), re.IGNORECASE)
    if not match:
        raise ValueError(f"Invalid size format: {size!r}. Use e.g. '10MB'.")
    unit = (match.group(2) or "B").upper()
    return int(match.group(1)) * _SIZE_UNITS[unit]


def create_rotating_handler(
    log_file: str | Path,
    rotation: str | int = "10MB",
    retention: int = 30,
    level: int = logging.NOTSET,
) -> RotatingFileHandler:
    """Create a size-based rotating file handler.

    Args:
        log_file: Path to the log file; parent directories are created.
        rotation: Max file size before rotation.
        retention: Number of rotated files to keep.
        level: Handler level (NOTSET inherits from the logger).
    """
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        filename=str(path),
        maxBytes=parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler
