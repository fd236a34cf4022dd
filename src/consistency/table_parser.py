# src/consistency/table_parser.py — v1
"""Markdown table parsing for generated requirement and test artifacts.

Generators return a pipe table whose first column carries a sequential ID
(``BR-001``, ``BR-002``, ...). Separator rows (``|---|---|``) are ignored.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

_SEPARATOR_ROW = re.compile(r"^[\s|:\-]+$")
_HEADER_MARKERS = ("requirement id", "business requirement", "test case id", "test id")


@dataclass
class ParsedTable:
    """Rows of a markdown table split into header and item rows."""

    header_rows: list[list[str]] = field(default_factory=list)
    item_rows: list[list[str]] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        """All structured rows, header included."""
        return len(self.header_rows) + len(self.item_rows)

    @property
    def item_count(self) -> int:
        return len(self.item_rows)


def split_cells(line: str) -> list[str]:
    """Split a table row into trimmed cells, dropping the outer pipes."""
    stripped = line.strip()
    if stripped.startswith("|"):
        stripped = stripped[1:]
    if stripped.endswith("|"):
        stripped = stripped[:-1]
    return [cell.strip() for cell in stripped.split("|")]


def parse_table(text: str, id_prefix: str = "BR") -> ParsedTable:
    """Parse every pipe-table row of an artifact.

    Rows before the first row whose first cell holds an ID are headers.
    """
    id_pattern = id_regex(id_prefix)
    table = ParsedTable()
    for line in text.splitlines():
        if "|" not in line or _SEPARATOR_ROW.match(line):
            continue
        cells = split_cells(line)
        if not table.item_rows and not (cells and id_pattern.search(cells[0])):
            table.header_rows.append(cells)
        else:
            table.item_rows.append(cells)
    return table


def extract_ids(table: ParsedTable, id_prefix: str = "BR") -> list[tuple[str, int]]:
    """Return ``(id, number)`` for each item row, in row order."""
    id_pattern = id_regex(id_prefix)
    ids: list[tuple[str, int]] = []
    for cells in table.item_rows:
        match = id_pattern.search(cells[0]) if cells else None
        if match:
            ids.append((match.group(0).upper(), int(match.group(1))))
    return ids


def count_requirement_rows(text: str) -> int:
    """Count data rows of a requirements table, excluding header and separators."""
    count = 0
    for line in text.splitlines():
        if "|" not in line or _SEPARATOR_ROW.match(line):
            continue
        lowered = line.lower()
        if any(marker in lowered for marker in _HEADER_MARKERS):
            continue
        count += 1
    return count


def id_regex(id_prefix: str) -> re.Pattern[str]:
    """Pattern matching ``PREFIX-NNN`` (three or more digits)."""
    return re.compile(rf"\b{re.escape(id_prefix)}-(\d{{3,}})\b", re.IGNORECASE)


def format_id(id_prefix: str, number: int) -> str:
    return f"{id_prefix}-{number:03d}"
