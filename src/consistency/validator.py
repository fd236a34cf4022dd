# src/consistency/validator.py — v1
"""Structural and statistical validation of generated artifacts.

The generator is nondeterministic; the classifier count is not. Each check
below compares the generated table with that canonical target and records a
named issue with a score penalty. Issues are advisory: the caller always gets
the artifact back. Repeated extractions of the same digest are compared with
the injected history to surface drift.
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from reqcache.consistency.history import ConsistencyHistory
from reqcache.consistency.models import (
    CheckName,
    ConsistencyIssue,
    ConsistencyRecord,
    ConsistencyReport,
    DriftEvent,
)
from reqcache.consistency.table_parser import (
    ParsedTable,
    extract_ids,
    format_id,
    parse_table,
)

if TYPE_CHECKING:
    from reqcache.config.settings import Settings

logger = logging.getLogger(__name__)

MAX_SCORE = 100
ROW_COUNT_PENALTY = 15
GAP_PENALTY = 5
DUPLICATE_PENALTY = 15
PLAUSIBILITY_PENALTY = 10
MAX_LISTED_IDS = 10

# Plausibility heuristic: (content length bound, item bound).
SHORT_CONTENT_CHARS = 500
SHORT_CONTENT_MAX_ITEMS = 15
LONG_CONTENT_CHARS = 5000
LONG_CONTENT_MIN_ITEMS = 3

_STRUCTURAL_CHECKS: tuple[CheckName, ...] = (
    "row_count",
    "sequential_ids",
    "duplicate_ids",
    "plausibility",
)


class ConsistencyValidator:
    """Score a generated table against the canonical target count."""

    def __init__(
        self,
        history: ConsistencyHistory | None = None,
        *,
        id_prefix: str = "BR",
        row_tolerance: int = 2,
        count_tolerance: int = 0,
        valid_score_threshold: int = 80,
    ) -> None:
        self._history = history if history is not None else ConsistencyHistory()
        self._id_prefix = id_prefix
        self._row_tolerance = row_tolerance
        self._count_tolerance = count_tolerance
        self._threshold = valid_score_threshold

    @classmethod
    def from_settings(
        cls, settings: Settings, history: ConsistencyHistory | None = None
    ) -> ConsistencyValidator:
        return cls(
            history,
            id_prefix=settings.requirement_id_prefix,
            row_tolerance=settings.row_tolerance,
            count_tolerance=settings.count_tolerance,
            valid_score_threshold=settings.valid_score_threshold,
        )

    @property
    def history(self) -> ConsistencyHistory:
        return self._history

    def validate(
        self,
        artifact_text: str,
        *,
        content_hash: str,
        expected_count: int,
        source_length: int = 0,
        request_id: str | None = None,
        id_prefix: str | None = None,
    ) -> ConsistencyReport:
        """Validate one artifact and append the outcome to the history.

        Args:
            artifact_text: Generator output containing a markdown table.
            content_hash: Digest of the source content.
            expected_count: Canonical classifier count.
            source_length: Length of the source content (0 = unknown).
            request_id: Caller correlation ID; generated when omitted.
            id_prefix: ID prefix override (e.g. ``TC`` for test tables).

        Returns:
            ConsistencyReport. Never raises; an internal failure yields a
            zero score with every check flagged.
        """
        request_id = request_id or uuid.uuid4().hex[:12]
        prefix = id_prefix or self._id_prefix
        try:
            report = self._run_checks(
                artifact_text,
                content_hash=content_hash,
                expected_count=expected_count,
                source_length=source_length,
                request_id=request_id,
                id_prefix=prefix,
            )
        except Exception as e:
            logger.exception("Consistency validation failed for %s", content_hash[:12])
            return _failed_report(content_hash, request_id, expected_count, e)

        self._history.append(
            ConsistencyRecord(
                content_hash=content_hash,
                request_id=request_id,
                timestamp=datetime.now(timezone.utc),
                requirement_count=report.actual_count,
                consistency_score=report.score,
            )
        )

        if report.warnings:
            logger.warning(
                "Consistency score %d for %s (%d issues)",
                report.score,
                content_hash[:12],
                len(report.warnings),
                extra={"data": {"checks": [i.check for i in report.warnings]}},
            )
        else:
            logger.info("Consistency score %d for %s", report.score, content_hash[:12])
        return report

    # --- Checks ---

    def _run_checks(
        self,
        artifact_text: str,
        *,
        content_hash: str,
        expected_count: int,
        source_length: int,
        request_id: str,
        id_prefix: str,
    ) -> ConsistencyReport:
        table = parse_table(artifact_text or "", id_prefix)
        ids = extract_ids(table, id_prefix)

        issues: list[ConsistencyIssue] = []
        issues += self._check_row_count(table, expected_count)
        issues += _check_sequential_ids(table, ids, id_prefix, expected_count)
        issues += _check_duplicate_ids(ids)
        issues += _check_plausibility(table.item_count, source_length)

        drift = self._detect_drift(content_hash, table.item_count)
        if drift is not None:
            issues.append(
                ConsistencyIssue(
                    check="drift",
                    severity="info",
                    message=(
                        f"Same content produced {drift.current_count} items, "
                        f"previously {drift.previous_count} "
                        f"(request {drift.previous_request_id})"
                    ),
                )
            )

        score = max(0, MAX_SCORE - sum(issue.penalty for issue in issues))
        return ConsistencyReport(
            content_hash=content_hash,
            request_id=request_id,
            expected_count=expected_count,
            actual_count=table.item_count,
            row_count=table.row_count,
            ids=[item_id for item_id, _ in ids],
            score=score,
            is_valid=score >= self._threshold,
            issues=issues,
            drift=drift,
        )

    def _check_row_count(
        self, table: ParsedTable, expected_count: int
    ) -> list[ConsistencyIssue]:
        expected_rows = expected_count + 1  # header
        deviation = table.row_count - expected_rows
        if deviation == 0:
            return []

        message = (
            f"Table has {table.row_count} rows, expected {expected_rows} "
            f"({expected_count} items + header)"
        )
        if abs(deviation) <= self._row_tolerance:
            return [ConsistencyIssue(check="row_count", severity="info", message=message)]
        if abs(table.item_count - expected_count) <= self._count_tolerance:
            return [
                ConsistencyIssue(
                    check="row_count",
                    severity="info",
                    message=f"{message}; within count tolerance {self._count_tolerance}",
                )
            ]
        return [
            ConsistencyIssue(
                check="row_count", message=message, penalty=ROW_COUNT_PENALTY
            )
        ]

    def _detect_drift(self, content_hash: str, current_count: int) -> DriftEvent | None:
        previous = self._history.latest(content_hash)
        if previous is None or previous.requirement_count == current_count:
            return None
        logger.info(
            "Drift for %s: %d -> %d items",
            content_hash[:12],
            previous.requirement_count,
            current_count,
        )
        return DriftEvent(
            previous_request_id=previous.request_id,
            previous_count=previous.requirement_count,
            current_count=current_count,
            previous_timestamp=previous.timestamp,
        )


def _check_sequential_ids(
    table: ParsedTable, ids: list[tuple[str, int]], id_prefix: str, expected_count: int
) -> list[ConsistencyIssue]:
    issues: list[ConsistencyIssue] = []
    unidentified = table.item_count - len(ids)
    if unidentified > 0:
        issues.append(
            ConsistencyIssue(
                check="sequential_ids",
                message=f"{unidentified} rows have no {id_prefix}-NNN identifier",
                penalty=GAP_PENALTY * unidentified,
            )
        )

    # IDs past the expected range are reported once; gaps are searched below it.
    bound = max(expected_count, len(ids))
    numbers = {number for _, number in ids if number <= bound}
    beyond = [item_id for _, item_id in sorted({(n, i) for i, n in ids if n > bound})]
    if beyond:
        issues.append(
            ConsistencyIssue(
                check="sequential_ids",
                message=(
                    f"IDs beyond {format_id(id_prefix, bound)} are out of sequence: "
                    f"{_labels(beyond)}"
                ),
                penalty=GAP_PENALTY,
            )
        )
    if not numbers:
        return issues
    missing = [n for n in range(1, max(numbers) + 1) if n not in numbers]
    if missing:
        labels = _labels([format_id(id_prefix, n) for n in missing])
        issues.append(
            ConsistencyIssue(
                check="sequential_ids",
                message=f"Missing IDs in sequence: {labels}",
                penalty=GAP_PENALTY * len(missing),
            )
        )
    return issues


def _labels(item_ids: list[str]) -> str:
    shown = ", ".join(item_ids[:MAX_LISTED_IDS])
    if len(item_ids) > MAX_LISTED_IDS:
        shown += f" and {len(item_ids) - MAX_LISTED_IDS} more"
    return shown


def _check_duplicate_ids(ids: list[tuple[str, int]]) -> list[ConsistencyIssue]:
    counts = Counter(number for _, number in ids)
    duplicated = [item_id for item_id, number in dict.fromkeys(ids) if counts[number] > 1]
    if not duplicated:
        return []
    extra = sum(count - 1 for count in counts.values() if count > 1)
    return [
        ConsistencyIssue(
            check="duplicate_ids",
            message=f"Duplicate IDs: {', '.join(duplicated)}",
            penalty=DUPLICATE_PENALTY * extra,
        )
    ]


def _check_plausibility(item_count: int, source_length: int) -> list[ConsistencyIssue]:
    if source_length <= 0:
        return []
    if source_length < SHORT_CONTENT_CHARS and item_count > SHORT_CONTENT_MAX_ITEMS:
        return [
            ConsistencyIssue(
                check="plausibility",
                message=(
                    f"{item_count} items from {source_length} characters of content; "
                    "likely over-extraction"
                ),
                penalty=PLAUSIBILITY_PENALTY,
            )
        ]
    if source_length > LONG_CONTENT_CHARS and item_count < LONG_CONTENT_MIN_ITEMS:
        return [
            ConsistencyIssue(
                check="plausibility",
                message=(
                    f"Only {item_count} items from {source_length} characters of content; "
                    "likely under-extraction"
                ),
                penalty=PLAUSIBILITY_PENALTY,
            )
        ]
    return []


def _failed_report(
    content_hash: str, request_id: str, expected_count: int, error: Exception
) -> ConsistencyReport:
    issues = [
        ConsistencyIssue(
            check=check,
            message=f"Check not completed: {error}",
            penalty=MAX_SCORE,
        )
        for check in _STRUCTURAL_CHECKS
    ]
    return ConsistencyReport(
        content_hash=content_hash,
        request_id=request_id,
        expected_count=expected_count,
        score=0,
        is_valid=False,
        issues=issues,
    )
