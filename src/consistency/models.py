# src/consistency/models.py — v1
"""Consistency domain models: issues, reports and history records."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

CheckName = Literal["row_count", "sequential_ids", "duplicate_ids", "plausibility", "drift"]


class ConsistencyIssue(BaseModel):
    """Advisory finding; returned with the artifact, never blocks it."""

    check: CheckName
    severity: Literal["info", "warning"] = "warning"
    message: str
    penalty: int = 0


class DriftEvent(BaseModel):
    """Same digest, different item count than the most recent extraction."""

    previous_request_id: str
    previous_count: int
    current_count: int
    previous_timestamp: datetime

    @property
    def delta(self) -> int:
        return self.current_count - self.previous_count


class ConsistencyRecord(BaseModel):
    """Per-digest history entry used for drift detection."""

    content_hash: str
    request_id: str
    timestamp: datetime
    requirement_count: int
    consistency_score: int = Field(ge=0, le=100)


class ConsistencyReport(BaseModel):
    """Outcome of validating one generated artifact."""

    content_hash: str
    request_id: str
    expected_count: int
    actual_count: int = 0
    row_count: int = 0
    ids: list[str] = Field(default_factory=list)
    score: int = Field(default=100, ge=0, le=100)
    is_valid: bool = True
    issues: list[ConsistencyIssue] = Field(default_factory=list)
    drift: DriftEvent | None = None

    @property
    def warnings(self) -> list[ConsistencyIssue]:
        return [issue for issue in self.issues if issue.severity == "warning"]

    def issues_for(self, check: CheckName) -> list[ConsistencyIssue]:
        return [issue for issue in self.issues if issue.check == check]
