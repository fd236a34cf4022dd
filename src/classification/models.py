# src/classification/models.py — v1
"""Classifier domain models: categories, element records, results."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ElementCategory(str, Enum):
    """Closed set of business-element categories, in rule-priority order."""

    DECISION = "decision"
    STEP = "step"
    PROCESS = "process"
    REQUIREMENT = "requirement"
    FLOW = "flow"
    USER_ACTION = "user_action"
    SHAPE = "shape"
    CONNECTOR = "connector"
    LOW_PRIORITY = "low_priority"


# Categories that describe business meaning rather than diagram structure.
BUSINESS_CATEGORIES = frozenset(
    {
        ElementCategory.DECISION,
        ElementCategory.STEP,
        ElementCategory.PROCESS,
        ElementCategory.REQUIREMENT,
        ElementCategory.FLOW,
    }
)


class Complexity(str, Enum):
    SIMPLE = "Simple"
    MODERATE = "Moderate"
    COMPLEX = "Complex"
    VERY_COMPLEX = "VeryComplex"


class ClassifierOptions(BaseModel):
    """Noise-filtering and fallback options."""

    min_line_length: int = 20
    max_line_length: int = 500
    enable_strict_mode: bool = False
    include_low_priority: bool = True


class ElementRecord(BaseModel):
    """One classified line."""

    category: ElementCategory
    text: str
    line_number: int
    section: str | None = None
    rule: str


class ClassificationResult(BaseModel):
    """Canonical element count used as the generation target."""

    count: int = 0
    breakdown: dict[ElementCategory, int] = Field(default_factory=dict)
    elements: list[ElementRecord] = Field(default_factory=list)
    complexity: Complexity = Complexity.SIMPLE
    business_count: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.count == 0
