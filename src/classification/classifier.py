# src/classification/classifier.py — v1
"""Deterministic rule-based element classifier.

Produces the canonical element count handed to the generator as a hard
target. The result is a pure function of the input text and options: no
clock, no randomness, and breakdown keys follow rule priority.
"""

from __future__ import annotations

import logging
import re

from reqcache.classification.models import (
    BUSINESS_CATEGORIES,
    ClassificationResult,
    ClassifierOptions,
    Complexity,
    ElementCategory,
    ElementRecord,
)
from reqcache.classification.rules import (
    RULES,
    Rule,
    first_match,
    has_business_vocabulary,
    is_technical_content,
)

logger = logging.getLogger(__name__)

_HEADING = re.compile(r"^#{1,6}\s+")
_LOW_PRIORITY_RULE = "low_priority_vocabulary"

# Upper bounds of total elements per complexity level.
_COMPLEXITY_BREAKPOINTS: tuple[tuple[int, Complexity], ...] = (
    (10, Complexity.SIMPLE),
    (25, Complexity.MODERATE),
    (50, Complexity.COMPLEX),
)
_LEVELS = list(Complexity)
_BUSINESS_SHARE_BUMP = 0.6
_BUSINESS_BUMP_MIN_TOTAL = 5


class ElementClassifier:
    """Classify each line of content into at most one business category."""

    def __init__(
        self,
        options: ClassifierOptions | None = None,
        rules: tuple[Rule, ...] = RULES,
    ) -> None:
        self._options = options or ClassifierOptions()
        self._rules = rules

    @property
    def options(self) -> ClassifierOptions:
        return self._options

    def classify(self, content: str) -> ClassificationResult:
        """Classify content line by line.

        Args:
            content: Extracted document text (any format, already textual).

        Returns:
            ClassificationResult; empty or all-noise input yields count 0.
        """
        opts = self._options
        elements: list[ElementRecord] = []
        section: str | None = None
        lines = content.splitlines() if content else []
        filtered = 0

        for line_number, raw_line in enumerate(lines, start=1):
            line = raw_line.strip()
            if not line:
                continue

            if _HEADING.match(line):
                section = _HEADING.sub("", line).strip() or None
                continue

            if not opts.min_line_length <= len(line) <= opts.max_line_length:
                filtered += 1
                continue

            if is_technical_content(line):
                filtered += 1
                continue

            category, rule_name = self.classify_line(line)
            if category is None:
                filtered += 1
                continue

            elements.append(
                ElementRecord(
                    category=category,
                    text=line,
                    line_number=line_number,
                    section=section,
                    rule=rule_name,
                )
            )

        breakdown = self._breakdown(elements)
        business_count = sum(
            n for category, n in breakdown.items() if category in BUSINESS_CATEGORIES
        )
        result = ClassificationResult(
            count=len(elements),
            breakdown=breakdown,
            elements=elements,
            complexity=complexity_for(len(elements), business_count),
            business_count=business_count,
            metadata={
                "total_lines": len(lines),
                "filtered_lines": filtered,
                "sections": _unique_sections(elements),
            },
        )

        if result.is_empty:
            logger.debug("Classification produced no elements (%d lines)", len(lines))
        else:
            logger.debug(
                "Classified %d elements (%s)", result.count, result.complexity.value
            )
        return result

    def classify_line(self, line: str) -> tuple[ElementCategory | None, str]:
        """Return ``(category, rule name)`` for one trimmed line.

        Unmatched lines are dropped in strict mode; otherwise they fall into
        the low-priority category when they carry business vocabulary.
        """
        rule = first_match(line, self._rules)
        if rule is not None:
            return rule.category, rule.name

        opts = self._options
        if opts.enable_strict_mode or not opts.include_low_priority:
            return None, ""
        if has_business_vocabulary(line):
            return ElementCategory.LOW_PRIORITY, _LOW_PRIORITY_RULE
        return None, ""

    @staticmethod
    def _breakdown(elements: list[ElementRecord]) -> dict[ElementCategory, int]:
        counts = {category: 0 for category in ElementCategory}
        for element in elements:
            counts[element.category] += 1
        return {category: n for category, n in counts.items() if n}


def complexity_for(total: int, business: int) -> Complexity:
    """Map element totals onto a complexity label.

    Fixed breakpoints on the total (<=10, <=25, <=50, above). Content made
    mostly of business elements is bumped one level.
    """
    level = Complexity.VERY_COMPLEX
    for upper, label in _COMPLEXITY_BREAKPOINTS:
        if total <= upper:
            level = label
            break

    if total > _BUSINESS_BUMP_MIN_TOTAL and business / total > _BUSINESS_SHARE_BUMP:
        index = min(_LEVELS.index(level) + 1, len(_LEVELS) - 1)
        level = _LEVELS[index]
    return level


def classify(content: str, options: ClassifierOptions | None = None) -> ClassificationResult:
    """Classify content with the default rule set."""
    return ElementClassifier(options).classify(content)


def _unique_sections(elements: list[ElementRecord]) -> list[str]:
    seen: list[str] = []
    for element in elements:
        if element.section and element.section not in seen:
            seen.append(element.section)
    return seen
