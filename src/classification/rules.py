# src/classification/rules.py — v1
"""Ordered classification rules.

Rules are evaluated top to bottom and the first match wins, so a line lands
in at most one category. Explicit labels come first, then decision points,
process steps, business processes, requirements, business flows, user
actions and finally diagram shapes and connectors.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from reqcache.classification.models import ElementCategory

Predicate = Callable[[str], bool]


@dataclass(frozen=True)
class Rule:
    """A named ``(predicate, category)`` pair."""

    name: str
    category: ElementCategory
    predicate: Predicate

    def matches(self, line: str) -> bool:
        return self.predicate(line)


def _regex(pattern: str) -> Predicate:
    compiled = re.compile(pattern, re.IGNORECASE)
    return lambda line: compiled.search(line) is not None


# Optional bullet or list number in front of an anchored pattern.
_LIST_MARKER = r"^(?:[-*•]\s+|\d+[.)]\s+|\*\*)?"


def _leading(pattern: str) -> Predicate:
    return _regex(_LIST_MARKER + pattern)


_C = ElementCategory

RULES: tuple[Rule, ...] = (
    # --- Explicit labels ---
    Rule("label_decision", _C.DECISION, _leading(r"decision(\s+point)?\s*:")),
    Rule("label_step", _C.STEP, _leading(r"(process\s+)?step(\s+\d+)?\s*[:.)]")),
    Rule("label_process", _C.PROCESS, _leading(r"(business\s+)?process\s*:")),
    Rule(
        "label_requirement",
        _C.REQUIREMENT,
        _leading(
            r"(system\s+requirement|user\s+story|acceptance\s+criteria"
            r"|requirement\s+\d+|br[\s-]*\d+|ac[\s-]*\d+)\s*:"
        ),
    ),
    Rule("label_flow", _C.FLOW, _leading(r"(business\s+)?flow\s*:")),
    Rule("label_user_action", _C.USER_ACTION, _leading(r"user\s+action\s*:")),
    Rule("label_shape", _C.SHAPE, _leading(r"shape\s*(\([^)]*\))?\s*:")),
    Rule("label_connector", _C.CONNECTOR, _leading(r"(connector|arrow|edge)\s*:")),
    # --- Decision points ---
    Rule("decision_conditional", _C.DECISION, _leading(r"(if|when|whether|in case|given)\b")),
    Rule(
        "decision_keyword",
        _C.DECISION,
        _regex(r"\b(decision|gateway|approve[sd]?\s+or\s+reject(ed)?|yes\s*/\s*no)\b"),
    ),
    # --- Process steps ---
    Rule("step_sequence", _C.STEP, _leading(r"(then|next|finally|afterwards)\b")),
    Rule("step_keyword", _C.STEP, _regex(r"\b(process\s+step|sub-?process|activity|task)\b")),
    # --- Business processes ---
    Rule("process_keyword", _C.PROCESS, _regex(r"\b(business\s+process|workflow|procedure)\b")),
    # --- Requirements ---
    Rule(
        "requirement_modal",
        _C.REQUIREMENT,
        _regex(r"\b(must|shall|should|will|needs?\s+to|is\s+required\s+to|has\s+to)\b"),
    ),
    # --- Business flows ---
    Rule(
        "flow_keyword",
        _C.FLOW,
        _regex(r"\b(flows?\s+(from|to)|leads\s+to|routes?\s+to|hands?\s+off\s+to|transitions?\s+to)\b"),
    ),
    # --- User actions ---
    Rule(
        "user_action_verb",
        _C.USER_ACTION,
        _regex(
            r"\b(clicks?|selects?|enters?|submits?|uploads?|downloads?|logs?\s+in"
            r"|signs?\s+in|types?|navigates?|chooses?)\b"
        ),
    ),
    # --- Diagram structure ---
    Rule(
        "shape_keyword",
        _C.SHAPE,
        _regex(r"\b(rectangle|diamond|ellipse|oval|swimlane|terminator|start\s+point|end\s+point)\b"),
    ),
    Rule("connector_arrow", _C.CONNECTOR, _regex(r"(->|=>|→|-->)")),
    # --- Enumerated items with no stronger signal ---
    Rule("requirement_enumerated", _C.REQUIREMENT, _regex(r"^(\d+[.)]|[a-z]\)|[-*•])\s+\S")),
)


_BUSINESS_VOCABULARY = re.compile(
    r"\b(business|requirement|user|customer|system|data|account|order|payment"
    r"|report|validation|verify|ensure|check|access|permission|record)s?\b",
    re.IGNORECASE,
)


def has_business_vocabulary(line: str) -> bool:
    """Catch-all test for the low-priority category."""
    return _BUSINESS_VOCABULARY.search(line) is not None


_TECHNICAL_PATTERNS = tuple(
    re.compile(p)
    for p in (
        r"^[A-Z][A-Z0-9\s_:\-]+$",  # ALL CAPS headers
        r"^[0-9\s.,:/\-]+$",  # numbers, dates
        r"^[A-Za-z0-9]{24,}$",  # IDs, hashes
        r"^(function|class|var|const|let|def|import|export|require)\b",  # code
        r"^(https?|ftp)://\S+$",  # URLs
        r"^<[^>]+>.*</?[^>]*>$",  # markup
        r"^[{}\[\]()]+$",  # brackets only
        r"^[+\-*/=|]+$",  # operators or rules only
    )
)


def is_technical_content(line: str) -> bool:
    """Lines that carry no business meaning (headers, code, ids, urls)."""
    return any(pattern.search(line) for pattern in _TECHNICAL_PATTERNS)


def first_match(line: str, rules: tuple[Rule, ...] = RULES) -> Rule | None:
    """Return the highest-priority rule matching a line."""
    for rule in rules:
        if rule.matches(line):
            return rule
    return None
