# src/classification/constraint.py — v1
"""Render a classification as the constraint handed to the generator."""

from __future__ import annotations

from pydantic import BaseModel, Field

from reqcache.classification.models import ClassificationResult, ElementCategory
from reqcache.consistency.table_parser import format_id


class GenerationConstraint(BaseModel):
    """Target the external generator is asked to meet."""

    target_count: int
    breakdown: dict[ElementCategory, int] = Field(default_factory=dict)
    id_prefix: str = "BR"
    first_id: str | None = None
    last_id: str | None = None

    def to_prompt(self) -> str:
        """Plain-text instruction block for the generator prompt."""
        if self.target_count == 0:
            return "No business elements were detected; return an empty table."
        lines = [
            f"Generate exactly {self.target_count} requirements, "
            f"numbered {self.first_id} through {self.last_id}.",
            "Element breakdown:",
        ]
        for category, count in self.breakdown.items():
            lines.append(f"- {category.value}: {count}")
        return "\n".join(lines)


def build_generation_constraint(
    result: ClassificationResult, id_prefix: str = "BR"
) -> GenerationConstraint:
    """Build the generator constraint from a classification."""
    if result.count == 0:
        return GenerationConstraint(target_count=0, id_prefix=id_prefix)
    return GenerationConstraint(
        target_count=result.count,
        breakdown=dict(result.breakdown),
        id_prefix=id_prefix,
        first_id=format_id(id_prefix, 1),
        last_id=format_id(id_prefix, result.count),
    )
