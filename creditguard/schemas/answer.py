"""
Answer Schemas — The Hard Answer Contract

Pydantic models for the one output shape every generated answer is
forced into. Rendered strictly in field order by the frontend.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

HARD_SCHEMA_VERSION = 2


class AnswerDepth(str, Enum):
    """User-selected verbosity tier."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


Confidence = Literal["high", "medium", "low"]
CONFIDENCE_LEVELS: tuple[str, ...] = ("high", "medium", "low")

Severity = Literal["low", "medium", "high"]


def coerce_depth(value: Any, default: AnswerDepth = AnswerDepth.BEGINNER) -> AnswerDepth:
    """Map a raw preference value to an AnswerDepth. Unknown values get the default."""
    if isinstance(value, AnswerDepth):
        return value
    if isinstance(value, str):
        try:
            return AnswerDepth(value.strip().lower())
        except ValueError:
            return default
    return default


class HardAnswer(BaseModel):
    """
    Canonical answer shape. Every field is required; absent content
    is an explicit None, never an omitted key.

    Frozen means fields cannot be reassigned. The list fields (steps,
    edge_cases, warnings) are still plain lists and can be changed in
    place, so treat a returned answer as read-only and build a new one
    with model_copy(update=...) instead. Answers built by
    apply_depth_rules never share lists with their candidate.
    """
    model_config = ConfigDict(strict=True, frozen=True)

    summary: str = Field(..., description="Main answer, 1-4 sentences depending on depth.")
    recommended_action: Optional[str] = Field(..., description="What to do next.")
    steps: list[str] = Field(..., description="Ordered action steps.")
    mechanics: Optional[str] = Field(..., description="How it works (intermediate+).")
    edge_cases: Optional[list[str]] = Field(..., description="Exceptions (advanced only).")
    warnings: Optional[list[str]] = Field(..., description="Critical warnings.")
    confidence: Confidence
    blocked: bool = Field(..., description="Whether the recommendation is blocked.")
    block_reason: Optional[str] = Field(..., description="Why it is blocked.")
