"""
Answer Enforcer — Schema Coercion and Depth Rules

Never lets a malformed or over-scoped generated answer reach the user.

  - apply_depth_rules:           coerce a partial candidate into a HardAnswer
  - create_blocked_response:     fixed-shape refusal with an unlock path
  - create_calibration_response: ask for one missing fact
  - create_fallback_response:    deterministic stand-in for invalid output
  - validate_hard_answer:        typed success/failure, never raises

Warnings are passed through as generated. The per-tier warnings level
(severe_only / allowed / required) is a content contract for the
generator; audit_depth_compliance reports on it but does not rewrite
the answer.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal, Optional

from pydantic import ValidationError

from creditguard.schemas.answer import (
    CONFIDENCE_LEVELS,
    AnswerDepth,
    HardAnswer,
    coerce_depth,
)

logger = logging.getLogger(__name__)

CALIBRATION_SUMMARY = "I need one detail before answering."
BLOCKED_SUMMARY = "This recommendation is blocked based on your credit profile."
FALLBACK_SUMMARY = (
    "I couldn't produce a reliable answer to this question. "
    "Please rephrase it or add a bit more detail."
)
UNLOCK_PREFIX = "To unlock: "


# ============================================================
# DEPTH RULES
# ============================================================

@dataclass(frozen=True)
class DepthRule:
    """Field caps for one depth tier."""
    summary_max_sentences: int
    recommended_action: bool
    max_steps: int
    mechanics: bool
    edge_cases: bool
    warnings: Literal["severe_only", "allowed", "required"]
    tone: str


DEPTH_RULES: dict[AnswerDepth, DepthRule] = {
    AnswerDepth.BEGINNER: DepthRule(
        summary_max_sentences=2,
        recommended_action=True,
        max_steps=3,
        mechanics=False,
        edge_cases=False,
        warnings="severe_only",
        tone="instructional, concrete",
    ),
    AnswerDepth.INTERMEDIATE: DepthRule(
        summary_max_sentences=3,
        recommended_action=True,
        max_steps=6,
        mechanics=True,
        edge_cases=False,
        warnings="allowed",
        tone="explanatory",
    ),
    AnswerDepth.ADVANCED: DepthRule(
        summary_max_sentences=4,
        recommended_action=True,
        max_steps=10,
        mechanics=True,
        edge_cases=True,
        warnings="required",
        tone="comprehensive, includes limitations",
    ),
}


def get_depth_rule(depth: AnswerDepth | str) -> DepthRule:
    return DEPTH_RULES[coerce_depth(depth)]


# ============================================================
# COERCION HELPERS
# ============================================================

def _text(value: Any) -> Optional[str]:
    """Non-empty string or None."""
    return value if isinstance(value, str) and value else None


def _text_list(value: Any) -> Optional[list[str]]:
    """List of the string items, or None when value is not a sequence."""
    if not isinstance(value, (list, tuple)):
        return None
    return [item for item in value if isinstance(item, str)]


def _as_mapping(candidate: Any) -> Mapping:
    if isinstance(candidate, HardAnswer):
        return candidate.model_dump()
    if isinstance(candidate, Mapping):
        return candidate
    return {}


# ============================================================
# ENFORCEMENT
# ============================================================

def apply_depth_rules(candidate: Any, depth: AnswerDepth | str) -> HardAnswer:
    """
    Coerce a partial candidate into a HardAnswer shaped for a depth tier.

    Total over its inputs: ill-typed fields are dropped, never raised on.
    A blocked candidate loses its recommended_action, mechanics and
    edge_cases; the unlock path in steps is its only actionable content.
    """
    rule = get_depth_rule(depth)
    data = _as_mapping(candidate)

    blocked = data.get("blocked") is True
    confidence = data.get("confidence")
    if confidence not in CONFIDENCE_LEVELS:
        confidence = "medium"

    summary = data.get("summary")
    steps = _text_list(data.get("steps")) or []

    recommended_action = _text(data.get("recommended_action")) if rule.recommended_action else None
    mechanics = _text(data.get("mechanics")) if rule.mechanics else None
    edge_cases = _text_list(data.get("edge_cases")) if rule.edge_cases else None

    if blocked:
        recommended_action = None
        mechanics = None
        edge_cases = None

    return HardAnswer(
        summary=summary if isinstance(summary, str) else "",
        recommended_action=recommended_action,
        steps=steps[: rule.max_steps],
        mechanics=mechanics,
        edge_cases=edge_cases,
        warnings=_text_list(data.get("warnings")),
        confidence=confidence,
        blocked=blocked,
        block_reason=_text(data.get("block_reason")) if blocked else None,
    )


def create_blocked_response(reason: str, unlock_conditions: list[str]) -> HardAnswer:
    """Build a blocked answer. A block is certain, so confidence is high."""
    return HardAnswer(
        summary=BLOCKED_SUMMARY,
        recommended_action=None,
        steps=[f"{UNLOCK_PREFIX}{condition}" for condition in unlock_conditions],
        mechanics=None,
        edge_cases=None,
        warnings=None,
        confidence="high",
        blocked=True,
        block_reason=reason,
    )


def create_calibration_response(question: str) -> HardAnswer:
    """Ask the user for exactly one clarifying fact."""
    return HardAnswer(
        summary=CALIBRATION_SUMMARY,
        recommended_action=None,
        steps=[question],
        mechanics=None,
        edge_cases=None,
        warnings=None,
        confidence="low",
        blocked=False,
        block_reason=None,
    )


def create_fallback_response() -> HardAnswer:
    """Deterministic answer substituted for a candidate that failed validation."""
    return HardAnswer(
        summary=FALLBACK_SUMMARY,
        recommended_action=None,
        steps=[],
        mechanics=None,
        edge_cases=None,
        warnings=None,
        confidence="low",
        blocked=False,
        block_reason=None,
    )


# ============================================================
# VALIDATION
# ============================================================

@dataclass(frozen=True)
class HardAnswerValidation:
    """Tagged result of validate_hard_answer."""
    success: bool
    data: Optional[HardAnswer] = None
    error: Optional[str] = None


def validate_hard_answer(candidate: Any) -> HardAnswerValidation:
    """
    Validate an arbitrary object against the HardAnswer schema.

    On failure the caller substitutes create_calibration_response or
    create_fallback_response. The failed object is never re-coerced.
    """
    try:
        answer = HardAnswer.model_validate(candidate)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) or "<root>" for err in e.errors()})
        logger.info(
            "Candidate answer failed schema validation",
            extra={"error": ", ".join(fields), "error_type": "INVALID_OUTPUT_SCHEMA"},
        )
        return HardAnswerValidation(success=False, error=str(e))
    return HardAnswerValidation(success=True, data=answer)


# ============================================================
# ADVISORY COMPLIANCE
# ============================================================

_SENTENCE_END = re.compile(r"[.!?]+(?:\s+|$)")


def count_sentences(text: str) -> int:
    if not text or not text.strip():
        return 0
    parts = [p for p in _SENTENCE_END.split(text.strip()) if p.strip()]
    return len(parts)


def audit_depth_compliance(answer: HardAnswer, depth: AnswerDepth | str) -> list[str]:
    """
    Report content-contract gaps for a depth tier without changing the answer.

    Returns human-readable notes; empty when the answer is compliant.
    Blocked and calibration answers have fixed content and are not audited.
    """
    if answer.blocked or answer.summary == CALIBRATION_SUMMARY:
        return []

    rule = get_depth_rule(depth)
    notes: list[str] = []

    sentences = count_sentences(answer.summary)
    if sentences > rule.summary_max_sentences:
        notes.append(
            f"summary has {sentences} sentences; "
            f"{coerce_depth(depth).value} allows {rule.summary_max_sentences}"
        )
    if rule.warnings == "required" and not answer.warnings:
        notes.append(f"{coerce_depth(depth).value} answers require at least one warning")
    return notes
