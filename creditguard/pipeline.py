"""
Guard Pipeline — the answer state machine end to end.

    received → {blocked | calibrating | normal | fallback}
             → depth_shaped → redacted → delivered

A block directive wins over everything; then the calibration gate;
otherwise the generated candidate is validated against the HardAnswer
schema and replaced by the fallback answer if it fails. Candidates that
fail validation are never repaired. Blocked and calibration answers have
a fixed shape and pass through depth shaping unchanged.

Every delivered answer has been redacted, and every link it carries
(explicit or found in its text) has a UrlStatus attached. Rendering
must only make a link clickable when its status is not blocked.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional

from creditguard.answers import (
    apply_depth_rules,
    audit_depth_compliance,
    create_blocked_response,
    create_calibration_response,
    create_fallback_response,
    validate_hard_answer,
)
from creditguard.calibration_questions import CalibrationContext, check_calibration_needed
from creditguard.myths import MythDetectionResult, detect_myths
from creditguard.redaction import pii_redactor
from creditguard.schemas.answer import AnswerDepth, HardAnswer, coerce_depth
from creditguard.url_guard import UrlStatus, as_allowlist, validate_outbound_url

logger = logging.getLogger(__name__)


class AnswerState(str, Enum):
    RECEIVED = "received"
    BLOCKED = "blocked"
    CALIBRATING = "calibrating"
    NORMAL = "normal"
    FALLBACK = "fallback"
    DEPTH_SHAPED = "depth_shaped"
    REDACTED = "redacted"
    DELIVERED = "delivered"


@dataclass(frozen=True)
class BlockDirective:
    """A policy decision that the recommendation must not be given."""
    reason: str
    unlock_conditions: tuple[str, ...] = ()


@dataclass(frozen=True)
class LinkCheck:
    url: str
    status: UrlStatus


@dataclass(frozen=True)
class GuardedAnswer:
    """Everything the caller needs to deliver and audit one answer."""
    answer: HardAnswer
    depth: AnswerDepth
    outcome: AnswerState
    states: tuple[AnswerState, ...]
    myths: MythDetectionResult
    redacted_count: int = 0
    pii_types: tuple[str, ...] = ()
    links: tuple[LinkCheck, ...] = ()
    compliance_notes: tuple[str, ...] = ()
    calibration_topic: Optional[str] = None

    @property
    def safe_links(self) -> list[LinkCheck]:
        return [link for link in self.links if not link.status.blocked]

    @property
    def blocked_links(self) -> list[LinkCheck]:
        return [link for link in self.links if link.status.blocked]


# ============================================================
# LINK EXTRACTION
# ============================================================

_URL_IN_TEXT = re.compile(r"\b(?:https?://|www\.)[^\s<>\"'()\[\]]+", re.IGNORECASE)
_TRAILING_PUNCT = ".,;:!?"


def _answer_strings(answer: HardAnswer) -> Iterable[str]:
    for value in (answer.summary, answer.recommended_action, answer.mechanics):
        if value:
            yield value
    for values in (answer.steps, answer.edge_cases, answer.warnings):
        yield from values or ()


def extract_links(answer: HardAnswer) -> list[str]:
    """Return every URL-looking token in the answer, in order, deduplicated."""
    found: list[str] = []
    for text in _answer_strings(answer):
        for m in _URL_IN_TEXT.finditer(text):
            url = m.group(0).rstrip(_TRAILING_PUNCT)
            if url and url not in found:
                found.append(url)
    return found


# ============================================================
# PIPELINE
# ============================================================

def guard_answer(
    question: str,
    candidate: Any,
    depth: AnswerDepth | str = AnswerDepth.BEGINNER,
    *,
    block: Optional[BlockDirective] = None,
    calibration: Optional[CalibrationContext] = None,
    allowlist: Iterable[str] = (),
    links: Optional[Iterable[str]] = None,
) -> GuardedAnswer:
    """
    Run a generated candidate through every guardrail.

    Args:
        question: The user's question, used for myth detection and the
            calibration gate. Never logged.
        candidate: The generator's output, of any shape.
        depth: The user's depth preference; unknown values mean beginner.
        block: If given, the answer is replaced with a blocked response.
        calibration: If given, the calibration gate runs before the
            candidate is considered.
        allowlist: Domains outbound links may point to.
        links: Explicit links to validate alongside those found in the text.

    Returns:
        GuardedAnswer. Never raises for any candidate.
    """
    depth = coerce_depth(depth)
    states = [AnswerState.RECEIVED]
    myths = detect_myths(question, depth)
    calibration_topic = None

    if block is not None:
        outcome = AnswerState.BLOCKED
        answer = create_blocked_response(block.reason, list(block.unlock_conditions))
    else:
        gate = check_calibration_needed(question, calibration) if calibration is not None else None
        if gate is not None and gate.needed and gate.questions:
            outcome = AnswerState.CALIBRATING
            calibration_topic = gate.topic_id
            answer = create_calibration_response(gate.questions[0].prompt)
        else:
            validation = validate_hard_answer(candidate)
            if validation.success:
                outcome = AnswerState.NORMAL
                answer = validation.data
            else:
                outcome = AnswerState.FALLBACK
                answer = create_fallback_response()
    states.append(outcome)

    if outcome in (AnswerState.NORMAL, AnswerState.FALLBACK):
        answer = apply_depth_rules(answer, depth)
    states.append(AnswerState.DEPTH_SHAPED)

    # Links are taken before redaction so digits in a path survive
    urls = list(links or ())
    urls.extend(u for u in extract_links(answer) if u not in urls)

    scan = pii_redactor.scan_deep(answer)
    if scan.redacted_count:
        answer = pii_redactor.redact_deep(answer)
    states.append(AnswerState.REDACTED)

    allowed = as_allowlist(allowlist)
    checks = tuple(LinkCheck(url=u, status=validate_outbound_url(u, allowed)) for u in urls)

    notes = tuple(audit_depth_compliance(answer, depth)) if outcome is AnswerState.NORMAL else ()
    states.append(AnswerState.DELIVERED)

    logger.info(
        "Answer guarded",
        extra={
            "state": outcome.value,
            "depth": depth.value,
            "myth_ids": myths.ids,
            "redacted_count": scan.redacted_count,
            "pii_types": list(scan.types),
            "topic_id": calibration_topic,
            "links_checked": len(checks),
            "links_blocked": sum(1 for c in checks if c.status.blocked),
        },
    )

    return GuardedAnswer(
        answer=answer,
        depth=depth,
        outcome=outcome,
        states=tuple(states),
        myths=myths,
        redacted_count=scan.redacted_count,
        pii_types=scan.types,
        links=checks,
        compliance_notes=notes,
        calibration_topic=calibration_topic,
    )
