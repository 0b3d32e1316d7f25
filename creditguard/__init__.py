"""
CreditGuard — Deterministic Guardrails for Credit-Advice Answers

Everything a generated answer passes through before it reaches a user.
No model calls, no I/O; every function is pure over frozen catalogs.

Public API:
  - myth_detector / detect_myths: flag known credit misconceptions
  - apply_depth_rules:            coerce a candidate into a HardAnswer
  - validate_hard_answer:         strict schema check, never raises
  - create_blocked_response:      refusal with unlock conditions
  - create_calibration_response:  ask for one missing fact
  - redact_pii / redact_deep:     scrub PII before persistence
  - validate_outbound_url:        https + issuer allowlist for links
  - check_calibration_needed:     ask for missing facts before answering
  - format_by_depth:              lay an answer out as depth sections
  - guard_answer:                 the whole pipeline in one call

Usage:
    from creditguard import detect_myths, guard_answer
    from creditguard import validate_outbound_url, ISSUER_DOMAIN_ALLOWLISTS
"""

__version__ = "1.0.0"

from creditguard.schemas.answer import AnswerDepth, HardAnswer
from creditguard.myths import (
    MYTH_CATALOG,
    MythDetector,
    MythDetectionResult,
    myth_detector,
    detect_myths,
)
from creditguard.answers import (
    DEPTH_RULES,
    apply_depth_rules,
    create_blocked_response,
    create_calibration_response,
    create_fallback_response,
    validate_hard_answer,
)
from creditguard.redaction import PIIRedactor, pii_redactor, redact_pii, redact_deep
from creditguard.url_guard import (
    ISSUER_DOMAIN_ALLOWLISTS,
    UrlStatus,
    validate_outbound_url,
    validate_card_urls,
)
from creditguard.calibration_questions import CalibrationContext, check_calibration_needed
from creditguard.formatting import (
    AnswerComponents,
    format_by_depth,
    get_depth_description,
    get_depth_label,
    simplify_jargon,
)
from creditguard.pipeline import BlockDirective, GuardedAnswer, guard_answer

__all__ = [
    "AnswerDepth",
    "HardAnswer",
    "MYTH_CATALOG",
    "MythDetector",
    "MythDetectionResult",
    "myth_detector",
    "detect_myths",
    "DEPTH_RULES",
    "apply_depth_rules",
    "create_blocked_response",
    "create_calibration_response",
    "create_fallback_response",
    "validate_hard_answer",
    "PIIRedactor",
    "pii_redactor",
    "redact_pii",
    "redact_deep",
    "ISSUER_DOMAIN_ALLOWLISTS",
    "UrlStatus",
    "validate_outbound_url",
    "validate_card_urls",
    "CalibrationContext",
    "check_calibration_needed",
    "AnswerComponents",
    "format_by_depth",
    "get_depth_description",
    "get_depth_label",
    "simplify_jargon",
    "BlockDirective",
    "GuardedAnswer",
    "guard_answer",
]
