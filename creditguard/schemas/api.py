"""
API Schemas — Request and Response Models

Pydantic models for the CreditGuard API.
"""

from __future__ import annotations

from typing import Any, Optional, Union
from pydantic import BaseModel, Field

from creditguard.config import settings
from creditguard.schemas.answer import HardAnswer

DEPTH_PATTERN = "^(beginner|intermediate|advanced)$"


# ============================================================
# MYTHS
# ============================================================

class MythDetectRequest(BaseModel):
    """POST /myths/detect request body."""
    question: str = Field(..., min_length=1, max_length=settings.MAX_QUESTION_LENGTH,
                          description="The user's question.")
    depth: str = Field(settings.DEFAULT_DEPTH, pattern=DEPTH_PATTERN,
                       description="Answer depth; only myths for this depth are checked.")

    model_config = {"json_schema_extra": {"examples": [
        {"question": "Is 0% utilization best for my score?", "depth": "beginner"},
    ]}}


class DetectedMythResponse(BaseModel):
    id: str
    myth: str
    correction: str
    why_it_matters: str = ""
    severity: str
    evidence: str


class MythDetectResponse(BaseModel):
    """POST /myths/detect response body."""
    detected: bool
    depth: str
    myths: list[DetectedMythResponse]


class MythCatalogEntry(BaseModel):
    id: str
    myth: str
    correction: str
    why_it_matters: str = ""
    severity: str
    applies_to_depth: list[str]
    keywords: list[str]
    phrases: list[str]
    matching: list[str]


class MythCatalogResponse(BaseModel):
    """GET /myths response body."""
    core_version: str
    total: int
    myths: list[MythCatalogEntry]


# ============================================================
# ANSWERS
# ============================================================

class EnforceRequest(BaseModel):
    """POST /answers/enforce request body."""
    candidate: dict = Field(..., description="A partial or complete generated answer.")
    depth: str = Field(settings.DEFAULT_DEPTH, pattern=DEPTH_PATTERN)


class ValidateRequest(BaseModel):
    """POST /answers/validate request body."""
    candidate: Any = Field(..., description="Any JSON value to check against the HardAnswer schema.")


class ValidateResponse(BaseModel):
    success: bool
    data: Optional[HardAnswer] = None
    error: Optional[str] = None


class BlockedRequest(BaseModel):
    """POST /answers/blocked request body."""
    reason: str = Field(..., min_length=1, max_length=1_000)
    unlock_conditions: list[str] = Field(default_factory=list, max_length=20)


class CalibrationRequest(BaseModel):
    """POST /answers/calibration request body."""
    question: str = Field(..., min_length=1, max_length=settings.MAX_QUESTION_LENGTH)
    has_calibration: bool = False
    context_provided: dict[str, Any] = Field(default_factory=dict)


class QuestionOptionResponse(BaseModel):
    value: str
    label: str


class CalibrationQuestionResponse(BaseModel):
    id: str
    prompt: str
    type: str
    required: bool
    options: list[QuestionOptionResponse] = []


class CalibrationResponse(BaseModel):
    needed: bool
    topic_id: Optional[str] = None
    questions: list[CalibrationQuestionResponse]
    answer: Optional[HardAnswer] = None


class FormatRequest(BaseModel):
    """POST /answers/format request body."""
    conclusion: str = Field(..., max_length=10_000)
    what_to_do_next: list[str] = Field(default_factory=list, max_length=50)
    steps: Optional[list[str]] = Field(None, max_length=50)
    mechanics: Optional[list[str]] = Field(None, max_length=50)
    edge_cases: Optional[list[str]] = Field(None, max_length=50)
    assumptions: Optional[list[str]] = Field(None, max_length=50)
    limitations: Optional[list[str]] = Field(None, max_length=50)
    depth: str = Field(settings.DEFAULT_DEPTH, pattern=DEPTH_PATTERN)


class AnswerSectionResponse(BaseModel):
    type: str
    title: str
    content: Union[str, list[str]]


class FormatResponse(BaseModel):
    depth: str
    label: str
    description: str
    sections: list[AnswerSectionResponse]


class BlockDirectiveRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1_000)
    unlock_conditions: list[str] = Field(default_factory=list, max_length=20)


class CalibrationContextRequest(BaseModel):
    has_calibration: bool = False
    context_provided: dict[str, Any] = Field(default_factory=dict)


class GuardRequest(BaseModel):
    """POST /answers/guard request body."""
    question: str = Field(..., min_length=1, max_length=settings.MAX_QUESTION_LENGTH)
    candidate: Any = None
    depth: str = Field(settings.DEFAULT_DEPTH, pattern=DEPTH_PATTERN)
    block: Optional[BlockDirectiveRequest] = None
    calibration: Optional[CalibrationContextRequest] = None
    issuer: Optional[str] = Field(None, description="Issuer whose allowlist applies to links.")
    allowlist: Optional[list[str]] = Field(None, description="Overrides the issuer allowlist.")
    links: list[str] = Field(default_factory=list, max_length=50)


class UrlStatusResponse(BaseModel):
    is_valid: bool
    blocked: bool
    reason: Optional[str] = None
    normalized_url: Optional[str] = None
    display_host: Optional[str] = None


class LinkCheckResponse(BaseModel):
    url: str
    status: UrlStatusResponse


class GuardResponse(BaseModel):
    """POST /answers/guard response body."""
    answer: HardAnswer
    depth: str
    outcome: str
    states: list[str]
    myths: list[DetectedMythResponse]
    redacted_count: int
    pii_types: list[str]
    links: list[LinkCheckResponse]
    compliance_notes: list[str]
    calibration_topic: Optional[str] = None


# ============================================================
# REDACTION
# ============================================================

class RedactRequest(BaseModel):
    """POST /redact request body. Send text, data, or both."""
    text: Optional[str] = Field(None, max_length=50_000)
    data: Any = Field(None, description="Nested JSON whose string values are redacted.")


class RedactResponse(BaseModel):
    text: Optional[str] = None
    data: Any = None
    redacted_count: int
    types: list[str]


# ============================================================
# URLS
# ============================================================

class UrlValidateRequest(BaseModel):
    """POST /urls/validate request body."""
    url: Optional[str] = Field(None, max_length=8_192)
    issuer: Optional[str] = None
    allowlist: Optional[list[str]] = None


class IssuersResponse(BaseModel):
    total: int
    issuers: dict[str, list[str]]


# ============================================================
# HEALTH
# ============================================================

class HealthResponse(BaseModel):
    status: str
    version: str
    core_version: str
    myth_count: int
    issuer_count: int
