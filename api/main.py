"""
CreditGuard API — Main Application

GET  /health              — Health check
GET  /myths               — List the myth catalog
POST /myths/detect        — Detect myths in a question
POST /answers/enforce     — Coerce a candidate answer to a depth tier
POST /answers/validate    — Validate a candidate against the HardAnswer schema
POST /answers/blocked     — Build a blocked answer with unlock conditions
POST /answers/calibration — Run the calibration gate for a question
POST /answers/format      — Lay answer components out by depth
POST /answers/guard       — Full pipeline: block / calibrate / validate, shape, redact, check links
POST /redact              — Redact PII from text or nested JSON
POST /urls/validate       — Validate an outbound URL against an issuer allowlist
GET  /issuers             — Issuer domain allowlists
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.requests import Request

from creditguard import __version__
from creditguard.answers import (
    apply_depth_rules,
    create_blocked_response,
    create_calibration_response,
    validate_hard_answer,
)
from creditguard.calibration_questions import CalibrationContext, check_calibration_needed
from creditguard.config import settings
from creditguard.formatting import (
    AnswerComponents,
    format_by_depth,
    get_depth_description,
    get_depth_label,
)
from creditguard.logging import setup_logging, get_logger
from creditguard.myths import myth_detector
from creditguard.pipeline import BlockDirective, guard_answer
from creditguard.redaction import pii_redactor
from creditguard.url_guard import (
    ISSUER_DOMAIN_ALLOWLISTS,
    get_issuer_allowlist,
    validate_outbound_url,
)
from creditguard.schemas.answer import HardAnswer
from creditguard.schemas.api import (
    BlockedRequest,
    CalibrationRequest,
    CalibrationResponse,
    EnforceRequest,
    FormatRequest,
    FormatResponse,
    GuardRequest,
    GuardResponse,
    HealthResponse,
    IssuersResponse,
    MythCatalogResponse,
    MythDetectRequest,
    MythDetectResponse,
    RedactRequest,
    RedactResponse,
    UrlStatusResponse,
    UrlValidateRequest,
    ValidateRequest,
    ValidateResponse,
)

logger = get_logger("api")


# ============================================================
# STARTUP / SHUTDOWN
# ============================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("CreditGuard API starting",
                extra={"core_version": settings.CORE_VERSION})
    yield
    logger.info("CreditGuard API shutting down")


app = FastAPI(
    title="CreditGuard API",
    description="Deterministic guardrails for credit-advice answers",
    version=f"{__version__} (core {settings.CORE_VERSION})",
    lifespan=lifespan,
)

# CORS: set CREDITGUARD_CORS_ORIGINS in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",")],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    allow_credentials=False,
)


# ============================================================
# GLOBAL ERROR HANDLER
# ============================================================

@app.exception_handler(Exception)
async def global_error_handler(request: Request, exc: Exception):
    """Catch unhandled exceptions — return structured error, don't leak internals."""
    logger.error(
        f"Unhandled exception: {type(exc).__name__}",
        extra={"error_type": type(exc).__name__, "path": request.url.path, "method": request.method},
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error. The request could not be completed."},
    )


def _allowlist_for(issuer: str | None, allowlist: list[str] | None) -> tuple[str, ...]:
    """Explicit allowlist wins; otherwise the issuer's. Unknown issuer is a 400."""
    if allowlist:
        return tuple(allowlist)
    if issuer is None:
        return ()
    domains = get_issuer_allowlist(issuer)
    if not domains:
        raise HTTPException(400, f"Unknown issuer: {issuer}")
    return domains


def _as_tuple(items: list[str] | None) -> tuple[str, ...] | None:
    return tuple(items) if items is not None else None


# ============================================================
# ROUTES
# ============================================================

@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check."""
    return {
        "status": "operational",
        "version": __version__,
        "core_version": settings.CORE_VERSION,
        "myth_count": len(myth_detector.get_all_myths()),
        "issuer_count": len(ISSUER_DOMAIN_ALLOWLISTS),
    }


@app.get("/myths", response_model=MythCatalogResponse)
async def get_myths():
    """Return the full myth catalog with its matching rules."""
    catalog = myth_detector.get_catalog()
    return {
        "core_version": settings.CORE_VERSION,
        "total": len(catalog),
        "myths": catalog,
    }


@app.post("/myths/detect", response_model=MythDetectResponse)
async def detect(request: MythDetectRequest):
    """Detect credit myths in a question."""
    result = myth_detector.detect(request.question, request.depth)
    return {
        "detected": result.detected,
        "depth": request.depth,
        "myths": [asdict(m) for m in result.myths],
    }


@app.post("/answers/enforce", response_model=HardAnswer)
async def enforce(request: EnforceRequest):
    """Coerce a candidate into a HardAnswer for the requested depth."""
    return apply_depth_rules(request.candidate, request.depth)


@app.post("/answers/validate", response_model=ValidateResponse)
async def validate(request: ValidateRequest):
    """Validate a candidate against the strict HardAnswer schema."""
    result = validate_hard_answer(request.candidate)
    return {"success": result.success, "data": result.data, "error": result.error}


@app.post("/answers/blocked", response_model=HardAnswer)
async def blocked(request: BlockedRequest):
    return create_blocked_response(request.reason, request.unlock_conditions)


@app.post("/answers/calibration", response_model=CalibrationResponse)
async def calibration(request: CalibrationRequest):
    """Decide whether facts are missing, and build the question-back answer if so."""
    result = check_calibration_needed(
        request.question,
        CalibrationContext(
            has_calibration=request.has_calibration,
            context_provided=request.context_provided,
        ),
    )
    answer = None
    if result.needed and result.questions:
        answer = create_calibration_response(result.questions[0].prompt)
    return {
        "needed": result.needed,
        "topic_id": result.topic_id,
        "questions": [asdict(q) for q in result.questions],
        "answer": answer,
    }


@app.post("/answers/format", response_model=FormatResponse)
async def format_answer(request: FormatRequest):
    """Lay answer components out as the sections shown at a depth."""
    components = AnswerComponents(
        conclusion=request.conclusion,
        what_to_do_next=tuple(request.what_to_do_next),
        steps=_as_tuple(request.steps),
        mechanics=_as_tuple(request.mechanics),
        edge_cases=_as_tuple(request.edge_cases),
        assumptions=_as_tuple(request.assumptions),
        limitations=_as_tuple(request.limitations),
    )
    formatted = format_by_depth(components, request.depth)
    return {
        "depth": formatted.depth.value,
        "label": get_depth_label(formatted.depth),
        "description": get_depth_description(formatted.depth),
        "sections": [asdict(s) for s in formatted.sections],
    }


@app.post("/answers/guard", response_model=GuardResponse)
async def guard(request: GuardRequest):
    """Run a candidate answer through every guardrail."""
    start = time.time()
    allowlist = _allowlist_for(request.issuer, request.allowlist)

    block = None
    if request.block is not None:
        block = BlockDirective(
            reason=request.block.reason,
            unlock_conditions=tuple(request.block.unlock_conditions),
        )
    context = None
    if request.calibration is not None:
        context = CalibrationContext(
            has_calibration=request.calibration.has_calibration,
            context_provided=request.calibration.context_provided,
        )

    result = guard_answer(
        request.question,
        request.candidate,
        request.depth,
        block=block,
        calibration=context,
        allowlist=allowlist,
        links=request.links,
    )

    duration = int((time.time() - start) * 1000)
    logger.info(
        f"Guard complete: outcome={result.outcome.value}",
        extra={"state": result.outcome.value, "depth": result.depth.value, "duration_ms": duration},
    )

    return {
        "answer": result.answer,
        "depth": result.depth.value,
        "outcome": result.outcome.value,
        "states": [s.value for s in result.states],
        "myths": [asdict(m) for m in result.myths.myths],
        "redacted_count": result.redacted_count,
        "pii_types": list(result.pii_types),
        "links": [{"url": c.url, "status": asdict(c.status)} for c in result.links],
        "compliance_notes": list(result.compliance_notes),
        "calibration_topic": result.calibration_topic,
    }


@app.post("/redact", response_model=RedactResponse)
async def redact(request: RedactRequest):
    """Redact PII from a string and/or every string in a JSON value."""
    if request.text is None and request.data is None:
        raise HTTPException(400, "Provide text, data, or both.")

    count = 0
    types: list[str] = []
    text = None
    if request.text is not None:
        result = pii_redactor.redact(request.text)
        text = result.text
        count += result.redacted_count
        types.extend(result.types)

    data = None
    if request.data is not None:
        scan = pii_redactor.scan_deep(request.data)
        data = pii_redactor.redact_deep(request.data)
        count += scan.redacted_count
        types.extend(t for t in scan.types if t not in types)

    logger.info("Redaction complete", extra={"redacted_count": count, "pii_types": types})
    return {"text": text, "data": data, "redacted_count": count, "types": types}


@app.post("/urls/validate", response_model=UrlStatusResponse)
async def validate_url(request: UrlValidateRequest):
    """Validate one outbound URL against an issuer or explicit allowlist."""
    allowlist = _allowlist_for(request.issuer, request.allowlist)
    return asdict(validate_outbound_url(request.url, allowlist))


@app.get("/issuers", response_model=IssuersResponse)
async def issuers():
    return {
        "total": len(ISSUER_DOMAIN_ALLOWLISTS),
        "issuers": {name: list(domains) for name, domains in ISSUER_DOMAIN_ALLOWLISTS.items()},
    }


# --- Security + Version Headers Middleware ---
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security and version headers to all responses."""
    response = await call_next(request)
    response.headers["X-CreditGuard-Version"] = __version__
    response.headers["X-Core-Version"] = settings.CORE_VERSION
    response.headers["Strict-Transport-Security"] = "max-age=63072000; includeSubDomains; preload"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


# --- Body Size Limit Middleware ---
_MAX_BODY_BYTES = 1_048_576  # 1 MB


@app.middleware("http")
async def enforce_body_size_limit(request: Request, call_next):
    """Reject requests exceeding 1MB — guards both Content-Length and chunked bodies."""
    content_length = request.headers.get("content-length")
    if content_length:
        try:
            if int(content_length) > _MAX_BODY_BYTES:
                return JSONResponse(
                    status_code=413,
                    content={"detail": "Request body too large."},
                )
        except ValueError:
            pass  # Malformed content-length; let the framework handle it

    if request.method in ("POST", "PUT", "PATCH"):
        body = await request.body()
        if len(body) > _MAX_BODY_BYTES:
            return JSONResponse(
                status_code=413,
                content={"detail": "Request body too large."},
            )

    return await call_next(request)


# --- Request Logging Middleware ---
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every API request with method, path, status, duration."""
    path = request.url.path
    if path == "/health":
        return await call_next(request)

    start = time.time()
    response = await call_next(request)
    duration_ms = round((time.time() - start) * 1000, 1)

    logger.info(
        f"{request.method} {path} → {response.status_code} ({duration_ms}ms)",
        extra={
            "method": request.method,
            "path": path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        },
    )
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.main:app", host=settings.HOST, port=settings.PORT)
