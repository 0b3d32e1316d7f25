"""
Structured Logging for the guardrail layer.

Log lines carry ids, counts and type tags, never user text. Two things
hold that line:

  - Only the context keys in EXTRA_FIELDS are copied from `extra=`
    into a JSON entry. Anything else is dropped.
  - The message and every string value that is copied are passed
    through the PII redactor, so a stray identifier in a log call
    still reaches stdout as a placeholder.

Environment:
    CREDITGUARD_LOG_LEVEL   DEBUG | INFO | WARNING | ... (default INFO)
    CREDITGUARD_LOG_FORMAT  json | text (default json)

Usage:
    from creditguard.logging import get_logger
    logger = get_logger("pipeline")
    logger.info("Answer guarded", extra={"state": "normal", "depth": "beginner"})
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from creditguard.redaction import pii_redactor

LOG_LEVEL = os.getenv("CREDITGUARD_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("CREDITGUARD_LOG_FORMAT", "json")

NAMESPACE = "creditguard"

EXTRA_FIELDS: tuple[str, ...] = (
    # guardrail outcomes
    "myth_ids", "depth", "state", "topic_id",
    "redacted_count", "pii_types",
    "host", "reason", "links_checked", "links_blocked",
    # service
    "core_version", "duration_ms", "status_code", "method", "path",
    "error", "error_type",
)


def _scrub(value: Any) -> Any:
    if isinstance(value, str):
        return pii_redactor.redact(value).text
    if isinstance(value, (list, tuple)):
        return [_scrub(v) for v in value]
    return value


class JSONFormatter(logging.Formatter):
    """One JSON object per line, restricted to whitelisted context keys."""

    def __init__(self, fields: Iterable[str] = EXTRA_FIELDS):
        super().__init__()
        self.fields = tuple(fields)

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": _scrub(record.getMessage()),
        }

        for key in self.fields:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = _scrub(val)

        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable format for local development."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        return pii_redactor.redact(super().format(record)).text


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> logging.Logger:
    """
    Attach a single stdout handler to the creditguard logger.

    Safe to call more than once; earlier handlers are replaced. Arguments
    override CREDITGUARD_LOG_LEVEL and CREDITGUARD_LOG_FORMAT.
    """
    root = logging.getLogger(NAMESPACE)
    root.setLevel(getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if (fmt or LOG_FORMAT) == "json" else TextFormatter())
    root.addHandler(handler)

    for noisy in ("uvicorn.access", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return root


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{NAMESPACE}.{name}")
