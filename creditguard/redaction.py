"""
PII Redaction — scrub identifiers before persistence.

Regex-only and deterministic. Each category is an independent pattern;
matches are replaced with a fixed placeholder, so the original value
cannot be reconstructed from the output. No placeholder matches any
pattern, so redacting redacted text is a no-op.

Order is part of the contract: ADDRESS must run before ZIP, because a
5-digit number is only treated as a postal code when an address was
found in the same text. "$12500" is not a ZIP on its own.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PIICategory:
    """One redaction category."""
    type_tag: str
    pattern: re.Pattern
    placeholder: str
    requires: str = ""  # type_tag that must already be found in the same text


# Each category: (type tag, compiled regex, placeholder). Order matters.
PII_CATEGORIES: tuple[PIICategory, ...] = (
    PIICategory(
        "email",
        re.compile(r"\b[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}\b"),
        "[EMAIL]",
    ),
    PIICategory(
        "phone",
        # Digit-bounded; a bare leading 1 needs a separator so the
        # groups of a spaced card number never read as a phone
        re.compile(
            r"(?<!\d)(?:\+1[\-.\s]?|1[\-.\s])?"
            r"(?:\(\d{3}\)\s?|\d{3}[\-.\s]?)?"
            r"\d{3}[\-.\s]?\d{4}(?!\d)"
        ),
        "[PHONE]",
    ),
    PIICategory(
        "ssn",
        re.compile(r"\b\d{3}[\-\s]?\d{2}[\-\s]?\d{4}\b"),
        "[SSN]",
    ),
    PIICategory(
        "card_number",
        re.compile(r"\b(?:\d{4}[\-\s]?){3}\d{4}\b"),
        "[CARD_NUMBER]",
    ),
    PIICategory(
        "address",
        re.compile(
            r"\b\d{1,5}\s+\w+\s+"
            r"(?:street|st|avenue|ave|road|rd|boulevard|blvd|drive|dr|lane|ln|way|court|ct)\b",
            re.IGNORECASE,
        ),
        "[ADDRESS]",
    ),
    PIICategory(
        "zip",
        re.compile(r"\b\d{5}(?:-\d{4})?\b"),
        "[ZIP]",
        requires="address",
    ),
    PIICategory(
        "account_number",
        re.compile(r"\b(?:account|acct)\s*#?\s*\d{6,}\b", re.IGNORECASE),
        "[ACCOUNT]",
    ),
)


@dataclass(frozen=True)
class RedactionResult:
    """Result of redacting one string."""
    text: str
    redacted_count: int = 0
    types: tuple[str, ...] = field(default_factory=tuple)


class PIIRedactor:
    """Stateless redactor over a fixed category list. Thread-safe."""

    def __init__(self, categories: tuple[PIICategory, ...] = PII_CATEGORIES):
        self._categories = tuple(categories)

    def redact(self, text: str) -> RedactionResult:
        """Redact every category from text, in category order."""
        if not isinstance(text, str) or not text:
            return RedactionResult(text=text if isinstance(text, str) else "")

        result = text
        count = 0
        types: list[str] = []
        for category in self._categories:
            if category.requires and category.requires not in types:
                continue
            result, n = category.pattern.subn(category.placeholder, result)
            if n:
                count += n
                types.append(category.type_tag)

        return RedactionResult(text=result, redacted_count=count, types=tuple(types))

    def redact_deep(self, value: Any) -> Any:
        """
        Recursively redact every string in a nested structure.

        Mappings, lists, tuples, pydantic models and dataclass instances
        are rebuilt with the same shape and type; numbers, booleans and
        None pass through unchanged. The input is not mutated.
        """
        if isinstance(value, str):
            return self.redact(value).text
        if isinstance(value, BaseModel):
            return type(value).model_validate(self.redact_deep(value.model_dump()))
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            changes = {
                f.name: self.redact_deep(getattr(value, f.name))
                for f in dataclasses.fields(value)
                if f.init
            }
            return dataclasses.replace(value, **changes)
        if isinstance(value, Mapping):
            return {k: self.redact_deep(v) for k, v in value.items()}
        if isinstance(value, list):
            return [self.redact_deep(v) for v in value]
        if isinstance(value, tuple):
            return tuple(self.redact_deep(v) for v in value)
        return value

    def scan_deep(self, value: Any) -> RedactionResult:
        """
        Redact a nested structure and total up what was removed.

        The returned text is empty; use redact_deep for the structure itself.
        """
        count = 0
        types: list[str] = []
        for s in _iter_strings(value):
            r = self.redact(s)
            count += r.redacted_count
            types.extend(t for t in r.types if t not in types)
        return RedactionResult(text="", redacted_count=count, types=tuple(types))


def _iter_strings(value: Any):
    if isinstance(value, str):
        yield value
    elif isinstance(value, BaseModel):
        yield from _iter_strings(value.model_dump())
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        for f in dataclasses.fields(value):
            yield from _iter_strings(getattr(value, f.name))
    elif isinstance(value, Mapping):
        for v in value.values():
            yield from _iter_strings(v)
    elif isinstance(value, (list, tuple)):
        for v in value:
            yield from _iter_strings(v)


# ============================================================
# SINGLETON
# ============================================================

pii_redactor = PIIRedactor()


def redact_pii(text: str) -> RedactionResult:
    return pii_redactor.redact(text)


def redact_deep(value: Any) -> Any:
    return pii_redactor.redact_deep(value)
