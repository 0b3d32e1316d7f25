"""
Depth Formatter — deterministic section templates for an answer.

Takes the pieces of an answer and lays them out for the user's depth:
every depth gets the conclusion and up to four next actions; beginners
get plain-language steps, intermediate adds mechanics, advanced adds
edge cases, assumptions and limitations.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Literal, Optional, Union

from creditguard.schemas.answer import AnswerDepth, coerce_depth

MAX_NEXT_ACTIONS = 4

SectionType = Literal[
    "conclusion", "actions", "steps", "mechanics",
    "edge_cases", "assumptions", "limitations",
]


@dataclass(frozen=True)
class AnswerComponents:
    conclusion: str
    what_to_do_next: tuple[str, ...] = ()
    steps: Optional[tuple[str, ...]] = None
    mechanics: Optional[tuple[str, ...]] = None
    edge_cases: Optional[tuple[str, ...]] = None
    assumptions: Optional[tuple[str, ...]] = None
    limitations: Optional[tuple[str, ...]] = None


@dataclass(frozen=True)
class AnswerSection:
    type: SectionType
    title: str
    content: Union[str, tuple[str, ...]]


@dataclass(frozen=True)
class FormattedAnswer:
    depth: AnswerDepth
    sections: tuple[AnswerSection, ...] = field(default_factory=tuple)

    def section(self, section_type: str) -> Optional[AnswerSection]:
        for s in self.sections:
            if s.type == section_type:
                return s
        return None


# ============================================================
# JARGON
# ============================================================

JARGON_MAP: dict[str, str] = {
    "utilization ratio": "how much of your credit limit you're using",
    "utilization": "credit usage",
    "statement closing date": "when your monthly statement is generated",
    "statement close": "when your monthly statement is generated",
    "hard inquiry": "credit check that can slightly lower your score",
    "soft inquiry": "credit check that doesn't affect your score",
    "hard pull": "credit check that can slightly lower your score",
    "soft pull": "credit check that doesn't affect your score",
    "revolving credit": "credit cards and similar accounts",
    "installment credit": "loans with fixed payments like car or student loans",
    "derogatory marks": "negative items like late payments or collections",
    "aaoa": "average age of your accounts",
    "average age of accounts": "how long you've had your credit accounts on average",
    "credit mix": "variety of credit types you have",
    "payment history": "your record of paying on time",
}

# Longest term first, single pass: replacements are never re-scanned
_JARGON_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(t) for t in sorted(JARGON_MAP, key=len, reverse=True)) + r")\b",
    re.IGNORECASE,
)


def simplify_jargon(text: str) -> str:
    """Replace credit jargon with plain-language equivalents."""
    return _JARGON_RE.sub(lambda m: JARGON_MAP[m.group(0).lower()], text)


# ============================================================
# FORMATTING
# ============================================================

def format_by_depth(components: AnswerComponents, depth: AnswerDepth | str) -> FormattedAnswer:
    d = coerce_depth(depth)
    sections: list[AnswerSection] = [
        AnswerSection("conclusion", "Answer", components.conclusion),
        AnswerSection("actions", "What to do next", tuple(components.what_to_do_next[:MAX_NEXT_ACTIONS])),
    ]

    if d is AnswerDepth.BEGINNER:
        if components.steps:
            sections.append(AnswerSection(
                "steps", "Step by step", tuple(simplify_jargon(s) for s in components.steps),
            ))
    else:
        if components.steps:
            sections.append(AnswerSection("steps", "Steps", tuple(components.steps)))
        if components.mechanics:
            sections.append(AnswerSection("mechanics", "How it works", tuple(components.mechanics)))

    if d is AnswerDepth.ADVANCED:
        for attr, section_type, title in (
            ("edge_cases", "edge_cases", "Edge cases"),
            ("assumptions", "assumptions", "Assumptions"),
            ("limitations", "limitations", "Limitations"),
        ):
            value = getattr(components, attr)
            if value:
                sections.append(AnswerSection(section_type, title, tuple(value)))

    return FormattedAnswer(depth=d, sections=tuple(sections))


_DEPTH_LABELS = {
    AnswerDepth.BEGINNER: ("Simple", "Clear steps, no jargon"),
    AnswerDepth.INTERMEDIATE: ("Standard", "Includes how things work"),
    AnswerDepth.ADVANCED: ("Detailed", "Full details with edge cases"),
}


def get_depth_label(depth: AnswerDepth | str) -> str:
    return _DEPTH_LABELS[coerce_depth(depth)][0]


def get_depth_description(depth: AnswerDepth | str) -> str:
    return _DEPTH_LABELS[coerce_depth(depth)][1]
