"""
Myth Core — Immutable Credit Myth Catalog

The myth catalog defines:
  1. Which credit misconceptions the system proactively corrects
  2. The correction text shown for each one
  3. How each myth is recognized (deterministic, no LLM)

Two matching disciplines live here, each kept exactly as precise
as it was tuned:

  - KeywordPhraseRule: conjunctive. A keyword AND a contextual
    phrase must both appear. "utilization" alone never fires the
    zero-utilization myth; it needs "0%" or "zero" alongside.
  - RegexRule: disjunctive. Any one regex is sufficient. Used
    where word order carries the misconception.

A myth holds one or more rules and matches when any rule does.
The catalog is frozen at import time and never mutated. Re-run
run_calibration.py after changing any rule.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Union

from creditguard.schemas.answer import AnswerDepth, Severity, coerce_depth

logger = logging.getLogger(__name__)

ALL_DEPTHS: frozenset[AnswerDepth] = frozenset(AnswerDepth)


# ============================================================
# MATCH RULES
# ============================================================

@dataclass(frozen=True)
class KeywordPhraseRule:
    """Conjunctive rule. Expects lowercased text."""
    keywords: tuple[str, ...]
    phrases: tuple[str, ...]

    def match(self, text: str) -> Optional[str]:
        keyword = next((k for k in self.keywords if k in text), None)
        if keyword is None:
            return None
        phrase = next((p for p in self.phrases if p in text), None)
        if phrase is None:
            return None
        return f"{keyword} + {phrase}"


@dataclass(frozen=True)
class RegexRule:
    """Disjunctive rule. First matching pattern wins."""
    patterns: tuple[re.Pattern, ...]

    def match(self, text: str) -> Optional[str]:
        for pattern in self.patterns:
            found = pattern.search(text)
            if found:
                return found.group(0)
        return None


MatchRule = Union[KeywordPhraseRule, RegexRule]


def _keywords(keywords: list[str], phrases: list[str]) -> KeywordPhraseRule:
    return KeywordPhraseRule(
        keywords=tuple(k.lower() for k in keywords),
        phrases=tuple(p.lower() for p in phrases),
    )


def _regex(*patterns: str) -> RegexRule:
    return RegexRule(patterns=tuple(re.compile(p, re.IGNORECASE) for p in patterns))


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass(frozen=True)
class MythPattern:
    """A single catalog entry."""
    id: str
    myth: str
    correction: str
    severity: Severity
    rules: tuple[MatchRule, ...]
    why_it_matters: str = ""
    applies_to_depth: frozenset[AnswerDepth] = ALL_DEPTHS

    @property
    def keywords(self) -> tuple[str, ...]:
        return tuple(
            k for r in self.rules if isinstance(r, KeywordPhraseRule) for k in r.keywords
        )

    @property
    def phrases(self) -> tuple[str, ...]:
        return tuple(
            p for r in self.rules if isinstance(r, KeywordPhraseRule) for p in r.phrases
        )

    def match(self, text: str) -> Optional[str]:
        """Return evidence for the first matching rule, or None."""
        for rule in self.rules:
            evidence = rule.match(text)
            if evidence is not None:
                return evidence
        return None


@dataclass(frozen=True)
class DetectedMyth:
    """One myth found in a question."""
    id: str
    myth: str
    correction: str
    why_it_matters: str
    severity: Severity
    evidence: str


@dataclass(frozen=True)
class MythDetectionResult:
    """Result of a detection call. Built fresh per call."""
    detected: bool
    myths: tuple[DetectedMyth, ...] = field(default_factory=tuple)

    @property
    def ids(self) -> list[str]:
        return [m.id for m in self.myths]


# ============================================================
# THE CATALOG
# ============================================================

MYTH_CATALOG: tuple[MythPattern, ...] = (
    MythPattern(
        id="zero-utilization",
        myth="0% utilization is best for your score",
        correction=(
            "Some utilization (1-9%) is actually better than 0%. Scoring models "
            "may interpret zero usage as inactivity."
        ),
        why_it_matters=(
            "Zero utilization suggests inactive accounts. Scoring models reward low "
            "but non-zero usage that demonstrates responsible borrowing behavior."
        ),
        severity="medium",
        rules=(
            _keywords(
                ["0%", "zero", "0 percent", "no balance"],
                ["utilization", "usage", "credit use"],
            ),
            _regex(
                r"0%?\s*utilization\s*(?:is\s*)?(?:best|optimal|ideal)",
                r"keep\s*(?:my\s*)?utilization\s*(?:at\s*)?0",
                r"zero\s*utilization\s*(?:is\s*)?(?:good|best|better)",
                r"should\s*(?:i\s*)?have\s*0\s*utilization",
            ),
        ),
    ),
    MythPattern(
        id="closing-date-myth",
        myth="It doesn't matter when you pay as long as you pay",
        correction=(
            "Payment timing affects utilization reporting. Balances are typically "
            "reported on statement close, not due date. Paying before statement "
            "close can lower reported utilization."
        ),
        severity="high",
        rules=(
            _keywords(
                ["closing date", "statement date", "when to pay"],
                ["doesn't matter", "doesnt matter", "any time", "anytime"],
            ),
        ),
    ),
    MythPattern(
        id="pay-by-due-date-lowers-utilization",
        myth="Paying by the due date lowers the utilization bureaus see",
        correction=(
            "Utilization is reported on statement CLOSE date, not due date. Pay "
            "BEFORE the statement closes to lower reported utilization."
        ),
        why_it_matters=(
            "Most issuers report balances to bureaus when the statement generates, "
            "not when payment is due. Paying by the due date avoids interest but "
            "does not change the utilization reported to bureaus."
        ),
        severity="high",
        rules=(
            _regex(
                r"pay\s*(?:by|before)\s*(?:the\s*)?due\s*date\s*(?:to\s*)?(?:lower|reduce|improve)\s*(?:my\s*)?utilization",
                r"(?:lower|reduce|improve)\s*(?:my\s*)?utilization\s*(?:by|before|on)\s*(?:the\s*)?due\s*date",
                r"due\s*date\s*(?:payment\s*)?(?:affects?|impacts?|changes?)\s*(?:my\s*)?utilization",
                r"paying\s*(?:on\s*)?(?:the\s*)?due\s*date\s*(?:helps?|lowers?)\s*(?:my\s*)?utilization",
            ),
        ),
    ),
    MythPattern(
        id="closing-date-is-due-date",
        myth="The statement closing date and the due date are the same",
        correction=(
            "Statement close date and due date are different. Close date is when "
            "your statement generates. Due date is ~21-25 days later when payment "
            "is due."
        ),
        why_it_matters=(
            "Confusing these dates causes missed payment timing for utilization "
            "optimization and can lead to unnecessary interest charges."
        ),
        severity="high",
        rules=(
            _regex(
                r"statement\s*(?:close|closing)\s*(?:date\s*)?(?:is\s*)?(?:the\s*)?(?:same\s*as\s*)?(?:the\s*)?(?:due\s*date|when.*pay)",
                r"due\s*date\s*(?:is\s*)?(?:when\s*)?(?:the\s*)?(?:statement\s*)?(?:close|closes)\b",
                r"clos(?:e|ing)\s*date\s*(?:and\s*)?(?:the\s*)?due\s*date\s*(?:are\s*)?(?:the\s*)?same",
            ),
        ),
    ),
    MythPattern(
        id="minimum-payment",
        myth="Paying the minimum avoids interest charges",
        correction=(
            "The minimum payment does NOT avoid interest. Interest accrues on "
            "unpaid balances. Pay in full each month to avoid interest."
        ),
        severity="high",
        rules=(
            _keywords(
                ["minimum", "min payment", "minimum payment"],
                ["avoid interest", "no interest", "interest free"],
            ),
        ),
    ),
    MythPattern(
        id="credit-cycling",
        myth="Credit cycling is illegal",
        correction=(
            "Credit cycling (paying mid-cycle to reuse available credit) is not "
            "illegal, but may trigger issuer reviews. It can indicate "
            "over-reliance on credit."
        ),
        severity="low",
        rules=(
            _keywords(
                ["cycling", "cycle credit", "reuse credit"],
                ["illegal", "fraud", "against the law"],
            ),
        ),
    ),
    MythPattern(
        id="new-card-hurts",
        myth="Opening a new card always hurts your credit long-term",
        correction=(
            "A new card causes a temporary dip (hard inquiry, lower average age), "
            "but long-term benefits include lower utilization and improved credit "
            "mix. The impact depends on your overall profile."
        ),
        severity="medium",
        rules=(
            _keywords(
                ["new card", "opening card", "apply for card"],
                ["hurts", "damages", "lowers", "bad for", "always hurts"],
            ),
        ),
    ),
    MythPattern(
        id="close-old-cards",
        myth="You should close credit cards you don't use",
        correction=(
            "Closing old cards can hurt your score by reducing total credit "
            "(higher utilization) and shortening credit history. Keep no-fee "
            "cards open, even if unused."
        ),
        severity="high",
        rules=(
            _keywords(
                ["close", "cancel", "closing old"],
                ["old card", "unused card", "don't use"],
            ),
        ),
    ),
    MythPattern(
        id="carry-balance",
        myth="Carrying a balance helps build credit",
        correction=(
            "You do NOT need to carry a balance. It costs you money in interest. "
            "Pay in full each month - this still builds credit history."
        ),
        why_it_matters=(
            "This myth costs consumers billions in unnecessary interest. On-time "
            "payment history matters. Carrying a balance only increases "
            "utilization and costs you money."
        ),
        severity="high",
        rules=(
            _keywords(
                ["carry balance", "keep balance", "leave balance"],
                ["builds credit", "helps score", "good for credit"],
            ),
            _regex(
                r"carry(?:ing)?\s*(?:a\s*)?balance\s*(?:to\s*)?(?:build|improve|help)\s*(?:my\s*)?(?:credit|score)",
                r"need\s*(?:to\s*)?carry\s*(?:a\s*)?balance",
                r"keep(?:ing)?\s*(?:a\s*)?balance\s*(?:to\s*)?(?:help|build|improve)",
                r"balance\s*(?:to\s*)?build\s*credit",
                r"paying\s*interest\s*(?:helps?|builds?)\s*(?:my\s*)?(?:credit|score)",
            ),
        ),
    ),
    MythPattern(
        id="interest-helps-approvals",
        myth="Paying interest improves your approval odds",
        correction=(
            "Paying interest does NOT improve approval odds. Banks profit from "
            "interest but scoring models do not reward it."
        ),
        why_it_matters=(
            "This myth benefits lenders, not you. Creditworthiness is determined "
            "by payment history, utilization, and account age, not by how much "
            "interest you pay."
        ),
        severity="high",
        rules=(
            _regex(
                r"paying\s*interest\s*(?:helps?|improves?|increases?)\s*(?:my\s*)?(?:approval|chances?|odds)",
                r"interest\s*(?:payments?|charges?)\s*(?:shows?|proves?)\s*(?:i\s*am|i'm)\s*(?:responsible|good)",
                r"banks?\s*(?:like|want|prefer)s?\s*(?:me\s*)?(?:to\s*)?pay\s*interest",
            ),
        ),
    ),
    MythPattern(
        id="income-score",
        myth="Your income affects your credit score",
        correction=(
            "Income is NOT a factor in credit scores. FICO and VantageScore only "
            "consider credit-related factors. However, income affects approval "
            "decisions."
        ),
        severity="low",
        rules=(
            _keywords(
                ["income", "salary", "how much you make"],
                ["affects score", "credit score", "part of score"],
            ),
        ),
    ),
    MythPattern(
        id="checking-hurts",
        myth="Checking your own credit hurts your score",
        correction=(
            'Checking your own credit is a "soft pull" and has NO effect on your '
            'score. Only "hard pulls" from applications can (temporarily) lower '
            "your score."
        ),
        why_it_matters=(
            "Fear of checking credit leads to ignorance about your own financial "
            "health. Soft pulls are invisible to scoring models."
        ),
        severity="low",
        rules=(
            _keywords(
                ["checking score", "check my score", "credit check"],
                ["hurts", "lowers", "damages", "bad"],
            ),
            _regex(
                r"checking\s*(?:my\s*)?(?:own\s*)?credit\s*(?:score\s*)?(?:hurts?|damages?|lowers?|bad)",
                r"soft\s*pulls?\s*(?:hurts?|damages?|lowers?|affects?)\s*(?:my\s*)?score",
                r"every\s*credit\s*check\s*(?:hurts?|damages?)",
                r"checking\s*(?:my\s*)?(?:credit|score)\s*(?:is\s*)?bad",
            ),
        ),
    ),
    MythPattern(
        id="debit-builds",
        myth="Using a debit card builds credit",
        correction=(
            "Debit cards do NOT report to credit bureaus and have no effect on "
            "your credit score. Only credit accounts build credit history."
        ),
        severity="medium",
        rules=(
            _keywords(
                ["debit card", "debit"],
                ["builds credit", "helps score", "credit history"],
            ),
        ),
    ),
    MythPattern(
        id="bnpl-no-impact",
        myth="Buy now, pay later has no credit impact",
        correction=(
            "Many BNPL providers now report to credit bureaus. Missed payments CAN "
            "hurt your score. Late BNPL can go to collections."
        ),
        why_it_matters=(
            "BNPL is increasingly reported to bureaus. A missed BNPL payment can "
            "result in collection accounts that damage credit for years."
        ),
        severity="high",
        rules=(
            _regex(
                r"bnpl\s*(?:has\s*)?(?:no|zero|doesn't|does\s*not)\s*(?:credit\s*)?(?:affect|impact|effect|hurt)",
                r"buy\s*now,?\s*pay\s*later\s*(?:has\s*)?(?:doesn't|does\s*not|no)\s*(?:credit\s*)?(?:affect|impact|show)",
                r"(?:affirm|klarna|afterpay)\s*(?:doesn't|does\s*not)\s*(?:report|affect|impact)",
                r"(?:affirm|klarna|afterpay)\s*(?:has\s*)?(?:no|zero)\s*(?:credit\s*)?(?:affect|impact|effect)",
                r"bnpl\s*(?:is\s*)?not\s*(?:on\s*)?(?:my\s*)?credit\s*report",
            ),
        ),
    ),
)


# ============================================================
# THE DETECTOR
# ============================================================

class MythDetector:
    """
    Deterministic myth classifier. Holds no mutable state; the
    catalog it evaluates is passed in once at construction.
    """

    def __init__(self, catalog: tuple[MythPattern, ...] = MYTH_CATALOG):
        self._catalog = tuple(catalog)

    def detect(self, question: str, depth: AnswerDepth | str = AnswerDepth.BEGINNER) -> MythDetectionResult:
        """
        Classify a question against the catalog.

        Args:
            question: Free-text user question.
            depth: Only myths applicable to this depth are evaluated.

        Returns:
            MythDetectionResult, myths in catalog order, each id at most once.
        """
        if not isinstance(question, str) or not question.strip():
            return MythDetectionResult(detected=False)

        depth = coerce_depth(depth)
        text = question.lower().strip()

        found: list[DetectedMyth] = []
        seen: set[str] = set()
        for pattern in self._catalog:
            if depth not in pattern.applies_to_depth or pattern.id in seen:
                continue
            evidence = pattern.match(text)
            if evidence is None:
                continue
            seen.add(pattern.id)
            found.append(DetectedMyth(
                id=pattern.id,
                myth=pattern.myth,
                correction=pattern.correction,
                why_it_matters=pattern.why_it_matters,
                severity=pattern.severity,
                evidence=evidence,
            ))

        if found:
            logger.debug(
                "Myths detected",
                extra={"myth_ids": [m.id for m in found], "depth": depth.value},
            )
        return MythDetectionResult(detected=bool(found), myths=tuple(found))

    def get_all_myths(self) -> list[MythPattern]:
        return list(self._catalog)

    def get_myths_by_severity(self, severity: str) -> list[MythPattern]:
        return [m for m in self._catalog if m.severity == severity]

    def get_myth_by_id(self, myth_id: str) -> Optional[MythPattern]:
        return next((m for m in self._catalog if m.id == myth_id), None)

    def get_catalog(self) -> list[dict]:
        """
        Return the catalog in a serializable form.

        Used by the GET /myths endpoint to expose the detection surface.
        """
        return [
            {
                "id": m.id,
                "myth": m.myth,
                "correction": m.correction,
                "why_it_matters": m.why_it_matters,
                "severity": m.severity,
                "applies_to_depth": sorted(d.value for d in m.applies_to_depth),
                "keywords": list(m.keywords),
                "phrases": list(m.phrases),
                "matching": [
                    "keyword_phrase" if isinstance(r, KeywordPhraseRule) else "regex"
                    for r in m.rules
                ],
            }
            for m in self._catalog
        ]


# ============================================================
# SINGLETON
# ============================================================

myth_detector = MythDetector()


def detect_myths(question: str, depth: AnswerDepth | str = AnswerDepth.BEGINNER) -> MythDetectionResult:
    """Module-level shortcut for myth_detector.detect()."""
    return myth_detector.detect(question, depth)
