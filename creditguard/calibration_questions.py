"""
Calibration Gate — deterministic rules for when to ask before answering.

Some questions cannot be answered precisely without a few facts about
the user (statement close date, balance, APR...). A user who has never
calibrated gets the initial questionnaire; otherwise each topic's
patterns are checked and its missing required facts are asked for,
at most five at a time.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, Optional

from creditguard.schemas.answer import AnswerDepth

MAX_CALIBRATION_QUESTIONS = 5

QuestionType = Literal["single_select", "number", "date", "currency", "free_text"]


@dataclass(frozen=True)
class QuestionOption:
    value: str
    label: str


@dataclass(frozen=True)
class CalibrationQuestion:
    """A single fact the user may be asked for."""
    id: str
    prompt: str
    type: QuestionType
    required: bool = True
    options: tuple[QuestionOption, ...] = ()


@dataclass(frozen=True)
class TopicRequirement:
    """
    A question topic and the facts needed to answer it.

    required_facts names what a full answer relies on and is
    informational. The gate asks the required entries of questions and
    checks context_provided by question id.
    """
    topic_id: str
    patterns: tuple[re.Pattern, ...]
    required_facts: tuple[str, ...]
    questions: tuple[CalibrationQuestion, ...]

    def matches(self, question: str) -> bool:
        return any(p.search(question) for p in self.patterns)


@dataclass(frozen=True)
class CalibrationContext:
    """What is already known about the user for this request."""
    has_calibration: bool = False
    context_provided: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CalibrationResult:
    needed: bool
    questions: tuple[CalibrationQuestion, ...] = ()
    topic_id: Optional[str] = None


@dataclass(frozen=True)
class CalibrationPreferences:
    """Preferences derived from an answered questionnaire."""
    answer_depth: AnswerDepth
    calibration: dict[str, Any]


def _options(*pairs: tuple[str, str]) -> tuple[QuestionOption, ...]:
    return tuple(QuestionOption(value=v, label=label) for v, label in pairs)


def _rx(*patterns: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


# ============================================================
# TOPIC REQUIREMENTS
# ============================================================

TOPIC_REQUIREMENTS: tuple[TopicRequirement, ...] = (
    TopicRequirement(
        topic_id="utilization_timing",
        patterns=_rx(
            r"when\s*(?:should\s*i\s*)?(?:pay|make\s*(?:a\s*)?payment)\s*(?:to\s*)?(?:lower|reduce|optimize)\s*(?:my\s*)?utilization",
            r"utilization\s*(?:timing|when|before|after)",
            r"statement\s*close\s*(?:date|when|timing)",
            r"pay\s*before\s*(?:the\s*)?statement",
            r"optimi[sz]e\s*(?:my\s*)?utilization",
        ),
        required_facts=("statement_close_date", "current_balance", "credit_limit", "target_utilization"),
        questions=(
            CalibrationQuestion("statement_close_date", "When does your statement close? (day of month)", "number"),
            CalibrationQuestion("current_balance", "What is your current balance?", "currency"),
            CalibrationQuestion("credit_limit", "What is your credit limit?", "currency"),
            CalibrationQuestion(
                "target_utilization",
                "What utilization % are you targeting?",
                "single_select",
                options=_options(
                    ("1-5", "1-5% (optimal)"),
                    ("6-10", "6-10% (good)"),
                    ("11-30", "11-30% (acceptable)"),
                    ("unsure", "Not sure"),
                ),
            ),
        ),
    ),
    TopicRequirement(
        topic_id="bnpl_risk",
        patterns=_rx(
            r"bnpl\s*(?:safe|risk|danger|affect|impact)",
            r"buy\s*now,?\s*pay\s*later\s*(?:safe|risk|good|bad)",
            r"(?:affirm|klarna|afterpay)\s*(?:risk|safe|good)",
            r"should\s*i\s*(?:use\s*)?bnpl",
        ),
        required_facts=("bnpl_usage", "carry_balance", "credit_utilization"),
        questions=(
            CalibrationQuestion(
                "bnpl_current_usage",
                "How often do you currently use BNPL?",
                "single_select",
                options=_options(
                    ("never", "Never"),
                    ("rarely", "Rarely (1-2x/year)"),
                    ("sometimes", "Sometimes (monthly)"),
                    ("often", "Often (weekly)"),
                ),
            ),
            CalibrationQuestion(
                "bnpl_outstanding",
                "Do you have any outstanding BNPL balances?",
                "single_select",
                options=_options(
                    ("no", "No"),
                    ("yes_current", "Yes, all current"),
                    ("yes_late", "Yes, some late"),
                ),
            ),
        ),
    ),
    TopicRequirement(
        topic_id="card_recommendation",
        patterns=_rx(
            r"which\s*card\s*(?:should|is\s*best|do\s*you\s*recommend)",
            r"best\s*card\s*for",
            r"recommend\s*(?:a\s*)?card",
            r"what\s*card\s*should\s*i\s*(?:use|get|apply)",
        ),
        required_facts=("spending_category", "monthly_spend", "reward_preference"),
        questions=(
            CalibrationQuestion(
                "spending_category",
                "What category is this purchase?",
                "single_select",
                options=_options(
                    ("dining", "Dining"),
                    ("groceries", "Groceries"),
                    ("travel", "Travel"),
                    ("gas", "Gas"),
                    ("online", "Online Shopping"),
                    ("general", "General/Other"),
                ),
            ),
            CalibrationQuestion("purchase_amount", "Approximate purchase amount?", "currency", required=False),
        ),
    ),
    TopicRequirement(
        topic_id="balance_payoff",
        patterns=_rx(
            r"pay\s*off\s*(?:my\s*)?(?:debt|balance|card)",
            r"debt\s*(?:payoff|strategy|plan)",
            r"avalanche|snowball\s*method",
            r"which\s*(?:balance|card)\s*(?:to\s*|should\s*i\s*)?pay\s*(?:off\s*)?first",
        ),
        required_facts=("balances", "aprs", "minimum_payments"),
        questions=(
            CalibrationQuestion("num_cards_with_balance", "How many cards have a balance?", "number"),
            CalibrationQuestion("total_debt", "Approximate total credit card debt?", "currency"),
            CalibrationQuestion(
                "highest_apr",
                "What is your highest APR?",
                "single_select",
                options=_options(
                    ("under_15", "Under 15%"),
                    ("15-20", "15-20%"),
                    ("20-25", "20-25%"),
                    ("over_25", "Over 25%"),
                    ("unknown", "Not sure"),
                ),
            ),
        ),
    ),
    TopicRequirement(
        topic_id="credit_limit_increase",
        patterns=_rx(
            r"credit\s*limit\s*(?:increase|raise|higher)",
            r"\bcli\s*(?:request|ask|get)",
            r"increase\s*(?:my\s*)?(?:credit\s*)?limit",
            r"ask\s*for\s*(?:a\s*)?(?:more|higher)\s*limit",
        ),
        required_facts=("current_limit", "income", "utilization"),
        questions=(
            CalibrationQuestion("current_limit", "What is your current credit limit?", "currency"),
            CalibrationQuestion(
                "account_age_months",
                "How long have you had this card?",
                "single_select",
                options=_options(
                    ("under_6", "Under 6 months"),
                    ("6-12", "6-12 months"),
                    ("1-2_years", "1-2 years"),
                    ("over_2", "Over 2 years"),
                ),
            ),
        ),
    ),
)


# Standard questionnaire for first-time users
INITIAL_CALIBRATION_QUESTIONS: tuple[CalibrationQuestion, ...] = (
    CalibrationQuestion(
        "goal",
        "What is your primary goal?",
        "single_select",
        options=_options(
            ("score", "Build/Protect Credit Score"),
            ("rewards", "Maximize Rewards"),
            ("both", "Both"),
        ),
    ),
    CalibrationQuestion(
        "carry_balance",
        "Do you carry a balance month to month?",
        "single_select",
        options=_options(
            ("no", "No, I pay in full"),
            ("sometimes", "Sometimes"),
            ("usually", "Usually"),
        ),
    ),
    CalibrationQuestion(
        "knows_statement_vs_due",
        "Do you know the difference between statement close and due date?",
        "single_select",
        options=_options(("yes", "Yes"), ("no", "No"), ("unsure", "Not sure")),
    ),
    CalibrationQuestion(
        "bnpl_usage",
        "How often do you use Buy Now, Pay Later (BNPL)?",
        "single_select",
        options=_options(("never", "Never"), ("sometimes", "Sometimes"), ("often", "Often")),
    ),
    CalibrationQuestion(
        "confidence_level",
        "How confident are you about credit decisions?",
        "single_select",
        options=_options(
            ("low", "Not confident"),
            ("medium", "Somewhat confident"),
            ("high", "Very confident"),
        ),
    ),
    CalibrationQuestion(
        "wants_edge_cases",
        "Do you want answers to include edge cases and assumptions?",
        "single_select",
        options=_options(("no", "No, keep it simple"), ("yes", "Yes, show me everything")),
    ),
)


# ============================================================
# GATE
# ============================================================

def check_calibration_needed(question: str, context: CalibrationContext) -> CalibrationResult:
    """
    Decide whether facts are missing before the question can be answered.

    The first matching topic with missing required facts wins.
    """
    if not context.has_calibration:
        return CalibrationResult(
            needed=True,
            questions=INITIAL_CALIBRATION_QUESTIONS,
            topic_id="initial",
        )

    if not isinstance(question, str):
        return CalibrationResult(needed=False)

    provided = context.context_provided or {}
    for topic in TOPIC_REQUIREMENTS:
        if not topic.matches(question):
            continue
        missing = [q for q in topic.questions if q.required and not provided.get(q.id)]
        if missing:
            return CalibrationResult(
                needed=True,
                questions=tuple(missing[:MAX_CALIBRATION_QUESTIONS]),
                topic_id=topic.topic_id,
            )

    return CalibrationResult(needed=False)


def map_calibration_to_preferences(answers: Mapping[str, str]) -> CalibrationPreferences:
    """Translate questionnaire answers into a depth and calibration flags."""
    calibration: dict[str, Any] = {}

    goal = answers.get("goal")
    if goal:
        calibration["goal_score"] = goal in ("score", "both")
        calibration["goal_rewards"] = goal in ("rewards", "both")

    if answers.get("carry_balance"):
        calibration["carry_balance"] = answers["carry_balance"] != "no"

    if answers.get("knows_statement_vs_due"):
        calibration["knows_statement_vs_due"] = answers["knows_statement_vs_due"] == "yes"

    for key in ("bnpl_usage", "confidence_level"):
        if answers.get(key):
            calibration[key] = answers[key]

    if answers.get("wants_edge_cases") == "yes":
        depth = AnswerDepth.ADVANCED
    elif answers.get("confidence_level") == "high":
        depth = AnswerDepth.INTERMEDIATE
    else:
        depth = AnswerDepth.BEGINNER

    return CalibrationPreferences(answer_depth=depth, calibration=calibration)
