"""
Tests for the answer enforcer — depth rules, blocking, validation.

A malformed or over-scoped answer reaching the user is the failure
this module exists to prevent.
"""

import pytest
from pydantic import ValidationError

from creditguard.answers import (
    BLOCKED_SUMMARY,
    CALIBRATION_SUMMARY,
    DEPTH_RULES,
    apply_depth_rules,
    audit_depth_compliance,
    count_sentences,
    create_blocked_response,
    create_calibration_response,
    create_fallback_response,
    get_depth_rule,
    validate_hard_answer,
)
from creditguard.schemas.answer import AnswerDepth, HardAnswer, coerce_depth


def _full_candidate(**overrides):
    data = {
        "summary": "Pay before your statement closes.",
        "recommended_action": "Pay the balance down to under 10% of the limit.",
        "steps": ["Find your statement close date", "Pay two days before it"],
        "mechanics": "Issuers report the statement balance to the bureaus.",
        "edge_cases": ["Some issuers report mid-cycle"],
        "warnings": ["Still pay the minimum by the due date"],
        "confidence": "high",
        "blocked": False,
        "block_reason": None,
    }
    data.update(overrides)
    return data


# ============================================================
# DEPTH TABLE
# ============================================================

class TestDepthRules:

    def test_table(self):
        b = DEPTH_RULES[AnswerDepth.BEGINNER]
        i = DEPTH_RULES[AnswerDepth.INTERMEDIATE]
        a = DEPTH_RULES[AnswerDepth.ADVANCED]
        assert (b.summary_max_sentences, b.max_steps, b.mechanics, b.edge_cases, b.warnings) == (
            2, 3, False, False, "severe_only")
        assert (i.summary_max_sentences, i.max_steps, i.mechanics, i.edge_cases, i.warnings) == (
            3, 6, True, False, "allowed")
        assert (a.summary_max_sentences, a.max_steps, a.mechanics, a.edge_cases, a.warnings) == (
            4, 10, True, True, "required")

    def test_unknown_depth_is_beginner(self):
        assert get_depth_rule("expert") is DEPTH_RULES[AnswerDepth.BEGINNER]
        assert coerce_depth(None) is AnswerDepth.BEGINNER
        assert coerce_depth(" Advanced ") is AnswerDepth.ADVANCED


# ============================================================
# apply_depth_rules
# ============================================================

class TestApplyDepthRules:

    @pytest.mark.parametrize("depth", list(AnswerDepth))
    def test_steps_never_exceed_cap(self, depth):
        candidate = _full_candidate(steps=[f"step {n}" for n in range(15)])
        answer = apply_depth_rules(candidate, depth)
        assert len(answer.steps) == DEPTH_RULES[depth].max_steps
        assert answer.steps[0] == "step 0"

    def test_beginner_drops_mechanics_and_edge_cases(self):
        answer = apply_depth_rules(_full_candidate(), "beginner")
        assert answer.mechanics is None
        assert answer.edge_cases is None
        assert answer.recommended_action is not None

    def test_intermediate_keeps_mechanics_only(self):
        answer = apply_depth_rules(_full_candidate(), "intermediate")
        assert answer.mechanics is not None
        assert answer.edge_cases is None

    def test_advanced_keeps_everything(self):
        answer = apply_depth_rules(_full_candidate(), "advanced")
        assert answer.mechanics is not None
        assert answer.edge_cases == ["Some issuers report mid-cycle"]

    def test_warnings_pass_through_at_every_depth(self):
        for depth in AnswerDepth:
            answer = apply_depth_rules(_full_candidate(), depth)
            assert answer.warnings == ["Still pay the minimum by the due date"]

    def test_summary_preserved(self):
        long_summary = "One. Two. Three. Four. Five."
        answer = apply_depth_rules(_full_candidate(summary=long_summary), "beginner")
        assert answer.summary == long_summary

    def test_defaults_for_missing_fields(self):
        answer = apply_depth_rules({}, "advanced")
        assert answer.summary == ""
        assert answer.steps == []
        assert answer.confidence == "medium"
        assert answer.blocked is False
        assert answer.recommended_action is None
        assert answer.warnings is None

    def test_invalid_confidence_becomes_medium(self):
        answer = apply_depth_rules(_full_candidate(confidence="certain"), "beginner")
        assert answer.confidence == "medium"

    def test_ill_typed_values_are_dropped(self):
        answer = apply_depth_rules(
            _full_candidate(steps=["a", 1, None, "b"], mechanics=42, summary=["x"]),
            "advanced",
        )
        assert answer.steps == ["a", "b"]
        assert answer.mechanics is None
        assert answer.summary == ""

    @pytest.mark.parametrize("candidate", [None, "text", 42, ["a", "b"]])
    def test_non_mapping_candidate(self, candidate):
        answer = apply_depth_rules(candidate, "beginner")
        assert isinstance(answer, HardAnswer)
        assert answer.steps == []

    def test_blocked_discards_actionable_content(self):
        answer = apply_depth_rules(
            _full_candidate(blocked=True, block_reason="Too many recent inquiries"),
            "advanced",
        )
        assert answer.blocked is True
        assert answer.block_reason == "Too many recent inquiries"
        assert answer.recommended_action is None
        assert answer.mechanics is None
        assert answer.edge_cases is None

    def test_block_reason_cleared_when_not_blocked(self):
        answer = apply_depth_rules(_full_candidate(block_reason="stale"), "beginner")
        assert answer.blocked is False
        assert answer.block_reason is None

    def test_truthy_non_bool_blocked_is_not_blocked(self):
        answer = apply_depth_rules(_full_candidate(blocked="yes"), "beginner")
        assert answer.blocked is False

    def test_accepts_hard_answer(self):
        source = HardAnswer.model_validate(_full_candidate())
        answer = apply_depth_rules(source, "beginner")
        assert answer.mechanics is None
        assert answer.summary == source.summary

    def test_does_not_mutate_candidate(self):
        candidate = _full_candidate(steps=[f"s{n}" for n in range(8)])
        apply_depth_rules(candidate, "beginner")
        assert len(candidate["steps"]) == 8


# ============================================================
# FIXED RESPONSES
# ============================================================

class TestBlockedResponse:

    def test_shape(self):
        answer = create_blocked_response(
            "Recent late payment",
            ["12 months of on-time payments", "Utilization under 30%"],
        )
        assert answer.blocked is True
        assert answer.block_reason == "Recent late payment"
        assert answer.summary == BLOCKED_SUMMARY
        assert answer.steps == [
            "To unlock: 12 months of on-time payments",
            "To unlock: Utilization under 30%",
        ]
        assert answer.confidence == "high"

    def test_optional_fields_are_none(self):
        answer = create_blocked_response("reason", ["x"])
        assert answer.recommended_action is None
        assert answer.mechanics is None
        assert answer.edge_cases is None
        assert answer.warnings is None

    def test_one_step_per_condition(self):
        conditions = [f"condition {n}" for n in range(7)]
        assert len(create_blocked_response("r", conditions).steps) == 7

    def test_no_conditions(self):
        assert create_blocked_response("r", []).steps == []


class TestCalibrationResponse:

    def test_shape(self):
        answer = create_calibration_response("When does your statement close?")
        assert answer.summary == CALIBRATION_SUMMARY
        assert answer.steps == ["When does your statement close?"]
        assert answer.confidence == "low"
        assert answer.blocked is False
        assert answer.recommended_action is None


class TestFallbackResponse:

    def test_deterministic(self):
        assert create_fallback_response() == create_fallback_response()
        assert create_fallback_response().confidence == "low"
        assert create_fallback_response().blocked is False


# ============================================================
# VALIDATION
# ============================================================

class TestValidateHardAnswer:

    def test_valid(self):
        result = validate_hard_answer(_full_candidate())
        assert result.success is True
        assert result.data.summary == "Pay before your statement closes."
        assert result.error is None

    def test_missing_field_fails(self):
        candidate = _full_candidate()
        del candidate["warnings"]
        result = validate_hard_answer(candidate)
        assert result.success is False
        assert result.data is None
        assert "warnings" in result.error

    def test_invalid_confidence_fails(self):
        assert validate_hard_answer(_full_candidate(confidence="certain")).success is False

    def test_strict_types(self):
        assert validate_hard_answer(_full_candidate(blocked="false")).success is False
        assert validate_hard_answer(_full_candidate(steps="do it")).success is False

    @pytest.mark.parametrize("candidate", [None, "text", 42, [], object()])
    def test_never_raises(self, candidate):
        result = validate_hard_answer(candidate)
        assert result.success is False
        assert result.error

    def test_hard_answer_is_frozen(self):
        answer = create_fallback_response()
        with pytest.raises(ValidationError):
            answer.summary = "changed"

    def test_lists_not_shared_with_candidate(self):
        candidate = _full_candidate()
        steps = list(candidate["steps"])
        answer = apply_depth_rules(candidate, "advanced")
        answer.steps.append("extra")
        assert candidate["steps"] == steps


# ============================================================
# ADVISORY COMPLIANCE
# ============================================================

class TestAuditDepthCompliance:

    def test_compliant(self):
        answer = apply_depth_rules(_full_candidate(), "advanced")
        assert audit_depth_compliance(answer, "advanced") == []

    def test_long_summary_noted(self):
        answer = apply_depth_rules(_full_candidate(summary="One. Two. Three."), "beginner")
        notes = audit_depth_compliance(answer, "beginner")
        assert len(notes) == 1
        assert "3 sentences" in notes[0]

    def test_advanced_requires_warning(self):
        answer = apply_depth_rules(_full_candidate(warnings=None), "advanced")
        notes = audit_depth_compliance(answer, "advanced")
        assert any("warning" in n for n in notes)

    def test_fixed_answers_skipped(self):
        assert audit_depth_compliance(create_blocked_response("r", ["c"]), "advanced") == []
        assert audit_depth_compliance(create_calibration_response("q?"), "advanced") == []

    def test_count_sentences(self):
        assert count_sentences("One. Two! Three?") == 3
        assert count_sentences("No punctuation") == 1
        assert count_sentences("") == 0
