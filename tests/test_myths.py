"""
Tests for the myth catalog and detector.

If the detector fires on the wrong questions, every correction the
user sees downstream is noise.
"""

import dataclasses

import pytest

from creditguard.myths import (
    MYTH_CATALOG,
    KeywordPhraseRule,
    MythDetector,
    MythPattern,
    RegexRule,
    _keywords,
    _regex,
    detect_myths,
    myth_detector,
)
from creditguard.schemas.answer import AnswerDepth


# ============================================================
# CATALOG INTEGRITY
# ============================================================

class TestCatalog:

    def test_ids_are_unique(self):
        ids = [m.id for m in MYTH_CATALOG]
        assert len(ids) == len(set(ids))

    def test_every_myth_has_a_rule(self):
        for m in MYTH_CATALOG:
            assert m.rules, m.id

    def test_every_myth_has_a_correction(self):
        for m in MYTH_CATALOG:
            assert m.correction.strip(), m.id

    def test_severities_are_valid(self):
        for m in MYTH_CATALOG:
            assert m.severity in ("low", "medium", "high"), m.id

    def test_catalog_is_immutable(self):
        assert isinstance(MYTH_CATALOG, tuple)
        with pytest.raises(dataclasses.FrozenInstanceError):
            MYTH_CATALOG[0].id = "changed"

    def test_merged_myths_hold_both_disciplines(self):
        for myth_id in ("zero-utilization", "carry-balance", "checking-hurts"):
            myth = myth_detector.get_myth_by_id(myth_id)
            kinds = {type(r) for r in myth.rules}
            assert kinds == {KeywordPhraseRule, RegexRule}, myth_id

    def test_keyword_properties(self):
        myth = myth_detector.get_myth_by_id("zero-utilization")
        assert "0%" in myth.keywords
        assert "utilization" in myth.phrases

    def test_regex_only_myth_has_no_keywords(self):
        myth = myth_detector.get_myth_by_id("bnpl-no-impact")
        assert myth.keywords == ()
        assert myth.phrases == ()


# ============================================================
# MATCH RULES
# ============================================================

class TestKeywordPhraseRule:

    def test_requires_both(self):
        rule = _keywords(["0%"], ["utilization"])
        assert rule.match("0% utilization") == "0% + utilization"
        assert rule.match("0% apr") is None
        assert rule.match("utilization ratio") is None

    def test_lowercases_tokens(self):
        rule = _keywords(["New Card"], ["Hurts"])
        assert rule.keywords == ("new card",)
        assert rule.match("a new card hurts") == "new card + hurts"


class TestRegexRule:

    def test_any_pattern_suffices(self):
        rule = _regex(r"alpha", r"beta")
        assert rule.match("only beta here") == "beta"
        assert rule.match("neither") is None

    def test_first_pattern_wins(self):
        rule = _regex(r"alpha", r"beta")
        assert rule.match("beta then alpha") == "alpha"


# ============================================================
# DETECTION
# ============================================================

class TestDetection:

    def test_zero_utilization_scenario(self):
        result = detect_myths("0% utilization is best")
        assert result.detected is True
        assert result.ids == ["zero-utilization"]

    def test_keyword_evidence(self):
        result = detect_myths("0% utilization is best")
        assert result.myths[0].evidence == "0% + utilization"

    def test_regex_evidence_is_matched_span(self):
        result = detect_myths("Should I keep my utilization at 0?")
        assert result.ids == ["zero-utilization"]
        assert result.myths[0].evidence == "keep my utilization at 0"

    def test_keyword_alone_does_not_fire(self):
        result = detect_myths("What is utilization?")
        assert result.detected is False
        assert result.myths == ()

    def test_case_insensitive(self):
        assert detect_myths("IS 0% UTILIZATION BEST?").ids == ["zero-utilization"]

    def test_each_id_reported_once(self):
        result = detect_myths("0% utilization is best, zero utilization is good")
        assert result.ids == ["zero-utilization"]

    def test_merged_myth_reported_once(self):
        result = detect_myths("Do I need to carry a balance? Carry balance builds credit.")
        assert result.ids == ["carry-balance"]

    def test_multiple_myths_in_catalog_order(self):
        result = detect_myths("I want to close my old card and keep 0% utilization")
        assert result.ids == ["zero-utilization", "close-old-cards"]

    def test_detected_myth_carries_correction(self):
        myth = detect_myths("Do I need to carry a balance?").myths[0]
        assert myth.id == "carry-balance"
        assert myth.severity == "high"
        assert "carry a balance" in myth.correction
        assert myth.why_it_matters

    def test_clean_question(self):
        result = detect_myths("How do I dispute an error on my credit report?")
        assert result.detected is False

    def test_result_is_frozen(self):
        result = detect_myths("0% utilization is best")
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.detected = False


class TestRegexMyths:

    def test_closing_date_same_as_due_date(self):
        result = detect_myths("Is the statement closing date the same as the due date?")
        assert result.ids == ["closing-date-is-due-date"]

    def test_lower_utilization_by_due_date(self):
        result = detect_myths("Can I lower my utilization by the due date?")
        assert result.ids == ["pay-by-due-date-lowers-utilization"]

    def test_pay_by_due_date_to_lower_utilization(self):
        result = detect_myths("If I pay by the due date to lower my utilization, is that enough?")
        assert result.ids == ["pay-by-due-date-lowers-utilization"]

    def test_bnpl_no_credit_impact(self):
        assert detect_myths("BNPL has no credit impact").ids == ["bnpl-no-impact"]

    def test_bnpl_provider_does_not_report(self):
        assert detect_myths("Klarna doesn't report to the bureaus").ids == ["bnpl-no-impact"]

    def test_provider_name_alone_does_not_fire(self):
        assert detect_myths("I used Afterpay for shoes").detected is False

    def test_interest_helps_approvals(self):
        result = detect_myths("Does paying interest help my approval odds?")
        assert result.ids == ["interest-helps-approvals"]


# ============================================================
# DEPTH
# ============================================================

class TestDepth:

    GATED = MythPattern(
        id="gated-myth",
        myth="Test",
        correction="Correction",
        severity="low",
        rules=(_regex(r"magic\s*number"),),
        applies_to_depth=frozenset({AnswerDepth.INTERMEDIATE, AnswerDepth.ADVANCED}),
    )

    def test_gated_myth_skipped_for_other_depths(self):
        detector = MythDetector(catalog=(self.GATED,))
        question = "what is the magic number"
        assert detector.detect(question, AnswerDepth.BEGINNER).detected is False
        assert detector.detect(question, "intermediate").ids == ["gated-myth"]
        assert detector.detect(question, "advanced").ids == ["gated-myth"]

    def test_unknown_depth_means_beginner(self):
        detector = MythDetector(catalog=(self.GATED,))
        assert detector.detect("what is the magic number", "expert").detected is False

    @pytest.mark.parametrize("depth", list(AnswerDepth))
    def test_credit_cycling_at_every_depth(self, depth):
        assert detect_myths("Is credit cycling illegal?", depth).ids == ["credit-cycling"]

    def test_seed_catalog_applies_to_every_depth(self):
        assert all(m.applies_to_depth == frozenset(AnswerDepth) for m in MYTH_CATALOG)


# ============================================================
# EDGE CASES
# ============================================================

class TestInputs:

    @pytest.mark.parametrize("question", ["", "   ", None, 42, ["0% utilization"]])
    def test_non_text_yields_empty_result(self, question):
        result = detect_myths(question)
        assert result.detected is False
        assert result.myths == ()


class TestDetectorApi:

    def test_custom_catalog(self):
        only = MythPattern(
            id="test-myth",
            myth="Test",
            correction="Correction",
            severity="low",
            rules=(_regex(r"magic\s*number"),),
        )
        detector = MythDetector(catalog=(only,))
        assert detector.detect("what is the magic number").ids == ["test-myth"]
        assert detector.detect("0% utilization is best").detected is False

    def test_get_myth_by_id(self):
        assert myth_detector.get_myth_by_id("minimum-payment").severity == "high"
        assert myth_detector.get_myth_by_id("no-such-myth") is None

    def test_get_myths_by_severity(self):
        low = myth_detector.get_myths_by_severity("low")
        assert low
        assert all(m.severity == "low" for m in low)

    def test_get_all_myths(self):
        assert len(myth_detector.get_all_myths()) == len(MYTH_CATALOG)

    def test_catalog_listing(self):
        catalog = myth_detector.get_catalog()
        entry = next(e for e in catalog if e["id"] == "zero-utilization")
        assert entry["matching"] == ["keyword_phrase", "regex"]
        assert entry["applies_to_depth"] == ["advanced", "beginner", "intermediate"]
        cycling = next(e for e in catalog if e["id"] == "credit-cycling")
        assert cycling["applies_to_depth"] == ["advanced", "beginner", "intermediate"]
