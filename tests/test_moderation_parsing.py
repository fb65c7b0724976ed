"""Tests for moderation_parsing module."""

import pytest

from modflow.datatypes.moderation_datatypes import Decision
from modflow.moderation.moderation_parsing import (
    DECISION_UNAVAILABLE_SUMMARY,
    PARSING_ERROR_SUMMARY,
    coerce_bool,
    coerce_score,
    extract_json_object,
    parse_decision,
    parse_text_analysis,
)


class TestExtractJsonObject:
    """Tests for extract_json_object function."""

    def test_extracts_object_wrapped_in_prose(self):
        raw = 'Sure! Here is the analysis:\n```json\n{"toxicity": 0.2, "nsfw_text": false}\n```\nLet me know.'
        assert extract_json_object(raw) == {"toxicity": 0.2, "nsfw_text": False}

    def test_returns_none_without_braces(self):
        assert extract_json_object("I cannot help with that.") is None

    def test_returns_none_for_invalid_json(self):
        assert extract_json_object("{toxicity: high}") is None

    def test_returns_none_for_empty_input(self):
        assert extract_json_object("") is None
        assert extract_json_object(None) is None


class TestParseTextAnalysis:
    """Tests for parse_text_analysis function."""

    def test_valid_response(self):
        analysis = parse_text_analysis('{"toxicity": 0.35, "nsfw_text": true, "summary": "Mild insult"}')
        assert analysis.toxicity == pytest.approx(0.35)
        assert analysis.nsfw_text is True
        assert analysis.summary == "Mild insult"

    def test_malformed_response_uses_conservative_defaults(self):
        analysis = parse_text_analysis("The text looks fine to me.")
        assert analysis.toxicity == pytest.approx(0.5)
        assert analysis.nsfw_text is False
        assert analysis.summary == PARSING_ERROR_SUMMARY

    @pytest.mark.parametrize(
        "raw_toxicity, expected",
        [
            ("3.7", 1.0),
            ("-2", 0.0),
            ('"0.4"', 0.4),
            ('"very high"', 0.5),
            ("null", 0.5),
            ("true", 0.5),
        ],
    )
    def test_toxicity_is_clamped_or_defaulted(self, raw_toxicity, expected):
        analysis = parse_text_analysis(f'{{"toxicity": {raw_toxicity}, "nsfw_text": false, "summary": "x"}}')
        assert analysis.toxicity == pytest.approx(expected)
        assert 0.0 <= analysis.toxicity <= 1.0

    def test_missing_fields_fall_back(self):
        analysis = parse_text_analysis("{}")
        assert analysis.toxicity == pytest.approx(0.5)
        assert analysis.nsfw_text is False
        assert analysis.summary == "No summary"


class TestParseDecision:
    """Tests for parse_decision function."""

    def test_nested_technical_analysis(self):
        result = parse_decision(
            '{"decision": "rejected", "summary": "Graphic image", '
            '"technicalAnalysis": {"nsfw_image": true, "violence": true}}'
        )
        assert result.decision is Decision.REJECTED
        assert result.summary == "Graphic image"
        assert result.nsfw_image is True
        assert result.violence is True

    def test_flat_flags_are_accepted(self):
        result = parse_decision('{"decision": "Flagged", "summary": "Unclear", "nsfw_image": true}')
        assert result.decision is Decision.FLAGGED
        assert result.nsfw_image is True
        assert result.violence is False

    def test_unknown_decision_becomes_flagged(self):
        result = parse_decision('{"decision": "maybe", "summary": "Hmm"}')
        assert result.decision is Decision.FLAGGED

    def test_missing_decision_becomes_flagged(self):
        result = parse_decision('{"summary": "No verdict given"}')
        assert result.decision is Decision.FLAGGED
        assert result.summary == "No verdict given"

    def test_missing_summary_is_empty(self):
        result = parse_decision('{"decision": "approved"}')
        assert result.decision is Decision.APPROVED
        assert result.summary == ""

    def test_unparseable_response(self):
        result = parse_decision("approved, looks good")
        assert result.decision is Decision.FLAGGED
        assert result.summary == DECISION_UNAVAILABLE_SUMMARY
        assert result.nsfw_image is False
        assert result.violence is False


class TestCoercion:
    """Tests for the field coercion helpers."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (True, True),
            ("yes", True),
            ("FALSE", False),
            (1, True),
            (0.7, True),
            (0, False),
            (None, False),
        ],
    )
    def test_coerce_bool(self, value, expected):
        assert coerce_bool(value) is expected

    def test_numeric_flags_are_read_as_booleans(self):
        result = parse_decision('{"decision": "approved", "summary": "ok", "nsfw_image": 1, "violence": 0}')
        assert result.nsfw_image is True
        assert result.violence is False

    def test_coerce_score_rejects_nan(self):
        assert coerce_score(float("nan"), 0.5) == pytest.approx(0.5)
