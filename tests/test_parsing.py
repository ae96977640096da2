"""Tests for the analysis answer parser and generated-code cleanup."""

import json

import pytest
from hypothesis import given, settings as hyp_settings, strategies as st

from paperdemo.core.generation import clean_generated_code, strip_code_fences, trim_to_sentinel
from paperdemo.core.parsing import parse_analysis, parse_fallback, parse_strict, split_list
from paperdemo.models.enums import AnalysisPath

SENTINEL = "<!DOCTYPE html>"


# =============================================================================
# Strict path
# =============================================================================


class TestParseStrict:
    def test_comma_separated_fields_are_split_and_trimmed(self):
        raw = json.dumps(
            {
                "content": "Full paper text",
                "title": "Attention Is All You Need",
                "authors": "Vaswani ,  Shazeer,, Parmar ",
                "abstract": "We propose the Transformer.",
                "keywords": "attention, transformers",
            }
        )

        parsed = parse_analysis(raw)

        assert parsed.path == AnalysisPath.STRICT
        assert parsed.content == "Full paper text"
        assert parsed.title == "Attention Is All You Need"
        assert parsed.authors == ["Vaswani", "Shazeer", "Parmar"]
        assert parsed.abstract == "We propose the Transformer."
        assert parsed.keywords == ["attention", "transformers"]

    def test_lists_are_accepted(self):
        raw = json.dumps({"content": "text", "authors": [" A ", "B", None], "keywords": []})

        parsed = parse_strict(raw)

        assert parsed.authors == ["A", "B"]
        assert parsed.keywords == []

    def test_object_surrounded_by_prose_and_fences(self):
        raw = 'Here is the analysis:\n```json\n{"content": "body", "title": "T"}\n```\nDone.'

        parsed = parse_analysis(raw)

        assert parsed.path == AnalysisPath.STRICT
        assert parsed.content == "body"
        assert parsed.title == "T"

    def test_missing_content_uses_raw_answer(self):
        raw = '{"title": "Only a title"}'

        parsed = parse_strict(raw)

        assert parsed.content == raw
        assert parsed.title == "Only a title"

    @pytest.mark.parametrize(
        "raw",
        [
            "no braces at all",
            "{not json}",
            "[1, 2, 3]",
            '{"content": "unterminated',
        ],
    )
    def test_returns_none_without_a_json_object(self, raw):
        assert parse_strict(raw) is None


# =============================================================================
# Fallback path
# =============================================================================


class TestParseFallback:
    def test_plain_text_becomes_content(self):
        raw = "The paper introduces a new optimizer."

        parsed = parse_analysis(raw)

        assert parsed.path == AnalysisPath.FALLBACK
        assert parsed.content == raw
        assert parsed.authors == []
        assert parsed.keywords == []
        assert parsed.abstract is None

    def test_metadata_is_empty(self):
        metadata = parse_fallback("text").metadata

        assert metadata.authors == []
        assert metadata.keywords == []
        assert metadata.abstract is None


@given(st.text(max_size=500))
@hyp_settings(max_examples=200)
def test_parser_never_raises(raw):
    parsed = parse_analysis(raw)

    assert parsed.path in (AnalysisPath.STRICT, AnalysisPath.FALLBACK)
    assert isinstance(parsed.content, str)
    if parsed.path == AnalysisPath.FALLBACK:
        assert parsed.content == raw


@given(st.lists(st.text(alphabet=st.characters(exclude_characters=","), max_size=20), max_size=10))
def test_split_list_items_are_trimmed_and_non_empty(items):
    result = split_list(",".join(items))

    assert all(item == item.strip() and item for item in result)
    assert result == [item.strip() for item in items if item.strip()]


# =============================================================================
# Generated code cleanup
# =============================================================================


class TestStripCodeFences:
    def test_fully_fenced_answer(self):
        text = f"```html\n{SENTINEL}\n<html><body>hi</body></html>\n```"

        assert strip_code_fences(text) == f"{SENTINEL}\n<html><body>hi</body></html>"

    def test_unlabelled_fence(self):
        assert strip_code_fences("```\n<p>x</p>\n```") == "<p>x</p>"

    def test_unfenced_answer_is_unchanged(self):
        code = f"{SENTINEL}\n<html></html>"

        assert strip_code_fences(code) == code

    def test_lone_opening_fence(self):
        assert strip_code_fences("```html\n<p>x</p>") == "<p>x</p>"

    def test_lone_closing_fence(self):
        assert strip_code_fences("<p>x</p>\n```") == "<p>x</p>"

    def test_only_fences_is_empty(self):
        assert strip_code_fences("```html\n```") == ""

    def test_prose_after_closing_fence_is_dropped(self):
        text = f"```html\n{SENTINEL}<html></html>\n```\nHope this helps!"

        assert strip_code_fences(text) == f"{SENTINEL}<html></html>"

    def test_prose_around_fenced_block_is_dropped(self):
        text = "Here is the demo:\n```html\n<p>x</p>\n```\n\nLet me know if you want changes."

        assert strip_code_fences(text) == "<p>x</p>"

    def test_clean_generated_code_with_trailing_prose(self):
        text = f"```html\n{SENTINEL}<html></html>\n```\nHope this helps!"

        assert clean_generated_code(text, SENTINEL) == f"{SENTINEL}<html></html>"


class TestTrimToSentinel:
    def test_prose_before_sentinel_is_dropped(self):
        code = f"Sure! Here is your demo:\n{SENTINEL}\n<html></html>"

        assert trim_to_sentinel(code, SENTINEL) == f"{SENTINEL}\n<html></html>"

    def test_sentinel_match_is_case_insensitive(self):
        code = "intro <!doctype html><html></html>"

        assert trim_to_sentinel(code, SENTINEL) == "<!doctype html><html></html>"

    def test_missing_sentinel_keeps_code(self):
        assert trim_to_sentinel("<html></html>", SENTINEL) == "<html></html>"

    def test_clean_generated_code_combines_both(self):
        text = f"```html\nHere you go\n{SENTINEL}<html></html>\n```"

        assert clean_generated_code(text, SENTINEL) == f"{SENTINEL}<html></html>"
