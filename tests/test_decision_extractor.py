"""
Tests for DecisionExtractor: finding the JSON block in noisy model output.
"""
import json

import pytest

from chartlens.agent.decision_extractor import DecisionExtractor, extract_json, strip_code_fence


@pytest.fixture
def extractor():
    return DecisionExtractor()


def test_bare_json_is_returned_unchanged(extractor):
    text = '{"enter": true, "direction": "long"}'
    assert extractor.extract(text) == text


def test_whitespace_is_trimmed(extractor):
    assert extractor.extract('  \n {"enter": false}\n ') == '{"enter": false}'


def test_fenced_json(extractor):
    text = '```json\n{"enter": true}\n```'
    assert extractor.extract(text) == '{"enter": true}'


def test_fence_without_language(extractor):
    text = '```\n{"enter": true}\n```'
    assert extractor.extract(text) == '{"enter": true}'


def test_prose_around_fenced_json(extractor):
    """prose + fenced json + prose gives the sole object."""
    text = (
        "Looking at the chart, the trend is up.\n"
        "```json\n"
        '{"enter": true, "direction": "long", "entry_price": 86850}\n'
        "```\n"
        "Wait for the pullback."
    )
    result = extractor.extract(text)
    assert json.loads(result) == {"enter": True, "direction": "long", "entry_price": 86850}


def test_last_valid_object_wins(extractor):
    text = 'First guess: {"direction": "short"} ... final answer: {"direction": "long"}'
    assert json.loads(extractor.extract(text)) == {"direction": "long"}


def test_later_array_overwrites_object(extractor):
    text = 'Decision {"enter": true} and levels [86800, 87600]'
    assert json.loads(extractor.extract(text)) == [86800, 87600]


def test_array_when_no_object(extractor):
    text = "Levels: [86800, 87600] only"
    assert json.loads(extractor.extract(text)) == [86800, 87600]


def test_brackets_inside_strings_are_ignored(extractor):
    text = 'Answer: {"reason": "break of } level and { retest", "enter": false} done'
    result = json.loads(extractor.extract(text))
    assert result["reason"] == "break of } level and { retest"


def test_escaped_quotes_inside_strings(extractor):
    text = 'Answer: {"reason": "the \\"neckline\\" held {", "enter": true}'
    result = json.loads(extractor.extract(text))
    assert result["reason"] == 'the "neckline" held {'


def test_quoted_brackets_in_prose_are_ignored(extractor):
    text = 'The "}{" token is noise; answer: {"enter": true}'
    assert json.loads(extractor.extract(text)) == {"enter": True}


def test_escaped_quote_in_prose_string(extractor):
    text = 'Note "a \\" [ b" then {"enter": false}'
    assert json.loads(extractor.extract(text)) == {"enter": False}


def test_quotes_in_prose_do_not_confuse_scan(extractor):
    text = 'The model said "go long" here: {"direction": "long"}'
    assert json.loads(extractor.extract(text)) == {"direction": "long"}


def test_nested_structure_is_one_candidate(extractor):
    payload = {
        "enter": True,
        "draw_instructions": [{"type": "horizontal_line", "price": 86800}],
    }
    text = "Result:\n" + json.dumps(payload) + "\nEnd."
    assert json.loads(extractor.extract(text)) == payload


def test_unbalanced_returns_original_trimmed(extractor):
    text = '  Result: {"enter": true, "direction": "long"  '
    assert extractor.extract(text) == 'Result: {"enter": true, "direction": "long"'


def test_mismatched_bracket_resets_span(extractor):
    text = 'noise {"a": [1, 2} then {"b": 1}'
    assert json.loads(extractor.extract(text)) == {"b": 1}


def test_stray_closing_bracket_is_ignored(extractor):
    text = '} ] {"a": 1}'
    assert json.loads(extractor.extract(text)) == {"a": 1}


def test_balanced_but_invalid_span_is_skipped(extractor):
    text = "{not json} and then {\"ok\": true}"
    assert json.loads(extractor.extract(text)) == {"ok": True}


@pytest.mark.parametrize("text", [None, "", "   ", "{{{[[[", "no json here", "}}}"])
def test_never_raises(extractor, text):
    result = extractor.extract(text)
    assert result == (text or "").strip()


def test_module_shortcut_matches_class(extractor):
    text = 'prefix {"x": 1} suffix'
    assert extract_json(text) == extractor.extract(text)


def test_strip_code_fence_needs_both_fences():
    assert strip_code_fence('```json\n{"a": 1}') == '```json\n{"a": 1}'
    assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'
