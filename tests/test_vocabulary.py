"""
Tests for the synonym tables and YAML vocabulary loading.
"""
from pathlib import Path

import pytest

from chartlens.domain.vocabulary import Lookup, SynonymTable, Vocabulary, load_vocabulary

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"


def test_lookup_buckets(vocabulary):
    table = vocabulary.direction
    assert table.lookup("BUY") == Lookup("long", True)
    assert table.lookup(" 做空 ") == Lookup("short", True)
    assert table.lookup("wait") == Lookup(None, True)
    assert table.lookup(None) == Lookup(None, True)
    assert table.lookup("   ") == Lookup(None, True)
    assert table.lookup("Sideways") == Lookup("Sideways", False)


def test_canonical_value_matches_itself(vocabulary):
    assert vocabulary.indicator_bias.lookup("Bearish") == Lookup("bearish", True)


def test_normalized_passthrough(vocabulary):
    assert vocabulary.trend_strength.lookup(" Extreme ") == Lookup("extreme", False)
    assert vocabulary.trend_strength.lookup("") == Lookup("average", True)


def test_canonical_values(vocabulary):
    assert vocabulary.marker_shape.canonical_values == ["arrow_up", "arrow_down", "circle", "square"]


def test_load_vocabulary_file(tmp_path):
    path = tmp_path / "vocab.yaml"
    path.write_text(
        "version: '2.0'\n"
        "direction:\n"
        "  terms:\n"
        "    long: [bull]\n"
        "    short: [bear]\n"
        "  null_terms: [sideways]\n",
        encoding="utf-8"
    )
    vocabulary = load_vocabulary(path)
    assert vocabulary.version == "2.0"
    assert vocabulary.direction.lookup("Bull") == Lookup("long", True)
    assert vocabulary.direction.lookup("sideways") == Lookup(None, True)
    assert vocabulary.direction.lookup("buy") == Lookup("buy", False)
    # Tables not in the file keep their built-in definition
    assert vocabulary.indicator_bias.lookup("看多") == Lookup("bullish", True)


def test_shipped_vocabulary_file():
    vocabulary = load_vocabulary(CONFIG_DIR / "vocabulary.yaml")
    assert vocabulary.direction.lookup("bull") == Lookup("long", True)
    assert vocabulary.direction.lookup("多") == Lookup("long", True)
    assert vocabulary.marker_shape.lookup("dot") == Lookup("circle", True)


def test_missing_vocabulary_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_vocabulary(tmp_path / "missing.yaml")


def test_vocabulary_file_must_be_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- long\n- short\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_vocabulary(path)


def test_tables_are_independent():
    first = Vocabulary()
    second = Vocabulary(direction=SynonymTable(terms={"long": ["up"]}))
    assert first.direction.lookup("up") == Lookup("up", False)
    assert second.direction.lookup("up") == Lookup("long", True)
