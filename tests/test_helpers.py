"""Tests for the text utilities in app.utils.helpers."""
import pytest

from app.utils.helpers import (
    count_units,
    extract_keywords,
    generate_hash,
    keyword_overlap,
    levenshtein_distance,
    match_percentage,
    normalize_text,
    safe_divide,
    truncate_text,
)


def test_normalize_text():
    assert normalize_text("  Take\n\tone   tablet  ") == "Take one tablet"
    assert normalize_text("ﬁve") == "five"


def test_generate_hash():
    assert generate_hash("abc") == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


@pytest.mark.parametrize(
    "a, b, expected",
    [("kitten", "sitting", 3), ("", "abc", 3), ("abc", "", 3), ("same", "same", 0)],
)
def test_levenshtein_distance(a, b, expected):
    assert levenshtein_distance(a, b) == expected


@pytest.mark.parametrize(
    "a, b, expected",
    [("kitten", "sitting", 57), ("", "", 100), ("abc", "xyz", 0), ("daily", "daily", 100)],
)
def test_match_percentage(a, b, expected):
    assert match_percentage(a, b) == expected


def test_extract_keywords_skips_stopwords():
    assert extract_keywords("The patient is taking the drug daily", top_n=3) == ["patient", "taking", "drug"]


def test_keyword_overlap_counts_tags():
    assert keyword_overlap(["heart", "failure"], "Heart disease", tags=["Failure"]) == 1.0
    assert keyword_overlap(["heart", "kidney"], "heart disease") == 0.5
    assert keyword_overlap([], "anything") == 0.0


@pytest.mark.parametrize(
    "text, language, expected",
    [("one two three", "en", 3), ("一日一回", "ja", 4), ("每日 一次。", "zh-CN", 4)],
)
def test_count_units(text, language, expected):
    assert count_units(text, language) == expected


def test_safe_divide():
    assert safe_divide(1, 0) == 0.0
    assert safe_divide(1, 0, default=-1) == -1
    assert safe_divide(3, 2) == 1.5


def test_truncate_text():
    assert truncate_text("abcdefghij", max_length=6) == "abc..."
    assert truncate_text("short", max_length=6) == "short"
