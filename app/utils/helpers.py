"""
Common utility functions and helpers.
"""
from typing import List
import hashlib
import re
import unicodedata

# Languages whose length is counted in characters rather than words
CJK_LANGUAGES = frozenset({"cn", "zh", "ja", "ko"})

_KEYWORD_STOPWORDS = frozenset({
    'the', 'a', 'an', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for',
    'of', 'with', 'by', 'is', 'are', 'was', 'were', 'be', 'been', 'being',
    'have', 'has', 'had', 'do', 'does', 'did', 'will', 'would', 'could', 'should',
})


def normalize_text(text: str) -> str:
    """
    Normalize text for processing.

    Args:
        text: Raw text string

    Returns:
        Normalized text
    """
    text = unicodedata.normalize('NFKC', text)
    text = re.sub(r'\s+', ' ', text)
    return text.strip()


def generate_hash(text: str) -> str:
    """
    Generate SHA256 hash of text.

    Args:
        text: Text to hash

    Returns:
        Hex digest of hash
    """
    return hashlib.sha256(text.encode('utf-8')).hexdigest()


def levenshtein_distance(str1: str, str2: str) -> int:
    """Character-level edit distance (insert, delete, substitute all cost 1)."""
    if str1 == str2:
        return 0
    if not str1:
        return len(str2)
    if not str2:
        return len(str1)

    previous = list(range(len(str1) + 1))
    for j, ch2 in enumerate(str2, start=1):
        current = [j]
        for i, ch1 in enumerate(str1, start=1):
            cost = 0 if ch1 == ch2 else 1
            current.append(min(current[i - 1] + 1, previous[i] + 1, previous[i - 1] + cost))
        previous = current
    return previous[-1]


def match_percentage(str1: str, str2: str) -> int:
    """
    Similarity of two strings as a 0-100 percentage derived from edit distance.

    Returns:
        round((1 - distance / max_len) * 100); 100 for two empty strings
    """
    max_len = max(len(str1), len(str2))
    if max_len == 0:
        return 100
    return round((1 - levenshtein_distance(str1, str2) / max_len) * 100)


def extract_keywords(text: str, top_n: int = 10) -> List[str]:
    """
    First *top_n* content words of *text*, in order of appearance.

    Words of two characters or fewer and common stopwords are dropped.
    """
    words = text.lower().split()
    return [w for w in words if len(w) > 2 and w not in _KEYWORD_STOPWORDS][:top_n]


def keyword_overlap(keywords: List[str], text: str, tags: List[str] = None) -> float:
    """Fraction of *keywords* present as whole words in *text* (or in *tags*)."""
    if not keywords:
        return 0.0
    target_words = set(text.lower().split())
    tag_words = {t.lower() for t in (tags or [])}
    hits = sum(1 for kw in keywords if kw in target_words or kw in tag_words)
    return hits / len(keywords)


def count_units(text: str, language: str = "") -> int:
    """
    Count translatable units in *text*.

    Words for most languages; non-space, non-punctuation characters for CJK.
    """
    if language.lower()[:2] in CJK_LANGUAGES:
        return len(re.sub(r"[\s\W_]", "", text))
    return len(text.split())


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safely divide two numbers, returning default if denominator is zero.
    """
    return numerator / denominator if denominator != 0 else default


def truncate_text(text: str, max_length: int = 200, suffix: str = "...") -> str:
    """
    Truncate text to maximum length.

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add if truncated

    Returns:
        Truncated text
    """
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix
