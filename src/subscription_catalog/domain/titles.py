"""
Title normalization and similarity scoring.

Used for duplicate detection when a provider record carries no
id the catalog already knows.
"""

import re
import unicodedata

from rapidfuzz import fuzz

_TRADEMARK_SYMBOLS = re.compile(r"[™®©]")
_WHITESPACE = re.compile(r"\s+")
_NUMERALS = re.compile(r"\d+")


def normalize_title(title: str) -> str:
    """
    Normalize a title for comparison.

    Case-insensitive, whitespace-collapsed, with trademark symbols removed
    and unicode compatibility forms folded.

    Example:
        >>> normalize_title("  Forza   Horizon 5™ ")
        'forza horizon 5'
    """
    text = _TRADEMARK_SYMBOLS.sub("", title)
    text = unicodedata.normalize("NFKC", text)
    return _WHITESPACE.sub(" ", text).strip().casefold()


def title_similarity(a: str, b: str) -> float:
    """
    Similarity of two titles on a 0..1 scale (1.0 = same normalized title).

    Titles whose numerals differ (sequels, editions by year) score 0.
    """
    left, right = normalize_title(a), normalize_title(b)
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0
    if _NUMERALS.findall(left) != _NUMERALS.findall(right):
        return 0.0
    return fuzz.ratio(left, right) / 100.0


def title_matches(title: str, fragment: str) -> bool:
    """Case-insensitive partial title match used by administrative overrides."""
    needle = normalize_title(fragment)
    return bool(needle) and needle in normalize_title(title)
