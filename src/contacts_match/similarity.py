from __future__ import annotations

from rapidfuzz.distance import Levenshtein

EXACT_MATCH_SCORE = 1.0
# Containment ("Smith" in "John Smith Jr") scores flat, regardless of length difference.
SUBSTRING_MATCH_SCORE = 0.8


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance with unit cost for insert, delete and substitute."""
    return Levenshtein.distance(a or "", b or "")


def similarity(a: str, b: str) -> float:
    """
    Score two names in ``[0, 1]``.

    Case-insensitive equality scores 1.0 and containment either way scores
    ``SUBSTRING_MATCH_SCORE``; everything else is the edit distance normalized by
    the longer string.
    """
    s1 = (a or "").lower()
    s2 = (b or "").lower()

    if s1 == s2:
        return EXACT_MATCH_SCORE
    if s1 in s2 or s2 in s1:
        return SUBSTRING_MATCH_SCORE

    longest = max(len(s1), len(s2))
    if longest == 0:
        return EXACT_MATCH_SCORE
    return (longest - edit_distance(s1, s2)) / longest
