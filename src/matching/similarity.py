"""
Levenshtein-based string similarity.
"""

from rapidfuzz.distance import Levenshtein


def levenshtein(a: str, b: str) -> int:
    """Unit-cost edit distance (insertion, deletion, substitution)."""
    return Levenshtein.distance(a or '', b or '')


def similarity(a: str, b: str) -> float:
    """
    ``1 - levenshtein(a, b) / max(len(a), len(b))``, or 1.0 for two empty
    strings. Case-sensitive; callers lowercase when they need to.
    """
    a = a or ''
    b = b or ''
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein(a, b) / longest


def name_similarity(a: str, b: str) -> float:
    """Similarity of two names ignoring case and surrounding whitespace."""
    return similarity((a or '').lower().strip(), (b or '').lower().strip())
