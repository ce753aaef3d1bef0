"""
Tiered name matcher for Indian customer names.

Decides whether a spoken name fragment and a stored name denote the same
person, and how confidently. Handles the variation a shopkeeper actually
produces:
- Case differences ("RAHUL" vs "Rahul")
- Nicknames ("Raju" for "Rahul")
- Regional spellings ("Bharath" vs "Bharat")
- Partial names and typos ("Rahu", "Rahl")
"""

from typing import Iterable, List, Optional

from src.matching.nicknames import is_nickname_relation
from src.matching.phonetics import normalize
from src.matching.similarity import similarity
from src.models import MatchResult, MatchType
from src.utils.errors import require_text, require_threshold
from src.utils.logging_config import logger

DEFAULT_THRESHOLD = 0.75
SAME_PERSON_THRESHOLD = 0.8

NICKNAME_SCORE = 0.95
PHONETIC_SCORE = 0.9
PHONETIC_FUZZY_PENALTY = 0.9


class IndianNameMatcher:
    """
    Ordered decision list over a query/candidate pair.

    Tier hierarchy (first qualifying tier wins):
    1. Exact, case-insensitive (1.0)
    2. Nickname relation (0.95)
    3. Identical phonetic canonical forms (0.9)
    4. Substring either way, scored by length ratio
    5. Raw Levenshtein similarity
    6. Levenshtein similarity of canonical forms, scaled by 0.9

    Tiers 4-6 only count when their score clears the threshold.
    """

    def __init__(self, threshold: float = DEFAULT_THRESHOLD):
        self.threshold = require_threshold(threshold)

    def match(self, query: str, candidate: str, threshold: Optional[float] = None) -> Optional[MatchResult]:
        """
        Matches one query against one candidate name.

        Args:
            query: Name fragment as heard or typed.
            candidate: Stored name to compare against.
            threshold: Overrides the matcher default for this call.

        Returns:
            The first qualifying MatchResult, or None when nothing clears the
            threshold.

        Raises:
            InvalidQueryError: if the query is empty.
            InvalidThresholdError: if the threshold is not finite or outside [0, 1].
        """
        limit = self.threshold if threshold is None else require_threshold(threshold)
        query_norm = require_text(query).lower()
        target_norm = (candidate or '').lower().strip()

        # A record without a usable name never matches
        if not target_norm:
            return None

        # 1. Exact
        if query_norm == target_norm:
            return MatchResult(score=1.0, match_type=MatchType.EXACT, matched_text=candidate)

        # 2. Nickname
        if is_nickname_relation(query_norm, target_norm):
            return MatchResult(score=NICKNAME_SCORE, match_type=MatchType.NICKNAME, matched_text=candidate)

        # 3. Phonetic
        query_phonetic = normalize(query)
        target_phonetic = normalize(candidate)
        if query_phonetic and query_phonetic == target_phonetic:
            return MatchResult(score=PHONETIC_SCORE, match_type=MatchType.PHONETIC, matched_text=candidate)

        # 4. Partial (substring)
        if query_norm in target_norm or target_norm in query_norm:
            score = min(len(query_norm), len(target_norm)) / max(len(query_norm), len(target_norm))
            if score >= limit:
                return MatchResult(score=score, match_type=MatchType.TRANSLITERATION, matched_text=candidate)

        # 5. Fuzzy on the raw spelling
        raw_score = similarity(query_norm, target_norm)
        if raw_score >= limit:
            return MatchResult(score=raw_score, match_type=MatchType.FUZZY, matched_text=candidate)

        # 6. Fuzzy on the canonical forms
        if query_phonetic and target_phonetic:
            phonetic_score = similarity(query_phonetic, target_phonetic)
            if phonetic_score >= limit:
                return MatchResult(
                    score=phonetic_score * PHONETIC_FUZZY_PENALTY,
                    match_type=MatchType.PHONETIC,
                    matched_text=candidate,
                )

        return None

    def find_best_match(self, query: str, candidates: Iterable[str],
                        threshold: Optional[float] = None) -> Optional[MatchResult]:
        """Highest-scoring match among candidates; the earliest wins ties."""
        best = None
        for candidate in candidates:
            result = self.match(query, candidate, threshold)
            if result and (best is None or result.score > best.score):
                best = result
        return best

    def find_all_matches(self, query: str, candidates: Iterable[str],
                         threshold: Optional[float] = None) -> List[MatchResult]:
        """Every qualifying match, highest score first."""
        matches = [m for m in (self.match(query, c, threshold) for c in candidates) if m]
        # sorted() is stable, so equal scores keep candidate order
        return sorted(matches, key=lambda m: m.score, reverse=True)

    def is_same_person(self, name1: str, name2: str) -> bool:
        """Strict check used to merge mentions of one person."""
        result = self.match(name1, name2, SAME_PERSON_THRESHOLD)
        return result is not None and result.score >= SAME_PERSON_THRESHOLD

    def best_name_part_match(self, query: str, full_name: str,
                             threshold: Optional[float] = None) -> Optional[MatchResult]:
        """
        Matches a query against a full name and against each word of it.

        "Amit" does not resemble "Amit Patel" as a whole string, but it is an
        exact match for the first word. The returned result always reports
        the full name as ``matched_text``.
        """
        parts = [full_name] + [p for p in (full_name or '').split() if p != full_name]
        best = self.find_best_match(query, parts, threshold)
        if best is None:
            return None
        if best.matched_text != full_name:
            logger.debug(f"Name part match: '{query}' ~ '{best.matched_text}' in '{full_name}' ({best.score:.2f})")
            best = MatchResult(score=best.score, match_type=best.match_type, matched_text=full_name)
        return best


_default_matcher = IndianNameMatcher()


# Convenience functions for callers that do not need their own matcher
def match_name(query: str, candidate: str, threshold: float = DEFAULT_THRESHOLD) -> Optional[MatchResult]:
    return _default_matcher.match(query, candidate, threshold)


def find_best_match(query: str, candidates: Iterable[str],
                    threshold: float = DEFAULT_THRESHOLD) -> Optional[MatchResult]:
    return _default_matcher.find_best_match(query, candidates, threshold)


def find_all_matches(query: str, candidates: Iterable[str],
                     threshold: float = DEFAULT_THRESHOLD) -> List[MatchResult]:
    return _default_matcher.find_all_matches(query, candidates, threshold)


def is_same_person(name1: str, name2: str) -> bool:
    return _default_matcher.is_same_person(name1, name2)
