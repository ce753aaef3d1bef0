"""
Composite multi-field ranking of customer records against a spoken query.

A shopkeeper rarely says a name exactly as stored. "Bharat ATM ke paas wala"
mixes a name, a landmark and Hindi filler, so no single field matches
cleanly. The ranker scores every independent signal (name, nickname,
landmark, phone, free-text tokens, fuzzy similarity) and keeps the strongest
one. Signals are never summed, so a strong landmark hit is not diluted by a
weak name hit.
"""

from typing import Iterable, List, Optional, Union

from src.matching.similarity import similarity
from src.matching.transliteration import has_devanagari, transliterate
from src.models import CustomerRecord, CustomerSearchResult
from src.utils.logging_config import logger
from src.utils.normalization import ParsedQuery, normalize_phone, normalize_query, parse_query

Candidate = Union[CustomerRecord, CustomerSearchResult]


def _field_text(value: Optional[str]) -> str:
    if not value:
        return ""
    if has_devanagari(value):
        value = transliterate(value)
    return normalize_query(value)


def _sort_key(result: CustomerSearchResult):
    # Deterministic order: score desc, then name, then id
    return (-result.match_score, result.name.lower(), result.id)


class CustomerRanker:
    """
    Scores how well a customer record answers a query, in [0, 1].

    Signal table (the maximum applicable value wins):
    - exact name                  -> 1.0 (returned immediately)
    - name contains query         -> 0.8 + 0.1 x similarity
    - exact nickname              -> 0.9 (returned immediately)
    - nickname contains query     -> 0.7 + 0.1 x similarity
    - landmark contains query     -> 0.6
    - phone contains query        -> 0.95
    - token overlap ratio         -> 0.45 + 0.4 x ratio, +0.1 per landmark token
    - name similarity > 0.6       -> similarity x 0.75
    - combined-text similarity > 0.55 -> similarity x 0.7
    """

    EXACT_NAME = 1.0
    EXACT_NICKNAME = 0.9
    NAME_CONTAINS = 0.8
    NICKNAME_CONTAINS = 0.7
    LANDMARK_CONTAINS = 0.6
    PHONE_CONTAINS = 0.95
    TOKEN_BASE = 0.45
    TOKEN_WEIGHT = 0.4
    LANDMARK_TOKEN_BONUS = 0.1
    NAME_FUZZY_GATE = 0.6
    NAME_FUZZY_WEIGHT = 0.75
    COMBINED_FUZZY_GATE = 0.55
    COMBINED_FUZZY_WEIGHT = 0.7

    def parse(self, query: str) -> ParsedQuery:
        if query and has_devanagari(query):
            query = transliterate(query)
        return parse_query(query or "")

    def rank(self, query: str, candidate: Candidate) -> float:
        """
        Computes the composite score of one candidate.

        Never raises for empty queries or empty fields; those simply score 0.
        """
        q, tokens = self.parse(query)
        if not q:
            return 0.0

        name = _field_text(candidate.name)
        nickname = _field_text(candidate.nickname)
        landmark = _field_text(candidate.landmark)
        phone = normalize_phone(candidate.phone or "")
        score = 0.0

        if name and name == q:
            return self.EXACT_NAME

        if q in name:
            score = max(score, self.NAME_CONTAINS + 0.1 * similarity(q, name))

        if nickname and nickname == q:
            return self.EXACT_NICKNAME

        if q in nickname:
            score = max(score, self.NICKNAME_CONTAINS + 0.1 * similarity(q, nickname))

        if q in landmark:
            score = max(score, self.LANDMARK_CONTAINS)

        q_phone = normalize_phone(q)
        if phone and q_phone.isdigit() and q_phone in phone:
            score = max(score, self.PHONE_CONTAINS)

        # Token overlap for multi-word, code-switched phrases
        if tokens:
            matched = 0
            landmark_hits = 0
            for token in tokens:
                if token in name or token in nickname or token in landmark or token in phone:
                    matched += 1
                    if token in landmark:
                        landmark_hits += 1

            ratio = matched / len(tokens)
            if ratio > 0:
                score = max(score, self.TOKEN_BASE + self.TOKEN_WEIGHT * ratio)
            if landmark_hits:
                score = max(score, min(1.0, score + self.LANDMARK_TOKEN_BONUS * landmark_hits))

        name_similarity = similarity(q, name)
        if name_similarity > self.NAME_FUZZY_GATE:
            score = max(score, name_similarity * self.NAME_FUZZY_WEIGHT)

        # Fuzzy on the combined text for phrases like "bharat atm"
        combined = " ".join(part for part in (name, nickname, landmark) if part)
        combined_similarity = similarity(q, combined)
        if combined_similarity > self.COMBINED_FUZZY_GATE:
            score = max(score, combined_similarity * self.COMBINED_FUZZY_WEIGHT)

        return min(max(score, 0.0), 1.0)

    def rank_candidates(self, query: str, candidates: Iterable[Candidate],
                        floor: float = 0.0) -> List[CustomerSearchResult]:
        """
        Re-scores candidates and returns copies at or above ``floor``.

        Args:
            query: Spoken or typed customer reference.
            candidates: Store records or previously cached search results.
            floor: Minimum score to keep.

        Returns:
            New CustomerSearchResult objects, best first.
        """
        ranked = []
        for candidate in candidates:
            score = self.rank(query, candidate)
            logger.debug(f"Rank '{query}' vs '{candidate.name}': {score:.3f}")
            if score < floor:
                continue
            if isinstance(candidate, CustomerSearchResult):
                ranked.append(candidate.with_score(score))
            else:
                ranked.append(CustomerSearchResult.from_record(candidate, score))
        return sorted(ranked, key=_sort_key)
