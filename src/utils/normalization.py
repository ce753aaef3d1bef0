"""
Centralized query normalization for customer lookups.
"""

from typing import List, NamedTuple

from src.query.patterns import (
    PHONE_PATTERN,
    PRONOUN_REFERENCES,
    PUNCTUATION_PATTERN,
    STOP_WORDS,
    WHITESPACE_PATTERN,
)


class ParsedQuery(NamedTuple):
    normalized: str
    tokens: List[str]


def normalize_query(query: str) -> str:
    """
    Standardizes a spoken customer reference for matching.

    Transformation pipeline:
    1. Force lowercase
    2. Replace punctuation with spaces (Devanagari letters are kept)
    3. Collapse runs of whitespace
    """
    if not query:
        return ""

    norm = query.lower()
    norm = PUNCTUATION_PATTERN.sub(' ', norm)
    return WHITESPACE_PATTERN.sub(' ', norm).strip()


def parse_query(query: str) -> ParsedQuery:
    """
    Normalizes a query and extracts the tokens worth matching.

    Tokens shorter than two characters and Hindi/English stop words
    ("ka", "wala", "customer", ...) are dropped, so
    "Bharat ATM ke paas wala" yields ``['bharat', 'atm', 'paas']``.
    """
    normalized = normalize_query(query)
    tokens = [
        t for t in normalized.split(' ')
        if len(t) >= 2 and t not in STOP_WORDS
    ]
    return ParsedQuery(normalized, tokens)


def normalize_phone(query: str) -> str:
    """Strips the spaces and dashes people add when reading a number aloud."""
    return query.replace(' ', '').replace('-', '') if query else ""


def looks_like_phone(query: str) -> bool:
    return bool(PHONE_PATTERN.match(normalize_phone(query)))


def is_pronoun_reference(query: str) -> bool:
    """True for "usko", "iska" and similar references to the focused customer."""
    return normalize_query(query) in PRONOUN_REFERENCES
