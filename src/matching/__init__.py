"""
Name matching primitives: script, sound, nickname and edit-distance layers.
"""

from .name_matcher import (
    IndianNameMatcher,
    find_all_matches,
    find_best_match,
    is_same_person,
    match_name,
)
from .nicknames import canonical_name, is_nickname_relation, nicknames_for
from .phonetics import is_phonetic_match, normalize
from .similarity import levenshtein, name_similarity, similarity
from .transliteration import has_devanagari, transliterate

__all__ = [
    "IndianNameMatcher", "find_all_matches", "find_best_match", "is_same_person", "match_name",
    "canonical_name", "is_nickname_relation", "nicknames_for",
    "is_phonetic_match", "normalize",
    "levenshtein", "name_similarity", "similarity",
    "has_devanagari", "transliterate",
]
