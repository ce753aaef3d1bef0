"""
Phonetic normalization for Indian names written in Roman script.

The same spoken name reaches the ledger in many spellings ("Bharat",
"Bharath", "Bhaarat"). ``normalize`` reduces a name to a canonical form so
that two spellings of one sound compare equal.

Pipeline (order matters):
1. lowercase and trim
2. strip honorifics ("bhai", "ji", "sahab", ...) on word boundaries
3. apply ``PHONETIC_RULES`` in sequence
4. drop every remaining non-alphanumeric character
"""

import re
from typing import Iterable, Pattern, Tuple

# Respectful words that never carry identity ("Suresh bhai" == "Suresh")
HONORIFICS = (
    'bhai', 'bhabhi', 'ji', 'sir', 'madam', 'sahab', 'saheb',
    'bhaiya', 'didi', 'anna', 'akka',
)

HONORIFIC_RE = re.compile(r'\b(?:' + '|'.join(HONORIFICS) + r')\b', re.IGNORECASE)

# Ordered (pattern, replacement) pairs. Later rules read the output of earlier
# ones: the aspirate rules see vowels already collapsed, and the final
# double-letter collapse cleans up pairs created by any earlier substitution.
PHONETIC_RULES: Tuple[Tuple[Pattern, str], ...] = (
    # Vowel length
    (re.compile(r'aa|aaa', re.IGNORECASE), 'a'),
    (re.compile(r'ee|ii', re.IGNORECASE), 'i'),
    (re.compile(r'oo|uu', re.IGNORECASE), 'u'),
    (re.compile(r'ai|ay|ey', re.IGNORECASE), 'e'),
    (re.compile(r'au|aw|ow', re.IGNORECASE), 'o'),

    # Aspirated to unaspirated
    (re.compile(r'bh', re.IGNORECASE), 'b'),
    (re.compile(r'ph', re.IGNORECASE), 'p'),
    (re.compile(r'th', re.IGNORECASE), 't'),
    (re.compile(r'dh', re.IGNORECASE), 'd'),
    (re.compile(r'kh', re.IGNORECASE), 'k'),
    (re.compile(r'gh', re.IGNORECASE), 'g'),
    (re.compile(r'ch', re.IGNORECASE), 'c'),
    (re.compile(r'jh', re.IGNORECASE), 'j'),

    # Retroflex to dental
    (re.compile(r'tt|ṭ', re.IGNORECASE), 't'),
    (re.compile(r'dd|ḍ', re.IGNORECASE), 'd'),
    (re.compile(r'nn|ṇ', re.IGNORECASE), 'n'),

    # Sibilants
    (re.compile(r'sh|ṣ|ś', re.IGNORECASE), 's'),

    # Flapped r
    (re.compile(r'rr|ṛ', re.IGNORECASE), 'r'),

    # v/w merge
    (re.compile(r'v', re.IGNORECASE), 'w'),

    # Silent trailing h
    (re.compile(r'h$', re.IGNORECASE), ''),

    # Double consonants, always last
    (re.compile(r'([a-z])\1+', re.IGNORECASE), r'\1'),
)

_NON_ALNUM_RE = re.compile(r'[^a-z0-9]')


def strip_honorifics(name: str) -> str:
    """Removes respectful words such as "bhai" or "ji" and trims the result."""
    return HONORIFIC_RE.sub('', name).strip()


def apply_rules(text: str, rules: Iterable[Tuple[Pattern, str]] = PHONETIC_RULES) -> str:
    """Applies each (pattern, replacement) rule once, in the given order."""
    for pattern, replacement in rules:
        text = pattern.sub(replacement, text)
    return text


def normalize(name: str) -> str:
    """
    Reduces a name to its phonetic canonical form.

    Examples:
        >>> normalize("Bharath")
        'barat'
        >>> normalize("Suresh Bhai")
        'sures'
    """
    if not name:
        return ""

    norm = name.lower().strip()
    norm = strip_honorifics(norm)
    norm = apply_rules(norm)
    return _NON_ALNUM_RE.sub('', norm)


def is_phonetic_match(a: str, b: str) -> bool:
    """Two names sound alike when their canonical forms are equal and non-empty."""
    canonical = normalize(a)
    return bool(canonical) and canonical == normalize(b)
