"""
Devanagari to Roman transliteration for customer names.

Covers the Devanagari block (U+0900-U+097F) so that a name spoken or typed
in Hindi, Marathi or Nepali script ("राहुल") can be compared with the Roman
spellings stored in the ledger ("Rahul"). Pure table lookup, no network.

Rules:
- Halant joins consonants without the inherent 'a' between them.
- A vowel matra replaces the inherent 'a' of the preceding consonant.
- Anusvara and chandrabindu append 'n'; visarga appends 'h'.
- The inherent 'a' is kept between consonants but dropped at a word end.
- A decomposed nukta is skipped; precomposed nukta letters have own values.
"""

import re

DEVANAGARI_RE = re.compile(r'[\u0900-\u097F]')

# Consonants without their inherent 'a'
CONSONANTS = {
    'क': 'k', 'ख': 'kh', 'ग': 'g', 'घ': 'gh', 'ङ': 'ng',
    'च': 'ch', 'छ': 'chh', 'ज': 'j', 'झ': 'jh', 'ञ': 'ny',
    'ट': 't', 'ठ': 'th', 'ड': 'd', 'ढ': 'dh', 'ण': 'n',
    'त': 't', 'थ': 'th', 'द': 'd', 'ध': 'dh', 'न': 'n',
    'प': 'p', 'फ': 'ph', 'ब': 'b', 'भ': 'bh', 'म': 'm',
    'य': 'y', 'र': 'r', 'ल': 'l', 'ळ': 'l', 'व': 'v',
    'श': 'sh', 'ष': 'sh', 'स': 's', 'ह': 'h',
    # Precomposed nukta forms
    '\u0958': 'q', '\u0959': 'kh', '\u095A': 'gh', '\u095B': 'z',
    '\u095C': 'r', '\u095D': 'rh', '\u095E': 'f', '\u095F': 'y',
}

MATRAS = {
    'ा': 'a',   # aa is written 'a' in common name spellings
    'ि': 'i', 'ी': 'i',
    'ु': 'u', 'ू': 'u',
    'ृ': 'ri', 'ॄ': 'ri',
    'ॅ': 'e', 'ॆ': 'e', 'े': 'e',
    'ै': 'ai',
    'ॉ': 'o', 'ॊ': 'o', 'ो': 'o',
    'ौ': 'au',
    'ॎ': 'oe', 'ॏ': 'aw',
    'ॢ': 'l', 'ॣ': 'li',
}

INDEPENDENT_VOWELS = {
    'अ': 'a', 'आ': 'a', 'इ': 'i', 'ई': 'i',
    'उ': 'u', 'ऊ': 'u', 'ऋ': 'ri',
    'ए': 'e', 'ऐ': 'ai', 'ओ': 'o', 'औ': 'au',
    'ऑ': 'o', 'ऍ': 'e', 'ऎ': 'e', 'ऒ': 'o',
    'ऌ': 'l', 'ॠ': 'ri', 'ॡ': 'li',
}

DIGITS = {
    '०': '0', '१': '1', '२': '2', '३': '3', '४': '4',
    '५': '5', '६': '6', '७': '7', '८': '8', '९': '9',
}

HALANT = '\u094D'
ANUSVARA = '\u0902'
CHANDRABINDU = '\u0901'
VISARGA = '\u0903'
NUKTA = '\u093C'

NASALS = (ANUSVARA, CHANDRABINDU)

_WORD_CHAR_RE = re.compile(r'[\u0900-\u097F]|\w', re.ASCII)
_WORD_START_RE = re.compile(r'\b\w', re.ASCII)


def has_devanagari(text: str) -> bool:
    """True when at least one codepoint falls in the Devanagari block."""
    return bool(text) and DEVANAGARI_RE.search(text) is not None


def _is_word_boundary(chars, index: int) -> bool:
    # End of string, whitespace or punctuation ends a word
    if index >= len(chars):
        return True
    return _WORD_CHAR_RE.match(chars[index]) is None


def _modifier_suffix(chars, index: int):
    """Returns (suffix, next_index) for a nasal or visarga at ``index``."""
    if index < len(chars):
        if chars[index] in NASALS:
            return 'n', index + 1
        if chars[index] == VISARGA:
            return 'h', index + 1
    return '', index


def transliterate(text: str) -> str:
    """
    Renders Devanagari text in Roman script, capitalising each word.

    Non-Devanagari characters pass through unchanged, so mixed input like
    "राहुल Kumar" keeps its Latin part. Text without any Devanagari is
    returned as-is.

    Examples:
        >>> transliterate("राहुल")
        'Rahul'
        >>> transliterate("संजय")
        'Sanjay'
    """
    if not text or not isinstance(text, str):
        return text
    if not has_devanagari(text):
        return text

    chars = list(text)
    out = []
    i = 0

    while i < len(chars):
        ch = chars[i]

        if ch in DIGITS:
            out.append(DIGITS[ch])
            i += 1
            continue

        if ch in INDEPENDENT_VOWELS:
            out.append(INDEPENDENT_VOWELS[ch])
            suffix, i = _modifier_suffix(chars, i + 1)
            out.append(suffix)
            continue

        # Stray combining marks
        if ch in NASALS:
            out.append('n')
            i += 1
            continue
        if ch == VISARGA:
            out.append('h')
            i += 1
            continue
        if ch in (NUKTA, HALANT):
            i += 1
            continue

        if ch not in CONSONANTS:
            out.append(ch)
            i += 1
            continue

        out.append(CONSONANTS[ch])
        i += 1
        nxt = chars[i] if i < len(chars) else None

        if nxt == NUKTA:
            i += 1
            nxt = chars[i] if i < len(chars) else None

        if nxt == HALANT:
            i += 1
        elif nxt is not None and nxt in MATRAS:
            out.append(MATRAS[nxt])
            suffix, i = _modifier_suffix(chars, i + 1)
            out.append(suffix)
        elif nxt in NASALS:
            out.append('an')
            i += 1
        elif nxt == VISARGA:
            out.append('ah')
            i += 1
        elif not _is_word_boundary(chars, i):
            out.append('a')

    result = ''.join(out)
    return _WORD_START_RE.sub(lambda m: m.group(0).upper(), result)
