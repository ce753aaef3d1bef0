"""
Centralized word lists and regex patterns for customer name queries.
"""

import re

# Hindi/English filler dropped from ranked queries before tokenizing
STOP_WORDS = frozenset({
    # postpositions
    'ka', 'ki', 'ke', 'ko', 'se', 'me', 'main',
    # copula / relative markers
    'hai', 'ho', 'wala', 'wali', 'waale',
    # filler and titles
    'customer', 'cust', 'bhai', 'ji', 'mr', 'mrs', 'ms',
    # articles
    'the', 'a', 'an',
})

# Pronouns that point back at the customer already in focus
PRONOUN_REFERENCES = frozenset({
    'usko', 'isko', 'uska', 'iska', 'uski', 'iski', 'uske', 'iske',
    'unko', 'inko', 'unka', 'inka', 'wo', 'woh', 'ye', 'yeh',
    'him', 'her', 'them', 'same', 'same customer',
})

# A bare phone number, after spaces and dashes are removed
PHONE_PATTERN = re.compile(r'^\+?\d{10,15}$')

# Anything that is not a letter, digit, whitespace or Devanagari sign
PUNCTUATION_PATTERN = re.compile(r"[^\w\s\u0900-\u097F]|_")
WHITESPACE_PATTERN = re.compile(r'\s+')
