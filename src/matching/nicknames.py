"""
Nickname dictionary for common Indian given names.

Lookups are exact and case-insensitive. Near-miss spellings ("Rahool" for
"Rahul") are left to the phonetic and fuzzy tiers of the name matcher, so
pure spelling variants are deliberately absent from this map.
"""

from typing import Dict, Optional, Tuple

from src.utils.logging_config import logger

NICKNAME_MAP: Dict[str, Tuple[str, ...]] = {
    # Hindi / North Indian
    'saurabh': ('sonu',),
    'rahul': ('raju',),
    'rajesh': ('raju', 'raj'),
    'priya': ('priyu', 'pari'),
    'amit': ('amitbhai', 'amit bhai', 'mittu'),
    'suresh': ('suri', 'suresh bhai'),
    'ramesh': ('ramu', 'ramesh bhai'),
    'ganesh': ('ganu', 'gannu', 'ganesha'),
    'mahesh': ('mahi', 'mahesh bhai'),
    'abhishek': ('abhi',),
    'aditya': ('adi',),
    'aniket': ('ani',),
    'ankit': ('anki',),
    'arjun': ('arju',),
    'dinesh': ('dinu', 'dinesh bhai'),
    'kiran': ('kiru',),
    'mukesh': ('mukku', 'mukesh bhai'),
    'prakash': ('prakash bhai',),
    'rakesh': ('raki', 'rakesh bhai'),
    'sachin': ('sachinbhai', 'sachi'),
    'sandeep': ('sandy',),
    'sanjay': ('sanju', 'sanjoy'),
    'vijay': ('viju', 'vijju', 'bijay'),
    'deepak': ('deepu', 'deepakbhai'),
    'vivek': ('vicky',),

    # Female names
    'anita': ('anu', 'anitabhabhi'),
    'kavita': ('kavi', 'kavitabhabhi'),
    'meena': ('meenu', 'meenabhabhi'),
    'neeta': ('neetu', 'neetabhabhi'),
    'pooja': ('pujabhabhi',),
    'rekha': ('rekhabhabhi',),
    'savita': ('savitabhabhi', 'savithri'),
    'sunita': ('sunitabhabhi', 'suni'),

    # South Indian
    'krishna': ('krish', 'krishnanand', 'kishan'),
    'lakshmi': ('laxmi',),
    'venkatesh': ('venky', 'venkateshwar', 'venkat'),
    'srinivas': ('srini',),
    'balaji': ('balajibhai',),
    'murali': ('murlidhar', 'murlidharan'),

    # Regional
    'bharat': ('bharatbhai',),
    'gaurav': ('gauravbhai',),
    'harish': ('harischandra', 'harishbhai'),
}


def _build_reverse_map(nickname_map: Dict[str, Tuple[str, ...]]) -> Dict[str, str]:
    """
    Maps every nickname to exactly one canonical name.

    A nickname shared by two names ("raju") belongs to the first one
    declared; the forward lookup still relates it to both.
    """
    reverse: Dict[str, str] = {}
    for canonical, nicknames in nickname_map.items():
        for nick in nicknames:
            key = nick.lower()
            if key in reverse:
                logger.debug(f"Nickname '{key}' already mapped to '{reverse[key]}', keeping it over '{canonical}'")
                continue
            reverse[key] = canonical
    return reverse


REVERSE_NICKNAME_MAP: Dict[str, str] = _build_reverse_map(NICKNAME_MAP)


def nicknames_for(name: str) -> Tuple[str, ...]:
    """Listed nicknames of a canonical name (empty when unknown)."""
    return NICKNAME_MAP.get((name or '').lower().strip(), ())


def canonical_name(name: str) -> Optional[str]:
    """
    Canonical form of a name: itself when it is a dictionary entry, the
    owning entry when it is a known nickname, otherwise ``None``.
    """
    key = (name or '').lower().strip()
    if key in NICKNAME_MAP:
        return key
    return REVERSE_NICKNAME_MAP.get(key)


def is_nickname_relation(a: str, b: str) -> bool:
    """
    True when one name is a listed nickname of the other, or both are
    nicknames of the same canonical name.
    """
    n1 = (a or '').lower().strip()
    n2 = (b or '').lower().strip()
    if not n1 or not n2:
        return False

    if n2 in NICKNAME_MAP.get(n1, ()) or n1 in NICKNAME_MAP.get(n2, ()):
        return True

    full1 = REVERSE_NICKNAME_MAP.get(n1)
    full2 = REVERSE_NICKNAME_MAP.get(n2)

    if full1 and full1 == n2:
        return True
    if full2 and full2 == n1:
        return True
    return bool(full1 and full2 and full1 == full2)
