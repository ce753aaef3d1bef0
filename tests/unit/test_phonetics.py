from src.matching.phonetics import (
    PHONETIC_RULES,
    apply_rules,
    is_phonetic_match,
    normalize,
    strip_honorifics,
)


def test_regional_spellings_share_a_form():
    assert normalize("Bharath") == normalize("Bharat") == "barat"
    assert normalize("Deepak") == normalize("Dipak")
    assert normalize("Vijay") == normalize("Vijai")
    assert normalize("Shyam") == normalize("Syam")


def test_honorifics_are_ignored():
    assert normalize("Suresh Bhai") == "sures"
    assert normalize("Sharma ji") == normalize("Sharma")
    assert strip_honorifics("ramesh bhai") == "ramesh"


def test_honorific_inside_a_word_is_kept():
    # "ji" is only stripped as a whole word
    assert normalize("Vijay").startswith("wij")


def test_only_honorific_is_empty():
    assert normalize("Ji") == ""
    assert normalize("") == ""
    assert not is_phonetic_match("ji", "bhai")


def test_double_consonants_collapse():
    assert normalize("Mohammad") == normalize("Mohamad")


def test_rule_order_is_significant():
    # Collapsing vowels first lets "bhaarat" reach the same form as "bharat"
    assert apply_rules("bhaarat") == apply_rules("bharat")
    reversed_rules = tuple(reversed(PHONETIC_RULES))
    assert apply_rules("ayy", PHONETIC_RULES) != apply_rules("ayy", reversed_rules)


def test_is_phonetic_match():
    assert is_phonetic_match("Bharat", "BHARATH")
    assert not is_phonetic_match("Rahul", "Suresh")
