import pytest
from src.matching.similarity import levenshtein, name_similarity, similarity


def test_levenshtein_distance():
    assert levenshtein("kitten", "sitting") == 3
    assert levenshtein("", "abc") == 3
    assert levenshtein("rahul", "rahul") == 0


def test_similarity_bounds():
    assert similarity("", "") == 1.0
    assert similarity("abc", "") == 0.0
    assert similarity("rahul", "rahul") == 1.0
    assert similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)


def test_similarity_is_case_sensitive():
    assert similarity("Rahul", "rahul") < 1.0


def test_name_similarity_ignores_case_and_padding():
    assert name_similarity("  Rahul ", "RAHUL") == 1.0
    assert name_similarity("Rahl", "Rahul") == pytest.approx(0.8)
