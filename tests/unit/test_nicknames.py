from src.matching.nicknames import (
    NICKNAME_MAP,
    REVERSE_NICKNAME_MAP,
    canonical_name,
    is_nickname_relation,
    nicknames_for,
)


def test_nickname_to_full_name():
    assert is_nickname_relation("Raju", "Rahul")
    assert is_nickname_relation("Rahul", "Raju")
    assert is_nickname_relation("sonu", "SAURABH")
    assert is_nickname_relation("Suri", "Suresh")


def test_shared_nickname_relates_to_every_owner():
    # "raju" is listed under both rahul and rajesh
    assert is_nickname_relation("raju", "rajesh")
    assert is_nickname_relation("raju", "rahul")


def test_unrelated_names():
    assert not is_nickname_relation("Raju", "Suresh")
    assert not is_nickname_relation("", "Rahul")
    assert not is_nickname_relation("Rahul", "Rahul Sharma")


def test_reverse_map_keeps_first_owner():
    assert REVERSE_NICKNAME_MAP["raju"] == "rahul"
    assert canonical_name("Raju") == "rahul"
    assert canonical_name("Rajesh") == "rajesh"
    assert canonical_name("Zorawar") is None


def test_spelling_variants_are_not_nicknames():
    assert "bharath" not in REVERSE_NICKNAME_MAP
    assert not is_nickname_relation("Bharat", "Bharath")


def test_nicknames_for():
    assert nicknames_for("Rajesh") == ("raju", "raj")
    assert nicknames_for("unknown") == ()
    assert all(nick == nick.lower() for nicks in NICKNAME_MAP.values() for nick in nicks)
