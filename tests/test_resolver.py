from domain.entities import CLIENTS, EVENTS, new_client
from services.resolver import EntityResolver


def _ev(title):
    return {"title": title, "start": "2025-03-01T10:00:00Z", "end": "2025-03-01T11:00:00Z", "type": "Trabalho"}


def test_find_client_is_case_insensitive_substring(store):
    store.create(CLIENTS, new_client("Empresa Alpha"))
    found = EntityResolver(store).find_client("ALPHA")
    assert found["name"] == "Empresa Alpha"


def test_first_inserted_wins_on_ambiguity(store):
    store.create(EVENTS, _ev("Reunião Alpha"))
    store.create(EVENTS, _ev("Reunião Beta"))
    assert EntityResolver(store).find_event("reunião")["title"] == "Reunião Alpha"


def test_no_match_returns_none(store):
    store.create(CLIENTS, new_client("Ana"))
    r = EntityResolver(store)
    assert r.find_client("Bia") is None
    assert r.find_event("Ana") is None


def test_empty_fragment_matches_nothing(store):
    store.create(CLIENTS, new_client("Ana"))
    r = EntityResolver(store)
    assert r.find_client("") is None
    assert r.find_client(None) is None


def test_result_is_a_copy(store):
    store.create(CLIENTS, new_client("Ana"))
    found = EntityResolver(store).find_client("ana")
    found["name"] = "mexido"
    assert store.list(CLIENTS)[0]["name"] == "Ana"
