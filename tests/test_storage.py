import json

import pytest

from domain.entities import CLIENTS, new_client
from services.storage import FirestoreBackend, JsonFileBackend, MemoryBackend, build_backend
from services.store import DomainStore


def test_json_backend_missing_file_loads_none(tmp_path):
    assert JsonFileBackend(str(tmp_path / "nada.json")).load() is None


def test_json_backend_round_trip(tmp_path):
    path = tmp_path / "sub" / "dados.json"
    b = JsonFileBackend(str(path))
    b.save({"clients": [{"id": "1", "name": "João"}]})

    assert json.loads(path.read_text(encoding="utf-8"))["clients"][0]["name"] == "João"
    assert b.load() == {"clients": [{"id": "1", "name": "João"}]}
    # sem sobras do arquivo temporário
    assert [p.name for p in path.parent.iterdir()] == ["dados.json"]


def test_json_backend_corrupted_file_loads_none(tmp_path):
    path = tmp_path / "dados.json"
    path.write_text("{quebrado", encoding="utf-8")
    assert JsonFileBackend(str(path)).load() is None


def test_store_survives_restart_with_json_backend(tmp_path):
    path = str(tmp_path / "dados.json")
    first = DomainStore(JsonFileBackend(path), seed=False)
    first.create(CLIENTS, new_client("Bia"))

    second = DomainStore(JsonFileBackend(path))
    assert [c["name"] for c in second.list(CLIENTS)] == ["Bia"]


def test_memory_backend_isolates_saved_state():
    b = MemoryBackend()
    state = {"clients": [{"id": "1"}]}
    b.save(state)
    state["clients"].append({"id": "2"})
    assert b.load() == {"clients": [{"id": "1"}]}


class FakeSnapshot:
    def __init__(self, data):
        self._data = data
        self.exists = data is not None

    def to_dict(self):
        return self._data


class FakeDoc:
    def __init__(self, db, path):
        self.db = db
        self.path = path

    def get(self):
        return FakeSnapshot(self.db.docs.get(self.path))

    def set(self, data):
        self.db.docs[self.path] = data


class FakeFirestore:
    def __init__(self):
        self.docs = {}

    def document(self, path):
        return FakeDoc(self, path)


def test_firestore_backend_round_trip():
    db = FakeFirestore()
    b = FirestoreBackend("miroma/state", client=db)
    assert b.load() is None

    b.save({"packs": []})
    assert db.docs["miroma/state"] == {"state": {"packs": []}}
    assert b.load() == {"packs": []}


def test_firestore_backend_ignores_foreign_document():
    db = FakeFirestore()
    db.docs["miroma/state"] = {"outra": 1}
    assert FirestoreBackend(client=db).load() is None


@pytest.mark.parametrize("path", ["", "miroma", "a/b/c"])
def test_firestore_backend_requires_document_path(path):
    with pytest.raises(ValueError):
        FirestoreBackend(path, client=FakeFirestore())


def test_build_backend(tmp_path):
    assert isinstance(build_backend({"storage_backend": "memory"}), MemoryBackend)
    b = build_backend({"storage_backend": "json", "data_file": str(tmp_path / "x.json")})
    assert isinstance(b, JsonFileBackend)
    assert isinstance(build_backend({"storage_backend": "firestore", "firestore_doc": "a/b"}), FirestoreBackend)
