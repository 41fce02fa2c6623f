# services/storage.py
# Backends de persistência do snapshot do store.
# Contrato: load() -> dict | None ; save(dict) -> None
#   - MemoryBackend:    processo (testes / efêmero)
#   - JsonFileBackend:  arquivo local, escrita atômica (tmp + replace)
#   - FirestoreBackend: um documento (ex.: miroma/state) via Firebase Admin

import os
import json
import logging
import tempfile
import threading
from typing import Any, Dict, Optional

log = logging.getLogger(__name__)


class MemoryBackend:
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data = json.loads(json.dumps(initial)) if initial is not None else None
        self._lock = threading.Lock()
        self.saves = 0

    def load(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            return json.loads(json.dumps(self._data)) if self._data is not None else None

    def save(self, state: Dict[str, Any]) -> None:
        with self._lock:
            self._data = json.loads(json.dumps(state))
            self.saves += 1


class JsonFileBackend:
    def __init__(self, path: str):
        self.path = os.path.abspath(path)

    def load(self) -> Optional[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            log.exception("[storage] falha ao ler %s", self.path)
            return None
        return data if isinstance(data, dict) else None

    def save(self, state: Dict[str, Any]) -> None:
        folder = os.path.dirname(self.path) or "."
        os.makedirs(folder, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".miroma-", suffix=".json", dir=folder)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state, f, ensure_ascii=False, indent=2)
            os.replace(tmp, self.path)
        except Exception:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise


class FirestoreBackend:
    """Snapshot inteiro em um documento; volume pequeno, sem subcoleções."""

    def __init__(self, doc_path: str = "miroma/state", client=None):
        parts = [p for p in (doc_path or "").split("/") if p]
        if not parts or len(parts) % 2 != 0:
            # precisa ser documento (número PAR de segmentos)
            raise ValueError(f"caminho de documento inválido: {doc_path!r}")
        self.doc_path = "/".join(parts)
        self._client = client

    def _doc(self):
        if self._client is None:
            from services.db import get_db
            self._client = get_db()
        return self._client.document(self.doc_path)

    def load(self) -> Optional[Dict[str, Any]]:
        snap = self._doc().get()
        if not getattr(snap, "exists", False):
            return None
        data = snap.to_dict() or {}
        return data.get("state") if isinstance(data.get("state"), dict) else None

    def save(self, state: Dict[str, Any]) -> None:
        self._doc().set({"state": state})


def build_backend(settings: Dict[str, Any]):
    kind = settings.get("storage_backend", "json")
    if kind == "memory":
        return MemoryBackend()
    if kind == "firestore":
        return FirestoreBackend(settings.get("firestore_doc") or "miroma/state")
    return JsonFileBackend(settings.get("data_file") or "miroma_data.json")
