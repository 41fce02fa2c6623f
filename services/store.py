# services/store.py
"""
MIROMA - Store do domínio (eventos, clientes, packs, config de notificação)

Dono único do estado em memória. Todo acesso passa por um RLock; o
dispatcher executa cada comando dentro de `transaction()`, então nenhum
comando roda no meio de um `restore()`.

Contrato:
    create(collection, data) -> entity (com id)
    update(collection, id, patch) -> bool   (no-op se id ausente)
    delete(collection, id) -> bool          (só eventos; no-op se ausente)
    list(collection) -> [entity]            (ordem de inserção)
    snapshot() -> dict
    restore(state) -> bool                  (valida tudo antes de aplicar)

Persistência: após cada mutação chama backend.save(snapshot()). Falha ao
salvar é logada e não desfaz o estado em memória.
"""

from __future__ import annotations
from typing import Any, Callable, Dict, List, Optional
from contextlib import contextmanager
import copy
import logging
import threading
import uuid

from domain.entities import (
    CLIENTS,
    COLLECTIONS,
    EVENTS,
    PACKS,
    default_notification_config,
    normalize_notification_config,
    now_iso,
    seed_data,
)

log = logging.getLogger(__name__)

BACKUP_VERSION = 1


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


def _validate_collection(value: Any) -> bool:
    if not isinstance(value, list):
        return False
    for item in value:
        if not isinstance(item, dict):
            return False
        if not isinstance(item.get("id"), str) or not item.get("id"):
            return False
    return True


class DomainStore:
    def __init__(
        self,
        backend=None,
        *,
        id_factory: Callable[[], str] = _new_id,
        clock: Callable[[], str] = now_iso,
        seed: bool = True,
    ):
        self._lock = threading.RLock()
        self._backend = backend
        self._new_id = id_factory
        self._clock = clock
        self._data: Dict[str, List[Dict[str, Any]]] = {c: [] for c in COLLECTIONS}
        self._notification: Dict[str, Any] = default_notification_config()
        self._seed = seed
        self._load()

    # ------------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------------
    def _load(self) -> None:
        state = None
        if self._backend is not None:
            try:
                state = self._backend.load()
            except Exception:
                log.exception("[store] falha ao carregar estado; usando defaults")
        if state and self.restore(state, persist=False):
            missing = [c for c in COLLECTIONS if not isinstance(state.get(c), list)]
            if missing and self._seed:
                seed = seed_data()
                for c in missing:
                    self._data[c] = seed[c]
                log.info("[store] coleções ausentes no estado salvo; usando seed: %s", missing)
            log.info("[store] estado restaurado (%s eventos)", len(self._data[EVENTS]))
            return
        if self._seed:
            self._apply_seed()

    def _apply_seed(self) -> None:
        seed = seed_data()
        for c in COLLECTIONS:
            self._data[c] = seed[c]

    def _persist(self) -> None:
        if self._backend is None:
            return
        try:
            self._backend.save(self.snapshot())
        except Exception:
            log.exception("[store] falha ao salvar snapshot")

    @contextmanager
    def transaction(self):
        with self._lock:
            yield self

    def now(self) -> str:
        return self._clock()

    # ------------------------------------------------------------------
    # CRUD genérico
    # ------------------------------------------------------------------
    def _check(self, collection: str) -> List[Dict[str, Any]]:
        if collection not in self._data:
            raise KeyError(f"coleção desconhecida: {collection}")
        return self._data[collection]

    def _index(self, items: List[Dict[str, Any]], entity_id: str) -> int:
        for i, it in enumerate(items):
            if it.get("id") == entity_id:
                return i
        return -1

    def create(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            items = self._check(collection)
            entity = copy.deepcopy(dict(data))
            entity.pop("id", None)
            new_id = self._new_id()
            while self._index(items, new_id) >= 0:
                new_id = self._new_id()
            entity = {"id": new_id, **entity}
            if collection == EVENTS:
                entity["bookingDate"] = entity.get("bookingDate") or self._clock()
                entity["referenceImages"] = list(entity.get("referenceImages") or [])
            items.append(entity)
            self._persist()
            return copy.deepcopy(entity)

    def update(self, collection: str, entity_id: str, patch: Dict[str, Any]) -> bool:
        with self._lock:
            items = self._check(collection)
            i = self._index(items, entity_id)
            if i < 0:
                return False
            changes = {k: copy.deepcopy(v) for k, v in (patch or {}).items() if k != "id"}
            items[i].update(changes)
            self._persist()
            return True

    def delete(self, collection: str, entity_id: str) -> bool:
        if collection != EVENTS:
            # clientes e packs nunca são apagados (só arquivados)
            raise ValueError(f"{collection} não aceita exclusão")
        with self._lock:
            items = self._check(collection)
            i = self._index(items, entity_id)
            if i < 0:
                return False
            items.pop(i)
            self._persist()
            return True

    def get(self, collection: str, entity_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            items = self._check(collection)
            i = self._index(items, entity_id)
            return copy.deepcopy(items[i]) if i >= 0 else None

    def list(self, collection: str) -> List[Dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._check(collection))

    # ------------------------------------------------------------------
    # Packs e notificação
    # ------------------------------------------------------------------
    def add_pack(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.create(PACKS, data)

    def update_pack(self, pack_id: str, patch: Dict[str, Any]) -> bool:
        # preço novo não toca eventos: agreedPrice/packName são snapshots
        return self.update(PACKS, pack_id, patch)

    def archive_pack(self, pack_id: str) -> bool:
        return self.update(PACKS, pack_id, {"isActive": False})

    @property
    def notification_config(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._notification)

    def update_notification_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            self._notification = normalize_notification_config(config or {})
            self._persist()
            return dict(self._notification)

    # ------------------------------------------------------------------
    # Snapshot / restore / backup
    # ------------------------------------------------------------------
    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            state = {c: copy.deepcopy(self._data[c]) for c in COLLECTIONS}
            state["notificationConfig"] = dict(self._notification)
            return state

    def restore(self, state: Any, persist: bool = True) -> bool:
        """
        Tudo-ou-nada: qualquer campo presente e mal tipado rejeita o payload
        inteiro. Campos ausentes são ignorados (coleção atual mantida).
        """
        if not isinstance(state, dict):
            return False

        incoming: Dict[str, List[Dict[str, Any]]] = {}
        for c in COLLECTIONS:
            if c not in state or state[c] is None:
                continue
            if not _validate_collection(state[c]):
                log.warning("[store] restore rejeitado: campo %r inválido", c)
                return False
            incoming[c] = copy.deepcopy(state[c])

        notif = None
        raw_notif = state.get("notificationConfig", state.get("telegramConfig"))
        if raw_notif is not None:
            if not isinstance(raw_notif, dict):
                log.warning("[store] restore rejeitado: notificationConfig inválido")
                return False
            notif = normalize_notification_config(raw_notif)

        with self._lock:
            self._data.update(incoming)
            if notif is not None:
                self._notification = notif
            if persist:
                self._persist()
        return True

    def export_backup(self) -> Dict[str, Any]:
        state = self.snapshot()
        return {"version": BACKUP_VERSION, "date": self._clock(), **state}

    def import_backup(self, data: Any) -> bool:
        return self.restore(data)

    def reset(self) -> None:
        with self._lock:
            self._apply_seed()
            self._persist()
