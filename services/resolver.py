# services/resolver.py
# Busca de cliente/evento por trecho de texto (usado só pelo dispatcher).
# Regra: minúsculas dos dois lados; vence o PRIMEIRO da coleção (ordem de
# inserção) cujo nome/título contém o trecho. Sem ranking: trechos ambíguos
# caem no registro mais antigo.

from typing import Any, Dict, Optional

from domain.entities import CLIENTS, EVENTS


class EntityResolver:
    def __init__(self, store):
        self.store = store

    def _first_match(self, collection: str, field: str, fragment: Any) -> Optional[Dict[str, Any]]:
        t = str(fragment or "").lower()
        if not t:
            return None
        for item in self.store.list(collection):
            if t in str(item.get(field) or "").lower():
                return item
        return None

    def find_client(self, fragment: Any) -> Optional[Dict[str, Any]]:
        return self._first_match(CLIENTS, "name", fragment)

    def find_event(self, fragment: Any) -> Optional[Dict[str, Any]]:
        return self._first_match(EVENTS, "title", fragment)
