# services/dispatcher.py
"""
MIROMA - Dispatcher de comandos (tools do agente conversacional)

Contrato estável:
    execute(name: str, args: dict) -> {"ok": bool, "message": str, "entity": Any, "command": str}

- `message` é o texto curto devolvido ao agente (inclusive nas falhas:
  "não encontrei...", parâmetro inválido, comando desconhecido).
- `ok` permite a chamadores automáticos decidirem sem inspecionar texto.
- Cada comando roda inteiro dentro de store.transaction(); o patch de um
  update é montado por completo antes da única escrita no store.
- Só addEvent dispara notificação (fora do lock, sem bloquear o resultado).

Atualizações parciais (tri-state):
    chave ausente        -> mantém o valor atual
    chave presente, None -> limpa o campo (apenas campos opcionais)
    chave com valor      -> grava
Título/datas/nome do cliente ignoram None e texto vazio.
"""

from __future__ import annotations
from typing import Any, Callable, Dict, Optional
import logging

from domain.entities import (
    ADJUSTMENT_PACK_NAME,
    CLIENTS,
    EVENTS,
    PACKS,
    EventType,
    event_type_from_label,
    fmt_money,
    new_client,
)
from domain.tools import Command, validate_args
from services.notifier import fire_and_forget, format_new_event_message, send_quietly
from services.resolver import EntityResolver

log = logging.getLogger(__name__)

UNKNOWN_COMMAND_MSG = "Ferramenta não implementada ou desconhecida."
AUTO_CLIENT_NOTES = "Criado automaticamente via agendamento"
SCHEDULE_PREVIEW = 3


def _result(ok: bool, message: str, entity: Any = None) -> Dict[str, Any]:
    return {"ok": bool(ok), "message": message, "entity": entity}


def _filled(value: Any) -> bool:
    return value is not None and not (isinstance(value, str) and not value.strip())


class CommandDispatcher:
    def __init__(
        self,
        store,
        resolver: Optional[EntityResolver] = None,
        gateway=None,
        *,
        notify_async: bool = True,
        tz_name: str = "Europe/Lisbon",
        currency: str = "€",
    ):
        self.store = store
        self.resolver = resolver or EntityResolver(store)
        self.gateway = gateway
        self.notify_async = notify_async
        self.tz_name = tz_name
        self.currency = currency

        self._handlers: Dict[Command, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
            Command.ADD_EVENT: self._add_event,
            Command.UPDATE_EVENT: self._update_event,
            Command.DELETE_EVENT: self._delete_event,
            Command.ADD_CLIENT: self._add_client,
            Command.UPDATE_CLIENT: self._update_client,
            Command.ADD_REVENUE: self._add_revenue,
            Command.GET_PACKS: self._get_packs,
            Command.GET_SCHEDULE: self._get_schedule,
        }
        missing = set(Command) - set(self._handlers)
        if missing:
            raise RuntimeError(f"comandos sem handler: {sorted(c.value for c in missing)}")

    # ------------------------------------------------------------------
    # Entrada única
    # ------------------------------------------------------------------
    def execute(self, name: Any, args: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        cmd = Command.parse(name)
        if cmd is None:
            log.info("[dispatcher] comando desconhecido: %r", name)
            out = _result(False, UNKNOWN_COMMAND_MSG)
            out["command"] = str(name or "")
            return out

        ok, err, clean = validate_args(cmd, args)
        if not ok:
            out = _result(False, err)
        else:
            try:
                with self.store.transaction():
                    out = self._handlers[cmd](clean)
            except Exception as e:
                log.exception("[dispatcher] falha em %s", cmd.value)
                out = _result(False, f"Erro ao executar ação: {e}")

        out["command"] = cmd.value
        log.info("[dispatcher] %s ok=%s", cmd.value, out["ok"])

        if cmd is Command.ADD_EVENT and out["ok"]:
            self._notify_new_event(out["entity"])
        return out

    __call__ = execute

    def _notify_new_event(self, event: Dict[str, Any]) -> None:
        if self.gateway is None or not self.store.notification_config.get("enabled"):
            return
        msg = format_new_event_message(event, self.tz_name, self.currency)
        if self.notify_async:
            fire_and_forget(self.gateway, msg)
        else:
            send_quietly(self.gateway, msg)

    # ------------------------------------------------------------------
    # Eventos
    # ------------------------------------------------------------------
    def _add_event(self, args: Dict[str, Any]) -> Dict[str, Any]:
        event_type = event_type_from_label(args.get("type"))

        client_id = None
        client_created = False
        client_name = args.get("clientName")
        if _filled(client_name):
            existing = self.resolver.find_client(client_name)
            if existing:
                client_id = existing["id"]
            else:
                created = self.store.create(CLIENTS, new_client(
                    client_name,
                    args.get("clientContact") or "",
                    args.get("clientNotes") or AUTO_CLIENT_NOTES,
                ))
                client_id = created["id"]
                client_created = True

        data: Dict[str, Any] = {
            "title": args["title"],
            "start": args["start"],
            "end": args["end"],
            "type": event_type.value,
            "bookingDate": args.get("bookingDate") or self.store.now(),
            "referenceImages": [],
        }
        optional = {
            "description": args.get("description"),
            "location": args.get("location"),
            "clientId": client_id,
            "packName": args.get("packName"),
            "agreedPrice": args.get("price"),
            "shippingAddress": args.get("shippingAddress"),
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        if event_type is EventType.ORDER:
            data["isDone"] = False

        event = self.store.create(EVENTS, data)

        msg = (
            f"Evento criado com sucesso: {event['title']} em {event['start']}. "
            f"Local: {event.get('location') or 'Não definido'}. "
            f"Valor: {self.currency}{fmt_money(event.get('agreedPrice'))}."
        )
        if client_created:
            msg += f' (Novo cliente "{client_name}" foi cadastrado automaticamente).'
        return _result(True, msg, event)

    def _update_event(self, args: Dict[str, Any]) -> Dict[str, Any]:
        target = self.resolver.find_event(args["searchTitle"])
        if not target:
            return _result(False, f'Não encontrei nenhum evento ou faturamento com o título similar a "{args["searchTitle"]}".')

        patch: Dict[str, Any] = {}
        for arg, field in (("newTitle", "title"), ("newStart", "start"), ("newEnd", "end")):
            if _filled(args.get(arg)):
                patch[field] = args[arg]
        for arg, field in (
            ("newLocation", "location"),
            ("newDescription", "description"),
            ("newPrice", "agreedPrice"),
            ("isDone", "isDone"),
        ):
            if arg in args:
                patch[field] = args[arg]

        if patch:
            self.store.update(EVENTS, target["id"], patch)

        msg = f'Item "{target["title"]}" atualizado com sucesso.'
        if args.get("newPrice") is not None:
            msg += f" Novo valor: {self.currency}{fmt_money(args['newPrice'])}."
        return _result(True, msg, self.store.get(EVENTS, target["id"]))

    def _delete_event(self, args: Dict[str, Any]) -> Dict[str, Any]:
        target = self.resolver.find_event(args["searchTitle"])
        if not target:
            return _result(False, f'Não encontrei nenhum item com o título similar a "{args["searchTitle"]}" para remover.')
        self.store.delete(EVENTS, target["id"])
        return _result(True, f'Item "{target["title"]}" removido com sucesso da agenda e do faturamento.', target)

    # ------------------------------------------------------------------
    # Clientes
    # ------------------------------------------------------------------
    def _add_client(self, args: Dict[str, Any]) -> Dict[str, Any]:
        client = self.store.create(CLIENTS, new_client(
            args["name"], args.get("contact") or "", args.get("notes") or "",
        ))
        return _result(True, f"Cliente cadastrado: {client['name']}.", client)

    def _update_client(self, args: Dict[str, Any]) -> Dict[str, Any]:
        target = self.resolver.find_client(args["searchName"])
        if not target:
            return _result(False, f'Não encontrei nenhum cliente com nome similar a "{args["searchName"]}".')

        patch: Dict[str, Any] = {}
        if _filled(args.get("newName")):
            patch["name"] = args["newName"]
        for arg, field in (("newContact", "contact"), ("newNotes", "notes")):
            if arg in args:
                patch[field] = args[arg] or ""

        if patch:
            self.store.update(CLIENTS, target["id"], patch)
        return _result(True, f'Ficha do cliente "{target["name"]}" atualizada.', self.store.get(CLIENTS, target["id"]))

    # ------------------------------------------------------------------
    # Faturamento avulso
    # ------------------------------------------------------------------
    def _add_revenue(self, args: Dict[str, Any]) -> Dict[str, Any]:
        date = args.get("date") or self.store.now()
        event = self.store.create(EVENTS, {
            "title": args.get("description") or "Receita Avulsa",
            "start": date,
            "end": date,
            "bookingDate": date,
            "type": EventType.WORK.value,
            "packName": ADJUSTMENT_PACK_NAME,
            "agreedPrice": args["amount"],
            "description": "Faturamento adicionado manualmente via AI.",
            "isDone": True,
        })
        return _result(True, f"Adicionado faturamento de {self.currency}{fmt_money(args['amount'])} com sucesso.", event)

    # ------------------------------------------------------------------
    # Leitura
    # ------------------------------------------------------------------
    def _get_packs(self, args: Dict[str, Any]) -> Dict[str, Any]:
        active = [p for p in self.store.list(PACKS) if p.get("isActive", True)]
        return _result(True, "Consulte a aba Packs para ver detalhes.", active)

    def _get_schedule(self, args: Dict[str, Any]) -> Dict[str, Any]:
        events = self.store.list(EVENTS)
        preview = ", ".join(f"{e.get('title')} ({e.get('start')})" for e in events[:SCHEDULE_PREVIEW])
        msg = f"Agenda atual tem {len(events)} eventos. Próximos eventos: {preview}"
        return _result(True, msg, events[:SCHEDULE_PREVIEW])
