# domain/tools.py
# Conjunto fechado de comandos ("tools") expostos ao agente conversacional.
# - Command: enum com os 8 nomes aceitos
# - TOOL_SCHEMAS: declarações JSON-Schema (mesmas enviadas ao LLM)
# - validate_args: checa obrigatórios e converte tipos frouxos (str/num/bool/data)

from __future__ import annotations
from enum import Enum
import math
import re
from typing import Any, Dict, List, Optional, Tuple

from domain.entities import parse_bool, parse_instant, to_iso


class Command(str, Enum):
    ADD_EVENT = "addEvent"
    UPDATE_EVENT = "updateEvent"
    DELETE_EVENT = "deleteEvent"
    ADD_CLIENT = "addClient"
    UPDATE_CLIENT = "updateClient"
    ADD_REVENUE = "addRevenue"
    GET_PACKS = "getPacks"
    GET_SCHEDULE = "getSchedule"

    @classmethod
    def parse(cls, name: Any) -> Optional["Command"]:
        try:
            return cls(str(name or "").strip())
        except ValueError:
            return None


def _str(desc: str) -> Dict[str, Any]:
    return {"type": "string", "description": desc}


def _dt(desc: str) -> Dict[str, Any]:
    return {"type": "string", "format": "date-time", "description": desc}


def _num(desc: str) -> Dict[str, Any]:
    return {"type": "number", "description": desc}


def _bool(desc: str) -> Dict[str, Any]:
    return {"type": "boolean", "description": desc}


TOOL_SCHEMAS: Dict[Command, Dict[str, Any]] = {
    Command.ADD_EVENT: {
        "description": "Adiciona um novo evento, reunião ou encomenda. CRIA CLIENTE AUTOMATICAMENTE SE O NOME FOR FORNECIDO.",
        "parameters": {
            "type": "object",
            "properties": {
                "title": _str("Título do evento"),
                "start": _dt("Data/Hora início ISO 8601"),
                "end": _dt("Data/Hora fim ISO 8601"),
                "type": _str('Tipo: "Trabalho", "Pessoal", "Encomenda" ou "Evento"'),
                "description": _str("Descrição detalhada"),
                "location": _str("Local (Endereço, Cidade, Link ou App de Reunião)"),
                "clientName": _str("Nome do cliente. SE FORNECIDO, O CLIENTE SERÁ CRIADO/VINCULADO AUTOMATICAMENTE."),
                "clientContact": _str("Contato do cliente (se for um novo cliente)"),
                "clientNotes": _str("Notas sobre o cliente (se for um novo cliente)"),
                "packName": _str('Nome do serviço específico (Ex: "Pack Gold", "Fotografia", "Vídeo").'),
                "price": _num("Valor TOTAL acordado. Use este campo se o usuário especificar um valor."),
                "bookingDate": _dt("Data da reserva ISO 8601 (opcional, padrão: agora)"),
                "shippingAddress": _str("Endereço de envio (encomendas)"),
            },
            "required": ["title", "start", "end", "type"],
        },
    },
    Command.UPDATE_EVENT: {
        "description": "Edita um evento, encomenda ou FATURAMENTO existente. Use newPrice para alterar valores.",
        "parameters": {
            "type": "object",
            "properties": {
                "searchTitle": _str("O título do evento/faturamento original para buscar"),
                "newTitle": _str("Novo título (opcional)"),
                "newStart": _dt("Nova data início ISO 8601 (opcional)"),
                "newEnd": _dt("Nova data fim ISO 8601 (opcional)"),
                "newLocation": _str("Novo local (opcional)"),
                "newPrice": _num("Novo valor acordado (opcional). USE ISSO PARA CORRIGIR FATURAMENTO."),
                "newDescription": _str("Nova descrição (opcional)"),
                "isDone": _bool("Marcar como concluído/entregue (true/false)"),
            },
            "required": ["searchTitle"],
        },
    },
    Command.DELETE_EVENT: {
        "description": "Remove/Deleta um evento, encomenda ou entrada de faturamento da agenda.",
        "parameters": {
            "type": "object",
            "properties": {"searchTitle": _str("Título do item a ser removido")},
            "required": ["searchTitle"],
        },
    },
    Command.ADD_CLIENT: {
        "description": "Adiciona um novo cliente (Ficha) explicitamente.",
        "parameters": {
            "type": "object",
            "properties": {
                "name": _str("Nome do cliente"),
                "contact": _str("Email/Telefone"),
                "notes": _str("Notas sobre o cliente"),
            },
            "required": ["name"],
        },
    },
    Command.UPDATE_CLIENT: {
        "description": "Edita as informações de um cliente existente. Busca pelo nome atual.",
        "parameters": {
            "type": "object",
            "properties": {
                "searchName": _str("Nome atual do cliente para buscar"),
                "newName": _str("Novo nome (opcional)"),
                "newContact": _str("Novo contato (opcional)"),
                "newNotes": _str("Novas notas (opcional)"),
            },
            "required": ["searchName"],
        },
    },
    Command.ADD_REVENUE: {
        "description": 'Adiciona um faturamento/receita avulsa ou manual (Ex: "Recebi 500 euros hoje").',
        "parameters": {
            "type": "object",
            "properties": {
                "amount": _num("Valor recebido"),
                "description": _str('Motivo ou descrição curta (Ex: "Venda extra", "Ajuste")'),
                "date": _dt("Data do recebimento ISO 8601 (Opcional, use hoje se não informado)"),
            },
            "required": ["amount"],
        },
    },
    Command.GET_PACKS: {
        "description": "Lista os packs/serviços e preços atuais.",
        "parameters": {"type": "object", "properties": {}},
    },
    Command.GET_SCHEDULE: {
        "description": "Lê a agenda.",
        "parameters": {"type": "object", "properties": {}},
    },
}


def openai_tools() -> List[Dict[str, Any]]:
    """Formato `tools=[...]` do chat completions."""
    return [
        {"type": "function", "function": {"name": cmd.value, **schema}}
        for cmd, schema in TOOL_SCHEMAS.items()
    ]


# ================== Validação ==================
class ArgError(ValueError):
    pass


_THOUSANDS_DOT = re.compile(r"^-?\d{1,3}(\.\d{3})+$")


def to_number(value: Any) -> float:
    """
    Número finito a partir de int/float ou texto frouxo:
      "1.200,50" -> 1200.5 ; "1.200" -> 1200 ; "12.5" -> 12.5 ; "€ 80" -> 80
    nan/inf levantam ArgError.
    """
    if isinstance(value, bool):
        raise ArgError("booleano")
    if isinstance(value, (int, float)):
        try:
            num = float(value)
        except OverflowError:
            raise ArgError(str(value))
    else:
        txt = str(value).strip().replace("€", "").replace(" ", "")
        if "," in txt:
            # 1.200,50 -> 1200.50
            txt = txt.replace(".", "").replace(",", ".")
        elif _THOUSANDS_DOT.match(txt):
            txt = txt.replace(".", "")
        try:
            num = float(txt)
        except ValueError:
            raise ArgError(txt)
    if not math.isfinite(num):
        raise ArgError(str(value))
    return int(num) if num.is_integer() else num


def _to_bool(value: Any) -> bool:
    try:
        return parse_bool(value)
    except ValueError:
        raise ArgError(str(value))


def _coerce(spec: Dict[str, Any], value: Any) -> Any:
    kind = spec.get("type")
    if kind == "number":
        return to_number(value)
    if kind == "boolean":
        return _to_bool(value)
    if spec.get("format") == "date-time":
        dt = parse_instant(value)
        if dt is None:
            raise ArgError(str(value))
        return to_iso(dt)
    return str(value)


def validate_args(command: Command, args: Optional[Dict[str, Any]]) -> Tuple[bool, str, Dict[str, Any]]:
    """
    Retorna (ok, erro, args_limpos). Só chaves declaradas no schema passam.
    Chave presente com None continua presente (None): é o "limpar campo".
    """
    schema = TOOL_SCHEMAS[command]["parameters"]
    props = schema.get("properties", {})
    args = args if isinstance(args, dict) else {}

    for key in schema.get("required", []):
        val = args.get(key)
        if val is None or (isinstance(val, str) and not val.strip()):
            return False, f"Parâmetro obrigatório ausente: {key}.", {}

    clean: Dict[str, Any] = {}
    for key, spec in props.items():
        if key not in args:
            continue
        val = args[key]
        if val is None:
            clean[key] = None
            continue
        try:
            clean[key] = _coerce(spec, val)
        except ArgError:
            return False, f'Valor inválido para {key}: "{val}".', {}
    return True, "", clean
