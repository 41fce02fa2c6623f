# domain/entities.py
"""
MIROMA - Entidades do domínio (eventos, clientes, packs, notificação)

Todas as entidades são dicts JSON-compatíveis com chaves camelCase, no mesmo
formato do arquivo de backup:

    Client:             id, name, contact, notes
    Pack:               id, name, price, conditions, isActive
    CalendarEvent:      id, title, start, end, bookingDate, type,
                        description?, location?, clientId?, packName?,
                        agreedPrice?, isDone?, shippingAddress?, referenceImages?
    NotificationConfig: channelToken, channelDestination, enabled

Datas/horas são strings ISO 8601.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional
from datetime import datetime, timedelta, timezone
from enum import Enum

from dateutil import parser as dt_parser
from dateutil.relativedelta import relativedelta

# ================== Coleções ==================
EVENTS = "events"
CLIENTS = "clients"
PACKS = "packs"
COLLECTIONS = (EVENTS, CLIENTS, PACKS)

# Pseudo-evento de ajuste manual de faturamento
ADJUSTMENT_PACK_NAME = "Ajuste Financeiro"


class EventType(str, Enum):
    WORK = "Trabalho"
    PERSONAL = "Pessoal"
    ORDER = "Encomenda"
    EVENT = "Evento"


def event_type_from_label(label: Any) -> EventType:
    """Aceita o valor em português ou o nome em inglês; desconhecido -> Pessoal."""
    if isinstance(label, EventType):
        return label
    t = str(label or "").strip().lower()
    for et in EventType:
        if t in (et.value.lower(), et.name.lower()):
            return et
    return EventType.PERSONAL


# ================== Datas ==================
def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def to_iso(dt: datetime) -> str:
    return dt.isoformat().replace("+00:00", "Z")


def parse_instant(value: Any) -> Optional[datetime]:
    """ISO 8601 -> datetime; None quando ausente ou inválido."""
    if isinstance(value, datetime):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return dt_parser.isoparse(value.strip())
    except (ValueError, OverflowError):
        return None


# ================== Booleanos ==================
_TRUE = ("true", "1", "sim", "yes", "on")
_FALSE = ("false", "0", "nao", "não", "no", "off", "")


def parse_bool(value: Any) -> bool:
    """bool, número ou texto ("sim"/"não", "true"/"false"...); ValueError se ambíguo."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return bool(value)
    t = str(value).strip().lower()
    if t in _TRUE:
        return True
    if t in _FALSE:
        return False
    raise ValueError(f"booleano inválido: {value!r}")


# ================== Defaults ==================
def default_notification_config() -> Dict[str, Any]:
    return {"channelToken": "", "channelDestination": "", "enabled": False}


def normalize_notification_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Aceita também o formato legado do backup (botToken/chatId)."""
    cfg = default_notification_config()
    token = raw.get("channelToken", raw.get("botToken"))
    dest = raw.get("channelDestination", raw.get("chatId"))
    if token is not None:
        cfg["channelToken"] = str(token)
    if dest is not None:
        cfg["channelDestination"] = str(dest)
    try:
        cfg["enabled"] = parse_bool(raw.get("enabled", False))
    except ValueError:
        cfg["enabled"] = False
    return cfg


def new_client(name: str, contact: str = "", notes: str = "") -> Dict[str, Any]:
    return {"name": name, "contact": contact or "", "notes": notes or ""}


def new_pack(name: str, price: float = 0, conditions: str = "", is_active: bool = True) -> Dict[str, Any]:
    return {"name": name, "price": price, "conditions": conditions or "", "isActive": bool(is_active)}


# ================== Seed (primeira execução / reset) ==================
def seed_data(now: Optional[datetime] = None) -> Dict[str, List[Dict[str, Any]]]:
    """Dados de fábrica usados quando o backend não tem nada salvo."""
    now = now or datetime.now(timezone.utc)
    next_week = now + timedelta(days=7)
    last_month = now - relativedelta(months=1)

    packs = [
        {"id": "p1", "name": "Pack Básico - Ilustração", "price": 500,
         "conditions": "Entrega digital, 1 revisão", "isActive": True},
        {"id": "p2", "name": "Pack Premium - Pintura", "price": 1200,
         "conditions": "Entrega física + digital, 3 revisões", "isActive": True},
    ]
    clients = [
        {"id": "1", "name": "Empresa Alpha", "contact": "contato@alpha.com",
         "notes": "Prefere reuniões pela manhã."},
        {"id": "2", "name": "João Silva", "contact": "11 99999-9999",
         "notes": "Gosta de cores vibrantes."},
    ]
    events = [
        {
            "id": "101",
            "title": "Reunião Alpha",
            "start": to_iso(now),
            "end": to_iso(now + timedelta(hours=1)),
            "bookingDate": to_iso(last_month),
            "type": EventType.WORK.value,
            "clientId": "1",
            "description": "Briefing inicial",
            "location": "Google Meet",
            "packName": "Consultoria Hora",
            "agreedPrice": 200,
        },
        {
            "id": "103",
            "title": "Entrega Ilustração João",
            "start": to_iso(next_week),
            "end": to_iso(next_week),
            "bookingDate": to_iso(now),
            "type": EventType.ORDER.value,
            "clientId": "2",
            "description": "Ilustração para capa de livro",
            "packName": "Pack Básico - Ilustração",
            "agreedPrice": 500,
            "isDone": False,
            "shippingAddress": "Rua das Flores, 123, Lisboa",
            "referenceImages": [],
        },
    ]
    return {EVENTS: events, CLIENTS: clients, PACKS: packs}


def fmt_money(value: Any) -> str:
    """500.0 -> "500"; 12.5 -> "12.50"."""
    try:
        num = float(value or 0)
    except (TypeError, ValueError):
        num = 0.0
    return str(int(num)) if num.is_integer() else f"{num:.2f}"
