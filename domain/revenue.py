# domain/revenue.py
"""
MIROMA - Reconhecimento de receita (funções puras)

Contrato estável:
    recognized_revenue(events, period_predicate) -> float

Regras, aplicadas evento a evento (na ordem da coleção) e somadas:
  1) agreedPrice ausente/zero -> não contribui
  2) packName == "Ajuste Financeiro" -> 100% se predicate(start)
  3) type == Encomenda -> 100% se predicate(bookingDate)
  4) demais tipos -> 50% se predicate(bookingDate) + 50% se predicate(start)

O predicado só responde "este instante está no período?"; a granularidade
(mês, trimestre, ano) fica com quem chama. Datas inválidas/ausentes nunca
satisfazem o predicado.
"""

from __future__ import annotations
from typing import Any, Callable, Dict, Iterable, List, Optional
from datetime import datetime
import math

import pytz

from domain.entities import ADJUSTMENT_PACK_NAME, EventType, parse_instant

PeriodPredicate = Callable[[datetime], bool]

DEFAULT_TZ = "Europe/Lisbon"

_LABELS = {
    "manual": "Ajuste Manual / Extra (100%)",
    "full_payment": "Encomenda (Pagamento Integral)",
    "booking": "Sinal / Reserva (50%)",
    "realization": "Evento/Finalização (50%)",
}


def _price(event: Dict[str, Any]) -> float:
    raw = event.get("agreedPrice")
    if raw is None or isinstance(raw, bool):
        return 0.0
    try:
        num = float(raw)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    return num if math.isfinite(num) else 0.0


def _in_period(value: Any, predicate: PeriodPredicate) -> bool:
    dt = parse_instant(value)
    return dt is not None and bool(predicate(dt))


def _tz(tz_name: Optional[str]) -> pytz.BaseTzInfo:
    try:
        return pytz.timezone(tz_name or DEFAULT_TZ)
    except pytz.UnknownTimeZoneError:
        return pytz.timezone(DEFAULT_TZ)


def month_predicate(year: int, month: int, tz_name: Optional[str] = None) -> PeriodPredicate:
    """Mês civil no fuso informado; datas sem fuso são tratadas como locais."""
    tz = _tz(tz_name)

    def _pred(dt: datetime) -> bool:
        local = tz.localize(dt) if dt.tzinfo is None else dt.astimezone(tz)
        return local.year == int(year) and local.month == int(month)

    return _pred


# ================== Núcleo ==================
def revenue_breakdown(events: Iterable[Dict[str, Any]], period_predicate: PeriodPredicate) -> List[Dict[str, Any]]:
    """Itens que compõem a receita do período (uma linha por parcela reconhecida)."""
    items: List[Dict[str, Any]] = []

    def _push(event, kind, amount, date):
        items.append({
            "eventId": event.get("id"),
            "title": event.get("title"),
            "kind": kind,
            "label": _LABELS[kind],
            "amount": amount,
            "date": date,
        })

    for event in events:
        price = _price(event)
        if not price:
            continue

        if event.get("packName") == ADJUSTMENT_PACK_NAME:
            if _in_period(event.get("start"), period_predicate):
                _push(event, "manual", price, event.get("start"))
            continue

        if event.get("type") == EventType.ORDER.value:
            if _in_period(event.get("bookingDate"), period_predicate):
                _push(event, "full_payment", price, event.get("bookingDate"))
            continue

        if _in_period(event.get("bookingDate"), period_predicate):
            _push(event, "booking", price * 0.5, event.get("bookingDate"))
        if _in_period(event.get("start"), period_predicate):
            _push(event, "realization", price * 0.5, event.get("start"))

    return items


def recognized_revenue(events: Iterable[Dict[str, Any]], period_predicate: PeriodPredicate) -> float:
    return sum(it["amount"] for it in revenue_breakdown(events, period_predicate))


# ================== Visões de faturamento ==================
def monthly_revenue(events: Iterable[Dict[str, Any]], year: int, month: int, tz_name: Optional[str] = None) -> float:
    return recognized_revenue(events, month_predicate(year, month, tz_name))


def yearly_revenue(events: Iterable[Dict[str, Any]], year: int, tz_name: Optional[str] = None) -> Dict[str, Any]:
    events = list(events)
    months = [
        {"month": m, "revenue": monthly_revenue(events, year, m, tz_name)}
        for m in range(1, 13)
    ]
    return {"year": int(year), "months": months, "total": sum(m["revenue"] for m in months)}


def client_revenue(events: Iterable[Dict[str, Any]], client_id: str) -> float:
    """Total acordado com o cliente (histórico completo, sem rateio por período)."""
    return sum(_price(e) for e in events if client_id and e.get("clientId") == client_id)


def pending_orders(events: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [e for e in events if e.get("type") == EventType.ORDER.value and not e.get("isDone")]
