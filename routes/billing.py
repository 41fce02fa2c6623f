# routes/billing.py
# Faturamento (somente leitura, calculado a partir dos eventos):
#   GET /api/revenue?year=2025&month=3      -> total + itens do mês
#   GET /api/revenue/year?year=2025         -> série mensal + total do ano
#   GET /api/clients/<id>/revenue           -> total acordado com o cliente
#   GET /api/dashboard                      -> receita do mês atual + encomendas pendentes

from datetime import datetime

import pytz
from flask import Blueprint, request, jsonify

from domain.entities import CLIENTS, EVENTS
from domain.revenue import (
    client_revenue,
    month_predicate,
    pending_orders,
    revenue_breakdown,
    yearly_revenue,
)
from routes import ctx

billing_bp = Blueprint("billing_bp", __name__, url_prefix="/api")


def _now_local():
    tz_name = ctx("settings")["timezone"]
    try:
        return datetime.now(pytz.timezone(tz_name))
    except pytz.UnknownTimeZoneError:
        return datetime.now(pytz.UTC)


def _int_arg(name: str, default: int, lo: int, hi: int):
    raw = request.args.get(name)
    if raw in (None, ""):
        return default
    try:
        v = int(raw)
    except ValueError:
        return None
    return v if lo <= v <= hi else None


@billing_bp.route("/revenue", methods=["GET"])
def revenue_month():
    now = _now_local()
    year = _int_arg("year", now.year, 1970, 9999)
    month = _int_arg("month", now.month, 1, 12)
    if year is None or month is None:
        return jsonify({"ok": False, "error": "invalid_period"}), 400

    tz_name = ctx("settings")["timezone"]
    items = revenue_breakdown(ctx("store").list(EVENTS), month_predicate(year, month, tz_name))
    return jsonify({
        "ok": True,
        "year": year,
        "month": month,
        "total": sum(it["amount"] for it in items),
        "items": items,
    }), 200


@billing_bp.route("/revenue/year", methods=["GET"])
def revenue_year():
    year = _int_arg("year", _now_local().year, 1970, 9999)
    if year is None:
        return jsonify({"ok": False, "error": "invalid_year"}), 400
    data = yearly_revenue(ctx("store").list(EVENTS), year, ctx("settings")["timezone"])
    return jsonify({"ok": True, **data}), 200


@billing_bp.route("/clients/<client_id>/revenue", methods=["GET"])
def revenue_client(client_id: str):
    store = ctx("store")
    if store.get(CLIENTS, client_id) is None:
        return jsonify({"ok": False, "error": "not_found"}), 404
    return jsonify({"ok": True, "clientId": client_id, "total": client_revenue(store.list(EVENTS), client_id)}), 200


@billing_bp.route("/dashboard", methods=["GET"])
def dashboard():
    now = _now_local()
    events = ctx("store").list(EVENTS)
    predicate = month_predicate(now.year, now.month, ctx("settings")["timezone"])
    return jsonify({
        "ok": True,
        "monthlyRevenue": sum(it["amount"] for it in revenue_breakdown(events, predicate)),
        "pendingOrders": len(pending_orders(events)),
        "eventCount": len(events),
    }), 200
