# routes/agenda_api.py
# Rotas: /api/commands, /api/events, /api/clients, /api/packs
# - POST /api/commands recebe {name, args} e devolve o resultado do dispatcher
# - Leitura das coleções + cadastro/edição de packs (arquivamento via isActive)
# - Edição direta por id: eventos (criar/editar/remover) e clientes (criar/editar)

import logging
from flask import Blueprint, request, jsonify

from domain.entities import (
    CLIENTS,
    EVENTS,
    PACKS,
    EventType,
    event_type_from_label,
    new_client,
    new_pack,
    parse_bool,
    parse_instant,
    to_iso,
)
from domain.revenue import pending_orders
from domain.tools import ArgError, to_number
from routes import ctx

agenda_api_bp = Blueprint("agenda_api_bp", __name__, url_prefix="/api")

log = logging.getLogger(__name__)

_PACK_FIELDS = ("name", "price", "conditions", "isActive")
_EVENT_DATES = ("start", "end", "bookingDate")
_EVENT_OPTIONAL_TEXT = ("description", "location", "clientId", "packName", "shippingAddress")


# ---------------------------------------------------------------------
# Comandos (agente conversacional / automações)
# ---------------------------------------------------------------------
@agenda_api_bp.route("/commands", methods=["POST"])
def run_command():
    body = request.get_json(silent=True) or {}
    name = body.get("name")
    if not name:
        return jsonify({"ok": False, "error": "missing_name"}), 400
    args = body.get("args") or {}
    if not isinstance(args, dict):
        return jsonify({"ok": False, "error": "args_must_be_object"}), 400
    # falha de domínio volta 200 com ok=False (contrato conversacional)
    return jsonify(ctx("dispatcher").execute(name, args)), 200


# ---------------------------------------------------------------------
# Leitura
# ---------------------------------------------------------------------
@agenda_api_bp.route("/events", methods=["GET"])
def list_events():
    events = ctx("store").list(EVENTS)
    if request.args.get("pending") == "1":
        events = pending_orders(events)
    ev_type = (request.args.get("type") or "").strip()
    if ev_type:
        events = [e for e in events if e.get("type") == ev_type]
    return jsonify({"ok": True, "items": events}), 200


@agenda_api_bp.route("/clients", methods=["GET"])
def list_clients():
    return jsonify({"ok": True, "items": ctx("store").list(CLIENTS)}), 200


@agenda_api_bp.route("/packs", methods=["GET"])
def list_packs():
    packs = ctx("store").list(PACKS)
    if request.args.get("active") == "1":
        packs = [p for p in packs if p.get("isActive", True)]
    return jsonify({"ok": True, "items": packs}), 200


# ---------------------------------------------------------------------
# Eventos por id (edição direta na agenda/encomendas)
#   ausente -> mantém ; None -> limpa (opcionais) ; valor -> grava
#   title/start/end/bookingDate/type ignoram None e texto vazio
# ---------------------------------------------------------------------
def _blank(v) -> bool:
    return v is None or (isinstance(v, str) and not v.strip())


def _event_patch(body: dict):
    patch = {}
    if not _blank(body.get("title")):
        patch["title"] = str(body["title"]).strip()
    for key in _EVENT_DATES:
        if _blank(body.get(key)):
            continue
        dt = parse_instant(body[key])
        if dt is None:
            return None, f"invalid_{key}"
        patch[key] = to_iso(dt)
    if "type" in body and not _blank(body["type"]):
        patch["type"] = event_type_from_label(body["type"]).value
    for key in _EVENT_OPTIONAL_TEXT:
        if key in body:
            patch[key] = None if body[key] is None else str(body[key])
    if "agreedPrice" in body:
        if body["agreedPrice"] is None:
            patch["agreedPrice"] = None
        else:
            try:
                patch["agreedPrice"] = to_number(body["agreedPrice"])
            except ArgError:
                return None, "invalid_price"
    if "isDone" in body:
        try:
            patch["isDone"] = None if body["isDone"] is None else parse_bool(body["isDone"])
        except ValueError:
            return None, "invalid_isDone"
    if "referenceImages" in body:
        imgs = body["referenceImages"]
        if imgs is None:
            imgs = []
        if not isinstance(imgs, list) or not all(isinstance(i, str) for i in imgs):
            return None, "invalid_referenceImages"
        patch["referenceImages"] = list(imgs)
    return patch, None


@agenda_api_bp.route("/events", methods=["POST"])
def create_event():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return jsonify({"ok": False, "error": "invalid_body"}), 400
    for key in ("title", "start", "end"):
        if _blank(body.get(key)):
            return jsonify({"ok": False, "error": f"missing_{key}"}), 400
    patch, err = _event_patch(body)
    if err:
        return jsonify({"ok": False, "error": err}), 400

    data = {k: v for k, v in patch.items() if v is not None}
    data.setdefault("type", event_type_from_label(None).value)
    if data["type"] == EventType.ORDER.value:
        data.setdefault("isDone", False)
    event = ctx("store").create(EVENTS, data)
    log.info("[agenda_api] evento criado id=%s", event["id"])
    return jsonify({"ok": True, "event": event}), 201


@agenda_api_bp.route("/events/<event_id>", methods=["PATCH"])
def update_event(event_id: str):
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return jsonify({"ok": False, "error": "invalid_body"}), 400
    patch, err = _event_patch(body)
    if err:
        return jsonify({"ok": False, "error": err}), 400
    store = ctx("store")
    with store.transaction():
        if store.get(EVENTS, event_id) is None:
            return jsonify({"ok": False, "error": "not_found"}), 404
        if patch:
            store.update(EVENTS, event_id, patch)
        event = store.get(EVENTS, event_id)
    return jsonify({"ok": True, "event": event}), 200


@agenda_api_bp.route("/events/<event_id>", methods=["DELETE"])
def delete_event(event_id: str):
    if not ctx("store").delete(EVENTS, event_id):
        return jsonify({"ok": False, "error": "not_found"}), 404
    return jsonify({"ok": True}), 200


# ---------------------------------------------------------------------
# Clientes por id (ficha). Sem exclusão.
# ---------------------------------------------------------------------
@agenda_api_bp.route("/clients", methods=["POST"])
def create_client():
    body = request.get_json(silent=True)
    if not isinstance(body, dict) or _blank(body.get("name")):
        return jsonify({"ok": False, "error": "missing_name"}), 400
    client = ctx("store").create(CLIENTS, new_client(
        str(body["name"]).strip(), str(body.get("contact") or ""), str(body.get("notes") or ""),
    ))
    return jsonify({"ok": True, "client": client}), 201


@agenda_api_bp.route("/clients/<client_id>", methods=["PATCH"])
def update_client(client_id: str):
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return jsonify({"ok": False, "error": "invalid_body"}), 400
    patch = {}
    if not _blank(body.get("name")):
        patch["name"] = str(body["name"]).strip()
    for key in ("contact", "notes"):
        if key in body:
            patch[key] = str(body[key] or "")
    store = ctx("store")
    with store.transaction():
        if store.get(CLIENTS, client_id) is None:
            return jsonify({"ok": False, "error": "not_found"}), 404
        if patch:
            store.update(CLIENTS, client_id, patch)
        client = store.get(CLIENTS, client_id)
    return jsonify({"ok": True, "client": client}), 200

# ---------------------------------------------------------------------
# Packs (oferta atual; preço novo não altera eventos já reservados)
# ---------------------------------------------------------------------
def _pack_patch(body: dict):
    patch = {k: body[k] for k in _PACK_FIELDS if k in body}
    if "price" in patch:
        try:
            patch["price"] = to_number(patch["price"])
        except ArgError:
            return None, "invalid_price"
    if "name" in patch and not str(patch["name"] or "").strip():
        return None, "invalid_name"
    if "isActive" in patch:
        try:
            patch["isActive"] = parse_bool(patch["isActive"])
        except ValueError:
            return None, "invalid_isActive"
    return patch, None


@agenda_api_bp.route("/packs", methods=["POST"])
def create_pack():
    body = request.get_json(silent=True) or {}
    if not str(body.get("name") or "").strip():
        return jsonify({"ok": False, "error": "missing_name"}), 400
    patch, err = _pack_patch(body)
    if err:
        return jsonify({"ok": False, "error": err}), 400
    pack = ctx("store").add_pack(new_pack(
        patch["name"], patch.get("price", 0), patch.get("conditions", ""), patch.get("isActive", True),
    ))
    return jsonify({"ok": True, "pack": pack}), 201


@agenda_api_bp.route("/packs/<pack_id>", methods=["PATCH"])
def update_pack(pack_id: str):
    body = request.get_json(silent=True) or {}
    patch, err = _pack_patch(body)
    if err:
        return jsonify({"ok": False, "error": err}), 400
    store = ctx("store")
    if not store.update_pack(pack_id, patch):
        return jsonify({"ok": False, "error": "not_found"}), 404
    return jsonify({"ok": True, "pack": store.get(PACKS, pack_id)}), 200
