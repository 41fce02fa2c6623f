# routes/configuracao.py
# Configurações e backup
# - GET  /api/backup                          exporta {version, date, events, clients, packs, notificationConfig}
# - POST /api/backup                          importa (tudo-ou-nada; 400 se rejeitado)
# - GET  /api/settings/notifications          lê config do Telegram (token mascarado)
# - PUT  /api/settings/notifications          grava config do Telegram
# - POST /api/settings/notifications/test     envia mensagem de teste
# - POST /api/reset                           restaura os dados de fábrica

import logging
from flask import Blueprint, request, jsonify

from services.notifier import send_quietly
from routes import ctx

config_bp = Blueprint("config_bp", __name__, url_prefix="/api")

log = logging.getLogger(__name__)


def _mask(token: str) -> str:
    if not token:
        return ""
    return token[:4] + "***" if len(token) > 4 else "***"


@config_bp.route("/backup", methods=["GET"])
def export_backup():
    return jsonify(ctx("store").export_backup()), 200


@config_bp.route("/backup", methods=["POST"])
def import_backup():
    data = request.get_json(silent=True)
    if not ctx("store").import_backup(data):
        log.info("[backup] arquivo rejeitado")
        return jsonify({"ok": False, "error": "invalid_backup"}), 400
    return jsonify({"ok": True}), 200


@config_bp.route("/settings/notifications", methods=["GET"])
def get_notifications():
    cfg = ctx("store").notification_config
    cfg["channelToken"] = _mask(cfg.get("channelToken", ""))
    return jsonify({"ok": True, "config": cfg}), 200


@config_bp.route("/settings/notifications", methods=["PUT"])
def put_notifications():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return jsonify({"ok": False, "error": "invalid_body"}), 400
    store = ctx("store")
    merged = {**store.notification_config, **body}
    # token mascarado devolvido pelo GET não sobrescreve o real
    if str(body.get("channelToken") or "").endswith("***"):
        merged["channelToken"] = store.notification_config.get("channelToken", "")
    cfg = store.update_notification_config(merged)
    cfg["channelToken"] = _mask(cfg.get("channelToken", ""))
    return jsonify({"ok": True, "config": cfg}), 200


@config_bp.route("/settings/notifications/test", methods=["POST"])
def test_notifications():
    sent = send_quietly(ctx("gateway"), "🔔 Teste de notificação MIROMA: tudo certo!")
    return jsonify({"ok": sent}), 200 if sent else 502


@config_bp.route("/reset", methods=["POST"])
def reset_data():
    ctx("store").reset()
    return jsonify({"ok": True}), 200
