# routes/health.py
# GET /api/health: liveness + resumo da configuração ativa (sem I/O no backend)
import os
import time

from flask import Blueprint, jsonify

from routes import ctx

health_bp = Blueprint("health_bp", __name__, url_prefix="/api")


@health_bp.route("/health", methods=["GET"])
def health():
    settings = ctx("settings")
    return jsonify({
        "ok": True,
        "service": "miroma-api",
        "ts": int(time.time()),
        "storage": settings["storage_backend"],
        "timezone": settings["timezone"],
        "assistant": bool((os.getenv("OPENAI_API_KEY") or "").strip()),
        "notifications": bool(ctx("store").notification_config.get("enabled")),
    }), 200
