# routes/chat.py
# POST /api/chat {text, history?} -> resposta do assistente + ações executadas

import logging
from flask import Blueprint, request, jsonify

from services.assistant import AssistantUnavailable
from routes import ctx

chat_bp = Blueprint("chat_bp", __name__, url_prefix="/api")

log = logging.getLogger(__name__)


@chat_bp.route("/chat", methods=["POST"])
def chat():
    body = request.get_json(silent=True) or {}
    text = (body.get("text") or "").strip()
    if not text:
        return jsonify({"ok": False, "error": "missing_text"}), 400
    history = body.get("history") if isinstance(body.get("history"), list) else None

    try:
        out = ctx("assistant").reply(text, history=history)
    except AssistantUnavailable as e:
        return jsonify({"ok": False, "error": "assistant_unavailable", "detail": str(e)}), 503
    except Exception:
        log.exception("[chat] falha no provedor LLM")
        return jsonify({"ok": False, "error": "llm_failed"}), 502

    return jsonify({"ok": True, **out}), 200
