# app.py - MIROMA (agenda + faturamento) - fachada Flask
# Monta um único store (dono do estado) e entrega a mesma instância ao
# dispatcher, ao assistente e às rotas via app.extensions["miroma"].

import logging
from typing import Any, Dict, Optional

from flask import Flask
from flask_cors import CORS

from services.assistant import Assistant
from services.config import load_settings
from services.dispatcher import CommandDispatcher
from services.notifier import TelegramGateway
from services.storage import build_backend
from services.store import DomainStore


def _seed_notification_from_env(store: DomainStore, settings: Dict[str, Any]) -> None:
    cfg = store.notification_config
    token = settings.get("telegram_bot_token")
    chat_id = settings.get("telegram_chat_id")
    if cfg.get("channelToken") or not (token and chat_id):
        return
    store.update_notification_config({"channelToken": token, "channelDestination": chat_id, "enabled": True})


def create_app(
    settings: Optional[Dict[str, Any]] = None,
    store: Optional[DomainStore] = None,
    gateway=None,
    assistant: Optional[Assistant] = None,
) -> Flask:
    settings = settings or load_settings()
    logging.basicConfig(level=getattr(logging, settings.get("log_level", "INFO"), logging.INFO))

    app = Flask(__name__)
    CORS(app, resources={r"/api/*": {"origins": settings["cors_origins"]}})

    if store is None:
        store = DomainStore(build_backend(settings))
        _seed_notification_from_env(store, settings)
    if gateway is None:
        gateway = TelegramGateway(lambda: store.notification_config, timeout=settings["notify_timeout"])

    dispatcher = CommandDispatcher(
        store,
        gateway=gateway,
        notify_async=settings["notify_async"],
        tz_name=settings["timezone"],
        currency=settings["currency_symbol"],
    )
    if assistant is None:
        assistant = Assistant(
            dispatcher,
            model=settings["openai_model"],
            max_rounds=settings["assistant_max_rounds"],
            currency=settings["currency_symbol"],
        )

    app.extensions["miroma"] = {
        "settings": settings,
        "store": store,
        "dispatcher": dispatcher,
        "gateway": gateway,
        "assistant": assistant,
    }

    from routes import register_blueprints
    register_blueprints(app)

    logging.info("[boot] MIROMA carregado (backend=%s, tz=%s)", settings["storage_backend"], settings["timezone"])
    return app


app = create_app()
