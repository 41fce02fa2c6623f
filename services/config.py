# services/config.py
# Configuração por ENV com defaults seguros (lida uma vez no boot do app).

import os
import logging
from typing import Any, Dict, Mapping, Optional

log = logging.getLogger(__name__)


def _as_bool(v: str) -> bool:
    return v.strip().lower() in ("1", "true", "yes", "on")


DEFAULT_SETTINGS: Dict[str, Any] = {
    "storage_backend": "json",  # memory | json | firestore
    "data_file": "miroma_data.json",
    "firestore_doc": "miroma/state",
    "timezone": "Europe/Lisbon",
    "currency_symbol": "€",
    "notify_async": True,
    "notify_timeout": 10,
    "openai_model": "gpt-4o-mini",
    "assistant_max_rounds": 4,
    "log_level": "INFO",
    "cors_origins": ["http://localhost:5173", "http://127.0.0.1:5173"],
    "telegram_bot_token": "",
    "telegram_chat_id": "",
}

_ENV_MAP = {
    "STORAGE_BACKEND": ("storage_backend", lambda v: v.strip().lower()),
    "DATA_FILE": ("data_file", str),
    "FIRESTORE_DOC": ("firestore_doc", str),
    "TIMEZONE": ("timezone", str),
    "CURRENCY_SYMBOL": ("currency_symbol", str),
    "NOTIFY_ASYNC": ("notify_async", _as_bool),
    "NOTIFY_TIMEOUT": ("notify_timeout", float),
    "OPENAI_MODEL": ("openai_model", str),
    "ASSISTANT_MAX_ROUNDS": ("assistant_max_rounds", int),
    "LOG_LEVEL": ("log_level", lambda v: v.strip().upper()),
    "CORS_ORIGINS": ("cors_origins", lambda v: [o.strip() for o in v.split(",") if o.strip()]),
    "TELEGRAM_BOT_TOKEN": ("telegram_bot_token", str),
    "TELEGRAM_CHAT_ID": ("telegram_chat_id", str),
}

_BACKENDS = ("memory", "json", "firestore")


def load_settings(env: Optional[Mapping[str, str]] = None, **overrides: Any) -> Dict[str, Any]:
    env = os.environ if env is None else env
    settings = dict(DEFAULT_SETTINGS)
    for name, (key, caster) in _ENV_MAP.items():
        val = env.get(name)
        if not val:
            continue
        try:
            settings[key] = caster(val)
        except Exception:
            log.warning("[config] ENV %s inválida: %r (mantendo %r)", name, val, settings[key])

    if settings["storage_backend"] not in _BACKENDS:
        log.warning("[config] STORAGE_BACKEND %r desconhecido; usando json", settings["storage_backend"])
        settings["storage_backend"] = "json"
    if settings["assistant_max_rounds"] < 1:
        settings["assistant_max_rounds"] = DEFAULT_SETTINGS["assistant_max_rounds"]

    settings.update({k: v for k, v in overrides.items() if v is not None})
    return settings
