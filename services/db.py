# services/db.py
# Firestore do MIROMA (só usado com STORAGE_BACKEND=firestore).
# Credenciais: FIREBASE_CREDENTIALS_JSON (chave inline) ou, na falta dela,
# Application Default Credentials. FIREBASE_PROJECT_ID é opcional.

import os
import json
import logging
import threading

import firebase_admin
from firebase_admin import credentials, firestore as fa_firestore

log = logging.getLogger(__name__)

_client = None
_client_lock = threading.Lock()


def _credential_from_env():
    raw = (os.getenv("FIREBASE_CREDENTIALS_JSON") or "").strip()
    if not raw:
        return credentials.ApplicationDefault(), None
    try:
        key = json.loads(raw)
    except ValueError as e:
        raise RuntimeError(f"[firebase] FIREBASE_CREDENTIALS_JSON não é JSON válido: {e}")
    return credentials.Certificate(key), key.get("project_id")


def _ensure_app() -> firebase_admin.App:
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass  # ainda não inicializado

    env_project = (os.getenv("FIREBASE_PROJECT_ID") or "").strip() or None
    cred, key_project = _credential_from_env()
    if env_project and key_project and env_project != key_project:
        raise RuntimeError(f"[firebase] projeto divergente: chave={key_project} env={env_project}")

    log.info("[firebase] inicializando app (projeto=%s)", env_project or key_project or "default")
    return firebase_admin.initialize_app(cred, {"projectId": env_project} if env_project else None)


def get_db():
    """Client do Firestore, criado na primeira chamada."""
    global _client
    with _client_lock:
        if _client is None:
            _client = fa_firestore.client(app=_ensure_app())
        return _client
