# routes/__init__.py

from flask import current_app


def register_blueprints(app):
    """Registra todos os blueprints da API."""
    from .health import health_bp
    from .agenda_api import agenda_api_bp
    from .billing import billing_bp
    from .configuracao import config_bp
    from .chat import chat_bp

    for bp in (health_bp, agenda_api_bp, billing_bp, config_bp, chat_bp):
        app.register_blueprint(bp)


def ctx(name: str):
    """Acesso aos serviços montados em create_app (store, dispatcher...)."""
    return current_app.extensions["miroma"][name]
