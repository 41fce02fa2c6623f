# services/notifier.py
import logging
import threading
from typing import Any, Callable, Dict, Optional

import pytz
import requests

from domain.entities import fmt_money, parse_instant

log = logging.getLogger(__name__)

TELEGRAM_API = "https://api.telegram.org"

# -----------------------------------------------------------------------------
# Mensagem de novo agendamento (HTML do Telegram)
# -----------------------------------------------------------------------------
def format_new_event_message(event: Dict[str, Any], tz_name: str = "Europe/Lisbon", currency: str = "€") -> str:
    dt = parse_instant(event.get("start"))
    if dt is not None:
        try:
            tz = pytz.timezone(tz_name)
        except pytz.UnknownTimeZoneError:
            tz = pytz.UTC
        dt = tz.localize(dt) if dt.tzinfo is None else dt.astimezone(tz)
        date_str = dt.strftime("%d/%m, %H:%M")
    else:
        date_str = str(event.get("start") or "")
    return (
        "✨ <b>Novo Agendamento MIROMA</b>\n\n"
        f"📌 <b>{event.get('title') or ''}</b>\n"
        f"🕒 {date_str}\n"
        f"💶 {currency}{fmt_money(event.get('agreedPrice'))}\n"
        f"📝 {event.get('description') or 'Sem descrição'}"
    )


# -----------------------------------------------------------------------------
# Gateway Telegram
# -----------------------------------------------------------------------------
class TelegramGateway:
    """
    Envia texto via Bot API (sendMessage). A config é lida a cada envio
    (config_provider), então alterações nas configurações valem na hora.
    """

    def __init__(self, config_provider: Callable[[], Dict[str, Any]], timeout: float = 10, session=None):
        self._config = config_provider
        self._timeout = timeout
        self._http = session or requests

    def send(self, message: str) -> bool:
        cfg = self._config() or {}
        token = (cfg.get("channelToken") or "").strip()
        chat_id = (cfg.get("channelDestination") or "").strip()
        if not cfg.get("enabled") or not token or not chat_id:
            log.info("[notifier] Telegram desativado ou sem credenciais; ignorando")
            return False

        url = f"{TELEGRAM_API}/bot{token}/sendMessage"
        payload = {"chat_id": chat_id, "text": (message or "")[:4096], "parse_mode": "HTML"}
        try:
            r = self._http.post(url, json=payload, timeout=self._timeout)
        except requests.RequestException as e:
            log.error("[notifier] erro de rede ao enviar: %s", e)
            return False
        if not r.ok:
            try:
                body = r.json()
            except ValueError:
                body = {"raw": r.text[:400]}
            log.error("[notifier] Telegram API status=%s resp=%s", r.status_code, str(body)[:600])
            return False
        return True


def send_quietly(gateway, message: str) -> bool:
    """Nunca propaga: falha de entrega é só log."""
    if gateway is None:
        return False
    try:
        return bool(gateway.send(message))
    except Exception:
        log.exception("[notifier] falha ao enviar notificação")
        return False


def fire_and_forget(gateway, message: str) -> Optional[threading.Thread]:
    if gateway is None:
        return None
    t = threading.Thread(target=send_quietly, args=(gateway, message), name="miroma-notify", daemon=True)
    t.start()
    return t
