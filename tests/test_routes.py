import pytest

from app import create_app
from domain.entities import CLIENTS, EVENTS, new_client


def _add_event(client, **kw):
    args = {"title": "Casamento Rita", "start": "2025-03-20T15:00:00Z",
            "end": "2025-03-20T23:00:00Z", "type": "Trabalho", "price": 1000}
    args.update(kw)
    return client.post("/api/commands", json={"name": "addEvent", "args": args})


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    body = r.get_json()
    assert body["service"] == "miroma-api"
    assert body["storage"] == "memory"
    assert body["notifications"] is False


# ---------------------------------------------------------------------
# /api/commands
# ---------------------------------------------------------------------
def test_command_success_and_listing(client):
    r = _add_event(client, clientName="Maria")
    body = r.get_json()
    assert r.status_code == 200
    assert body["ok"] is True
    assert body["command"] == "addEvent"

    events = client.get("/api/events").get_json()["items"]
    clients = client.get("/api/clients").get_json()["items"]
    assert [e["title"] for e in events] == ["Casamento Rita"]
    assert [c["name"] for c in clients] == ["Maria"]


def test_command_domain_failure_is_200_with_ok_false(client):
    r = client.post("/api/commands", json={"name": "deleteEvent", "args": {"searchTitle": "nada"}})
    assert r.status_code == 200
    assert r.get_json()["ok"] is False


def test_command_bad_requests(client):
    assert client.post("/api/commands", json={}).status_code == 400
    r = client.post("/api/commands", json={"name": "addClient", "args": ["Ana"]})
    assert r.status_code == 400
    assert r.get_json()["error"] == "args_must_be_object"


def test_events_filters(client):
    _add_event(client)
    _add_event(client, title="Quadro", type="Encomenda")
    pending = client.get("/api/events?pending=1").get_json()["items"]
    orders = client.get("/api/events?type=Encomenda").get_json()["items"]
    assert [e["title"] for e in pending] == ["Quadro"]
    assert [e["title"] for e in orders] == ["Quadro"]


# ---------------------------------------------------------------------
# packs
# ---------------------------------------------------------------------
def test_pack_lifecycle(client):
    r = client.post("/api/packs", json={"name": "Pack Gold", "price": "800"})
    assert r.status_code == 201
    pack = r.get_json()["pack"]
    assert pack["price"] == 800.0
    assert pack["isActive"] is True

    r = client.patch(f"/api/packs/{pack['id']}", json={"isActive": False})
    assert r.get_json()["pack"]["isActive"] is False
    assert client.get("/api/packs?active=1").get_json()["items"] == []
    assert len(client.get("/api/packs").get_json()["items"]) == 1


def test_pack_validation(client):
    assert client.post("/api/packs", json={"price": 10}).status_code == 400
    r = client.post("/api/packs", json={"name": "X", "price": "caro"})
    assert r.get_json()["error"] == "invalid_price"
    assert client.patch("/api/packs/nao-existe", json={"price": 1}).status_code == 404


# ---------------------------------------------------------------------
# faturamento
# ---------------------------------------------------------------------
def test_monthly_revenue(client):
    _add_event(client, bookingDate="2025-01-10T10:00:00Z")
    client.post("/api/commands", json={"name": "addRevenue", "args": {"amount": 50, "date": "2025-03-02T10:00:00Z"}})

    body = client.get("/api/revenue?year=2025&month=3").get_json()
    assert body["total"] == 550
    assert sorted(it["kind"] for it in body["items"]) == ["manual", "realization"]

    jan = client.get("/api/revenue?year=2025&month=1").get_json()
    assert jan["total"] == 500


def test_revenue_invalid_period(client):
    assert client.get("/api/revenue?year=2025&month=13").status_code == 400
    assert client.get("/api/revenue?month=abc").status_code == 400


def test_yearly_and_client_revenue(client, store):
    c = store.create(CLIENTS, new_client("Ana"))
    _add_event(client, clientName="Ana", bookingDate="2025-01-10T10:00:00Z")

    year = client.get("/api/revenue/year?year=2025").get_json()
    assert year["total"] == 1000
    assert len(year["months"]) == 12

    r = client.get(f"/api/clients/{c['id']}/revenue")
    assert r.get_json()["total"] == 1000
    assert client.get("/api/clients/nao-existe/revenue").status_code == 404


def test_dashboard(client):
    _add_event(client, title="Quadro", type="Encomenda")
    body = client.get("/api/dashboard").get_json()
    assert body["pendingOrders"] == 1
    assert body["eventCount"] == 1


# ---------------------------------------------------------------------
# backup / configurações
# ---------------------------------------------------------------------
def test_backup_export_and_import(client, store):
    _add_event(client)
    exported = client.get("/api/backup").get_json()
    assert exported["version"] == 1
    assert len(exported["events"]) == 1

    client.post("/api/reset")
    assert len(store.list(EVENTS)) == 2  # dados de fábrica

    assert client.post("/api/backup", json=exported).status_code == 200
    assert [e["title"] for e in store.list(EVENTS)] == ["Casamento Rita"]


def test_backup_import_rejects_malformed(client, store):
    _add_event(client)
    r = client.post("/api/backup", json={"events": "tudo"})
    assert r.status_code == 400
    assert r.get_json()["error"] == "invalid_backup"
    assert len(store.list(EVENTS)) == 1


def test_notification_settings_are_masked(client, store):
    r = client.put("/api/settings/notifications",
                   json={"channelToken": "123456:segredo", "channelDestination": "42", "enabled": True})
    assert r.get_json()["config"]["channelToken"] == "1234***"

    got = client.get("/api/settings/notifications").get_json()["config"]
    assert got == {"channelToken": "1234***", "channelDestination": "42", "enabled": True}

    # reenviar o token mascarado não apaga o real
    client.put("/api/settings/notifications", json={**got, "enabled": False})
    assert store.notification_config["channelToken"] == "123456:segredo"
    assert store.notification_config["enabled"] is False

    assert client.put("/api/settings/notifications", json=["x"]).status_code == 400


def test_notification_test_endpoint(client, gateway):
    r = client.post("/api/settings/notifications/test")
    assert r.status_code == 200
    assert len(gateway.sent) == 1


def test_notification_test_endpoint_failure(settings, store, failing_gateway):
    app = create_app(settings=settings, store=store, gateway=failing_gateway)
    assert app.test_client().post("/api/settings/notifications/test").status_code == 502


# ---------------------------------------------------------------------
# chat
# ---------------------------------------------------------------------
class FakeAssistant:
    def __init__(self, exc=None):
        self.exc = exc
        self.calls = []

    def reply(self, text, history=None):
        self.calls.append((text, history))
        if self.exc:
            raise self.exc
        return {"reply": "Feito!", "actions": []}


def test_chat_requires_text(client):
    assert client.post("/api/chat", json={"text": "  "}).status_code == 400


def test_chat_without_api_key_is_503(client, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    r = client.post("/api/chat", json={"text": "oi"})
    assert r.status_code == 503
    assert r.get_json()["error"] == "assistant_unavailable"


@pytest.mark.parametrize("exc, status", [(None, 200), (RuntimeError("timeout"), 502)])
def test_chat_with_assistant(settings, store, gateway, exc, status):
    fake = FakeAssistant(exc)
    app = create_app(settings=settings, store=store, gateway=gateway, assistant=fake)
    r = app.test_client().post("/api/chat", json={"text": "oi", "history": [{"role": "user", "content": "x"}]})
    assert r.status_code == status
    assert fake.calls == [("oi", [{"role": "user", "content": "x"}])]
    if status == 200:
        assert r.get_json() == {"ok": True, "reply": "Feito!", "actions": []}


def test_notification_settings_accept_text_boolean(client, store):
    client.put("/api/settings/notifications", json={"channelToken": "abc", "channelDestination": "1", "enabled": True})
    r = client.put("/api/settings/notifications", json={"enabled": "false"})
    assert r.get_json()["config"]["enabled"] is False
    assert store.notification_config["enabled"] is False


# ---------------------------------------------------------------------
# edição direta por id
# ---------------------------------------------------------------------
def _event_body(**kw):
    body = {"title": "Sessão Fotos", "start": "2025-04-01T10:00:00Z", "end": "2025-04-01T12:00:00Z",
            "type": "Trabalho", "agreedPrice": 300, "location": "Porto"}
    body.update(kw)
    return body


def test_create_event_by_http(client, store):
    r = client.post("/api/events", json=_event_body(agreedPrice="1.200"))
    assert r.status_code == 201
    ev = r.get_json()["event"]
    assert ev["agreedPrice"] == 1200
    assert ev["bookingDate"] == store.now()
    assert ev["referenceImages"] == []

    order = client.post("/api/events", json=_event_body(type="Encomenda")).get_json()["event"]
    assert order["isDone"] is False


def test_create_event_validation(client, store):
    assert client.post("/api/events", json=_event_body(title=" ")).status_code == 400
    assert client.post("/api/events", json=_event_body(start="amanhã")).get_json()["error"] == "invalid_start"
    assert client.post("/api/events", json=_event_body(agreedPrice="nan")).get_json()["error"] == "invalid_price"
    assert client.post("/api/events", json=["x"]).status_code == 400
    assert store.list(EVENTS) == []


def test_patch_event_targets_exact_id(client, store):
    first = client.post("/api/events", json=_event_body()).get_json()["event"]
    second = client.post("/api/events", json=_event_body()).get_json()["event"]

    r = client.patch(f"/api/events/{second['id']}", json={"isDone": "true", "location": None,
                                                           "referenceImages": ["aGVsbG8="], "title": ""})
    assert r.status_code == 200
    ev = store.get(EVENTS, second["id"])
    assert ev["isDone"] is True
    assert ev["location"] is None
    assert ev["referenceImages"] == ["aGVsbG8="]
    assert ev["title"] == "Sessão Fotos"
    assert ev["agreedPrice"] == 300
    assert store.get(EVENTS, first["id"])["location"] == "Porto"


def test_patch_event_errors(client, store):
    ev = client.post("/api/events", json=_event_body()).get_json()["event"]
    assert client.patch("/api/events/nao-existe", json={"title": "X"}).status_code == 404
    r = client.patch(f"/api/events/{ev['id']}", json={"referenceImages": "img"})
    assert r.get_json()["error"] == "invalid_referenceImages"
    assert client.patch(f"/api/events/{ev['id']}", json={"agreedPrice": "inf"}).status_code == 400
    assert store.get(EVENTS, ev["id"]) == ev


def test_delete_event_by_id(client, store):
    ev = client.post("/api/events", json=_event_body()).get_json()["event"]
    assert client.delete(f"/api/events/{ev['id']}").status_code == 200
    assert store.list(EVENTS) == []
    assert client.delete(f"/api/events/{ev['id']}").status_code == 404


def test_client_create_and_patch_by_id(client, store):
    assert client.post("/api/clients", json={"contact": "x"}).status_code == 400
    c = client.post("/api/clients", json={"name": "Ana", "contact": "ana@x.pt", "notes": "vip"}).get_json()["client"]

    r = client.patch(f"/api/clients/{c['id']}", json={"name": " ", "notes": None})
    assert r.status_code == 200
    saved = store.get(CLIENTS, c["id"])
    assert saved == {"id": c["id"], "name": "Ana", "contact": "ana@x.pt", "notes": ""}
    assert client.patch("/api/clients/nao-existe", json={"name": "B"}).status_code == 404
