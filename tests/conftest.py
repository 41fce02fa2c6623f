"""
Fixtures compartilhadas (store em memória, gateway falso, app Flask).
"""
import os

# app.py monta um app no import; nunca usar arquivo/Firestore nos testes
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["NOTIFY_ASYNC"] = "false"

import itertools

import pytest

from services.config import load_settings
from services.dispatcher import CommandDispatcher
from services.storage import MemoryBackend
from services.store import DomainStore

FIXED_NOW = "2025-03-15T12:00:00Z"


class FakeGateway:
    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    def send(self, message: str) -> bool:
        if self.fail:
            raise RuntimeError("telegram fora do ar")
        self.sent.append(message)
        return True


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def store(backend):
    counter = itertools.count(1)
    return DomainStore(
        backend,
        id_factory=lambda: f"id{next(counter)}",
        clock=lambda: FIXED_NOW,
        seed=False,
    )


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def failing_gateway():
    return FakeGateway(fail=True)


@pytest.fixture
def dispatcher(store, gateway):
    return CommandDispatcher(store, gateway=gateway, notify_async=False, tz_name="UTC")


@pytest.fixture
def settings():
    return load_settings(env={}, storage_backend="memory", notify_async=False, timezone="UTC")


@pytest.fixture
def app(settings, store, gateway):
    from app import create_app
    return create_app(settings=settings, store=store, gateway=gateway)


@pytest.fixture
def client(app):
    return app.test_client()
