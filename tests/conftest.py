"""Test fixtures — a fresh SQLite store per test, plus the in-memory parts.

Each test gets its own database file under tmp_path, so there is nothing to
roll back and no cross-test pollution. The HTTP client talks to the ASGI
app in-process; the app is handed the per-test store instead of building
its own at startup.
"""

import asyncio

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from beacon.config import Settings
from beacon.main import create_app
from beacon.realtime.bus import NotificationBus
from beacon.realtime.registry import ConnectionRegistry
from beacon.services.dispatch import DispatchCoordinator
from beacon.storage.notification_store import NotificationStore


class FakeTransport:
    """Records every payload pushed to it, like a WebSocket would."""

    def __init__(self, fail: bool = False, delay: float = 0.0):
        self.fail = fail
        self.delay = delay
        self.sent: list[dict] = []

    async def send_json(self, data):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise ConnectionError("socket closed")
        self.sent.append(data)

    @property
    def notifications(self) -> list[dict]:
        return [m["data"] for m in self.sent if m["event"] == "notification"]


@pytest.fixture()
def fake_transport():
    """Factory for FakeTransport instances."""
    return FakeTransport


@pytest.fixture()
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'beacon.db'}"


@pytest_asyncio.fixture()
async def store(database_url):
    """Per-test store on its own SQLite file, schema created."""
    s = NotificationStore.from_url(database_url)
    await s.init_schema()
    try:
        yield s
    finally:
        await s.close()


@pytest.fixture()
def registry():
    return ConnectionRegistry()


@pytest.fixture()
def bus(registry):
    return NotificationBus(registry, push_timeout=0.5)


@pytest.fixture()
def coordinator(store, bus):
    return DispatchCoordinator(store=store, bus=bus)


@pytest.fixture()
def app(store, database_url):
    """App wired to the per-test store (the lifespan is not run)."""
    application = create_app(Settings(database_url=database_url))
    application.state.store = store
    return application


@pytest_asyncio.fixture()
async def client(app):
    """HTTP client bound to the in-process app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
