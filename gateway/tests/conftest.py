"""Pytest configuration for gateway and apihub tests."""

import asyncio
from typing import Any, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from apihub import ApiManager, DefinitionStore, Settings, TransportError
from apihub.notify import RecordingNotifier
from apihub.proxy import ApiProxy
from apihub.transport import TransportRequest, TransportResponse


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class StubTransport:
    """Records requests and replays scripted outcomes.

    ``failures`` leading attempts raise TransportError; after that each
    request returns ``data`` (or the next entry of ``responses``).
    """

    def __init__(
        self,
        data: Any = None,
        failures: int = 0,
        responses: Optional[list[Any]] = None,
        status: int = 200,
    ):
        self.data = {"ok": True} if data is None else data
        self.failures = failures
        self.responses = list(responses or [])
        self.status = status
        self.requests: list[TransportRequest] = []

    @property
    def count(self) -> int:
        return len(self.requests)

    async def request(self, request: TransportRequest) -> TransportResponse:
        self.requests.append(request)
        await asyncio.sleep(0)
        if self.failures > 0:
            self.failures -= 1
            raise TransportError(f"{request.url} unavailable", status=503, body={"message": "down"})
        data = self.responses.pop(0) if self.responses else self.data
        return TransportResponse(status=self.status, data=data)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return StubTransport()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def store():
    return DefinitionStore()


@pytest.fixture
def proxy(store, transport, notifier, clock):
    p = ApiProxy(store, transport, notifier=notifier, clock=clock)
    p.attach(store.events)
    return p


@pytest.fixture
def settings():
    return Settings(ready_timeout_ms=2000, seed_defaults=False)


@pytest.fixture
def manager(transport, notifier, clock, settings):
    return ApiManager(transport=transport, notifier=notifier, clock=clock, settings=settings)


@pytest_asyncio.fixture
async def client(manager, tmp_path, monkeypatch):
    """Test client bound to an app wrapping the ``manager`` fixture."""
    monkeypatch.setenv("APIHUB_AUDIT_DB_PATH", str(tmp_path / "audit.db"))

    from apihub.audit import init_audit_db
    from gateway.main import create_app

    await init_audit_db()
    app = create_app(manager=manager)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
