"""Test fixtures — a fresh app (and hub) per test, fakes for the client side.

Learn: Two kinds of tests live here:

1. Server tests build a new FastAPI app with create_app(), so each test
   gets its own RealtimeHub. Redis is treated as absent (redis_ready is
   patched to False) so broadcasts go straight into the local hub.
2. Client tests drive RealtimeConnection through FakeSocket and
   FakeScheduler. The test decides when the socket opens, closes or
   receives a frame, and when a scheduled reconnect fires, so the whole
   state machine runs synchronously with no network and no threads.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from starlette.testclient import TestClient

from laptoppos.main import create_app
from laptoppos.realtime import pubsub
from laptoppos.realtime.client import RealtimeConnection, SessionIdentity


@pytest.fixture()
def app(monkeypatch):
    monkeypatch.setattr(pubsub, "redis_ready", lambda: False)
    return create_app()


@pytest_asyncio.fixture()
async def client(app):
    """Async HTTP client bound to the app in-process."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def ws_client(app):
    """Sync Starlette client for /ws tests (lifespan not started)."""
    return TestClient(app)


# ─── Client-side fakes ───────────────────────────────────


class FakeSocket:
    """Stands in for WebSocketAppSocket; the test fires its callbacks."""

    def __init__(self, url, on_open, on_message, on_error, on_close):
        self.url = url
        self._on_open = on_open
        self._on_message = on_message
        self._on_error = on_error
        self._on_close = on_close
        self.started = False
        self.open = False
        self.closed = False
        self.sent: list[str] = []

    # Socket protocol
    def start(self):
        self.started = True

    def send(self, text):
        self.sent.append(text)

    def close(self):
        self.closed = True
        self.open = False

    def is_open(self):
        return self.open

    # Test controls
    def fire_open(self):
        self.open = True
        self._on_open(self)

    def fire_message(self, raw):
        self._on_message(self, raw)

    def fire_error(self, error="boom"):
        self._on_error(self, error)

    def fire_close(self, code=1006, reason=""):
        self.open = False
        self._on_close(self, code, reason)


class FakeSocketFactory:
    def __init__(self, fail: bool = False):
        self.sockets: list[FakeSocket] = []
        self.fail = fail

    def __call__(self, url, **callbacks):
        if self.fail:
            raise ValueError(f"cannot open {url}")
        sock = FakeSocket(url, **callbacks)
        self.sockets.append(sock)
        return sock

    @property
    def last(self) -> FakeSocket:
        return self.sockets[-1]


class FakeTimer:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    def __init__(self):
        self.timers: list[FakeTimer] = []

    def __call__(self, delay, callback):
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    def run_pending(self):
        """Fire every scheduled, not-cancelled timer once."""
        for timer in list(self.timers):
            if not timer.cancelled:
                self.timers.remove(timer)
                timer.callback()

    @property
    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled]


class RecordingCache:
    def __init__(self):
        self.invalidated: list[str] = []

    def invalidate(self, key):
        self.invalidated.append(key)


@pytest.fixture()
def sockets():
    return FakeSocketFactory()


@pytest.fixture()
def scheduler():
    return FakeScheduler()


@pytest.fixture()
def cache():
    return RecordingCache()


@pytest.fixture()
def toasts():
    return []


@pytest.fixture()
def connection(sockets, scheduler):
    return RealtimeConnection(
        SessionIdentity(tenant_id="shop-1", user_id="kasir-01"),
        "https://pos.example.com",
        socket_factory=sockets,
        scheduler=scheduler,
        max_reconnect_attempts=5,
        reconnect_interval=3.0,
    )
