import httpx
import pytest

from movieflix.services.auth import AuthTokenStore
from movieflix.services.error_reporter import ErrorReporter
from movieflix.services.storage.backends import MemoryBackend
from movieflix.services.storage.store import CacheStore

PREFIX = "movieflix:"


class FakeClock:
    """Settable stand-in for time.time."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def store(backend, clock) -> CacheStore:
    return CacheStore(backend, prefix=PREFIX, clock=clock)


@pytest.fixture
def auth(store) -> AuthTokenStore:
    return AuthTokenStore(store)


@pytest.fixture
def collected() -> list[httpx.Request]:
    return []


@pytest.fixture
def collector_client(collected):
    def handler(request: httpx.Request) -> httpx.Response:
        collected.append(request)
        return httpx.Response(201, json={"ok": True})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def reporter(store, auth, collector_client) -> ErrorReporter:
    return ErrorReporter(
        store,
        auth,
        client=collector_client,
        collector_url="https://api.test/api/errors",
        enabled=True,
        page_url="https://movieflix.test/",
    )
