import asyncio
import sys

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from movieflix.api.main import create_api_router
from movieflix.core.app import create_app
from movieflix.core.constants import APP_VERSION_KEY
from movieflix.models.errors import ErrorRecord
from movieflix.services.container import ClientServices, create_services
from movieflix.services.storage.backends import MemoryBackend


@pytest.fixture
def services() -> ClientServices:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={})

    return create_services(
        backend=MemoryBackend(),
        session_backend=MemoryBackend(),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


@pytest.fixture
def client(services) -> TestClient:
    app = FastAPI()
    app.include_router(create_api_router(services))
    return TestClient(app)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_status_reports_connectivity_and_queue(client, services):
    services.api.online = False

    body = client.get("/diagnostics/status").json()

    assert body["online"] is False
    assert body["queued_requests"] == 0
    assert body["version"]


def test_error_log_can_be_read_and_cleared(client, services):
    record = ErrorRecord(message="boom", context="test", timestamp="2026-01-01T00:00:00+00:00")
    asyncio.run(services.errors.log_errors([record]))

    [entry] = client.get("/diagnostics/errors").json()
    assert entry["message"] == "boom"
    assert "userAgent" in entry

    assert client.delete("/diagnostics/errors").json() == {"cleared": True}
    assert client.get("/diagnostics/errors").json() == []


def test_storage_stats(client, services):
    asyncio.run(services.store.set("favorites", [1, 2]))

    body = client.get("/diagnostics/storage").json()

    assert body["total_keys"] == 1


def test_app_lifespan_installs_and_removes_error_capture(services):
    original_hook = sys.excepthook
    app = create_app(services)

    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
        assert sys.excepthook is not original_hook

    assert sys.excepthook is original_hook
    assert asyncio.run(services.store.get(APP_VERSION_KEY)) is not None
