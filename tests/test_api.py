from __future__ import annotations

import time
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from fakes import BlockingTransport, FakeTransport, groups_completion
from tab_organizer.api.main import create_app
from tab_organizer.grouping.client import GroupingClient
from tab_organizer.orchestrator import TaskOrchestrator
from tab_organizer.state import InMemoryTaskStateStore

DEV_GROUP = groups_completion([{"name": "💻 Dev", "color": "blue", "tabIds": [0, 1, 2]}])


def _client(settings, platform, transport) -> TestClient:
    orchestrator = TaskOrchestrator(
        store=InMemoryTaskStateStore(),
        platform=platform,
        client=GroupingClient.from_settings(settings, transport=transport),
        settings=settings,
    )
    return TestClient(create_app(orchestrator=orchestrator, settings_override=settings))


def _poll_until_settled(client: TestClient, timeout_s: float = 5.0) -> dict:
    deadline = time.monotonic() + timeout_s
    while True:
        payload = client.get("/task").json()
        if payload["status"] != "running" or time.monotonic() > deadline:
            return payload
        time.sleep(0.01)


@pytest.fixture
def blocking() -> Iterator[BlockingTransport]:
    transport = BlockingTransport(DEV_GROUP)
    yield transport
    transport.release.set()


def test_health(settings, platform) -> None:
    with _client(settings, platform, FakeTransport(DEV_GROUP)) as client:
        response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "tab-organizer"}


def test_organize_lifecycle_over_http(settings, platform) -> None:
    with _client(settings, platform, FakeTransport(DEV_GROUP)) as client:
        assert client.get("/task").json() == {"status": "idle"}

        started = client.post("/task/organize")
        assert started.status_code == 202
        assert started.json()["status"] == "running"

        settled = _poll_until_settled(client)
        assert settled["status"] == "completed"
        assert settled["group_count"] == 1
        assert settled["run_id"] == started.json()["run_id"]
        assert "debug" not in settled

        dismissed = client.post("/task/dismiss")
        assert dismissed.status_code == 200
        assert dismissed.json() == {"status": "idle"}


def test_second_start_conflicts(settings, platform, blocking) -> None:
    with _client(settings, platform, blocking) as client:
        assert client.post("/task/organize").status_code == 202
        assert blocking.entered.wait(5.0)

        conflict = client.post("/task/organize")
        assert conflict.status_code == 409
        assert conflict.json()["detail"] == "An organize task is already running"
        assert client.post("/task/dismiss").status_code == 409

        assert client.post("/task/cancel").status_code == 200
        blocking.release.set()
        assert _poll_until_settled(client)["status"] == "cancelled"


def test_cancel_over_http(settings, platform, blocking) -> None:
    with _client(settings, platform, blocking) as client:
        client.post("/task/organize")
        assert blocking.entered.wait(5.0)

        cancelled = client.post("/task/cancel")
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "cancelled"

        blocking.release.set()
        assert _poll_until_settled(client)["status"] == "cancelled"
        assert client.post("/task/cancel").status_code == 409
    assert platform.groups() == []


def test_invalid_config_is_a_bad_request(settings, platform) -> None:
    settings = settings.model_copy(update={"api_endpoint": "ftp://api.example.test"})
    with _client(settings, platform, FakeTransport(DEV_GROUP)) as client:
        response = client.post("/task/organize")
        assert response.status_code == 400
        assert response.json()["detail"] == "API endpoint must be an http:// or https:// URL"
        assert client.get("/task").json() == {"status": "idle"}
