import asyncio

import pytest
from fastapi.testclient import TestClient

from aggregator.api.server import create_app
from aggregator.core.errors import OrchestratorBusy, ScrapeCancelled
from aggregator.core.orchestrator import Orchestrator

from conftest import FakeAdapter, FakePage, FakeSession, make_posting


class RaisingOrchestrator:
    def __init__(self, error):
        self.error = error

    async def run(self, request, token=None):
        raise self.error

    async def stop(self):
        return False


class SlowStop(RaisingOrchestrator):
    def __init__(self):
        super().__init__(None)

    async def stop(self):
        await asyncio.sleep(2)
        return True


def client_for(orchestrator, **kwargs) -> TestClient:
    return TestClient(create_app(orchestrator=orchestrator, **kwargs))


def test_health():
    response = client_for(Orchestrator(adapters=[])).get("/")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_scrape_returns_jobs():
    orch = Orchestrator(adapters=[FakeAdapter("a", postings=[make_posting("a-1", logo_url="l")])])

    response = client_for(orch).post("/scrape", json={"source": "a", "maxPages": 2})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["count"] == 1
    assert body["jobs"][0]["logoUrl"] == "l"


def test_scrape_failure_is_500():
    orch = Orchestrator(adapters=[FakeAdapter("a", error=RuntimeError("site down"))])

    response = client_for(orch).post("/scrape", json={"source": "a"})

    assert response.status_code == 500
    assert response.json()["success"] is False
    assert "site down" in response.json()["error"]


def test_unknown_source_is_400():
    response = client_for(Orchestrator(adapters=[])).post("/scrape", json={"source": "nope"})

    assert response.status_code == 400


def test_invalid_page_count_is_rejected():
    response = client_for(Orchestrator(adapters=[])).post("/scrape", json={"maxPages": 0})

    assert response.status_code == 422


def test_cancelled_scrape_is_reported_not_failed():
    response = client_for(RaisingOrchestrator(ScrapeCancelled("stopped by user"))).post(
        "/scrape", json={}
    )

    assert response.status_code == 200
    assert response.json()["cancelled"] is True
    assert response.json()["success"] is False


def test_busy_is_409():
    response = client_for(RaisingOrchestrator(OrchestratorBusy("busy"))).post("/scrape", json={})

    assert response.status_code == 409


def test_request_timeout_is_408_and_stops_run():
    orch = Orchestrator(
        adapters=[FakeAdapter("slow", delay=10, requires_session=True)],
        session_factory=FakeSession,
    )

    response = client_for(orch, request_timeout=0.1).post("/scrape", json={"source": "slow"})

    assert response.status_code == 408
    assert response.json() == {"success": False, "error": "Request has timed out"}
    assert not orch.running
    assert FakeSession.instances[0].killed


@pytest.mark.parametrize("times", [1, 2])
def test_stop_is_idempotent(times):
    client = client_for(Orchestrator(adapters=[]))

    for _ in range(times):
        response = client.post("/scrape/stop")

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "No active scrape."}


def test_stop_timeout_is_408():
    response = client_for(SlowStop(), request_timeout=0.1).post("/scrape/stop")

    assert response.status_code == 408
    assert response.json() == {"success": False, "error": "Request has timed out"}


def test_universal_scrape():
    page = FakePage(title="Careers", text="x" * 20000)
    sessions = []

    def factory():
        session = FakeSession(page)
        sessions.append(session)
        return session

    response = client_for(Orchestrator(adapters=[]), session_factory=factory).post(
        "/scrape/universal", json={"url": "https://acme.example/careers"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Careers"
    assert len(body["content"]) == 15000
    assert page.visited == ["https://acme.example/careers"]
    assert sessions[0].closed
