import json

import httpx
import pytest

from aggregator.api.client import BackendClient
from aggregator.config.settings import settings
from aggregator.core.errors import BackendUnreachable, ScrapeCancelled, SourceUnavailable
from aggregator.core.models import ScrapeRequest

from conftest import make_posting


def client_for(handler) -> BackendClient:
    return BackendClient(base_url="http://backend.test", transport=httpx.MockTransport(handler))


async def test_run_returns_postings():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200, json={"success": True, "jobs": [make_posting("a-1").to_dict()], "count": 1}
        )

    postings = await client_for(handler).run(ScrapeRequest(source="indeed", max_pages=2))

    assert seen["body"]["source"] == "indeed"
    assert seen["body"]["maxPages"] == 2
    assert [p.id for p in postings] == ["a-1"]


async def test_cancelled_response_raises_scrape_cancelled():
    handler = lambda r: httpx.Response(
        200, json={"success": False, "cancelled": True, "error": "stopped"}
    )

    with pytest.raises(ScrapeCancelled):
        await client_for(handler).run(ScrapeRequest())


async def test_failed_response_raises_source_unavailable():
    handler = lambda r: httpx.Response(500, json={"success": False, "error": "site down"})

    with pytest.raises(SourceUnavailable, match="site down"):
        await client_for(handler).run(ScrapeRequest())


async def test_connection_refused_is_backend_unreachable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(BackendUnreachable, match="BACKEND_URL"):
        await client_for(handler).run(ScrapeRequest())

    with pytest.raises(BackendUnreachable):
        await client_for(handler).health()


async def test_read_timeout_is_backend_unreachable():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(BackendUnreachable, match="no answer"):
        await client_for(handler).run(ScrapeRequest())

    with pytest.raises(BackendUnreachable):
        await client_for(handler).stop()


def test_default_timeout_outlasts_server_timeout():
    assert BackendClient().timeout > settings.REQUEST_TIMEOUT


async def test_stop():
    paths = []

    def handler(request):
        paths.append(request.url.path)
        return httpx.Response(200, json={"success": True, "message": "Browser closed."})

    assert await client_for(handler).stop() is True
    assert paths == ["/scrape/stop"]


async def test_universal_scrape():
    handler = lambda r: httpx.Response(200, json={"title": "Careers", "content": "We hire"})

    page = await client_for(handler).universal_scrape("https://acme.example")

    assert page == {"title": "Careers", "content": "We hire"}
