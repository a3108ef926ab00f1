"""
Client for a remote orchestration host. Exposes the same ``run`` / ``stop``
surface as the local Orchestrator.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from aggregator.config.settings import settings
from aggregator.core.cancellation import CancellationToken
from aggregator.core.errors import (
    BackendUnreachable,
    ScrapeCancelled,
    SourceUnavailable,
)
from aggregator.core.models import Posting, ScrapeRequest

logger = logging.getLogger(__name__)

CLIENT_TIMEOUT_MARGIN = 30.0


class BackendClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.BACKEND_URL).rstrip("/")
        # Outlast the server so its own 408 reaches us first.
        self.timeout = timeout or settings.REQUEST_TIMEOUT + CLIENT_TIMEOUT_MARGIN
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            transport=self._transport,
            headers={"ngrok-skip-browser-warning": "true"},
        )

    async def _post(self, path: str, payload: Optional[Dict[str, Any]] = None) -> httpx.Response:
        try:
            async with self._client() as client:
                return await client.post(path, json=payload)
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            raise BackendUnreachable(self.base_url, str(e)) from e
        except httpx.TimeoutException as e:
            raise BackendUnreachable(self.base_url, f"no answer within {self.timeout:.0f}s") from e

    async def health(self) -> Dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.get("/")
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            raise BackendUnreachable(self.base_url, str(e)) from e
        except httpx.TimeoutException as e:
            raise BackendUnreachable(self.base_url, f"no answer within {self.timeout:.0f}s") from e
        response.raise_for_status()
        return response.json()

    async def run(
        self, request: ScrapeRequest, token: Optional[CancellationToken] = None
    ) -> List[Posting]:
        token = token or CancellationToken()
        payload = request.model_dump(by_alias=True)
        response = await token.run(self._post("/scrape", payload))

        if response.status_code == 408:
            raise SourceUnavailable(request.source, "backend request timed out")
        try:
            data = response.json()
        except ValueError:
            raise SourceUnavailable(
                request.source, f"backend answered {response.status_code}: {response.text[:200]}"
            )

        if data.get("cancelled"):
            raise ScrapeCancelled(data.get("error") or "stopped")
        if not data.get("success"):
            raise SourceUnavailable(request.source, data.get("error") or "unknown backend error")

        jobs = [Posting.from_dict(job) for job in data.get("jobs") or []]
        logger.info(f"Received {len(jobs)} postings from backend.")
        return jobs

    async def stop(self) -> bool:
        response = await self._post("/scrape/stop")
        data = response.json()
        logger.info(f"Backend stop: {data.get('message')}")
        return bool(data.get("success"))

    async def universal_scrape(self, url: str) -> Dict[str, str]:
        response = await self._post("/scrape/universal", {"url": url})
        data = response.json()
        if response.status_code != 200:
            raise SourceUnavailable("Universal", data.get("error") or str(response.status_code))
        return data
