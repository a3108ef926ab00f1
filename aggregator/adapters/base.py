from abc import ABC, abstractmethod
import asyncio
import hashlib
import logging
import re
import time
import uuid
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urljoin

import httpx

from aggregator.browser.user_agent import UserAgentProvider
from aggregator.config.settings import settings
from aggregator.core.errors import SourceUnavailable
from aggregator.core.models import UNKNOWN, Posting, ScrapeRequest
from aggregator.core.session import BrowserSession, SessionClosed

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def clean_text(value: Any) -> str:
    """Collapse whitespace; None becomes an empty string."""
    if value is None:
        return ""
    return _WHITESPACE.sub(" ", str(value)).strip()


def make_posting_id(prefix: str, natural_key: Optional[str], url: str = "") -> str:
    """
    ``{prefix}-{suffix}``: the source's own key when it has one, a stable
    hash of the URL otherwise, a random token only when both are missing.
    """
    key = clean_text(natural_key)
    if key:
        suffix = re.sub(r"[^A-Za-z0-9_.:-]", "", key) or hashlib.sha256(
            key.encode()
        ).hexdigest()[:12]
    elif url:
        suffix = hashlib.sha256(url.encode()).hexdigest()[:12]
    else:
        suffix = uuid.uuid4().hex[:9]
    return f"{prefix}-{suffix}"


class SourceAdapter(ABC):
    """
    Abstract base class for all job board adapters.

    Each adapter owns its pagination loop and returns normalized postings.
    ``fetch`` may raise; ``safe_fetch`` is the boundary used by fan-out runs
    and never does.
    """

    name: str = ""
    display_name: str = ""
    prefix: str = ""
    base_url: str = ""
    requires_session: bool = False

    @abstractmethod
    async def fetch(
        self, request: ScrapeRequest, session: Optional[BrowserSession] = None
    ) -> List[Posting]:
        """
        Scrape up to ``request.max_pages`` pages for the request.
        Returns:
            List[Posting]: normalized postings in page order.
        """
        pass

    async def safe_fetch(
        self, request: ScrapeRequest, session: Optional[BrowserSession] = None
    ) -> List[Posting]:
        """
        Run ``fetch`` and degrade any failure to an empty result.
        """
        started = time.monotonic()
        logger.info(f"[{self.display_name}] Starting...")
        try:
            results = await self.fetch(request, session)
        except Exception as e:
            logger.warning(f"[{self.display_name}] Error (skipped): {e}")
            return []
        logger.info(
            f"[{self.display_name}] Done: {len(results)} postings "
            f"in {time.monotonic() - started:.1f}s."
        )
        return results

    # --- Normalization helpers shared by all adapters ---

    def normalize(self, rows: Iterable[Dict[str, Any]]) -> List[Posting]:
        """
        Turn raw rows into Postings, dropping rows without a title or URL.
        """
        postings = []
        for row in rows:
            posting = self.normalize_row(row)
            if posting is not None:
                postings.append(posting)
        return postings

    def normalize_row(self, row: Dict[str, Any]) -> Optional[Posting]:
        title = clean_text(row.get("title"))
        url = clean_text(row.get("url"))
        if not title or not url or url == "#":
            return None
        if self.base_url:
            url = urljoin(self.base_url, url)

        return Posting(
            id=make_posting_id(self.prefix, row.get("key"), url),
            title=title,
            company=clean_text(row.get("company")) or UNKNOWN,
            location=clean_text(row.get("location")) or UNKNOWN,
            url=url,
            source=self.display_name,
            description=(row.get("description") or "").strip(),
            logo_url=row.get("logo_url") or None,
            contract_type=clean_text(row.get("contract_type")) or None,
            salary_range=clean_text(row.get("salary_range")) or None,
            is_easy_apply=bool(row.get("is_easy_apply", False)),
            posted_at=clean_text(row.get("posted_at")) or None,
        )


class HttpSourceAdapter(SourceAdapter):
    """
    Adapters backed by plain HTTP APIs. They manage no shared session.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport

    def client(self, **kwargs) -> httpx.AsyncClient:
        headers = {"User-Agent": UserAgentProvider.get_random()}
        headers.update(kwargs.pop("headers", {}))
        return httpx.AsyncClient(
            timeout=httpx.Timeout(settings.HTTP_TIMEOUT),
            follow_redirects=True,
            transport=self._transport,
            headers=headers,
            **kwargs,
        )


class SessionSourceAdapter(SourceAdapter):
    """
    Adapters driving a page inside the orchestrator's browser session.
    """

    requires_session = True

    def require_session(self, session: Optional[BrowserSession]) -> BrowserSession:
        if session is None or session.closed:
            raise SourceUnavailable(self.display_name, "no browser session available")
        return session

    async def until_killed(self, session: BrowserSession, aw):
        """
        Await ``aw`` unless the session is killed first, in which case the
        work is abandoned and SessionClosed is raised.
        """
        work = asyncio.ensure_future(aw)
        killed = asyncio.ensure_future(session.wait_killed())
        try:
            await asyncio.wait({work, killed}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            killed.cancel()

        if work.done():
            return work.result()
        work.cancel()
        raise SessionClosed(f"{self.display_name}: session killed")
