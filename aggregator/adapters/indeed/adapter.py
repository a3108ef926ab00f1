"""
IndeedAdapter - Job board adapter for Indeed.

Walks the search result pages inside the shared browser session.
Extraction prefers the embedded mosaic JSON and falls back to DOM selectors:
- extraction/mosaic.py for window.mosaic.providerData
- extraction/dom.py for the job card list
"""

import logging
from typing import List, Optional

from playwright.async_api import Page

from aggregator.adapters.base import SessionSourceAdapter
from aggregator.adapters.indeed.config import BASE_URL
from aggregator.adapters.indeed.extraction.dom import extract_rows_from_dom
from aggregator.adapters.indeed.extraction.mosaic import extract_mosaic_rows
from aggregator.adapters.indeed.pagination import build_serp_url
from aggregator.adapters.indeed.selectors import (
    BLOCKING_KEYWORDS,
    CAPTCHA_SELECTORS,
    JOB_CARDS_CONTAINER_SELECTOR,
)
from aggregator.browser.utils import random_delay
from aggregator.config.settings import settings
from aggregator.core.errors import SourceUnavailable
from aggregator.core.models import Posting, ScrapeRequest
from aggregator.core.session import BrowserSession

logger = logging.getLogger(__name__)


async def detect_bot_challenge(page: Page) -> bool:
    """
    Detect if Indeed is showing captcha or bot detection page.
    """
    try:
        for selector in CAPTCHA_SELECTORS:
            if await page.locator(selector).count() > 0:
                logger.warning(f"CAPTCHA detected: {selector}")
                return True

        # Only flag blocking keywords when there are no job cards at all
        has_jobs = await page.locator(JOB_CARDS_CONTAINER_SELECTOR).count() > 0
        if not has_jobs:
            html_lower = (await page.content()).lower()
            if any(keyword in html_lower for keyword in BLOCKING_KEYWORDS):
                logger.warning("Possible bot challenge page detected")
                return True

        return False
    except Exception as e:
        logger.debug(f"Error in bot detection: {e}")
        return False


class IndeedAdapter(SessionSourceAdapter):
    """
    Indeed adapter using embedded JSON extraction with stable CSS fallbacks.
    """

    name = "indeed"
    display_name = "Indeed"
    prefix = "ind"
    base_url = BASE_URL

    async def _extract_rows(self, page: Page):
        rows = await extract_mosaic_rows(page)
        if not rows:
            rows = await extract_rows_from_dom(page)
        return rows

    async def fetch(
        self, request: ScrapeRequest, session: Optional[BrowserSession] = None
    ) -> List[Posting]:
        session = self.require_session(session)
        query = request.build_query(settings.DEFAULT_QUERY)
        location = request.location_or(settings.DEFAULT_LOCATION)
        postings: List[Posting] = []
        seen_ids = set()

        page = await session.new_page()
        try:
            for page_num in range(request.max_pages):
                url = build_serp_url(
                    query,
                    location,
                    page_num,
                    radius=request.radius_km(),
                    published_date=request.published_date,
                )
                logger.info(f"[Indeed] Navigating to SERP page {page_num + 1}: {url}")
                await self.until_killed(session, page.goto(url, wait_until="domcontentloaded"))

                if await detect_bot_challenge(page):
                    if not postings:
                        raise SourceUnavailable(self.display_name, "bot challenge")
                    logger.error("Bot detection challenge detected. Stopping pagination.")
                    break

                page_postings = [
                    p for p in self.normalize(await self._extract_rows(page))
                    if p.id not in seen_ids
                ]
                if not page_postings:
                    logger.info("No new jobs found, stopping pagination")
                    break
                seen_ids.update(p.id for p in page_postings)
                postings.extend(page_postings)

                if page_num < request.max_pages - 1:
                    await self.until_killed(session, random_delay())
        finally:
            if not session.closed:
                try:
                    await page.close()
                except Exception as e:
                    logger.debug(f"Error closing Indeed tab: {e}")

        return postings
