"""
Hellowork adapter. Search results are server-rendered cards (``li[data-id]``)
paginated through the "next" link of the pagination nav.
"""

import logging
import urllib.parse
from typing import Any, Dict, List, Optional

from playwright.async_api import Page

from aggregator.adapters.base import SessionSourceAdapter
from aggregator.browser.utils import auto_scroll, random_delay
from aggregator.config.settings import settings
from aggregator.core.models import Posting, ScrapeRequest
from aggregator.core.session import BrowserSession

logger = logging.getLogger(__name__)

SEARCH_URL = "https://www.hellowork.com/fr-fr/emploi/recherche.html"
COOKIE_BUTTON_SELECTOR = "#onetrust-accept-btn-handler"
NEXT_PAGE_SELECTOR = 'nav[aria-label="Pagination"] a:last-child'

# publishedDate -> d
DATE_FILTER = {"24h": "24h", "3d": "3j", "7d": "7j", "14d": "15j", "30d": "1m"}

EXTRACT_CARDS_JS = """
() => Array.from(document.querySelectorAll('li[data-id]')).map(card => {
    const title = card.querySelector('h3');
    const link = card.querySelector('a');
    const company = card.querySelector('[data-cy="companyName"]');
    const place = card.querySelector('[data-cy="localization"]');
    const tags = Array.from(card.querySelectorAll('.tag')).map(t => t.innerText.trim());
    const img = card.querySelector('img');
    return {
        key: card.getAttribute('data-id'),
        title: title ? title.innerText : null,
        url: link ? link.href : null,
        company: company ? company.innerText : null,
        location: place ? place.innerText : null,
        tags: tags,
        logo_url: img ? img.src : null,
    };
})
"""


def build_search_url(request: ScrapeRequest, query: str, location: str) -> str:
    params = {
        "k": query,
        "l": location,
        "d": DATE_FILTER.get(request.published_date, "all"),
    }
    radius = request.radius_km()
    if radius is not None:
        params["r"] = radius
    return f"{SEARCH_URL}?{urllib.parse.urlencode(params)}"


def to_row(card: Dict[str, Any]) -> Dict[str, Any]:
    """
    Salary is the tag carrying a euro sign; the contract is the first short
    tag without one.
    """
    tags = card.get("tags") or []
    salary = next((t for t in tags if "€" in t), None)
    contract = next((t for t in tags if "€" not in t and len(t) < 15), None)
    return {
        **card,
        "company": card.get("company") or "Confidential",
        "salary_range": salary,
        "contract_type": contract,
        "is_easy_apply": True,
    }


class HelloworkAdapter(SessionSourceAdapter):
    name = "hellowork"
    display_name = "Hellowork"
    prefix = "hw"
    base_url = "https://www.hellowork.com"

    async def _accept_cookies(self, page: Page) -> None:
        try:
            button = await page.query_selector(COOKIE_BUTTON_SELECTOR)
            if button:
                await button.click()
        except Exception as e:
            logger.debug(f"[Hellowork] Cookie banner not dismissed: {e}")

    async def fetch(
        self, request: ScrapeRequest, session: Optional[BrowserSession] = None
    ) -> List[Posting]:
        session = self.require_session(session)
        url = build_search_url(
            request,
            request.build_query(settings.DEFAULT_QUERY),
            request.location_or(settings.DEFAULT_LOCATION),
        )
        postings: List[Posting] = []

        page = await session.new_page()
        try:
            logger.info(f"[Hellowork] Loading {url}")
            await self.until_killed(session, page.goto(url, wait_until="domcontentloaded"))
            await self._accept_cookies(page)

            for page_num in range(request.max_pages):
                await auto_scroll(page)
                cards = await page.evaluate(EXTRACT_CARDS_JS)
                page_postings = self.normalize(to_row(card) for card in cards)
                if not page_postings:
                    break
                postings.extend(page_postings)

                if page_num == request.max_pages - 1:
                    break
                next_link = await page.query_selector(NEXT_PAGE_SELECTOR)
                if not next_link:
                    break
                await next_link.click()
                await self.until_killed(session, random_delay())
        finally:
            if not session.closed:
                try:
                    await page.close()
                except Exception as e:
                    logger.debug(f"Error closing Hellowork tab: {e}")

        return postings
