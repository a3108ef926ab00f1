"""
Jobijoba adapter. Offers are ``article.offer`` blocks; the site exposes no
stable offer id, so ids are derived from the offer URL.
"""

import logging
import urllib.parse
from typing import List, Optional

from aggregator.adapters.base import SessionSourceAdapter
from aggregator.browser.utils import auto_scroll, random_delay
from aggregator.config.settings import settings
from aggregator.core.models import Posting, ScrapeRequest
from aggregator.core.session import BrowserSession

logger = logging.getLogger(__name__)

SEARCH_URL = "https://www.jobijoba.com/fr/emploi"
NEXT_PAGE_SELECTOR = ".pagination .next a"

EXTRACT_OFFERS_JS = """
() => Array.from(document.querySelectorAll('article.offer')).map(el => {
    const title = el.querySelector('h3 a');
    const company = el.querySelector('.compagny');
    const place = el.querySelector('.place');
    const img = el.querySelector('img.logo');
    return {
        title: title ? title.innerText : null,
        url: title ? title.href : null,
        company: company ? company.innerText : null,
        location: place ? place.innerText : null,
        logo_url: img ? img.src : null,
    };
})
"""


class JobijobaAdapter(SessionSourceAdapter):
    name = "jobijoba"
    display_name = "Jobijoba"
    prefix = "jj"
    base_url = "https://www.jobijoba.com"

    async def fetch(
        self, request: ScrapeRequest, session: Optional[BrowserSession] = None
    ) -> List[Posting]:
        session = self.require_session(session)
        params = {
            "what": request.build_query(settings.DEFAULT_QUERY),
            "where": request.location_or(settings.DEFAULT_LOCATION),
        }
        url = f"{SEARCH_URL}?{urllib.parse.urlencode(params)}"
        postings: List[Posting] = []

        page = await session.new_page()
        try:
            logger.info(f"[Jobijoba] Loading {url}")
            await self.until_killed(session, page.goto(url, wait_until="domcontentloaded"))

            for page_num in range(request.max_pages):
                await auto_scroll(page)
                offers = await page.evaluate(EXTRACT_OFFERS_JS)
                page_postings = self.normalize(offers)
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
                    logger.debug(f"Error closing Jobijoba tab: {e}")

        return postings
