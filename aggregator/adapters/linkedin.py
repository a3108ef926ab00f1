"""
LinkedIn adapter using the public guest jobs endpoint.

The endpoint returns bare ``<li>`` job cards as an HTML fragment; no login or
browser is needed.
"""

import logging
import re
from typing import Dict, List, Optional

import httpx
from bs4 import BeautifulSoup

from aggregator.adapters.base import HttpSourceAdapter
from aggregator.browser.utils import random_delay
from aggregator.config.settings import settings
from aggregator.core.models import Posting, ScrapeRequest
from aggregator.core.session import BrowserSession

logger = logging.getLogger(__name__)

SEARCH_URL = "https://www.linkedin.com/jobs-guest/jobs/api/seeMoreJobPostings/search/"
JOBS_PER_PAGE = 25

# publishedDate -> f_TPR (time posted range, seconds)
TIME_POSTED_RANGE = {
    "24h": "r86400",
    "3d": "r259200",
    "7d": "r604800",
    "14d": "r1209600",
    "30d": "r2592000",
}

_JOB_ID_IN_URN = re.compile(r"jobPosting:(\d+)")
_JOB_ID_IN_URL = re.compile(r"-(\d{6,})(?:[/?]|$)")


def build_params(query: str, location: str, page_num: int, published_date: str) -> Dict[str, str]:
    params = {
        "keywords": query,
        "location": location,
        "start": str(page_num * JOBS_PER_PAGE),
        "_l": "fr_FR",
    }
    tpr = TIME_POSTED_RANGE.get(published_date)
    if tpr:
        params["f_TPR"] = tpr
    return params


def _job_key(card, url: str) -> Optional[str]:
    holder = card.select_one("[data-entity-urn]")
    urn = holder.get("data-entity-urn") if holder else None
    if urn:
        match = _JOB_ID_IN_URN.search(urn)
        if match:
            return match.group(1)
    match = _JOB_ID_IN_URL.search(url)
    return match.group(1) if match else None


def parse_cards(html: str) -> List[Dict[str, str]]:
    """
    Extract raw rows from a guest search fragment.
    """
    soup = BeautifulSoup(html, "html.parser")
    rows = []
    for card in soup.find_all("li"):
        title_el = card.select_one(".base-search-card__title")
        link_el = card.select_one("a.base-card__full-link")
        if not title_el or not link_el or not link_el.get("href"):
            continue

        url = link_el["href"].split("?")[0]
        company_el = card.select_one(".base-search-card__subtitle")
        location_el = card.select_one(".job-search-card__location")
        img_el = card.select_one("img.artdeco-entity-lockup__image")
        time_el = card.find("time")
        posted = time_el.get_text(strip=True) if time_el else ""

        rows.append(
            {
                "key": _job_key(card, url),
                "title": title_el.get_text(" ", strip=True),
                "company": company_el.get_text(" ", strip=True) if company_el else "",
                "location": location_el.get_text(" ", strip=True) if location_el else "",
                "url": url,
                "logo_url": (img_el.get("data-delayed-url") or img_el.get("src")) if img_el else None,
                "posted_at": (time_el.get("datetime") if time_el else None) or posted or None,
                "description": f"Posted: {posted or 'recently'}",
                "is_easy_apply": False,
            }
        )
    return rows


class LinkedInAdapter(HttpSourceAdapter):
    """
    LinkedIn guest search, paginated by ``start`` offset.
    """

    name = "linkedin"
    display_name = "LinkedIn"
    prefix = "lin"
    base_url = "https://www.linkedin.com"

    async def fetch(
        self, request: ScrapeRequest, session: Optional[BrowserSession] = None
    ) -> List[Posting]:
        query = request.build_query(settings.DEFAULT_QUERY)
        location = request.location_or(settings.DEFAULT_LOCATION)
        postings: List[Posting] = []

        async with self.client(
            headers={
                "Accept-Language": "fr-FR,fr;q=0.9,en-US;q=0.8,en;q=0.7",
                "Referer": "https://www.linkedin.com/jobs/search",
            }
        ) as client:
            for page_num in range(request.max_pages):
                params = build_params(query, location, page_num, request.published_date)
                logger.info(f"[LinkedIn] Fetching page {page_num + 1}")
                try:
                    response = await client.get(SEARCH_URL, params=params)
                    response.raise_for_status()
                except httpx.HTTPError as e:
                    if not postings:
                        raise
                    # Keep what earlier pages produced.
                    logger.warning(f"[LinkedIn] Page {page_num + 1} failed: {e}")
                    break

                page_postings = self.normalize(parse_cards(response.text))
                if not page_postings:
                    logger.info("[LinkedIn] Empty page, stopping pagination")
                    break
                postings.extend(page_postings)

                if page_num < request.max_pages - 1:
                    await random_delay(1.0, 2.0)

        return postings
