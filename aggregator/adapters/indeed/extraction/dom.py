"""
CSS selector-based extraction of job cards from Indeed SERP DOM.
Fallback when mosaic JSON extraction fails.
"""

import logging
from typing import Any, Dict, List

from playwright.async_api import Page

from aggregator.adapters.indeed.config import BASE_URL
from aggregator.adapters.indeed.selectors import (
    COMPANY_NAME_SELECTOR,
    EASY_APPLY_SELECTOR,
    JOB_LINK_SELECTOR,
    JOB_TITLE_SPAN_SELECTOR,
    LOCATION_SELECTOR,
    SERP_CARD_SELECTORS,
)

logger = logging.getLogger(__name__)


async def extract_rows_from_dom(page: Page) -> List[Dict[str, Any]]:
    """
    Extract job rows from the job cards list (#mosaic-provider-jobcards > ul > li).
    """
    rows = []
    try:
        job_cards = []
        for selector in SERP_CARD_SELECTORS:
            cards = await page.locator(selector).all()
            if cards:
                logger.info(f"Found {len(cards)} job cards using selector: {selector}")
                job_cards = cards
                break

        if not job_cards:
            logger.warning("No job cards found with any selector")
            return []

        for card in job_cards:
            try:
                link = card.locator(JOB_LINK_SELECTOR).first
                if await link.count() == 0:
                    continue

                jobkey = await link.get_attribute("data-jk")
                if not jobkey:
                    continue

                href = await link.get_attribute("href")
                url = href or f"{BASE_URL}/viewjob?jk={jobkey}"

                title_span = card.locator(JOB_TITLE_SPAN_SELECTOR).first
                title = None
                if await title_span.count() > 0:
                    title = await title_span.get_attribute("title")
                if not title:
                    title = await link.inner_text()

                row = {"key": jobkey, "url": url, "title": title}

                company_elem = card.locator(COMPANY_NAME_SELECTOR).first
                if await company_elem.count() > 0:
                    row["company"] = await company_elem.inner_text()

                location_elem = card.locator(LOCATION_SELECTOR).first
                if await location_elem.count() > 0:
                    row["location"] = await location_elem.inner_text()

                row["is_easy_apply"] = await card.locator(EASY_APPLY_SELECTOR).count() > 0

                rows.append(row)

            except Exception as e:
                logger.debug(f"Failed to extract job card: {e}")
                continue

        logger.info(f"Successfully extracted {len(rows)} jobs from DOM")
    except Exception as e:
        logger.warning(f"Failed to extract jobs from DOM: {e}")

    return rows
