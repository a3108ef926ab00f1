"""
Extract job cards from window.mosaic.providerData embedded in page.
This is Indeed's primary data structure for search results.
"""

import logging
from typing import Any, Dict, List

from aggregator.adapters.indeed.config import BASE_URL
from aggregator.adapters.indeed.utils import extract_json_from_script

logger = logging.getLogger(__name__)

# Pattern matches: window.mosaic.providerData["mosaic-provider-jobcards"]={...}
MOSAIC_PATTERN = (
    r'window\.mosaic\.providerData\["mosaic-provider-jobcards"\]\s*=\s*({.*?});'
)


def parse_mosaic_results(html: str) -> List[Dict[str, Any]]:
    """
    Return the raw job card dicts embedded in a SERP's HTML, or [].
    """
    data = extract_json_from_script(html, MOSAIC_PATTERN)
    if data and "metaData" in data and "mosaicProviderJobCardsModel" in data["metaData"]:
        return data["metaData"]["mosaicProviderJobCardsModel"].get("results", [])
    return []


def to_row(card: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map one mosaic job card onto the adapter row shape.
    """
    jobkey = card.get("jobkey")
    salary = card.get("salarySnippet") or {}
    branding = card.get("companyBrandingAttributes") or {}
    job_types = card.get("jobTypes") or []
    return {
        "key": jobkey,
        "title": card.get("displayTitle") or card.get("title"),
        "company": card.get("company"),
        "location": card.get("formattedLocation"),
        "url": f"{BASE_URL}/viewjob?jk={jobkey}" if jobkey else None,
        "description": card.get("snippet") or "",
        "salary_range": salary.get("text"),
        "contract_type": job_types[0] if job_types else None,
        "logo_url": branding.get("logoUrl"),
        "posted_at": card.get("formattedRelativeTime"),
        "is_easy_apply": bool(card.get("indeedApplyEnabled")),
    }


async def extract_mosaic_rows(page) -> List[Dict[str, Any]]:
    try:
        html = await page.content()
        cards = parse_mosaic_results(html)
        logger.info(f"Extracted {len(cards)} jobs from mosaic data")
        return [to_row(card) for card in cards]
    except Exception as e:
        logger.warning(f"Failed to extract mosaic data: {e}")
    return []
