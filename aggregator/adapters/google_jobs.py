"""
Google Jobs through SerpAPI's ``google_jobs`` engine.
"""

import logging
from typing import Any, Dict, List, Optional

from aggregator.adapters.base import HttpSourceAdapter
from aggregator.config.settings import settings
from aggregator.core.errors import SourceUnavailable
from aggregator.core.models import Posting, ScrapeRequest
from aggregator.core.session import BrowserSession

logger = logging.getLogger(__name__)

SEARCH_URL = "https://serpapi.com/search.json"


def to_row(hit: Dict[str, Any]) -> Dict[str, Any]:
    related = hit.get("related_links") or []
    extensions = hit.get("detected_extensions") or {}
    apply_options = hit.get("apply_options") or []
    url = (
        (related[0].get("link") if related else None)
        or (apply_options[0].get("link") if apply_options else None)
        or hit.get("share_link")
    )
    return {
        "key": hit.get("job_id"),
        "title": hit.get("title"),
        "company": hit.get("company_name"),
        "location": hit.get("location"),
        "url": url,
        "description": hit.get("description") or "",
        "salary_range": extensions.get("salary"),
        "contract_type": extensions.get("schedule_type"),
        "posted_at": extensions.get("posted_at"),
        "logo_url": hit.get("thumbnail"),
        "is_easy_apply": False,
    }


class GoogleJobsAdapter(HttpSourceAdapter):
    """
    Paginated with SerpAPI's ``next_page_token``.
    """

    name = "googlejobs"
    display_name = "Google Jobs"
    prefix = "goo"

    def __init__(self, api_key: Optional[str] = None, transport=None):
        super().__init__(transport)
        self.api_key = api_key if api_key is not None else settings.SERPAPI_KEY

    async def fetch(
        self, request: ScrapeRequest, session: Optional[BrowserSession] = None
    ) -> List[Posting]:
        if not self.api_key:
            raise SourceUnavailable(self.display_name, "SERPAPI_KEY is not configured")

        params: Dict[str, Any] = {
            "engine": "google_jobs",
            "q": request.build_query(settings.DEFAULT_QUERY),
            "location": request.location_or(settings.DEFAULT_LOCATION),
            "api_key": self.api_key,
            "hl": "fr",
            "gl": "fr",
        }
        postings: List[Posting] = []

        async with self.client() as client:
            for page_num in range(request.max_pages):
                logger.info(f"[Google Jobs] Fetching page {page_num + 1}")
                response = await client.get(SEARCH_URL, params=params)
                response.raise_for_status()
                data = response.json()

                page_postings = self.normalize(
                    to_row(hit) for hit in data.get("jobs_results") or []
                )
                if not page_postings:
                    break
                postings.extend(page_postings)

                token = (data.get("serpapi_pagination") or {}).get("next_page_token")
                if not token:
                    break
                params["next_page_token"] = token

        return postings
