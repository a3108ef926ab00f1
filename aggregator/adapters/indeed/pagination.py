"""
Pagination logic for Indeed SERP navigation.
"""

import urllib.parse
from typing import Optional

from aggregator.adapters.indeed.config import FROMAGE, JOBS_PER_PAGE, SEARCH_URL


def build_serp_url(
    query: str,
    location: str,
    page_num: int,
    radius: Optional[int] = None,
    published_date: str = "any",
    jobs_per_page: int = JOBS_PER_PAGE,
) -> str:
    """
    Build an Indeed search results URL for a given page number.
    """
    params = {
        "q": query,
        "l": location,
        "sort": "date",
        "start": page_num * jobs_per_page,
    }
    if radius is not None:
        params["radius"] = radius
    fromage = FROMAGE.get(published_date)
    if fromage:
        params["fromage"] = fromage
    return f"{SEARCH_URL}?{urllib.parse.urlencode(params)}"
