"""
One-off extraction of an arbitrary page (a careers page, a single offer)
so it can go through classification like any scraped posting.
"""

import hashlib
import logging
from typing import Callable, Dict

from aggregator.core.models import UNKNOWN, Posting
from aggregator.core.session import BrowserSession

logger = logging.getLogger(__name__)

MAX_CONTENT_CHARS = 15000


async def scrape_page(
    url: str, session_factory: Callable[[], BrowserSession] = BrowserSession
) -> Dict[str, str]:
    """
    Load ``url`` in a throwaway session and return its title and text.
    """
    session = session_factory()
    try:
        page = await session.new_page()
        await page.goto(url, wait_until="networkidle", timeout=30000)
        title = await page.title()
        content = await page.evaluate("() => document.body.innerText")
        logger.info(f"Universal scrape of {url}: {len(content or '')} chars")
        return {"title": title, "content": (content or "")[:MAX_CONTENT_CHARS]}
    finally:
        await session.close()


def universal_posting(url: str, title: str, content: str, context: str = "") -> Posting:
    description = f"PAGE CONTENT:\n{content}"
    if context:
        description += f"\n\n{context}"
    return Posting(
        id=f"univ-{hashlib.sha256(url.encode()).hexdigest()[:12]}",
        title=title or "Web page",
        company=UNKNOWN,
        location=UNKNOWN,
        url=url,
        source="Universal",
        description=description,
    )
