"""
Browser Utility Functions

Lightweight helpers for pacing and scrolling session-based scrapers.
"""

import asyncio
import random
from typing import Optional

from playwright.async_api import Page

from aggregator.config.settings import settings


async def random_delay(
    min_seconds: Optional[float] = None,
    max_seconds: Optional[float] = None,
) -> None:
    """
    Sleep for a jittered interval between page loads.

    Defaults to the configured PAGE_DELAY_MIN / PAGE_DELAY_MAX bounds so every
    session-based adapter paces itself the same way.
    """
    low = settings.PAGE_DELAY_MIN if min_seconds is None else min_seconds
    high = settings.PAGE_DELAY_MAX if max_seconds is None else max_seconds
    if high < low:
        low, high = high, low
    await asyncio.sleep(max(0.0, random.uniform(low, high)))


# Scrolls in 150px steps until the bottom of the document, so lazy-loaded
# result cards are rendered before extraction.
AUTO_SCROLL_JS = """
async () => {
    await new Promise((resolve) => {
        let total = 0;
        const distance = 150;
        const timer = setInterval(() => {
            const height = document.body.scrollHeight;
            window.scrollBy(0, distance);
            total += distance;
            if (total >= height - window.innerHeight - 100) {
                clearInterval(timer);
                resolve();
            }
        }, 100);
    });
}
"""


async def auto_scroll(page: Page) -> None:
    await page.evaluate(AUTO_SCROLL_JS)
