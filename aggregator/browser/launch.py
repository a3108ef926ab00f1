"""
Browser Launch Module

Starts the Chromium instance backing a scraping session.
"""

import logging
import os

from playwright.async_api import Browser, Playwright

from aggregator.config.settings import settings

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--start-maximized",
]


async def create_browser(playwright: Playwright) -> Browser:
    """
    Launch Chromium, using the system Chrome binary when one is configured.

    Args:
        playwright: Playwright instance

    Returns:
        Browser instance
    """
    options = {"headless": settings.HEADLESS, "args": LAUNCH_ARGS}
    executable = settings.CHROME_EXECUTABLE_PATH
    if executable and os.path.exists(executable):
        options["executable_path"] = executable

    browser = await playwright.chromium.launch(**options)

    logger.info(
        f"Browser launched (Headless: {settings.HEADLESS}, "
        f"Executable: {options.get('executable_path', 'bundled chromium')})"
    )
    return browser
