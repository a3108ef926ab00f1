"""
Browser Context Factory

One context per session; every adapter opens its own tab inside it.
"""

import logging
from typing import Optional

from playwright.async_api import Browser, BrowserContext

from aggregator.config.settings import settings

logger = logging.getLogger(__name__)


async def create_context(
    browser: Browser,
    user_agent: Optional[str] = None,
    locale: str = "fr-FR",
) -> BrowserContext:
    """
    Create a browser context with a rotated user agent.

    Args:
        browser: Browser instance
        user_agent: Optional custom user agent (None = browser default)
        locale: Accept-Language / navigator locale

    Returns:
        BrowserContext instance
    """
    context_config = {
        "viewport": None,
        "locale": locale,
        "ignore_https_errors": settings.IGNORE_HTTPS_ERRORS,
    }
    if user_agent:
        context_config["user_agent"] = user_agent

    context = await browser.new_context(**context_config)
    context.set_default_navigation_timeout(settings.NAVIGATION_TIMEOUT)

    logger.info("Browser context created")
    return context
