import asyncio
import logging
from typing import Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)

from aggregator.browser.context import create_context
from aggregator.browser.launch import create_browser
from aggregator.browser.user_agent import UserAgentProvider
from aggregator.config.settings import settings

logger = logging.getLogger(__name__)


class SessionClosed(RuntimeError):
    """Raised when a page is requested from a session that was torn down."""


class BrowserSession:
    """
    Owns one Playwright driver, browser and context for the duration of a
    single orchestrator run.

    Adapters borrow it through ``new_page()`` and close only their own pages.
    Only the orchestrator calls ``close()`` (normal teardown) or ``kill()``
    (stop request).
    """

    def __init__(self):
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._lock = asyncio.Lock()
        self._killed = asyncio.Event()
        self._closed = False

    @property
    def started(self) -> bool:
        return self._context is not None

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> None:
        """
        Start the driver, browser and context if not already running.
        """
        async with self._lock:
            if self._closed:
                raise SessionClosed("Session already closed")

            if self._playwright is None:
                self._playwright = await async_playwright().start()
                logger.info("Playwright started.")

            if self._browser is None:
                self._browser = await create_browser(self._playwright)

            if self._context is None:
                user_agent = UserAgentProvider.get_random()
                logger.info(f"Using User Agent: {user_agent}")
                self._context = await create_context(self._browser, user_agent)

    async def new_page(self) -> Page:
        """
        Creates a new page in the shared context, starting the session lazily.
        """
        if self._closed:
            raise SessionClosed("Session already closed")
        if self._context is None:
            await self.start()
        page = await self._context.new_page()
        await page.set_extra_http_headers(
            {"Accept-Language": "fr-FR,fr;q=0.9,en-US;q=0.8,en;q=0.7"}
        )
        return page

    async def wait_killed(self) -> None:
        """
        Resolves once ``kill()`` has been called.
        """
        await self._killed.wait()

    async def close(self) -> None:
        """
        Graceful teardown: context, then browser, then driver.
        """
        if self._closed:
            return
        self._closed = True

        if self._context:
            try:
                await self._context.close()
                logger.info("Browser context closed.")
            except Exception as e:
                logger.warning(f"Error closing browser context: {e}")
            self._context = None

        if self._browser:
            try:
                await self._browser.close()
                logger.info("Browser closed.")
            except Exception as e:
                logger.warning(f"Error closing browser: {e}")
            self._browser = None

        await self._stop_driver()

    async def kill(self) -> None:
        """
        Forced teardown used on stop: skip the context, give the browser a
        bounded window to exit, then stop the driver, which terminates the
        browser process if it is still alive.
        """
        self._killed.set()
        if self._closed:
            return
        self._closed = True
        self._context = None

        if self._browser:
            try:
                await asyncio.wait_for(
                    self._browser.close(), timeout=settings.SESSION_KILL_TIMEOUT
                )
            except asyncio.TimeoutError:
                logger.warning("Browser did not exit in time, stopping the driver.")
            except Exception as e:
                logger.warning(f"Error killing browser: {e}")
            self._browser = None

        await self._stop_driver()
        logger.info("Browser session killed.")

    async def _stop_driver(self) -> None:
        if self._playwright:
            try:
                await self._playwright.stop()
                logger.info("Playwright stopped.")
            except Exception as e:
                logger.warning(f"Error stopping Playwright: {e}")
            self._playwright = None
