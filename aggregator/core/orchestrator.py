import asyncio
import logging
import time
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Set

from aggregator.adapters.base import SourceAdapter
from aggregator.adapters.registry import FULL, default_adapters
from aggregator.config.settings import settings
from aggregator.core.cancellation import CancellationToken
from aggregator.core.errors import (
    AggregatorError,
    OrchestratorBusy,
    ScrapeCancelled,
    SourceUnavailable,
)
from aggregator.core.models import Posting, ScrapeRequest
from aggregator.core.rate_limit import RateLimiter
from aggregator.core.session import BrowserSession

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    STOPPED = "stopped"
    FAILED = "failed"


class Orchestrator:
    """
    Dispatches one scrape request across the source adapters.

    A single source runs alone and its failure is the run's failure. ``full``
    fans out over every adapter concurrently; each adapter's failure degrades
    to an empty contribution. The browser session, when any selected adapter
    needs one, lives exactly as long as the run.
    """

    def __init__(
        self,
        adapters: Optional[Iterable[SourceAdapter]] = None,
        session_factory: Callable[[], BrowserSession] = BrowserSession,
        max_concurrent: Optional[int] = None,
        source_timeout: Optional[float] = None,
        full_max_pages: Optional[int] = None,
    ):
        adapter_list = list(adapters) if adapters is not None else default_adapters()
        self.adapters: Dict[str, SourceAdapter] = {a.name: a for a in adapter_list}
        self.session_factory = session_factory
        self.max_concurrent = max_concurrent or settings.MAX_CONCURRENT_SOURCES
        self.source_timeout = source_timeout or settings.SOURCE_TIMEOUT
        self.full_max_pages = full_max_pages or settings.FULL_MODE_MAX_PAGES

        self.state = RunState.IDLE
        self.token: Optional[CancellationToken] = None
        self._session: Optional[BrowserSession] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self.state == RunState.RUNNING

    def select(self, source: str) -> List[SourceAdapter]:
        key = (source or "").strip().lower()
        if key == FULL:
            return list(self.adapters.values())
        adapter = self.adapters.get(key)
        if adapter is None:
            raise ValueError(
                f"Source '{source}' not supported. "
                f"Available sources: {[*self.adapters.keys(), FULL]}"
            )
        return [adapter]

    async def run(
        self, request: ScrapeRequest, token: Optional[CancellationToken] = None
    ) -> List[Posting]:
        """
        Run the scrape described by ``request`` and return the aggregate.

        Raises ScrapeCancelled when stopped, SourceUnavailable when a
        single-source run fails.
        """
        if self.running:
            raise OrchestratorBusy("A scrape is already running")

        adapters = self.select(request.source)
        fan_out = request.source.strip().lower() == FULL
        token = token or CancellationToken()
        token.raise_if_cancelled()

        self.token = token
        self.state = RunState.RUNNING
        started = time.monotonic()
        session: Optional[BrowserSession] = None
        logger.info(
            f"Starting scrape (source: {request.source}, "
            f"query: {request.build_query(settings.DEFAULT_QUERY)!r}, "
            f"adapters: {[a.name for a in adapters]})"
        )

        try:
            if any(a.requires_session for a in adapters):
                session = self.session_factory()
                self._session = session
                await token.run(session.start())

            if fan_out:
                results = await self._fan_out(adapters, request, session, token)
            else:
                results = await self._single(adapters[0], request, session, token)

            token.raise_if_cancelled()
            self.state = RunState.COMPLETED
            logger.info(
                f"Scrape finished in {time.monotonic() - started:.1f}s: "
                f"{len(results)} postings."
            )
            return results

        except (ScrapeCancelled, asyncio.CancelledError):
            self.state = RunState.STOPPED
            logger.info("Scrape stopped.")
            raise
        except Exception as e:
            self.state = RunState.FAILED
            logger.error(f"Scrape failed: {e}")
            raise
        finally:
            for task in self._tasks:
                task.cancel()
            self._tasks.clear()
            if session is not None:
                if token.cancelled or self.state == RunState.STOPPED:
                    await session.kill()
                else:
                    await session.close()
            self._session = None

    async def stop(self) -> bool:
        """
        Cancel the current run and hard-kill its browser session.
        Safe to call repeatedly or while idle. Returns True if a run was active.
        """
        if not self.running:
            logger.info("Stop requested, no active scrape.")
            return False

        if self.token is not None:
            self.token.cancel("stopped by user")
        for task in list(self._tasks):
            task.cancel()
        if self._session is not None:
            await self._session.kill()
        return True

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _single(
        self,
        adapter: SourceAdapter,
        request: ScrapeRequest,
        session: Optional[BrowserSession],
        token: CancellationToken,
    ) -> List[Posting]:
        async def call() -> List[Posting]:
            try:
                return await asyncio.wait_for(
                    adapter.fetch(request, session), timeout=self.source_timeout
                )
            except asyncio.TimeoutError:
                raise SourceUnavailable(
                    adapter.display_name, f"timed out after {self.source_timeout:.0f}s"
                )
            except AggregatorError:
                raise
            except Exception as e:
                if token.cancelled:
                    raise ScrapeCancelled(token.reason or "stopped")
                raise SourceUnavailable(adapter.display_name, str(e)) from e

        return await token.run(self._spawn(call()))

    async def _fan_out(
        self,
        adapters: List[SourceAdapter],
        request: ScrapeRequest,
        session: Optional[BrowserSession],
        token: CancellationToken,
    ) -> List[Posting]:
        limiter = RateLimiter(self.max_concurrent)
        budget = min(request.max_pages, self.full_max_pages)
        sub_request = request.model_copy(update={"max_pages": budget})

        async def guarded(adapter: SourceAdapter) -> List[Posting]:
            async with limiter:
                try:
                    return await asyncio.wait_for(
                        adapter.safe_fetch(sub_request, session),
                        timeout=self.source_timeout,
                    )
                except asyncio.TimeoutError:
                    logger.warning(
                        f"[{adapter.display_name}] Timed out after "
                        f"{self.source_timeout:.0f}s (skipped)"
                    )
                    return []

        tasks = [self._spawn(guarded(adapter)) for adapter in adapters]

        async def collect() -> List[Posting]:
            aggregate: List[Posting] = []
            for finished in asyncio.as_completed(tasks):
                aggregate.extend(await finished)
            return aggregate

        return await token.run(collect())
