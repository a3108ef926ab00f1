import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from aggregator.core.errors import ScrapeCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """
    One-shot cancellation signal shared by every stage of a single
    scrape-and-classify operation.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "stopped") -> None:
        """
        Idempotent: the first reason is kept.
        """
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()
        logger.info(f"Cancellation requested ({reason}).")

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise ScrapeCancelled(self.reason or "stopped")

    async def wait(self) -> None:
        await self._event.wait()

    async def run(self, aw: Awaitable[T]) -> T:
        """
        Await ``aw`` unless the token fires first, in which case the
        awaitable is cancelled and ScrapeCancelled is raised.
        """
        self.raise_if_cancelled()
        work = asyncio.ensure_future(aw)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            waiter.cancel()

        if work.done() and not work.cancelled() and work.exception() is None:
            return work.result()
        if not self.cancelled:
            return work.result()

        work.cancel()
        try:
            await work
        except (asyncio.CancelledError, Exception) as e:
            logger.debug(f"Abandoned call ended with {e!r}")
        raise ScrapeCancelled(self.reason or "stopped")
