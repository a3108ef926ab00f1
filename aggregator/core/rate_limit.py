import asyncio


class RateLimiter:
    """
    Manages concurrency using asyncio.Semaphore.
    """

    def __init__(self, max_concurrent: int):
        self._semaphore = asyncio.Semaphore(max(1, max_concurrent))

    async def acquire(self):
        await self._semaphore.acquire()

    def release(self):
        self._semaphore.release()

    async def __aenter__(self):
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.release()
