"""
Cooperative cancellation and pause for a crawl run.

A single CrawlControl is handed explicitly to every component that can
suspend. Components call checkpoint() before each fetch; it blocks while the
crawl is paused and reports whether the crawl has been cancelled.
"""

import asyncio
import logging


class CrawlControl:
    """Cancellation signal plus a pause gate"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._cancelled = asyncio.Event()
        self._running = asyncio.Event()
        self._running.set()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def is_paused(self) -> bool:
        return not self._running.is_set()

    def cancel(self) -> None:
        """Request cancellation; also releases paused waiters"""
        if not self._cancelled.is_set():
            self.logger.info("Crawl cancellation requested")
        self._cancelled.set()
        self._running.set()

    def pause(self) -> None:
        if not self.is_cancelled:
            self.logger.info("Crawl paused")
            self._running.clear()

    def resume(self) -> None:
        if self.is_paused:
            self.logger.info("Crawl resumed")
        self._running.set()

    async def wait_while_paused(self) -> None:
        await self._running.wait()

    async def wait_cancelled(self) -> None:
        await self._cancelled.wait()

    async def checkpoint(self) -> bool:
        """
        Block while paused, then report whether work may continue

        Returns:
            False if the crawl has been cancelled
        """
        if self.is_cancelled:
            return False
        if self.is_paused:
            await self.wait_while_paused()
        return not self.is_cancelled
