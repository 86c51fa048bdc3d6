"""
Lane Scanning Engine

ScanCoordinator runs one LaneScanner per concurrency slot. Each lane pages
through the source at a fixed stride, extracts content items and pushes them
to the shared queue until its source is exhausted or a classified error stops
it. Lanes are independent: one lane stopping never stops another, and lanes
never raise into the coordinator.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from blogcrawler.core.base import (
    ContentItem,
    DownloadProgress,
    LaneOutcome,
    PostType,
    PageSourceInterface,
    ProgressReporterInterface,
    TransportInterface,
    TransportError,
    UnauthorizedError,
    RateLimitedError,
    CrawlCancelledError,
    ExtractionError,
)
from blogcrawler.core.config import CrawlerSettings
from blogcrawler.core.control import CrawlControl
from blogcrawler.core.cursor import CrawlCursor, build_cursors
from blogcrawler.core.progress import PhaseLabels
from blogcrawler.core.queue import SharedQueue, StatisticsBag


@dataclass
class ScanReport:
    """Outcome of the scanning phase"""
    outcomes: Dict[int, LaneOutcome]
    pages_crawled: int
    highest_post_id: int
    cancelled: bool
    post_counts: Dict[PostType, int] = field(default_factory=dict)
    total_count: int = 0


class LaneScanner:
    """
    One pagination lane.

    Loop per page: checkpoint (cancel/pause), fetch, extract, push, then
    decide whether to continue. Termination in priority order: cancellation,
    unauthorized, rate limited, end of results, any other failure.
    """

    def __init__(self, cursor: CrawlCursor, source: PageSourceInterface,
                 transport: TransportInterface, control: CrawlControl,
                 coordinator: "ScanCoordinator", rate_limit_retries: int = 0,
                 rate_limit_backoff: float = 30.0):
        self.logger = logging.getLogger(__name__)
        self.cursor = cursor
        self.source = source
        self.transport = transport
        self.control = control
        self.coordinator = coordinator
        self.rate_limit_retries = rate_limit_retries
        self.rate_limit_backoff = rate_limit_backoff
        self.pages_requested: List[int] = []
        self.outcome: Optional[LaneOutcome] = None

    @property
    def lane(self) -> int:
        return self.cursor.lane

    async def run(self) -> LaneOutcome:
        try:
            self.outcome = await self._scan()
        except Exception as e:
            self.logger.debug(f"Lane {self.lane} stopped on page {self.cursor.page}: {e}", exc_info=True)
            self.outcome = LaneOutcome.FAILED
        self.logger.debug(f"Lane {self.lane} finished: {self.outcome.value}")
        return self.outcome

    async def _scan(self) -> LaneOutcome:
        if not self.cursor.has_pages:
            return LaneOutcome.COMPLETED

        while True:
            if not await self.control.checkpoint():
                return LaneOutcome.CANCELLED

            page = self.cursor.page
            try:
                body = await self._fetch_page(self.source.page_url(page))
                if self.control.is_cancelled:
                    return LaneOutcome.CANCELLED
                result = self.source.parse_page(body, page)
            except CrawlCancelledError:
                return LaneOutcome.CANCELLED
            except UnauthorizedError as e:
                self.coordinator.warn_once(LaneOutcome.UNAUTHORIZED, "User not logged in", e)
                return LaneOutcome.UNAUTHORIZED
            except RateLimitedError as e:
                self.coordinator.warn_once(LaneOutcome.RATE_LIMITED, "Rate limit exceeded", e)
                return LaneOutcome.RATE_LIMITED
            except (TransportError, ExtractionError) as e:
                self.logger.debug(f"Lane {self.lane} stopped on page {page}: {e}")
                return LaneOutcome.FAILED

            for item in result.items:
                self.coordinator.collect(item)
            self.coordinator.page_crawled(self.lane, result.highest_post_id)

            if result.exhausted or not self.cursor.advance():
                return LaneOutcome.COMPLETED

    async def _fetch_page(self, url: str) -> str:
        """Fetch with optional bounded exponential backoff on rate limiting"""
        self.pages_requested.append(self.cursor.page)
        attempt = 0
        while True:
            try:
                return await self.transport.fetch(url, self.control)
            except RateLimitedError:
                if attempt >= self.rate_limit_retries:
                    raise
                delay = self.rate_limit_backoff * (2 ** attempt)
                attempt += 1
                self.logger.warning(
                    f"Lane {self.lane} rate limited, retry {attempt}/{self.rate_limit_retries} in {delay:.0f}s"
                )
                if not await self._sleep(delay):
                    raise CrawlCancelledError("Crawl cancelled during backoff")
                if not await self.control.checkpoint():
                    raise CrawlCancelledError("Crawl cancelled during backoff")

    async def _sleep(self, delay: float) -> bool:
        """Sleep unless cancelled first; False when cancelled"""
        try:
            await asyncio.wait_for(self.control.wait_cancelled(), timeout=delay)
        except asyncio.TimeoutError:
            return True
        return False


class ScanCoordinator:
    """
    Spawns exactly `concurrency` lanes seeded 0..width-1 with stride width,
    bounded by a semaphore of the same width. When every lane has finished
    it closes the queue, seals the statistics and, unless the run was
    cancelled, derives the per-type post counts.
    """

    def __init__(self, settings: CrawlerSettings, source: PageSourceInterface,
                 transport: TransportInterface, queue: SharedQueue,
                 statistics: StatisticsBag, control: CrawlControl,
                 progress: ProgressReporterInterface):
        self.logger = logging.getLogger(__name__)
        self.settings = settings
        self.source = source
        self.transport = transport
        self.queue = queue
        self.statistics = statistics
        self.control = control
        self.progress = progress
        self.lanes: List[LaneScanner] = []
        self.pages_crawled = 0
        self.highest_post_id = 0
        self._warned: Set[LaneOutcome] = set()

    @property
    def width(self) -> int:
        return self.settings.scan.concurrency

    def collect(self, item: ContentItem) -> None:
        self.queue.push(item)
        self.statistics.add(item)

    def page_crawled(self, lane: int, highest_post_id: int = 0) -> None:
        self.pages_crawled += 1
        self.highest_post_id = max(self.highest_post_id, highest_post_id)
        self.progress.report(DownloadProgress(
            message=f"Lane {lane}: {self.pages_crawled} pages crawled",
            pages_crawled=self.pages_crawled,
        ))

    def warn_once(self, kind: LaneOutcome, message: str, error: Exception) -> None:
        """One user-visible warning per condition per run"""
        self.logger.error(f"{self.settings.blog.name}: {message} ({error})")
        if kind in self._warned:
            return
        self._warned.add(kind)
        self.progress.warn(message, self.settings.blog.name)

    async def run(self) -> ScanReport:
        self.progress.report(DownloadProgress(message=PhaseLabels.SCAN_STARTED, phase="scan"))
        semaphore = asyncio.Semaphore(self.width)
        tasks = []

        try:
            for cursor in build_cursors(self.width, self.settings.blog.download_pages):
                await semaphore.acquire()
                lane = LaneScanner(
                    cursor, self.source, self.transport, self.control, self,
                    rate_limit_retries=self.settings.scan.rate_limit_retries,
                    rate_limit_backoff=self.settings.scan.rate_limit_backoff,
                )
                self.lanes.append(lane)
                tasks.append(asyncio.create_task(self._run_lane(lane, semaphore)))

            outcomes = await asyncio.gather(*tasks)
        finally:
            self.queue.mark_producers_done()
            self.statistics.seal()

        report = ScanReport(
            outcomes={lane.lane: outcome for lane, outcome in zip(self.lanes, outcomes)},
            pages_crawled=self.pages_crawled,
            highest_post_id=self.highest_post_id,
            cancelled=self.control.is_cancelled,
        )
        if not report.cancelled:
            report.post_counts = self.statistics.counts_by_type()
            report.total_count = self.statistics.total()

        self.logger.info(
            f"Scan finished: {self.pages_crawled} pages, {self.queue.pushed} items, "
            f"lanes {[outcome.value for outcome in outcomes]}"
        )
        self.progress.report(DownloadProgress(message=PhaseLabels.SCAN_FINISHED, phase="scan"))
        return report

    async def _run_lane(self, lane: LaneScanner, semaphore: asyncio.Semaphore) -> LaneOutcome:
        try:
            return await lane.run()
        finally:
            semaphore.release()
