"""
Crawl Orchestrator Implementation

Runs one crawl of one blog: the scanning lanes and the download executor run
concurrently, joined by the shared queue. Statistics are reconciled as soon
as scanning ends while downloads drain; the blog state is persisted once
both sides are done.
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Dict, Any, Optional

from blogcrawler.core.base import (
    BaseComponent,
    BlogState,
    ContentIndexInterface,
    CrawlState,
    DownloadProgress,
    LaneOutcome,
    PageSourceInterface,
    ProgressReporterInterface,
    TransportInterface,
    TransportError,
    UnauthorizedError,
    ExtractionError,
)
from blogcrawler.core.config import CrawlerSettings
from blogcrawler.core.control import CrawlControl
from blogcrawler.core.cursor import resume_post_id
from blogcrawler.core.progress import LoggingProgressReporter, PhaseLabels
from blogcrawler.core.queue import SharedQueue, StatisticsBag
from blogcrawler.core.scanner import ScanCoordinator, ScanReport
from blogcrawler.core.sources import build_page_source
from blogcrawler.downloader.executor import DownloadCounters, DownloadExecutor
from blogcrawler.storage.state import BlogStateStore


class CrawlOrchestrator(BaseComponent):
    """
    State machine IDLE -> RUNNING -> RECONCILING -> FINALIZED, or
    RUNNING -> CANCELLED when the control object is cancelled mid-run.
    """

    def __init__(self, settings: CrawlerSettings, transport: TransportInterface,
                 index: ContentIndexInterface, store: BlogStateStore,
                 source: Optional[PageSourceInterface] = None,
                 progress: Optional[ProgressReporterInterface] = None,
                 control: Optional[CrawlControl] = None):
        super().__init__(settings)
        self.logger = logging.getLogger(__name__)
        self.settings = settings
        self.transport = transport
        self.index = index
        self.store = store
        self.source = source
        self.progress = progress or LoggingProgressReporter()
        self.control = control or CrawlControl()
        self.state = CrawlState.IDLE
        self.scan_report: Optional[ScanReport] = None
        self.counters: Optional[DownloadCounters] = None
        self.duplicates: Dict[str, int] = {}
        self.duration = 0.0

    async def initialize(self) -> None:
        """Initialize transport and content index"""
        self.logger.info("Initializing crawl orchestrator")
        for component in (self.transport, self.index):
            if not component.is_initialized():
                await component.initialize()
        self._initialized = True

    async def cleanup(self) -> None:
        """Clean up resources"""
        for component in (self.index, self.transport):
            await component.cleanup()
        self.logger.info("Crawl orchestrator cleanup completed")

    def _page_source(self, blog_state: BlogState) -> PageSourceInterface:
        if self.source is None:
            blog = self.settings.blog
            if not blog.last_id:
                blog.last_id = blog_state.last_id
            self.source = build_page_source(self.settings, resume_post_id(blog))
        return self.source

    async def _fetch_first_page(self, blog_state: BlogState) -> Optional[str]:
        """Fetch the first page; None if the blog could not be reached"""
        source = self._page_source(blog_state)
        try:
            return await self.transport.fetch(source.page_url(0), self.control)
        except UnauthorizedError as e:
            self.logger.error(f"{blog_state.name}: not logged in ({e})")
            self.progress.warn("User not logged in", blog_state.name)
        except TransportError as e:
            self.logger.warning(f"{blog_state.name} is not reachable: {e}")
        return None

    async def check_online(self, blog_state: BlogState) -> bool:
        blog_state.online = await self._fetch_first_page(blog_state) is not None
        return blog_state.online

    async def update_meta_information(self, blog_state: BlogState) -> BlogState:
        """Refresh title and description from the first page"""
        body = await self._fetch_first_page(blog_state)
        blog_state.online = body is not None
        if body is None:
            return blog_state
        try:
            meta = self._page_source(blog_state).parse_metadata(body)
        except ExtractionError as e:
            self.logger.warning(f"Could not read metadata of {blog_state.name}: {e}")
            return blog_state
        blog_state.title = meta.get('title') or blog_state.title
        blog_state.description = meta.get('description') or blog_state.description
        return blog_state

    async def crawl(self, blog_state: Optional[BlogState] = None) -> BlogState:
        """
        Crawl the configured blog once.

        Args:
            blog_state: Persisted state to update; loaded from the store if omitted

        Returns:
            The updated blog state
        """
        if not self._initialized:
            await self.initialize()

        blog = self.settings.blog
        blog_state = blog_state or self.store.load(blog.name)
        blog_state.url = blog_state.url or blog.blog_url
        source = self._page_source(blog_state)

        start_time = time.time()
        self.state = CrawlState.RUNNING
        self.logger.info(f"Crawling {blog_state.name} with {self.settings.scan.concurrency} lanes")

        queue = SharedQueue()
        statistics = StatisticsBag()
        coordinator = ScanCoordinator(
            self.settings, source, self.transport, queue, statistics, self.control, self.progress
        )
        executor = DownloadExecutor(
            queue, self.transport, self.index, self.settings.media,
            str(self.settings.blog_directory), self.control, self.progress,
        )

        download_task = asyncio.ensure_future(executor.run())
        try:
            self.scan_report = await coordinator.run()
            if not self.control.is_cancelled:
                self.state = CrawlState.RECONCILING
                self._reconcile(statistics)
            self.counters = await download_task
        finally:
            if not download_task.done():
                download_task.cancel()
        self.duration = time.time() - start_time

        if self.control.is_cancelled:
            self._apply_counters(blog_state, self.counters)
            self._persist(blog_state)
            self.state = CrawlState.CANCELLED
            self.logger.info(f"Crawl of {blog_state.name} cancelled")
            return blog_state

        self._apply_statistics(blog_state, self.scan_report)
        blog_state.last_complete_crawl = datetime.now()
        if self._all_lanes_completed():
            blog_state.last_id = max(blog_state.last_id, self.scan_report.highest_post_id)
        else:
            self.logger.warning(
                f"Not every lane of {blog_state.name} reached the end; resume point stays at {blog_state.last_id}"
            )
        self._apply_counters(blog_state, self.counters)
        self._persist(blog_state)
        self.state = CrawlState.FINALIZED
        self.logger.info(f"Crawl of {blog_state.name} finished in {self.duration:.1f}s")
        return blog_state

    def _reconcile(self, statistics: StatisticsBag) -> None:
        self.progress.report(DownloadProgress(message=PhaseLabels.UNIQUE_DOWNLOADS, phase="reconcile"))
        self.duplicates = {
            post_type.value: count for post_type, count in statistics.duplicates_by_type().items()
        }

    def _apply_statistics(self, blog_state: BlogState, report: ScanReport) -> None:
        blog_state.post_counts = {
            post_type.value: count for post_type, count in report.post_counts.items()
        }
        blog_state.duplicate_counts = dict(self.duplicates)
        blog_state.total_count = report.total_count - sum(self.duplicates.values())

    def _all_lanes_completed(self) -> bool:
        return all(outcome == LaneOutcome.COMPLETED for outcome in self.scan_report.outcomes.values())

    def _apply_counters(self, blog_state: BlogState, counters: DownloadCounters) -> None:
        for post_type, count in counters.downloaded.items():
            key = post_type.value
            blog_state.downloaded_counts[key] = blog_state.downloaded_counts.get(key, 0) + count
        blog_state.total_downloads += counters.total_downloads
        if counters.last_photo:
            blog_state.last_downloaded_photo = counters.last_photo
        if counters.last_video:
            blog_state.last_downloaded_video = counters.last_video

    def _persist(self, blog_state: BlogState) -> None:
        self.index.save()
        self.store.save(blog_state)

    def get_summary_stats(self, blog_state: BlogState) -> Dict[str, Any]:
        """Statistics for the end-of-crawl summary report"""
        report = self.scan_report
        counters = self.counters or DownloadCounters()
        return {
            'blog': blog_state.name,
            'state': self.state.value,
            'duration': self.duration,
            'pages_crawled': report.pages_crawled if report else 0,
            'total_count': blog_state.total_count,
            'duplicates': sum(self.duplicates.values()),
            'total_downloads': counters.total_downloads,
            'skipped': counters.skipped,
            'failed': counters.failed,
            'post_counts': dict(blog_state.post_counts),
            'lanes': {
                lane: outcome.value for lane, outcome in report.outcomes.items()
            } if report else {},
        }
