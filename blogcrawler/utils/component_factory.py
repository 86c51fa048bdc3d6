"""
Component Factory for the Blog Crawler

This module provides functions to create the crawl components and wire them
into an orchestrator.
"""

from typing import Optional

from blogcrawler.core.base import ProgressReporterInterface
from blogcrawler.core.config import CrawlerSettings
from blogcrawler.core.control import CrawlControl
from blogcrawler.core.logging import get_logger
from blogcrawler.core.orchestrator import CrawlOrchestrator
from blogcrawler.core.progress import LoggingProgressReporter
from blogcrawler.core.transport import HttpTransport
from blogcrawler.storage.index import FileContentIndex
from blogcrawler.storage.state import BlogStateStore


def create_orchestrator(settings: CrawlerSettings,
                        progress: Optional[ProgressReporterInterface] = None,
                        control: Optional[CrawlControl] = None) -> CrawlOrchestrator:
    """
    Create all components for one blog and wire them into an orchestrator.

    Args:
        settings: Validated crawler settings
        progress: Progress reporter; logs through the crawler logger if omitted
        control: Pause/cancel handle shared with the caller

    Returns:
        An orchestrator ready to be initialized
    """
    logger = get_logger()

    transport = HttpTransport(
        settings.connection,
        timeout=settings.scan.timeout,
        referer=settings.blog.blog_url,
    )
    index = FileContentIndex(str(settings.blog_directory), settings.storage.index_file)
    store = BlogStateStore(settings.storage.state_path)

    logger.debug(
        f"Components created for {settings.blog.name}: source={settings.blog.source}, "
        f"directory={settings.blog_directory}"
    )

    return CrawlOrchestrator(
        settings,
        transport,
        index,
        store,
        progress=progress or LoggingProgressReporter(logger),
        control=control,
    )
