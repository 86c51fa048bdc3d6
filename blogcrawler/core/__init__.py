"""
Core components for the Blog Crawler

This package contains the core components for the crawler including:
- Base classes, data model and interfaces
- Configuration management
- Logging system
- Lane scanning, queue handoff and crawl control

The page sources and the orchestrator depend on the processors and
downloader packages and are imported from their own modules.
"""

from blogcrawler.core.base import (
    PostType,
    CrawlState,
    LaneOutcome,
    ContentItem,
    PageResult,
    DownloadProgress,
    BlogState,
    BaseComponent,
    TransportInterface,
    ContentIndexInterface,
    ProgressReporterInterface,
    PageSourceInterface,
    CrawlerError,
    ConfigurationError,
    TransportError,
    UnauthorizedError,
    RateLimitedError,
    CrawlCancelledError,
    ExtractionError,
    DownloadError,
    StorageError
)

from blogcrawler.core.config import (
    ConfigManager,
    CrawlerSettings,
    ScanConfig,
    MediaConfig,
    BlogConfig,
    ConnectionConfig,
    StorageConfig,
    LoggingConfig,
    parse_page_range
)

from blogcrawler.core.logging import (
    LoggingManager,
    get_logger,
    setup_logging
)

from blogcrawler.core.control import CrawlControl
from blogcrawler.core.cursor import CrawlCursor, build_cursors, resume_post_id
from blogcrawler.core.progress import LoggingProgressReporter, PhaseLabels
from blogcrawler.core.queue import SharedQueue, StatisticsBag
from blogcrawler.core.scanner import LaneScanner, ScanCoordinator, ScanReport
from blogcrawler.core.transport import HttpTransport

__all__ = [
    # Base classes
    'PostType',
    'CrawlState',
    'LaneOutcome',
    'ContentItem',
    'PageResult',
    'DownloadProgress',
    'BlogState',
    'BaseComponent',
    'TransportInterface',
    'ContentIndexInterface',
    'ProgressReporterInterface',
    'PageSourceInterface',
    'CrawlerError',
    'ConfigurationError',
    'TransportError',
    'UnauthorizedError',
    'RateLimitedError',
    'CrawlCancelledError',
    'ExtractionError',
    'DownloadError',
    'StorageError',

    # Configuration
    'ConfigManager',
    'CrawlerSettings',
    'ScanConfig',
    'MediaConfig',
    'BlogConfig',
    'ConnectionConfig',
    'StorageConfig',
    'LoggingConfig',
    'parse_page_range',

    # Logging
    'LoggingManager',
    'get_logger',
    'setup_logging',

    # Scanning
    'CrawlControl',
    'CrawlCursor',
    'build_cursors',
    'resume_post_id',
    'LoggingProgressReporter',
    'PhaseLabels',
    'SharedQueue',
    'StatisticsBag',
    'LaneScanner',
    'ScanCoordinator',
    'ScanReport',

    # Transport
    'HttpTransport'
]
