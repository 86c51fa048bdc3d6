"""
Progress reporting for crawl runs.
"""

import logging
from typing import List, Optional

from blogcrawler.core.base import ProgressReporterInterface, DownloadProgress


class PhaseLabels:
    """Labels emitted at phase boundaries"""
    SCAN_STARTED = "Scanning started"
    SCAN_FINISHED = "Scanning finished"
    DOWNLOAD_STARTED = "Downloading started"
    DOWNLOAD_FINISHED = "Downloading finished"
    UNIQUE_DOWNLOADS = "Calculating unique downloads"


class LoggingProgressReporter(ProgressReporterInterface):
    """
    Writes progress to the crawler log and keeps the warnings shown to the
    user for the final report.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.warnings: List[str] = []
        self.last_progress: Optional[DownloadProgress] = None

    def report(self, progress: DownloadProgress) -> None:
        self.last_progress = progress
        if progress.phase:
            self.logger.info(progress.message)
        else:
            self.logger.debug(progress.message)

    def warn(self, message: str, blog: str) -> None:
        text = f"{blog}: {message}"
        self.warnings.append(text)
        self.logger.warning(text)
