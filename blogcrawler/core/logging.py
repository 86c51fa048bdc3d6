"""
Logging System for the Blog Crawler

Provides logging with file rotation, different log levels and an
end-of-crawl summary report.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Dict, Any


class LoggingManager:
    """
    Centralized logging manager with file rotation and structured context
    """

    def __init__(self):
        self.logger: Optional[logging.Logger] = None
        self.file_handler: Optional[logging.handlers.RotatingFileHandler] = None
        self.console_handler: Optional[logging.StreamHandler] = None
        self._setup_complete = False

    def setup_logging(self, level: str = "INFO", log_file: str = "./logs/crawler.log",
                      max_size: str = "10MB", backup_count: int = 5) -> None:
        """
        Set up logging system with file rotation and console output

        Args:
            level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_file: Path to log file
            max_size: Maximum size before rotation (e.g., "10MB")
            backup_count: Number of backup files to keep
        """
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        max_bytes = self._parse_size(max_size)

        # Library modules log to children of this logger
        self.logger = logging.getLogger('blogcrawler')
        self.logger.setLevel(getattr(logging, level.upper()))

        self.close()
        self.logger.handlers.clear()

        detailed_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s:%(lineno)d - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        console_formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%H:%M:%S'
        )

        self.file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding='utf-8'
        )
        self.file_handler.setLevel(logging.DEBUG)
        self.file_handler.setFormatter(detailed_formatter)
        self.logger.addHandler(self.file_handler)

        self.console_handler = logging.StreamHandler(sys.stdout)
        self.console_handler.setLevel(getattr(logging, level.upper()))
        self.console_handler.setFormatter(console_formatter)
        self.logger.addHandler(self.console_handler)

        self._setup_complete = True
        self.logger.info("Logging system initialized")

    def _parse_size(self, size_str: str) -> int:
        """Parse size string like '10MB' to bytes"""
        size_str = size_str.upper().strip()

        if size_str.endswith('KB'):
            return int(size_str[:-2]) * 1024
        elif size_str.endswith('MB'):
            return int(size_str[:-2]) * 1024 * 1024
        elif size_str.endswith('GB'):
            return int(size_str[:-2]) * 1024 * 1024 * 1024
        else:
            return int(size_str)

    def get_logger(self) -> logging.Logger:
        """Get the configured logger instance"""
        if not self._setup_complete or not self.logger:
            raise RuntimeError("Logging not set up. Call setup_logging() first.")
        return self.logger

    def generate_summary_report(self, stats: Dict[str, Any]) -> str:
        """Generate and log a summary report of a finished crawl"""
        report_lines = [
            "=" * 60,
            "CRAWL SUMMARY",
            "=" * 60,
            f"Blog: {stats.get('blog', 'Unknown')}",
            f"State: {stats.get('state', 'Unknown')}",
            f"Duration: {stats.get('duration', 0):.1f}s",
            "",
            "SCANNING:",
            f"  Pages Crawled: {stats.get('pages_crawled', 0)}",
            f"  Posts Found: {stats.get('total_count', 0)}",
            f"  Duplicates: {stats.get('duplicates', 0)}",
            "",
            "DOWNLOADING:",
            f"  Downloaded: {stats.get('total_downloads', 0)}",
            f"  Already Present: {stats.get('skipped', 0)}",
            f"  Failed: {stats.get('failed', 0)}",
            "",
            "POST TYPES:",
        ]

        for post_type, count in sorted(stats.get('post_counts', {}).items()):
            report_lines.append(f"  {post_type}: {count}")

        lanes = stats.get('lanes', {})
        if lanes:
            report_lines.extend(["", "LANES:"])
            for lane, outcome in sorted(lanes.items()):
                report_lines.append(f"  Lane {lane}: {outcome}")

        report_lines.append("=" * 60)

        report = "\n".join(report_lines)
        if self.logger:
            self.logger.info(f"Crawl Summary:\n{report}")

        return report

    def close(self) -> None:
        """Close logging handlers"""
        if self.file_handler:
            self.file_handler.close()
        if self.console_handler:
            self.console_handler.close()


# Global logging manager instance
logging_manager = LoggingManager()


def get_logger() -> logging.Logger:
    """Get the global logger instance"""
    return logging_manager.get_logger()


def setup_logging(level: str = "INFO", log_file: str = "./logs/crawler.log",
                  max_size: str = "10MB", backup_count: int = 5) -> None:
    """Set up global logging system"""
    logging_manager.setup_logging(level, log_file, max_size, backup_count)
