"""
Command Line Argument Parsing for the Blog Crawler

Handles command line arguments for blog selection, scan and media options,
and configuration overrides.
"""

import argparse
from pathlib import Path
from typing import List, Optional

from blogcrawler import __version__
from blogcrawler.core.config import (
    CrawlerSettings,
    IMAGE_SIZES,
    VIDEO_SIZES,
    SOURCE_KINDS,
    parse_page_range,
)
from blogcrawler.core.base import ConfigurationError


class CLIManager:
    """
    Command line interface manager for the crawler

    Parses and validates arguments and applies them on top of the loaded
    configuration file.
    """

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all options

        Returns:
            Configured argument parser
        """
        parser = argparse.ArgumentParser(
            prog="blogcrawler",
            description="Concurrent blog crawler and media downloader",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=self._get_epilog()
        )

        # Blog selection
        blog_group = parser.add_argument_group("Blog")
        blog_group.add_argument(
            "--blog",
            help="Blog name or URL to crawl"
        )
        blog_group.add_argument(
            "--source",
            choices=SOURCE_KINDS,
            help="Read posts from the JSON API or from the HTML pages"
        )
        blog_group.add_argument(
            "--tags",
            help="Comma-separated tags; only posts carrying one of them are kept"
        )
        blog_group.add_argument(
            "--include-reblogs",
            action=argparse.BooleanOptionalAction,
            default=None,
            help="Keep or drop reblogged posts"
        )
        blog_group.add_argument(
            "--pages",
            help="Explicit page range to crawl, numbered from 1, e.g. 1-3,7"
        )
        blog_group.add_argument(
            "--force-rescan",
            action="store_true",
            help="Ignore the stored last post id and crawl everything"
        )

        # Configuration options
        config_group = parser.add_argument_group("Configuration")
        config_group.add_argument(
            "--config",
            help="Path to configuration file (YAML or JSON)"
        )
        config_group.add_argument(
            "--log-level",
            choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            help="Logging level"
        )
        config_group.add_argument(
            "--concurrency",
            type=int,
            help="Number of parallel pagination lanes"
        )
        config_group.add_argument(
            "--download-dir",
            help="Directory downloads are stored under"
        )

        # Media options
        media_group = parser.add_argument_group("Media")
        media_group.add_argument(
            "--image-size",
            choices=IMAGE_SIZES,
            help="Preferred photo size"
        )
        media_group.add_argument(
            "--video-size",
            type=int,
            choices=VIDEO_SIZES,
            help="Preferred video size"
        )
        media_group.add_argument(
            "--skip-gif",
            action="store_true",
            help="Do not download animated gifs"
        )
        media_group.add_argument(
            "--url-list-only",
            action="store_true",
            help="Write media URLs to list files instead of downloading them"
        )

        # Version and examples
        parser.add_argument(
            "--version",
            action="version",
            version=f"Blog Crawler v{__version__}"
        )

        parser.add_argument(
            "--examples",
            action="store_true",
            help="Show usage examples and exit"
        )

        return parser

    def _get_epilog(self) -> str:
        """
        Get epilog text for help message

        Returns:
            Formatted epilog text
        """
        return """
Examples:
  # Crawl a blog with the default settings
  python -m blogcrawler --blog=example

  # Crawl with eight lanes and raw photo sizes
  python -m blogcrawler --blog=example --concurrency=8 --image-size=raw

  # Crawl only tagged posts from the first three pages
  python -m blogcrawler --blog=example --tags=art,sketch --pages=1-3

  # Use the HTML pages instead of the API
  python -m blogcrawler --blog=https://example.tumblr.com/ --source=html

  # Run with custom configuration
  python -m blogcrawler --config=my_config.yaml

Notes:
  - Downloads are stored under <download-dir>/<blog name>/
  - Crawls resume from the last post id unless --force-rescan or --pages is given
  - Press Ctrl+C to cancel; completed downloads are kept and recorded
"""

    def parse_arguments(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        """
        Parse command line arguments

        Args:
            args: Command line arguments (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        parsed_args = self.parser.parse_args(args)
        self.validate_arguments(parsed_args)
        return parsed_args

    def validate_arguments(self, args: argparse.Namespace) -> bool:
        """
        Validate parsed arguments for consistency

        Args:
            args: Parsed arguments namespace

        Returns:
            True if arguments are valid
        """
        if args.config and not Path(args.config).is_file():
            self.parser.error(f"Configuration file not found: {args.config}")

        if args.concurrency is not None and args.concurrency <= 0:
            self.parser.error("Concurrency must be greater than 0")

        if args.pages:
            try:
                parse_page_range(args.pages)
            except ConfigurationError as e:
                self.parser.error(str(e))

        return True

    def apply_to_settings(self, args: argparse.Namespace, settings: CrawlerSettings) -> CrawlerSettings:
        """Override loaded settings with the options given on the command line"""
        if args.blog:
            if args.blog.startswith(("http://", "https://")):
                settings.blog.url = args.blog
                if not settings.blog.name:
                    settings.blog.name = _name_from_url(args.blog)
            else:
                settings.blog.name = args.blog
        if args.source:
            settings.blog.source = args.source
        if args.tags is not None:
            settings.blog.tags = args.tags
        if args.include_reblogs is not None:
            settings.blog.include_reblogs = args.include_reblogs
        if args.pages:
            settings.blog.download_pages = args.pages
        if args.force_rescan:
            settings.blog.force_rescan = True
        if args.concurrency is not None:
            settings.scan.concurrency = args.concurrency
        if args.download_dir:
            settings.storage.download_location = args.download_dir
        if args.image_size:
            settings.media.image_size = args.image_size
        if args.video_size:
            settings.media.video_size = args.video_size
        if args.skip_gif:
            settings.media.skip_gif = True
        if args.url_list_only:
            settings.media.download_url_list = True
        if args.log_level:
            settings.logging.level = args.log_level
        return settings

    def get_usage_examples(self) -> str:
        """
        Get usage examples for documentation

        Returns:
            Formatted usage examples
        """
        return self._get_epilog()


def _name_from_url(url: str) -> str:
    """First host label of a blog URL, e.g. example for example.tumblr.com"""
    host = url.split("://", 1)[-1].split("/", 1)[0]
    return host.split(".", 1)[0]
