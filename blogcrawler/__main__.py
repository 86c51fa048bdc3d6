#!/usr/bin/env python3
"""
Blog Crawler - Main Entry Point

This module serves as the main entry point for the crawler application.
It loads the configuration, sets up logging, and runs one crawl of the
selected blog.
"""

import sys
import signal
import asyncio

from blogcrawler.core.base import CrawlerError, CrawlState
from blogcrawler.core.config import ConfigManager
from blogcrawler.core.control import CrawlControl
from blogcrawler.core.logging import setup_logging, get_logger, logging_manager
from blogcrawler.cli.arguments import CLIManager
from blogcrawler.utils.component_factory import create_orchestrator


async def main() -> int:
    """Main entry point for the crawler"""
    # Parse command line arguments
    cli_manager = CLIManager()
    args = cli_manager.parse_arguments()

    # Handle special flags
    if args.examples:
        print("\nBlog Crawler - Usage Examples\n")
        print(cli_manager.get_usage_examples())
        return 0

    # Load configuration and apply command line overrides
    config_manager = ConfigManager(args.config)
    try:
        settings = config_manager.load_config()
    except CrawlerError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    cli_manager.apply_to_settings(args, settings)

    # Set up logging
    logging_config = settings.logging
    setup_logging(
        level=logging_config.level,
        log_file=logging_config.file,
        max_size=logging_config.max_size,
        backup_count=logging_config.backup_count
    )
    logger = get_logger()

    try:
        config_manager.validate_config(settings)
    except CrawlerError as e:
        logger.error(f"Configuration validation failed: {e}")
        return 1

    # Ctrl+C cancels cooperatively; completed downloads are still recorded
    control = CrawlControl()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, control.cancel)
    except NotImplementedError:
        logger.debug("Signal handlers are not supported on this platform")

    orchestrator = create_orchestrator(settings, control=control)
    try:
        await orchestrator.initialize()
        blog_state = orchestrator.store.load(settings.blog.name)
        await orchestrator.update_meta_information(blog_state)
        if not blog_state.online:
            logger.error(f"Blog {settings.blog.name} is offline or not accessible")
            return 1

        blog_state = await orchestrator.crawl(blog_state)
        logging_manager.generate_summary_report(orchestrator.get_summary_stats(blog_state))
    except CrawlerError as e:
        logger.error(f"Crawl failed: {e}", exc_info=True)
        return 1
    finally:
        await orchestrator.cleanup()

    return 130 if orchestrator.state == CrawlState.CANCELLED else 0


def run() -> None:
    """Console script entry point"""
    try:
        exit_code = asyncio.run(main())
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nCrawl interrupted by user")
        sys.exit(130)


if __name__ == "__main__":
    run()
