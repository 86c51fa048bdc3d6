"""
Command Line Interface for the Blog Crawler

This package provides command line argument parsing and validation
for the crawler application. It handles blog selection, scan and media
options, and configuration overrides.

Classes:
    CLIManager: Command line interface manager for the crawler
"""

from blogcrawler.cli.arguments import CLIManager

__all__ = ['CLIManager']
