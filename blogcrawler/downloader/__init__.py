"""
Download executor for the Blog Crawler
"""

from blogcrawler.downloader.executor import DownloadExecutor, DownloadCounters

__all__ = ['DownloadExecutor', 'DownloadCounters']
