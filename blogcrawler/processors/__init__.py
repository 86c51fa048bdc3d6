"""
Post processing components for the Blog Crawler

This package contains components for processing posts including:
- Per type extraction of content items from API posts
- Media URL scraping from HTML pages
- Media URL rewriting and canonical keys
"""

from blogcrawler.processors.extractor import PostExtractor, HtmlMediaExtractor

__all__ = [
    'PostExtractor',
    'HtmlMediaExtractor'
]
