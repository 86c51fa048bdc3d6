"""
Storage components for the Blog Crawler

This package contains the content index over a blog's download directory
and the JSON store for per-blog crawl state.
"""

from .index import FileContentIndex
from .state import BlogStateStore

__all__ = ['FileContentIndex', 'BlogStateStore']
