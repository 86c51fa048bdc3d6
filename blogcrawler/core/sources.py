"""
Paginated blog sources.

A page source knows how to address page N of a blog, how to turn a page
body into content items, and how to recognise the end of the results.
ApiPageSource reads the JSON dashboard API with limit/offset paging;
HtmlPageSource walks the public /page/N feed.
"""

import json
import logging
from typing import Dict, Any, List

from bs4 import BeautifulSoup

from blogcrawler.core.base import (
    PageSourceInterface,
    PageResult,
    ExtractionError,
    UnauthorizedError,
    RateLimitedError,
)
from blogcrawler.core.config import CrawlerSettings, clamp_page_size
from blogcrawler.processors.extractor import PostExtractor, HtmlMediaExtractor


def _post_id(post: Dict[str, Any]) -> int:
    try:
        return int(post.get('id'))
    except (TypeError, ValueError):
        return 0


class ApiPageSource(PageSourceInterface):
    """
    JSON API source. Page N covers offset N * page_size.

    The lane ends on an empty post list, or once a page reaches posts at or
    below the resume high-water mark.
    """

    def __init__(self, settings: CrawlerSettings, min_post_id: int = 0):
        self.logger = logging.getLogger(__name__)
        self.settings = settings
        self.page_size = clamp_page_size(settings.scan.page_size)
        self.min_post_id = min_post_id
        self.extractor = PostExtractor(settings.blog, settings.media)

    def page_url(self, page: int) -> str:
        return self.settings.scan.api_endpoint.format(
            name=self.settings.blog.name,
            limit=self.page_size,
            offset=self.page_size * page,
        )

    def _load(self, body: str) -> Dict[str, Any]:
        try:
            data = json.loads(body)
        except ValueError as e:
            raise ExtractionError(f"Malformed API response: {e}")
        if not isinstance(data, dict):
            raise ExtractionError("API response is not an object")

        status = (data.get('meta') or {}).get('status')
        if status in (401, 403):
            raise UnauthorizedError("User not logged in", status=status)
        if status == 429:
            raise RateLimitedError("Rate limit exceeded", status=status)
        return data

    def _posts(self, data: Dict[str, Any]) -> List[Dict[str, Any]]:
        return (data.get('response') or {}).get('posts') or []

    def parse_page(self, body: str, page: int) -> PageResult:
        posts = self._posts(self._load(body))
        if not posts:
            return PageResult(items=[], exhausted=True)

        highest = max(_post_id(post) for post in posts)
        fresh = posts
        if self.min_post_id:
            fresh = [post for post in posts if _post_id(post) > self.min_post_id]

        return PageResult(
            items=self.extractor.extract(fresh),
            exhausted=len(fresh) < len(posts),
            highest_post_id=highest,
        )

    def parse_metadata(self, body: str) -> Dict[str, Any]:
        data = self._load(body)
        response = data.get('response') or {}
        blog = response.get('blog')
        if not blog:
            posts = self._posts(data)
            blog = (posts[0].get('blog') if posts else None) or {}
        return {
            'title': blog.get('title') or "",
            'description': blog.get('description') or "",
        }


class HtmlPageSource(PageSourceInterface):
    """
    HTML feed source. Page N is {blog_url}page/{N + 1}.

    The lane ends when the page says no posts were found or no longer links
    to the following page. A login form instead of the feed means the
    session is not authenticated.
    """

    LOGIN_SELECTOR = 'div.signup_view.account.login'
    NO_POSTS_SELECTOR = 'div.no_posts_found'

    def __init__(self, settings: CrawlerSettings, min_post_id: int = 0):
        self.logger = logging.getLogger(__name__)
        self.settings = settings
        self.extractor = HtmlMediaExtractor(settings.blog, settings.media)

    def page_url(self, page: int) -> str:
        return f"{self.settings.blog.blog_url}page/{page + 1}"

    def parse_page(self, body: str, page: int) -> PageResult:
        soup = BeautifulSoup(body, 'html.parser')
        if soup.select_one(self.LOGIN_SELECTOR):
            raise UnauthorizedError("User not logged in")
        if soup.select_one(self.NO_POSTS_SELECTOR):
            return PageResult(items=[], exhausted=True)

        next_page = f"/page/{page + 2}"
        has_next = any(
            link['href'].rstrip('/').endswith(next_page)
            for link in soup.find_all('a', href=True)
        )
        return PageResult(items=self.extractor.extract(body), exhausted=not has_next)

    def parse_metadata(self, body: str) -> Dict[str, Any]:
        soup = BeautifulSoup(body, 'html.parser')
        description = soup.find('meta', attrs={'name': 'description'})
        return {
            'title': soup.title.get_text(strip=True) if soup.title else "",
            'description': description.get('content', '') if description else "",
        }


def build_page_source(settings: CrawlerSettings, min_post_id: int = 0) -> PageSourceInterface:
    """Page source for the configured source kind"""
    if settings.blog.source == 'html':
        return HtmlPageSource(settings, min_post_id)
    return ApiPageSource(settings, min_post_id)
