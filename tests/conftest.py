"""
Shared fixtures and fakes for the crawler test suite
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

from blogcrawler.core.base import (
    DownloadProgress,
    ProgressReporterInterface,
    TransportInterface,
    CrawlCancelledError,
    TransportError,
)
from blogcrawler.core.config import CrawlerSettings

API_URL = "https://api.test/{name}?limit={limit}&offset={offset}"


class FakeTransport(TransportInterface):
    """
    In-memory transport.

    `pages` maps URL to a body or an exception instance to raise; unknown
    URLs fail with a 404 TransportError. `downloads` works the same way with
    bytes. `before_fetch` is awaited before each fetch so tests can pause or
    cancel mid-crawl.
    """

    def __init__(self, pages: Optional[Dict[str, Union[str, Exception]]] = None,
                 downloads: Optional[Dict[str, Union[bytes, Exception]]] = None,
                 default_download: Optional[bytes] = b"data",
                 before_fetch: Optional[Callable[[str], Any]] = None):
        super().__init__({})
        self.pages = pages or {}
        self.downloads = downloads or {}
        self.default_download = default_download
        self.before_fetch = before_fetch
        self.fetched: List[str] = []
        self.downloaded: List[str] = []

    async def initialize(self) -> None:
        self._initialized = True

    async def cleanup(self) -> None:
        pass

    async def fetch(self, url, control=None):
        self.fetched.append(url)
        if self.before_fetch:
            await self.before_fetch(url)
        if control is not None and control.is_cancelled:
            raise CrawlCancelledError("cancelled")
        body = self.pages.get(url)
        if body is None:
            raise TransportError(f"no page for {url}", status=404)
        if isinstance(body, Exception):
            raise body
        return body

    async def download(self, url, destination, control=None):
        self.downloaded.append(url)
        data = self.downloads.get(url, self.default_download)
        if isinstance(data, Exception):
            raise data
        if data is None:
            raise TransportError(f"no file for {url}", status=404)
        Path(destination).parent.mkdir(parents=True, exist_ok=True)
        Path(destination).write_bytes(data)
        return len(data)


class CollectingProgress(ProgressReporterInterface):
    """Progress reporter that records everything it is told"""

    def __init__(self):
        self.reports: List[DownloadProgress] = []
        self.warnings: List[tuple] = []

    def report(self, progress: DownloadProgress) -> None:
        self.reports.append(progress)

    def warn(self, message: str, blog: str) -> None:
        self.warnings.append((message, blog))

    def messages(self) -> List[str]:
        return [progress.message for progress in self.reports]


def api_page(posts: List[Dict[str, Any]], status: int = 200) -> str:
    """Body of one API page"""
    return json.dumps({'meta': {'status': status}, 'response': {'posts': posts}})


def photo_post(post_id: int, name: str, tags=None, **extra) -> Dict[str, Any]:
    post = {
        'id': post_id,
        'type': 'photo',
        'timestamp': 1600000000 + post_id,
        'date': '2020-09-13 12:26:40 GMT',
        'tags': tags or [],
        'photos': [{
            'caption': '',
            'original_size': {'url': f"https://64.media.tumblr.com/a/{name}_1280.jpg", 'width': 1280},
            'alt_sizes': [
                {'url': f"https://64.media.tumblr.com/a/{name}_1280.jpg", 'width': 1280},
                {'url': f"https://64.media.tumblr.com/a/{name}_500.jpg", 'width': 500},
            ],
        }],
    }
    post.update(extra)
    return post


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def progress():
    return CollectingProgress()


@pytest.fixture
def make_settings(tmp_path):
    """Settings for a blog named 'example' rooted in the test's tmp dir"""
    def _make(concurrency: int = 2, **blog_overrides) -> CrawlerSettings:
        settings = CrawlerSettings()
        settings.scan.concurrency = concurrency
        settings.scan.page_size = 2
        settings.scan.api_endpoint = API_URL
        settings.blog.name = "example"
        for key, value in blog_overrides.items():
            setattr(settings.blog, key, value)
        settings.storage.download_location = str(tmp_path / "downloads")
        settings.storage.state_path = str(tmp_path / "state")
        settings.logging.file = str(tmp_path / "logs" / "test.log")
        return settings
    return _make


def page_url(page: int, page_size: int = 2, name: str = "example") -> str:
    return API_URL.format(name=name, limit=page_size, offset=page * page_size)
