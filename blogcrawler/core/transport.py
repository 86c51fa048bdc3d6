"""
HTTP Transport Implementation

aiohttp-based fetcher for page bodies and binary downloads. Honors the
configured timeout, proxy, cookies and user agent, classifies failures into
Unauthorized / RateLimited / other transport errors, and aborts an in-flight
request when the crawl is cancelled.
"""

import asyncio
import logging
import contextlib
from pathlib import Path
from typing import Optional, Awaitable, TypeVar

import aiohttp
import aiofiles

from blogcrawler.core.base import (
    TransportInterface,
    TransportError,
    UnauthorizedError,
    RateLimitedError,
    CrawlCancelledError,
)
from blogcrawler.core.config import ConnectionConfig
from blogcrawler.core.control import CrawlControl


T = TypeVar('T')

# The dashboard API answers 503 when the session is not logged in
UNAUTHORIZED_STATUSES = {401, 403, 503}
RATE_LIMITED_STATUS = 429


def classify_status(status: int, url: str) -> Optional[TransportError]:
    """Error for a non-success HTTP status, or None for success"""
    if status in UNAUTHORIZED_STATUSES:
        return UnauthorizedError(f"HTTP {status} for {url}: user not logged in", status=status)
    if status == RATE_LIMITED_STATUS:
        return RateLimitedError(f"HTTP {status} for {url}: rate limit exceeded", status=status)
    if status >= 400:
        return TransportError(f"HTTP {status} for {url}", status=status)
    return None


class HttpTransport(TransportInterface):
    """
    Transport over a shared aiohttp session.

    Page fetches return decoded text; downloads stream to a temporary
    ".part" file that is renamed into place only when complete.
    """

    def __init__(self, config: ConnectionConfig, timeout: int = 30, referer: Optional[str] = None):
        super().__init__(config)
        self.logger = logging.getLogger(__name__)
        self.timeout = timeout
        self.referer = referer
        self.session: Optional[aiohttp.ClientSession] = None
        self.proxy_auth: Optional[aiohttp.BasicAuth] = None
        self.stats = {
            'requests': 0,
            'failures': 0,
            'bytes_downloaded': 0,
        }

    async def initialize(self) -> None:
        """Create the HTTP session"""
        headers = {
            'User-Agent': self.config.user_agent,
            'X-Requested-With': 'XMLHttpRequest',
        }
        if self.referer:
            headers['Referer'] = self.referer

        if self.config.proxy_username:
            self.proxy_auth = aiohttp.BasicAuth(self.config.proxy_username, self.config.proxy_password)

        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=None, sock_read=self.timeout, sock_connect=self.timeout),
            headers=headers,
            cookies=self.config.cookies or None,
        )
        self._initialized = True
        self.logger.info(f"HTTP transport initialized (proxy: {self.config.proxy_url or 'none'})")

    async def cleanup(self) -> None:
        """Close the HTTP session"""
        if self.session:
            await self.session.close()
            self.session = None
        self._initialized = False

    async def fetch(self, url: str, control: Optional[CrawlControl] = None) -> str:
        return await self._abortable(self._get_text(url), control)

    async def download(self, url: str, destination: str, control: Optional[CrawlControl] = None) -> int:
        return await self._abortable(self._stream_to_file(url, destination), control)

    async def _abortable(self, operation: Awaitable[T], control: Optional[CrawlControl]) -> T:
        """Run operation, aborting it as soon as the crawl is cancelled"""
        if control is None:
            return await operation
        if control.is_cancelled:
            operation.close()
            raise CrawlCancelledError("Crawl cancelled before request")

        task = asyncio.ensure_future(operation)
        cancelled = asyncio.ensure_future(control.wait_cancelled())
        try:
            await asyncio.wait({task, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancelled.cancel()

        if task.done():
            return task.result()

        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        raise CrawlCancelledError("Request aborted by cancellation")

    def _require_session(self) -> aiohttp.ClientSession:
        if not self.session:
            raise TransportError("HTTP transport not initialized")
        return self.session

    async def _get_text(self, url: str) -> str:
        session = self._require_session()
        self.stats['requests'] += 1
        try:
            async with session.get(url, proxy=self.config.proxy_url, proxy_auth=self.proxy_auth) as response:
                error = classify_status(response.status, url)
                if error:
                    raise error
                return await response.text()
        except TransportError:
            self.stats['failures'] += 1
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.stats['failures'] += 1
            raise TransportError(f"Request to {url} failed: {e}")

    async def _stream_to_file(self, url: str, destination: str) -> int:
        session = self._require_session()
        target = Path(destination)
        target.parent.mkdir(parents=True, exist_ok=True)
        partial = target.with_name(target.name + '.part')

        self.stats['requests'] += 1
        written = 0
        try:
            async with session.get(url, proxy=self.config.proxy_url, proxy_auth=self.proxy_auth) as response:
                error = classify_status(response.status, url)
                if error:
                    raise error
                async with aiofiles.open(partial, 'wb') as f:
                    async for chunk in response.content.iter_chunked(8192):
                        await f.write(chunk)
                        written += len(chunk)
            partial.replace(target)
        except TransportError:
            self.stats['failures'] += 1
            partial.unlink(missing_ok=True)
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            self.stats['failures'] += 1
            partial.unlink(missing_ok=True)
            raise TransportError(f"Download of {url} failed: {e}")
        except asyncio.CancelledError:
            partial.unlink(missing_ok=True)
            raise

        self.stats['bytes_downloaded'] += written
        self.logger.debug(f"Downloaded {url} to {target} ({written} bytes)")
        return written
