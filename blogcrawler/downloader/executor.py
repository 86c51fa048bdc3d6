"""
Download Executor Implementation

Single consumer of the shared queue. Resolves the final URL of each media
item (forced resize, raw-host fallback), skips anything the content index
already knows, downloads the rest, and appends text records to per-type
files. A failed item is reported and skipped; the loop carries on.
"""

import os
import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import aiofiles

from blogcrawler.core.base import (
    ContentItem,
    ContentIndexInterface,
    DownloadProgress,
    PostType,
    ProgressReporterInterface,
    TransportInterface,
    TransportError,
    CrawlCancelledError,
    DownloadError,
)
from blogcrawler.core.config import MediaConfig
from blogcrawler.core.control import CrawlControl
from blogcrawler.core.progress import PhaseLabels
from blogcrawler.core.queue import SharedQueue
from blogcrawler.processors.urls import (
    build_raw_image_url,
    canonical_key,
    file_name,
    resize_image_url,
    text_key,
)


TEXT_FILE_NAMES: Dict[PostType, str] = {
    PostType.TEXT: "texts.txt",
    PostType.QUOTE: "quotes.txt",
    PostType.LINK: "links.txt",
    PostType.CONVERSATION: "conversations.txt",
    PostType.ANSWER: "answers.txt",
    PostType.PHOTO_META: "photo_meta.txt",
    PostType.VIDEO_META: "video_meta.txt",
    PostType.AUDIO_META: "audio_meta.txt",
}

URL_LIST_FILE_NAMES: Dict[PostType, str] = {
    PostType.PHOTO: "photo_urls.txt",
    PostType.VIDEO: "video_urls.txt",
    PostType.AUDIO: "audio_urls.txt",
}


@dataclass
class DownloadCounters:
    """Outcome counters of one executor run"""
    downloaded: Counter = field(default_factory=Counter)
    attempted: int = 0
    skipped: int = 0
    failed: int = 0
    last_photo: Optional[str] = None
    last_video: Optional[str] = None

    @property
    def total_downloads(self) -> int:
        return sum(self.downloaded.values())


class DownloadExecutor:
    """
    Consumes ContentItems until the queue is closed and empty, or the crawl
    is cancelled.
    """

    def __init__(self, queue: SharedQueue, transport: TransportInterface,
                 index: ContentIndexInterface, media: MediaConfig, directory: str,
                 control: CrawlControl, progress: ProgressReporterInterface):
        self.logger = logging.getLogger(__name__)
        self.queue = queue
        self.transport = transport
        self.index = index
        self.media = media
        self.directory = Path(directory)
        self.control = control
        self.progress = progress
        self.counters = DownloadCounters()

    async def run(self) -> DownloadCounters:
        self.directory.mkdir(parents=True, exist_ok=True)
        self.progress.report(DownloadProgress(message=PhaseLabels.DOWNLOAD_STARTED, phase="download"))

        while await self.control.checkpoint():
            item = await self.queue.take()
            if item is None or self.control.is_cancelled:
                break
            await self.process(item)

        self.logger.info(
            f"Downloads finished: {self.counters.total_downloads} new, "
            f"{self.counters.skipped} already present, {self.counters.failed} failed"
        )
        self.progress.report(DownloadProgress(message=PhaseLabels.DOWNLOAD_FINISHED, phase="download"))
        return self.counters

    async def process(self, item: ContentItem) -> bool:
        """Handle one item; True if it is now satisfied"""
        self.counters.attempted += 1
        try:
            if item.post_type == PostType.PHOTO:
                ok = await self._download_photo(item)
            elif item.post_type.is_media:
                ok = await self._download_url(item, item.payload)
            else:
                ok = await self._save_text(item)
        except CrawlCancelledError:
            return False
        except Exception as e:
            error = DownloadError(f"Failed to process {item.post_type.value} of post {item.post_id}: {e}")
            self.logger.error(str(error))
            ok = False

        if not ok:
            self.counters.failed += 1
            self.progress.report(DownloadProgress(
                message=f"Failed {item.post_type.value} of post {item.post_id}", phase="download"
            ))
        return ok

    async def _download_photo(self, item: ContentItem) -> bool:
        url = item.payload
        if self.media.force_size:
            url = resize_image_url(url, self.media.image_size)

        if self.media.image_size == "raw":
            for host in self.media.hosts:
                if await self._download_url(item, build_raw_image_url(url, host)):
                    return True

        return await self._download_url(item, url)

    def _already_present(self, key: str) -> bool:
        if self.index.exists_in_db(key):
            return True
        return self.media.check_directory and self.index.exists_on_disk(key)

    async def _download_url(self, item: ContentItem, url: str) -> bool:
        key = canonical_key(url)
        if self._already_present(key):
            self.counters.skipped += 1
            return True

        name = file_name(url)
        destination = self.directory / name

        if self.media.download_url_list:
            await self._append(URL_LIST_FILE_NAMES[item.post_type], url)
        else:
            self.progress.report(DownloadProgress(message=f"Downloading {name}", filename=name))
            try:
                await self.transport.download(url, str(destination), self.control)
            except CrawlCancelledError:
                raise
            except TransportError as e:
                self.logger.warning(f"Download failed for {url}: {e}")
                return False
            self._stamp(destination, item.timestamp)

        self._record_success(item, key, name, destination)
        return True

    async def _save_text(self, item: ContentItem) -> bool:
        key = text_key(item.post_type.value, item.payload)
        if self.index.exists_in_db(key):
            self.counters.skipped += 1
            return True

        name = TEXT_FILE_NAMES[item.post_type]
        self.progress.report(DownloadProgress(message=f"Saving {item.post_type.value} post {item.post_id}", filename=name))
        await self._append(name, item.payload)
        self._record_success(item, key, None, None)
        return True

    async def _append(self, name: str, text: str) -> None:
        async with aiofiles.open(self.directory / name, 'a', encoding='utf-8') as f:
            await f.write(text if text.endswith('\n') else text + '\n')

    def _stamp(self, path: Path, timestamp: Optional[str]) -> None:
        """Set the file's modification time to the post's timestamp"""
        if not timestamp:
            return
        try:
            seconds = float(timestamp)
            os.utime(path, (seconds, seconds))
        except (ValueError, OSError) as e:
            self.logger.debug(f"Could not stamp {path} with {timestamp}: {e}")

    def _record_success(self, item: ContentItem, key: str, name: Optional[str],
                        destination: Optional[Path]) -> None:
        self.counters.downloaded[item.post_type] += 1
        self.index.register(key, name)

        if not self.media.enable_preview or destination is None or self.media.download_url_list:
            return
        full_path = str(destination.resolve())
        if item.post_type == PostType.PHOTO and not name.lower().endswith('.gif'):
            self.counters.last_photo = full_path
        elif item.post_type in (PostType.PHOTO, PostType.VIDEO):
            self.counters.last_video = full_path
