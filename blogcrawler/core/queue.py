"""
Producer/consumer handoff between scanning lanes and the download executor,
and the statistics multiset collected while scanning.
"""

import asyncio
import logging
from collections import Counter
from typing import Dict, List, Optional, Tuple, Iterable

from blogcrawler.core.base import ContentItem, PostType, CrawlerError


class _Closed:
    """Queue sentinel marking that every producer is done"""

    def __repr__(self) -> str:
        return "<closed>"


_CLOSED = _Closed()


class SharedQueue:
    """
    Unbounded FIFO with a completion signal.

    Any number of lanes push; a single consumer takes. Once
    mark_producers_done() has been called, take() returns None after the
    remaining items are drained instead of blocking forever.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._queue: asyncio.Queue = asyncio.Queue()
        self._done = False
        self.pushed = 0

    @property
    def producers_done(self) -> bool:
        return self._done

    def push(self, item: ContentItem) -> None:
        if self._done:
            raise CrawlerError("Cannot push to a queue whose producers are done")
        self._queue.put_nowait(item)
        self.pushed += 1

    def mark_producers_done(self) -> None:
        """Idempotent; wakes the consumer once the queue drains"""
        if self._done:
            return
        self._done = True
        self._queue.put_nowait(_CLOSED)
        self.logger.debug(f"Producers done after {self.pushed} items")

    async def take(self) -> Optional[ContentItem]:
        """Next item, or None when closed and empty"""
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the sentinel for any later take()
            self._queue.put_nowait(_CLOSED)
            return None
        return item

    def qsize(self) -> int:
        size = self._queue.qsize()
        return size - 1 if self._done and size else size

    def __aiter__(self):
        return self

    async def __anext__(self) -> ContentItem:
        item = await self.take()
        if item is None:
            raise StopAsyncIteration
        return item


class StatisticsBag:
    """
    Append-only multiset of (PostType, payload) observations.

    Lanes add while scanning; reads are only allowed after seal(), which the
    coordinator calls once every lane has finished.
    """

    def __init__(self):
        self._entries: List[Tuple[PostType, str]] = []
        self._sealed = False

    @property
    def sealed(self) -> bool:
        return self._sealed

    def add(self, item: ContentItem) -> None:
        if self._sealed:
            raise CrawlerError("Statistics are sealed; scanning has completed")
        self._entries.append(item.key)

    def seal(self) -> None:
        self._sealed = True

    def _read(self) -> List[Tuple[PostType, str]]:
        if not self._sealed:
            raise CrawlerError("Statistics cannot be read while scanning is in progress")
        return self._entries

    def total(self) -> int:
        return len(self._read())

    def counts_by_type(self) -> Dict[PostType, int]:
        return dict(Counter(post_type for post_type, _ in self._read()))

    def determine_duplicates(self, post_type: PostType) -> int:
        """Number of repeated observations of the same payload for a type"""
        payloads = Counter(payload for kind, payload in self._read() if kind == post_type)
        return sum(count - 1 for count in payloads.values() if count > 1)

    def duplicates_by_type(self, types: Optional[Iterable[PostType]] = None) -> Dict[PostType, int]:
        return {post_type: self.determine_duplicates(post_type) for post_type in (types or PostType)}

    def __len__(self) -> int:
        return len(self._read())
