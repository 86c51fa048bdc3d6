"""
Tests for SharedQueue and StatisticsBag
"""

import asyncio

import pytest

from blogcrawler.core.base import ContentItem, PostType, CrawlerError
from blogcrawler.core.queue import SharedQueue, StatisticsBag


def item(post_type=PostType.PHOTO, payload="u1", post_id="1"):
    return ContentItem(post_type, payload, post_id)


class TestSharedQueue:
    """Test suite for SharedQueue"""

    @pytest.mark.asyncio
    async def test_fifo_then_none_after_close(self):
        queue = SharedQueue()
        queue.push(item(payload="a"))
        queue.push(item(payload="b"))
        queue.mark_producers_done()

        assert (await queue.take()).payload == "a"
        assert (await queue.take()).payload == "b"
        assert await queue.take() is None
        assert await queue.take() is None

    @pytest.mark.asyncio
    async def test_take_waits_for_producer(self):
        queue = SharedQueue()

        async def produce():
            await asyncio.sleep(0.01)
            queue.push(item(payload="late"))
            queue.mark_producers_done()

        producer = asyncio.create_task(produce())
        assert (await queue.take()).payload == "late"
        assert await queue.take() is None
        await producer

    @pytest.mark.asyncio
    async def test_async_iteration(self):
        queue = SharedQueue()
        for payload in ("a", "b", "c"):
            queue.push(item(payload=payload))
        queue.mark_producers_done()

        assert [entry.payload async for entry in queue] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_mark_done_is_idempotent_and_blocks_pushes(self):
        queue = SharedQueue()
        queue.mark_producers_done()
        queue.mark_producers_done()

        assert queue.producers_done
        assert queue.qsize() == 0
        with pytest.raises(CrawlerError):
            queue.push(item())


class TestStatisticsBag:
    """Test suite for StatisticsBag"""

    def test_reads_require_seal(self):
        bag = StatisticsBag()
        bag.add(item())
        with pytest.raises(CrawlerError):
            bag.total()
        bag.seal()
        assert bag.total() == 1

    def test_add_after_seal_fails(self):
        bag = StatisticsBag()
        bag.seal()
        with pytest.raises(CrawlerError):
            bag.add(item())

    def test_duplicates_per_type(self):
        bag = StatisticsBag()
        bag.add(item(PostType.PHOTO, "u1", "1"))
        bag.add(item(PostType.PHOTO, "u1", "2"))
        bag.add(item(PostType.VIDEO, "v1", "3"))
        bag.seal()

        assert bag.determine_duplicates(PostType.PHOTO) == 1
        assert bag.determine_duplicates(PostType.VIDEO) == 0
        assert bag.counts_by_type() == {PostType.PHOTO: 2, PostType.VIDEO: 1}

    def test_total_minus_duplicates_is_distinct_pairs(self):
        bag = StatisticsBag()
        entries = [
            (PostType.PHOTO, "a"), (PostType.PHOTO, "a"), (PostType.PHOTO, "a"),
            (PostType.PHOTO, "b"), (PostType.TEXT, "a"), (PostType.TEXT, "a"),
        ]
        for post_type, payload in entries:
            bag.add(item(post_type, payload))
        bag.seal()

        duplicates = sum(bag.duplicates_by_type().values())
        assert bag.total() - duplicates == len(set(entries))
