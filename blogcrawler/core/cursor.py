"""
Per-lane pagination state and the resume policy of a crawl.
"""

from typing import List, Optional

from blogcrawler.core.config import BlogConfig, parse_page_range


class CrawlCursor:
    """
    Page position of one lane.

    In stride mode the lane starts at its lane number and advances by the
    concurrency width after each page. With an explicit page list the lane
    walks every width-th listed page starting at its lane number and is
    exhausted when the list runs out.
    """

    def __init__(self, lane: int, stride: int, pages: Optional[List[int]] = None):
        if stride < 1:
            raise ValueError("stride must be at least 1")
        self.lane = lane
        self.stride = stride
        self._pages = pages[lane::stride] if pages is not None else None
        self._index = 0
        self.page = self._pages[0] if self._pages else lane

    @property
    def explicit(self) -> bool:
        return self._pages is not None

    @property
    def has_pages(self) -> bool:
        return self._pages is None or self._index < len(self._pages)

    def advance(self) -> bool:
        """Move to the lane's next page; False when no page is left"""
        if self._pages is None:
            self.page += self.stride
            return True
        self._index += 1
        if self._index >= len(self._pages):
            return False
        self.page = self._pages[self._index]
        return True

    def __repr__(self) -> str:
        return f"CrawlCursor(lane={self.lane}, page={self.page}, stride={self.stride})"


def build_cursors(width: int, download_pages: str = "") -> List[CrawlCursor]:
    """
    One cursor per lane, seeded 0..width-1 with stride width.

    Listed pages are numbered from 1 as the blog shows them; cursors hold
    zero-based page indexes.
    """
    pages = [page - 1 for page in parse_page_range(download_pages)] or None
    return [CrawlCursor(lane, width, pages) for lane in range(width)]


def resume_post_id(blog: BlogConfig) -> int:
    """
    High-water mark below which posts are treated as already crawled.

    A forced rescan or an explicit page range always crawls from scratch.
    """
    if blog.force_rescan or blog.download_pages.strip():
        return 0
    return blog.last_id
