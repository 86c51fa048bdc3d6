"""
Base Classes and Interfaces for the Blog Crawler

Defines the data model shared by every stage of a crawl, the abstract
interfaces of the injected collaborators (transport, content index,
progress reporting, page sources) and the crawler exception hierarchy.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional, TYPE_CHECKING
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum

if TYPE_CHECKING:
    from blogcrawler.core.control import CrawlControl


class PostType(Enum):
    """Closed set of content kinds produced by extraction"""
    PHOTO = "photo"
    VIDEO = "video"
    AUDIO = "audio"
    TEXT = "text"
    QUOTE = "quote"
    LINK = "link"
    CONVERSATION = "conversation"
    ANSWER = "answer"
    PHOTO_META = "photo_meta"
    VIDEO_META = "video_meta"
    AUDIO_META = "audio_meta"

    @property
    def is_media(self) -> bool:
        """True for types whose payload is a URL to binary content"""
        return self in (PostType.PHOTO, PostType.VIDEO, PostType.AUDIO)


class CrawlState(Enum):
    """Lifecycle of a single crawl run"""
    IDLE = "idle"
    RUNNING = "running"
    RECONCILING = "reconciling"
    FINALIZED = "finalized"
    CANCELLED = "cancelled"


class LaneOutcome(Enum):
    """Why a pagination lane stopped"""
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    FAILED = "failed"


@dataclass(frozen=True)
class ContentItem:
    """One extracted unit of content, immutable once queued"""
    post_type: PostType
    payload: str  # media URL or formatted text record
    post_id: str
    timestamp: Optional[str] = None

    @property
    def key(self) -> tuple:
        """Dedup identity; post_id is deliberately not part of it"""
        return (self.post_type, self.payload)


@dataclass
class PageResult:
    """Items extracted from one page and whether the lane should stop"""
    items: List[ContentItem]
    exhausted: bool = False
    highest_post_id: int = 0


@dataclass
class DownloadProgress:
    """Progress notification emitted by scanning and downloading"""
    message: str
    phase: str = ""
    pages_crawled: Optional[int] = None
    filename: Optional[str] = None


@dataclass
class BlogState:
    """Per-blog aggregate state, owned by the caller and updated by a crawl"""
    name: str
    url: str = ""
    title: str = ""
    description: str = ""
    online: bool = True
    post_counts: Dict[str, int] = field(default_factory=dict)
    duplicate_counts: Dict[str, int] = field(default_factory=dict)
    downloaded_counts: Dict[str, int] = field(default_factory=dict)
    total_count: int = 0
    total_downloads: int = 0
    last_id: int = 0
    last_complete_crawl: Optional[datetime] = None
    last_downloaded_photo: Optional[str] = None
    last_downloaded_video: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if self.last_complete_crawl is not None:
            data['last_complete_crawl'] = self.last_complete_crawl.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BlogState":
        data = dict(data)
        if data.get('last_complete_crawl'):
            data['last_complete_crawl'] = datetime.fromisoformat(data['last_complete_crawl'])
        known = set(cls.__dataclass_fields__)
        return cls(**{k: v for k, v in data.items() if k in known})


class BaseComponent(ABC):
    """Base class for crawler components with an explicit lifecycle"""

    def __init__(self, config: Any):
        self.config = config
        self._initialized = False

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the component"""
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """Clean up resources"""
        pass

    def is_initialized(self) -> bool:
        """Check if component is initialized"""
        return self._initialized


class TransportInterface(BaseComponent):
    """Interface for the network transport"""

    @abstractmethod
    async def fetch(self, url: str, control: Optional["CrawlControl"] = None) -> str:
        """Fetch a page body, raising a classified TransportError on failure"""
        pass

    @abstractmethod
    async def download(self, url: str, destination: str,
                       control: Optional["CrawlControl"] = None) -> int:
        """Stream a binary resource to destination and return the byte count"""
        pass


class ContentIndexInterface(BaseComponent):
    """Interface for the existence oracle of already downloaded content"""

    @abstractmethod
    def exists_on_disk(self, key: str) -> bool:
        """Check whether a file matching the canonical key is on disk"""
        pass

    @abstractmethod
    def exists_in_db(self, key: str) -> bool:
        """Check whether the canonical key is in the link database"""
        pass

    @abstractmethod
    def register(self, key: str, file_name: Optional[str] = None) -> None:
        """Record a newly downloaded canonical key and the file it was saved as"""
        pass

    @abstractmethod
    def save(self) -> None:
        """Persist the link database"""
        pass


class ProgressReporterInterface(ABC):
    """Interface for progress notifications and user-visible warnings"""

    @abstractmethod
    def report(self, progress: DownloadProgress) -> None:
        """Publish a progress notification"""
        pass

    @abstractmethod
    def warn(self, message: str, blog: str) -> None:
        """Surface a warning to the user"""
        pass


class PageSourceInterface(ABC):
    """Interface for a paginated blog source"""

    @abstractmethod
    def page_url(self, page: int) -> str:
        """Build the URL of the page at the given index"""
        pass

    @abstractmethod
    def parse_page(self, body: str, page: int) -> PageResult:
        """Extract content items from a page body and detect end of results"""
        pass

    @abstractmethod
    def parse_metadata(self, body: str) -> Dict[str, Any]:
        """Extract blog title and description from a page body"""
        pass


class CrawlerError(Exception):
    """Base exception for crawler errors"""
    pass


class ConfigurationError(CrawlerError):
    """Configuration-related errors"""
    pass


class TransportError(CrawlerError):
    """Network failure not otherwise classified"""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class UnauthorizedError(TransportError):
    """The source requires a login the current session does not have"""
    pass


class RateLimitedError(TransportError):
    """The source rejected the request because of rate limiting"""
    pass


class CrawlCancelledError(CrawlerError):
    """An in-flight operation was aborted because the crawl was cancelled"""
    pass


class ExtractionError(CrawlerError):
    """Malformed page payload"""
    pass


class DownloadError(CrawlerError):
    """Download-related errors"""
    pass


class StorageError(CrawlerError):
    """Storage-related errors"""
    pass
