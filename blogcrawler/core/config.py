"""
Configuration Manager for the Blog Crawler

Handles YAML/JSON configuration files and environment variable integration
with validation. The parsed dataclasses are read-only for the duration of a
crawl run.
"""

import os
import json
import re
import yaml
import validators
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field, asdict
from pathlib import Path

from blogcrawler.core.base import ConfigurationError


IMAGE_SIZES = ['raw', '1280', '540', '500', '400', '250', '100', '75']
VIDEO_SIZES = [1080, 480]
SOURCE_KINDS = ['api', 'html']

DEFAULT_API_ENDPOINT = (
    "https://www.tumblr.com/svc/indash_blog?tumblelog_name_or_id={name}"
    "&post_id=&limit={limit}&offset={offset}&should_bypass_safemode=true"
)

_PAGE_RANGE = re.compile(r'^\s*\d+\s*(-\s*\d+\s*)?$')


@dataclass
class ScanConfig:
    """Pagination and lane settings"""
    concurrency: int = 4
    page_size: int = 50
    timeout: int = 30
    rate_limit_retries: int = 0
    rate_limit_backoff: float = 30.0
    api_endpoint: str = DEFAULT_API_ENDPOINT


@dataclass
class MediaConfig:
    """Media size preferences and download behaviour"""
    image_size: str = "1280"
    video_size: int = 1080
    skip_gif: bool = False
    force_size: bool = False
    hosts: List[str] = field(default_factory=lambda: [
        "media.tumblr.com",
        "data.tumblr.com",
    ])
    check_directory: bool = True
    enable_preview: bool = True
    download_url_list: bool = False


@dataclass
class BlogConfig:
    """Per-blog crawl settings"""
    name: str = ""
    url: str = ""
    source: str = "api"
    download_photo: bool = True
    download_video: bool = True
    download_audio: bool = True
    download_text: bool = True
    download_quote: bool = True
    download_link: bool = True
    download_conversation: bool = True
    download_answer: bool = True
    create_photo_meta: bool = False
    create_video_meta: bool = False
    create_audio_meta: bool = False
    tags: str = ""
    include_reblogs: bool = True
    force_rescan: bool = False
    download_pages: str = ""
    last_id: int = 0

    @property
    def tag_list(self) -> List[str]:
        """Comma-separated tag filter, trimmed, empty entries dropped"""
        return [tag.strip() for tag in self.tags.split(',') if tag.strip()]

    @property
    def blog_url(self) -> str:
        """Blog base URL ending in a slash"""
        url = self.url or f"https://{self.name}.tumblr.com/"
        return url if url.endswith('/') else url + '/'


@dataclass
class ConnectionConfig:
    """Proxy, cookie and header settings handed to the transport"""
    proxy_host: str = ""
    proxy_port: int = 0
    proxy_username: str = ""
    proxy_password: str = ""
    cookies: Dict[str, str] = field(default_factory=dict)
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
    )

    @property
    def proxy_url(self) -> Optional[str]:
        if not self.proxy_host:
            return None
        port = f":{self.proxy_port}" if self.proxy_port else ""
        return f"http://{self.proxy_host}{port}"


@dataclass
class StorageConfig:
    """Where downloads, blog state and the link index live"""
    download_location: str = "./downloads"
    state_path: str = "./state"
    index_file: str = "links.json"


@dataclass
class LoggingConfig:
    """Logging system configuration"""
    level: str = "INFO"
    file: str = "./logs/crawler.log"
    max_size: str = "10MB"
    backup_count: int = 5


@dataclass
class CrawlerSettings:
    """All configuration sections of one crawl"""
    scan: ScanConfig = field(default_factory=ScanConfig)
    media: MediaConfig = field(default_factory=MediaConfig)
    blog: BlogConfig = field(default_factory=BlogConfig)
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def blog_directory(self) -> Path:
        """Download directory of the configured blog"""
        return Path(self.storage.download_location) / (self.blog.name or 'blog')


def parse_page_range(text: str) -> List[int]:
    """
    Expand a page range such as "1-3,7" into [1, 2, 3, 7]

    Raises:
        ConfigurationError: If a part is not a number or a dashed range, or a
            page number is below 1
    """
    pages: List[int] = []
    if not text or not text.strip():
        return pages

    for part in text.split(','):
        if not _PAGE_RANGE.match(part):
            raise ConfigurationError(f"Invalid page range: {part!r}")
        if '-' in part:
            start, end = (int(value) for value in part.split('-'))
            pages.extend(range(start, end + 1))
        else:
            pages.append(int(part))
    if pages and min(pages) < 1:
        raise ConfigurationError("Page numbers start at 1")
    return pages


class ConfigManager:
    """
    Centralized configuration manager with support for YAML/JSON files
    and environment variable integration.
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or "config/config.yaml"
        self._config_data: Dict[str, Any] = {}
        self.settings: Optional[CrawlerSettings] = None

    def load_config(self, config_path: Optional[str] = None) -> CrawlerSettings:
        """Load configuration from file with environment variable override"""
        if config_path:
            self.config_path = config_path

        config_file = Path(self.config_path)

        # Fall back to defaults when there is no file
        if not config_file.exists():
            self._config_data = self._get_default_config()
        else:
            try:
                with open(config_file, 'r', encoding='utf-8') as f:
                    if config_file.suffix.lower() == '.json':
                        self._config_data = json.load(f)
                    else:  # Assume YAML
                        self._config_data = yaml.safe_load(f) or {}
            except (OSError, ValueError, yaml.YAMLError) as e:
                raise ConfigurationError(f"Failed to load config from {config_file}: {e}")

        self._apply_env_overrides()
        self.settings = self._parse_config()
        return self.settings

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration dictionary"""
        return asdict(CrawlerSettings())

    def write_default_config(self, path: Optional[str] = None) -> Path:
        """Write the default configuration as YAML"""
        target = Path(path or self.config_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, 'w', encoding='utf-8') as f:
            yaml.dump(self._get_default_config(), f, default_flow_style=False, indent=2)
        return target

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides"""
        if os.getenv('CRAWLER_CONCURRENCY'):
            try:
                self._config_data.setdefault('scan', {})['concurrency'] = int(os.getenv('CRAWLER_CONCURRENCY'))
            except ValueError:
                raise ConfigurationError("CRAWLER_CONCURRENCY must be an integer")

        if os.getenv('CRAWLER_BLOG'):
            self._config_data.setdefault('blog', {})['name'] = os.getenv('CRAWLER_BLOG')

        # host:port
        if os.getenv('CRAWLER_PROXY'):
            host, _, port = os.getenv('CRAWLER_PROXY').partition(':')
            connection = self._config_data.setdefault('connection', {})
            connection['proxy_host'] = host
            if port.isdigit():
                connection['proxy_port'] = int(port)

        if os.getenv('LOG_LEVEL'):
            self._config_data.setdefault('logging', {})['level'] = os.getenv('LOG_LEVEL')

    def _parse_config(self) -> CrawlerSettings:
        """Parse configuration into dataclass objects"""
        sections = {
            'scan': ScanConfig,
            'media': MediaConfig,
            'blog': BlogConfig,
            'connection': ConnectionConfig,
            'storage': StorageConfig,
            'logging': LoggingConfig,
        }
        parsed = {}
        for name, cls in sections.items():
            data = self._config_data.get(name) or {}
            unknown = set(data) - set(cls.__dataclass_fields__)
            if unknown:
                raise ConfigurationError(f"Unknown keys in '{name}' section: {sorted(unknown)}")
            parsed[name] = cls(**data)

        settings = CrawlerSettings(**parsed)
        settings.media.image_size = str(settings.media.image_size)
        settings.media.video_size = int(settings.media.video_size)
        settings.scan.page_size = clamp_page_size(settings.scan.page_size)
        return settings

    def validate_config(self, settings: Optional[CrawlerSettings] = None) -> bool:
        """Validate a loaded configuration"""
        settings = settings or self.settings
        if not settings:
            raise ConfigurationError("Configuration not loaded")

        if settings.scan.concurrency < 1:
            raise ConfigurationError("Concurrency must be at least 1")

        if settings.scan.rate_limit_retries < 0:
            raise ConfigurationError("rate_limit_retries must be non-negative")

        if settings.media.image_size not in IMAGE_SIZES:
            raise ConfigurationError(f"Invalid image size: {settings.media.image_size}")

        if settings.media.video_size not in VIDEO_SIZES:
            raise ConfigurationError(f"Invalid video size: {settings.media.video_size}")

        if settings.blog.source not in SOURCE_KINDS:
            raise ConfigurationError(f"Invalid source: {settings.blog.source}")

        if not settings.blog.name and not settings.blog.url:
            raise ConfigurationError("A blog name or URL is required")

        if settings.blog.url and not validators.url(settings.blog.url):
            raise ConfigurationError(f"Invalid blog URL: {settings.blog.url}")

        parse_page_range(settings.blog.download_pages)
        return True


def clamp_page_size(page_size: int) -> int:
    """Page sizes outside 1..100 fall back to the API maximum"""
    return page_size if 1 <= page_size <= 100 else 100
