"""
Post Extractor Implementation

Turns the posts of one page into typed ContentItems. Posts from the JSON API
are dispatched through a table keyed by the API's type discriminator; each
entry pairs a PostType with the configuration toggle that enables it and the
function that builds its payloads. HTML pages carry no post structure, so
media URLs are scraped from the markup instead.
"""

import re
import uuid
import logging
from typing import Dict, List, Any, Iterable, Callable, Tuple, Optional

from blogcrawler.core.base import ContentItem, PostType
from blogcrawler.core.config import BlogConfig, MediaConfig
from blogcrawler.processors.urls import (
    effective_image_size,
    resize_image_url,
    normalize_video_url,
    normalize_audio_url,
)


logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any], "PostExtractor"], List[str]]


def _field(post: Dict[str, Any], key: str) -> str:
    """Post attribute as text; absent or null fields render empty"""
    value = post.get(key)
    return "" if value is None else str(value)


def _tags(post: Dict[str, Any]) -> List[str]:
    return [str(tag) for tag in (post.get('tags') or [])]


def format_record(post: Dict[str, Any], body_lines: Iterable[str]) -> str:
    """
    Text record of a post with attribution fields in fixed order:
    id and date, url, reblog key, reblog url, reblog name, the type
    specific lines, tags.
    """
    lines = [
        f"Post ID: {_field(post, 'id')}, Date: {_field(post, 'date')}",
        f"Url with slug: {_field(post, 'post_url') or _field(post, 'slug')}",
        f"Reblog key: {_field(post, 'reblog_key')}",
        f"Reblog url: {_field(post, 'reblogged_from_url')}",
        f"Reblog name: {_field(post, 'reblogged_from_name')}",
    ]
    lines.extend(body_lines)
    lines.append(f"Tags: {', '.join(_tags(post))}")
    return "\n".join(lines) + "\n"


def _photo_payloads(post: Dict[str, Any], extractor: "PostExtractor") -> List[str]:
    urls = []
    for photo in post.get('photos') or []:
        url = extractor.select_photo_variant(photo)
        if not url:
            continue
        if extractor.media.skip_gif and url.lower().endswith('.gif'):
            continue
        urls.append(url)
    return urls


def _video_payloads(post: Dict[str, Any], extractor: "PostExtractor") -> List[str]:
    video_url = post.get('video_url')
    if not video_url:
        return []
    url = normalize_video_url(video_url, extractor.media.video_size)
    return [url] if url else []


def _audio_payloads(post: Dict[str, Any], extractor: "PostExtractor") -> List[str]:
    audio_url = post.get('audio_url')
    if not audio_url:
        return []
    return [normalize_audio_url(audio_url)]


def _text_payloads(post: Dict[str, Any], extractor: "PostExtractor") -> List[str]:
    return [format_record(post, [f"Title: {_field(post, 'title')}", _field(post, 'body')])]


def _quote_payloads(post: Dict[str, Any], extractor: "PostExtractor") -> List[str]:
    return [format_record(post, [f"Quote: {_field(post, 'text')}", _field(post, 'source')])]


def _link_payloads(post: Dict[str, Any], extractor: "PostExtractor") -> List[str]:
    link = _field(post, 'url') or _field(post, 'link_url')
    return [format_record(post, [f"Link: {link}", _field(post, 'description')])]


def _conversation_payloads(post: Dict[str, Any], extractor: "PostExtractor") -> List[str]:
    lines = [f"Conversation: {_field(post, 'title')}"]
    for entry in post.get('dialogue') or []:
        lines.append(f"{_field(entry, 'label')} {_field(entry, 'phrase')}".strip())
    return [format_record(post, lines)]


def _answer_payloads(post: Dict[str, Any], extractor: "PostExtractor") -> List[str]:
    return [format_record(post, [_field(post, 'question'), _field(post, 'answer')])]


def _photo_meta_payloads(post: Dict[str, Any], extractor: "PostExtractor") -> List[str]:
    lines = []
    for photo in post.get('photos') or []:
        original = photo.get('original_size') or {}
        lines.append(f"Photo url: {_field(original, 'url')}")
        lines.append(f"Photo caption: {_field(photo, 'caption')}")
    return [format_record(post, lines)]


def _video_meta_payloads(post: Dict[str, Any], extractor: "PostExtractor") -> List[str]:
    return [format_record(post, [
        f"Video url: {_field(post, 'video_url')}",
        f"Video caption: {_field(post, 'caption')}",
    ])]


def _audio_meta_payloads(post: Dict[str, Any], extractor: "PostExtractor") -> List[str]:
    return [format_record(post, [
        f"Audio caption: {_field(post, 'caption')}",
        f"Id3 artist: {_field(post, 'artist')}",
        f"Id3 title: {_field(post, 'track_name') or _field(post, 'title')}",
        f"Id3 track: {_field(post, 'track')}",
        f"Id3 album: {_field(post, 'album')}",
        f"Id3 year: {_field(post, 'year')}",
    ])]


# API type discriminator -> (content type, enabling toggle, payload builder)
POST_HANDLERS: Dict[str, List[Tuple[PostType, str, Handler]]] = {
    'photo': [
        (PostType.PHOTO, 'download_photo', _photo_payloads),
        (PostType.PHOTO_META, 'create_photo_meta', _photo_meta_payloads),
    ],
    'video': [
        (PostType.VIDEO, 'download_video', _video_payloads),
        (PostType.VIDEO_META, 'create_video_meta', _video_meta_payloads),
    ],
    'audio': [
        (PostType.AUDIO, 'download_audio', _audio_payloads),
        (PostType.AUDIO_META, 'create_audio_meta', _audio_meta_payloads),
    ],
    'text': [(PostType.TEXT, 'download_text', _text_payloads)],
    'quote': [(PostType.QUOTE, 'download_quote', _quote_payloads)],
    'link': [(PostType.LINK, 'download_link', _link_payloads)],
    'chat': [(PostType.CONVERSATION, 'download_conversation', _conversation_payloads)],
    'answer': [(PostType.ANSWER, 'download_answer', _answer_payloads)],
}


class PostExtractor:
    """
    Maps API posts to ContentItems under the blog's filters.

    Extraction never raises for missing optional fields. A post whose
    payload cannot be built is logged and skipped; the rest of the page
    is still extracted.
    """

    def __init__(self, blog: BlogConfig, media: MediaConfig):
        self.blog = blog
        self.media = media
        self.tags = {tag.lower() for tag in blog.tag_list}

    def matches_tags(self, post: Dict[str, Any]) -> bool:
        if not self.tags:
            return True
        return any(tag.lower() in self.tags for tag in _tags(post))

    def allows_reblog(self, post: Dict[str, Any]) -> bool:
        if self.blog.include_reblogs:
            return True
        return not (_field(post, 'reblogged_from_url') or _field(post, 'reblogged_from_name'))

    def select_photo_variant(self, photo: Dict[str, Any]) -> Optional[str]:
        """URL of the variant matching the configured width, else the first one"""
        sizes = photo.get('alt_sizes') or []
        target = int(effective_image_size(self.media.image_size))
        for size in sizes:
            if size.get('width') == target and size.get('url'):
                return size['url']
        if sizes and sizes[0].get('url'):
            return sizes[0]['url']
        return (photo.get('original_size') or {}).get('url')

    def extract(self, posts: Iterable[Dict[str, Any]]) -> List[ContentItem]:
        """Extract every enabled content item from a page of posts"""
        items: List[ContentItem] = []
        for post in posts or []:
            if not isinstance(post, dict):
                continue
            if not self.matches_tags(post) or not self.allows_reblog(post):
                continue

            post_id = _field(post, 'id')
            timestamp = _field(post, 'timestamp') or None
            for post_type, toggle, handler in POST_HANDLERS.get(_field(post, 'type'), []):
                if not getattr(self.blog, toggle):
                    continue
                try:
                    payloads = handler(post, self)
                except (KeyError, TypeError, ValueError, AttributeError) as e:
                    logger.debug(f"Skipping {post_type.value} of post {post_id}: {e}")
                    continue
                items.extend(ContentItem(post_type, payload, post_id, timestamp) for payload in payloads)
        return items


class HtmlMediaExtractor:
    """
    Scrapes photo and video URLs out of a rendered blog page.

    HTML pages expose no post ids, so each item gets a random id that carries
    no meaning beyond the run.
    """

    PHOTO_PATTERN = re.compile(r'"(https?://[^"\s]*media\.tumblr\.com[^"\s]*\.(?:jpg|jpeg|png|gif))"')
    VIDEO_PATTERN = re.compile(r'"(https?://[^"\s]*\.com/video_file/[^"\s]*)"')

    def __init__(self, blog: BlogConfig, media: MediaConfig):
        self.blog = blog
        self.media = media

    def extract(self, document: str) -> List[ContentItem]:
        items: List[ContentItem] = []
        if self.blog.download_photo:
            items.extend(self._photos(document))
        if self.blog.download_video:
            items.extend(self._videos(document))
        return items

    def _photos(self, document: str) -> List[ContentItem]:
        items = []
        for match in self.PHOTO_PATTERN.finditer(document):
            url = match.group(1)
            if 'avatar' in url or 'previews' in url:
                continue
            if self.media.skip_gif and url.lower().endswith('.gif'):
                continue
            items.append(ContentItem(PostType.PHOTO, resize_image_url(url, self.media.image_size), uuid.uuid4().hex))
        return items

    def _videos(self, document: str) -> List[ContentItem]:
        items = []
        for match in self.VIDEO_PATTERN.finditer(document):
            url = normalize_video_url(match.group(1), self.media.video_size)
            if url:
                items.append(ContentItem(PostType.VIDEO, url, uuid.uuid4().hex))
        return items
