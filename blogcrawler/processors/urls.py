"""
URL Utilities for the Blog Crawler

Size rewriting for photo URLs, the raw-host rewrite, video and audio
normalization, and the canonical keys used for existence checks.
"""

import re
import os
import hashlib
from typing import Optional
from urllib.parse import urlparse, unquote

# Size suffixes the image CDN serves, e.g. tumblr_abc_500.jpg
SIZE_SUFFIX = re.compile(r'_(?:raw|\d+sq|\d+)(?=\.[A-Za-z0-9]+$)')
NUMERIC_SIZE_SUFFIX = re.compile(r'_(?:\d+sq|\d+)(?=\.[A-Za-z0-9]+$)')
STEM_SIZE_SUFFIX = re.compile(r'_(?:raw|\d+sq|\d+)$')

VIDEO_HOST = "https://vt.tumblr.com/"
AUDIO_EXTENSION = ".mp3"


def effective_image_size(image_size: str) -> str:
    """The raw preference is served at the largest fixed size first"""
    return "1280" if image_size == "raw" else image_size


def resize_image_url(url: str, image_size: str) -> str:
    """
    Replace a known size suffix with the configured size

    https://x/tumblr_abc_500.jpg with size 250 becomes https://x/tumblr_abc_250.jpg
    """
    parsed = urlparse(url)
    path = SIZE_SUFFIX.sub(f"_{effective_image_size(image_size)}", parsed.path)
    return parsed._replace(path=path).geturl()


def build_raw_image_url(url: str, host: str) -> str:
    """Rewrite a sized image URL to its raw variant on another host"""
    path = unquote(urlparse(url).path).lstrip('/')
    path = NUMERIC_SIZE_SUFFIX.sub("_raw", path)
    return f"https://{host}/{path}"


def normalize_video_url(url: str, video_size: int) -> Optional[str]:
    """
    Canonical video URL for the configured resolution

    Player URLs of the form .../video_file/<ids>/tumblr_abc/480 are rewritten
    onto the video host. Returns None when no file name can be derived.
    """
    if '/video_file/' in url:
        trimmed = url.split('?')[0].rstrip('/')
        if trimmed.endswith('/480'):
            trimmed = trimmed[:-len('/480')]
        name = trimmed.split('/')[-1]
        if not name or name == 'video_file':
            return None
        base = VIDEO_HOST + name
    else:
        parsed = urlparse(url)
        if not parsed.scheme or not parsed.path.strip('/'):
            return None
        base = url.split('?')[0]
        if base.endswith('.mp4'):
            base = base[:-len('.mp4')]

    if base.endswith('_480'):
        base = base[:-len('_480')]

    if video_size == 480:
        return base + '_480.mp4'
    return base + '.mp4'


def normalize_audio_url(url: str) -> str:
    if url.endswith(AUDIO_EXTENSION):
        return url
    return url + AUDIO_EXTENSION


def file_name(url: str) -> str:
    """Last path segment of a URL without the query, safe for the file system"""
    name = os.path.basename(unquote(urlparse(url).path))
    name = re.sub(r'[<>:"/\\|?*]', '_', name)
    if not name:
        name = "file_" + hashlib.md5(url.encode()).hexdigest()[:8]
    return name[:255]


def canonical_key(url: str) -> str:
    """
    Size- and query-independent key of a media URL

    https://64.media.tumblr.com/x/tumblr_abc_1280.jpg?foo=1 -> tumblr_abc
    """
    name = file_name(url)
    stem, _ = os.path.splitext(name)
    return STEM_SIZE_SUFFIX.sub('', stem)


def text_key(post_type_value: str, payload: str) -> str:
    """Key of a text record, derived from its content"""
    return f"{post_type_value}-{hashlib.md5(payload.encode('utf-8')).hexdigest()}"
