"""
Blog Crawler

A concurrent crawler for blog-style feeds. Several pagination lanes scan the
source in parallel, extract typed posts (photos, videos, audio, text records)
and hand them to a download executor that persists them while skipping
content that already exists locally.

Features:
- Bounded-concurrency lane scanning over a JSON API or HTML page feed
- Per post type extraction with tag, reblog and size filtering
- Host fallback and size rewriting for media downloads
- Resumable crawls via page ranges and a post id high-water mark
- Cooperative pause and cancellation
- Configurable via YAML/JSON and environment variables
"""

__version__ = "0.1.0"
