"""
Media URL discovery in raw post bodies.

Two independent patterns pick up ``<img src>`` and ``<iframe src>`` values;
the candidates are then filtered to URLs that look like media: a known media
host, or a path ending in an image/video extension.  Anything else (tracking
pixels on odd hosts, widget iframes) is dropped; missing a media file is
preferred over treating an arbitrary link as one.
"""

from __future__ import annotations

import re
from html import unescape
from typing import Iterable, List, Optional, Sequence
from urllib.parse import urlparse

_IMG_SRC = re.compile(r"<img\b[^>]*?\bsrc\s*=\s*([\"'])(.*?)\1", re.IGNORECASE | re.DOTALL)
_IFRAME_SRC = re.compile(r"<iframe\b[^>]*?\bsrc\s*=\s*([\"'])(.*?)\1", re.IGNORECASE | re.DOTALL)

MEDIA_DOMAINS: Sequence[str] = (
    "blogspot.com",
    "blogger.com",
    "bp.blogspot.com",
    "googleusercontent.com",
    "youtube.com",
    "youtu.be",
    "vimeo.com",
)

MEDIA_EXTENSIONS: Sequence[str] = (
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".bmp",
    ".mp4", ".webm", ".ogg", ".ogv", ".mov",
)


def is_media_url(
    url: str,
    *,
    domains: Iterable[str] = MEDIA_DOMAINS,
    extensions: Iterable[str] = MEDIA_EXTENSIONS,
) -> bool:
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    if host and any(host == d or host.endswith("." + d) for d in domains):
        return True
    path = parsed.path.lower()
    return any(path.endswith(ext) for ext in extensions)


def extract_media_urls(
    content: Optional[str],
    *,
    domains: Iterable[str] = MEDIA_DOMAINS,
    extensions: Iterable[str] = MEDIA_EXTENSIONS,
) -> List[str]:
    """Return the media URLs referenced by ``content``: images first, then iframes."""
    if not content:
        return []
    domains = tuple(domains)
    extensions = tuple(extensions)
    candidates = [m.group(2) for m in _IMG_SRC.finditer(content)]
    candidates += [m.group(2) for m in _IFRAME_SRC.finditer(content)]

    urls: List[str] = []
    seen = set()
    for raw in candidates:
        url = unescape(raw).strip()
        if not url or url in seen:
            continue
        seen.add(url)
        if is_media_url(url, domains=domains, extensions=extensions):
            urls.append(url)
    return urls
