"""
Allow-list sanitizer applied to every piece of markup stored in a block.
"""

from __future__ import annotations

import bleach

ALLOWED_TAGS = frozenset({
    "a", "abbr", "b", "br", "cite", "code", "del", "em", "i", "img", "ins",
    "kbd", "li", "mark", "ol", "p", "q", "s", "small", "span", "strike",
    "strong", "sub", "sup", "u", "ul",
    "blockquote", "pre", "h1", "h2", "h3", "h4", "h5", "h6",
    "table", "caption", "thead", "tbody", "tfoot", "tr", "th", "td",
    "figure", "figcaption",
})

ALLOWED_ATTRIBUTES = {
    "a": ["href", "title", "target", "rel"],
    "img": ["src", "alt", "title", "width", "height"],
    "td": ["colspan", "rowspan", "align"],
    "th": ["colspan", "rowspan", "align", "scope"],
    "p": ["align"],
    "ol": ["start", "reversed", "type"],
    "abbr": ["title"],
    "q": ["cite"],
    "blockquote": ["cite"],
}

ALLOWED_PROTOCOLS = frozenset({"http", "https", "mailto", "tel", "ftp"})


def sanitize_html(html: str) -> str:
    """Strip disallowed tags, attributes and comments from ``html``."""
    if not html:
        return ""
    return bleach.clean(
        html,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
        strip_comments=True,
    )
