from __future__ import annotations

from dataclasses import dataclass
from html import escape
import logging
import re
from typing import Callable, Dict, Iterable, List, Optional, Pattern, Tuple
from urllib.parse import urlparse

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from blogger_import.models import AssetRef
from blogger_import.utils.sanitizer import sanitize_html

from .block_schema import (
    ALIGNMENTS,
    Align,
    Block,
    code,
    embed,
    heading,
    image,
    list_block,
    paragraph,
    quote,
    table,
    validate_blocks,
)

logger = logging.getLogger(__name__)

AssetLookup = Callable[[str], Optional[AssetRef]]

# Wrappers Blogger appends to post bodies (feed footer, comment attribution)
BOILERPLATE_CLASS = re.compile(r"^blogger-(?:post-footer|comment-from)$")

DEFAULT_LIGHTBOX_HOSTS: Tuple[str, ...] = (
    "blogger.googleusercontent.com",
    "1.bp.blogspot.com",
    "2.bp.blogspot.com",
    "3.bp.blogspot.com",
    "4.bp.blogspot.com",
)
# Size segment of a resized Blogger image: /s1600/, /s640/, /w640-h480/ ...
DEFAULT_SIZE_PATTERN = r"/(?:s\d{2,4}|w\d{2,4}-h\d{2,4})(?:-[a-z0-9-]+)?/"

_TEXT_ALIGN = re.compile(r"text-align\s*:\s*(left|center|right)\b", re.IGNORECASE)
_HEADINGS = ("h1", "h2", "h3", "h4", "h5", "h6")
_INLINE = ("b", "i", "u", "span", "strong", "em")
_TABLE_INNER = re.compile(r"^\s*<table\b[^>]*>(.*)</table>\s*$", re.DOTALL)


@dataclass(frozen=True)
class LightboxRule:
    """Recognizes "click to enlarge" links around Blogger images.

    Blogger wraps every uploaded image in a link to a larger rendition of the
    same file on its image hosts.  Such links carry no information and are
    dropped; any other link around an image is kept.
    """

    hosts: Tuple[str, ...] = DEFAULT_LIGHTBOX_HOSTS
    size_pattern: Pattern = re.compile(DEFAULT_SIZE_PATTERN)

    @classmethod
    def from_config(cls, hosts: Optional[Iterable[str]] = None, size_pattern: Optional[str] = None) -> "LightboxRule":
        return cls(
            hosts=tuple(h.lower() for h in hosts) if hosts else DEFAULT_LIGHTBOX_HOSTS,
            size_pattern=re.compile(size_pattern or DEFAULT_SIZE_PATTERN),
        )

    def is_lightbox(self, href: str) -> bool:
        u = urlparse(href)
        if not u.hostname or u.hostname.lower() not in self.hosts:
            return False
        return bool(self.size_pattern.search(u.path))

    def is_redundant(self, href: str, src: str) -> bool:
        """True when a link around ``src`` only points back at the image."""
        return href.strip() == src.strip() or self.is_lightbox(href)


def detect_align(node: Optional[Tag]) -> Align:
    """
    Resolve alignment by walking up from ``node``: the first inline
    ``text-align`` declaration or legacy ``align`` attribute wins.
    """
    n = node
    while isinstance(n, Tag):
        style = n.get("style")
        if style:
            m = _TEXT_ALIGN.search(style)
            if m:
                return m.group(1).lower()
        align = (n.get("align") or "").strip().lower()
        if align in ALIGNMENTS:
            return align
        n = n.parent
    return None


def _is_blank_paragraph(p: Tag) -> bool:
    for c in p.children:
        if isinstance(c, NavigableString):
            if str(c).strip():
                return False
        elif isinstance(c, Tag) and c.name != "br":
            return False
    return True


def prepare_soup(html: str) -> BeautifulSoup:
    """
    Parse ``html`` with lxml, which balances the markup the way browsers do
    (an unclosed ``<p>`` or ``<li>`` ends where the next one starts), then
    clean it up: Blogger boilerplate wrappers, scripts, styles and comments
    are removed, ``<b>``/``<i>`` become ``<strong>``/``<em>``, and
    paragraphs holding only whitespace and ``<br>`` are dropped.
    """
    soup = BeautifulSoup(html, "lxml")

    for bad in soup.find_all(["script", "style"]):
        bad.decompose()
    for div in soup.find_all("div", class_=BOILERPLATE_CLASS):
        if not div.decomposed:
            div.decompose()
    for s in soup.find_all(string=lambda s: isinstance(s, PreformattedString)):
        s.extract()

    for t in soup.find_all(["b", "i"]):
        t.name = "strong" if t.name == "b" else "em"

    for p in soup.find_all("p"):
        if not p.decomposed and _is_blank_paragraph(p):
            p.decompose()
    return soup


class _BlockBuilder:
    """Walks a prepared soup and emits blocks in document order."""

    def __init__(
        self,
        *,
        asset_lookup: Optional[AssetLookup],
        lightbox: LightboxRule,
        sanitizer: Callable[[str], str],
    ) -> None:
        self.asset_lookup = asset_lookup
        self.lightbox = lightbox
        self.sanitizer = sanitizer
        self.handlers: Dict[str, Callable[[Tag], List[Block]]] = {
            **{h: self.handle_heading for h in _HEADINGS},
            **{t: self.handle_inline for t in _INLINE},
            "p": self.handle_paragraph,
            "ul": self.handle_list,
            "ol": self.handle_list,
            "a": self.handle_anchor,
            "blockquote": self.handle_quote,
            "img": self.handle_img,
            "pre": self.handle_pre,
            "table": self.handle_table,
            "figure": self.handle_figure,
            "iframe": self.handle_iframe,
            "div": self.walk,
        }

    # --- traversal ---

    def walk(self, node: Tag) -> List[Block]:
        blocks: List[Block] = []
        for child in node.children:
            if isinstance(child, NavigableString):
                if isinstance(child, PreformattedString):
                    continue
                text = str(child).strip()
                if text:
                    blocks.append(paragraph(self.markup(escape(text, quote=False)), detect_align(node)))
                continue
            if not isinstance(child, Tag):
                continue
            handler = self.handlers.get((child.name or "").lower(), self.walk)
            blocks.extend(handler(child))
        return blocks

    def markup(self, html: str) -> str:
        return self.sanitizer(html).strip()

    # --- element handlers ---

    def handle_heading(self, el: Tag) -> List[Block]:
        text = " ".join(el.get_text(" ").split())
        if not text:
            return []
        return [heading(int(el.name[1]), text)]

    def handle_paragraph(self, el: Tag) -> List[Block]:
        img = self._lone_image(el)
        if img is not None:
            return self.image_from_img(img, align_from=el)
        return [paragraph(self.markup(el.decode_contents()), detect_align(el))]

    def handle_inline(self, el: Tag) -> List[Block]:
        return [paragraph(self.markup(str(el)), detect_align(el))]

    def handle_list(self, el: Tag) -> List[Block]:
        items = [self.markup(li.decode_contents()) for li in el.find_all("li", recursive=False)]
        return [list_block(el.name == "ol", [i for i in items if i])]

    def handle_anchor(self, el: Tag) -> List[Block]:
        imgs = el.find_all("img")
        if len(imgs) == 1 and not el.get_text(strip=True):
            return self.image_from_img(imgs[0], align_from=el)
        return [paragraph(self.markup(str(el)), detect_align(el))]

    def handle_quote(self, el: Tag) -> List[Block]:
        return [quote(self.markup(el.decode_contents()))]

    def handle_img(self, el: Tag) -> List[Block]:
        return self.image_from_img(el)

    def handle_pre(self, el: Tag) -> List[Block]:
        return [code(el.get_text())]

    def handle_table(self, el: Tag) -> List[Block]:
        captioned = self._captioned_image(el)
        if captioned is not None:
            return captioned
        # Rows only survive sanitizing inside their <table>
        clean = self.markup(str(el))
        m = _TABLE_INNER.match(clean)
        return [table(m.group(1) if m else clean)]

    def handle_figure(self, el: Tag) -> List[Block]:
        img = el.find("img")
        if img is not None:
            figcaption = el.find("figcaption")
            caption = " ".join(figcaption.get_text(" ").split()) if figcaption else ""
            return self.image_from_img(img, caption=caption, align_from=el)
        iframe = el.find("iframe")
        if iframe is not None:
            return self.handle_iframe(iframe)
        return self.walk(el)

    def handle_iframe(self, el: Tag) -> List[Block]:
        src = (el.get("src") or "").strip()
        if not src:
            return []
        return [embed(src)]

    # --- image helpers ---

    def _lone_image(self, p: Tag) -> Optional[Tag]:
        """
        The only image of a paragraph made of nothing but that image
        (optionally inside a single anchor) and ``<br>`` elements.
        """
        imgs = p.find_all("img")
        if len(imgs) != 1 or len(p.find_all("a")) > 1:
            return None
        for c in p.children:
            if isinstance(c, NavigableString):
                if not isinstance(c, PreformattedString) and str(c).strip():
                    return None
            elif isinstance(c, Tag):
                if c.name not in ("a", "img", "br"):
                    return None
                if c.name == "a" and c.get_text(strip=True):
                    return None
        return imgs[0]

    def _captioned_image(self, tbl: Tag) -> Optional[List[Block]]:
        """Blogger's two-row layout: the image in row one, its caption in row two."""
        rows = tbl.find_all("tr")
        if len(rows) != 2:
            return None
        imgs = rows[0].find_all("img")
        if len(imgs) != 1 or rows[0].get_text(strip=True):
            return None
        cells = rows[1].find_all(["td", "th"])
        if len(cells) != 1:
            return None
        if not (imgs[0].get("src") or "").strip():
            return None
        caption = " ".join(cells[0].get_text(" ").split())
        first_cell = rows[0].find(["td", "th"])
        return self.image_from_img(imgs[0], caption=caption, align_from=first_cell)

    def image_from_img(self, img: Tag, *, caption: str = "", align_from: Optional[Tag] = None) -> List[Block]:
        src = (img.get("src") or "").strip()
        if not src:
            return []
        parent = img.parent
        href = None
        if isinstance(parent, Tag) and parent.name == "a":
            href = (parent.get("href") or "").strip() or None
        return [
            self.build_image(
                src,
                alt=img.get("alt") or "",
                caption=caption,
                align=detect_align(align_from if align_from is not None else img),
                href=href,
            )
        ]

    def build_image(self, src: str, *, alt: str, caption: str, align: Align, href: Optional[str]) -> Block:
        asset: Optional[AssetRef] = None
        if self.asset_lookup is not None:
            try:
                asset = self.asset_lookup(src)
            except Exception as e:
                logger.warning("Asset lookup failed for %s: %s", src, e)
                asset = None
        if href and self.lightbox.is_redundant(href, src):
            href = None
        return image(
            asset.url if asset is not None and asset.url else src,
            alt=alt,
            caption=caption,
            align=align,
            href=href,
            asset_id=asset.id if asset is not None else None,
        )


def convert_html_to_blocks(
    html: Optional[str],
    *,
    asset_lookup: Optional[AssetLookup] = None,
    lightbox: Optional[LightboxRule] = None,
    sanitizer: Callable[[str], str] = sanitize_html,
) -> List[Block]:
    """
    Convert a Blogger post body into an ordered list of blocks.

    Covered:
    - Headings, paragraphs, inline runs, lists, quotes, code, tables.
    - Images from ``<img>``, lone-image paragraphs and anchors, figures and
      Blogger's two-row caption tables, with alignment and link handling.
    - ``<iframe>`` embeds (YouTube, Vimeo, anything else as generic).
    - ``div`` and unknown elements are transparent containers.

    ``asset_lookup`` maps a source image URL to an already imported asset;
    when it finds one, the block points at the local copy.

    Never raises: empty input gives ``[]`` and an unexpected failure falls
    back to a single paragraph holding the sanitized input.
    """
    if not html or not html.strip():
        return []

    builder = _BlockBuilder(
        asset_lookup=asset_lookup,
        lightbox=lightbox or LightboxRule(),
        sanitizer=sanitizer,
    )
    try:
        soup = prepare_soup(html)
        # lxml wraps the fragment in <html><body>
        blocks = builder.walk(soup.body or soup)
    except Exception:
        logger.exception("Block conversion failed; keeping content as a single paragraph")
        return validate_blocks([paragraph(sanitizer(html).strip())])
    return validate_blocks(blocks)
