"""
Gutenberg-style serialization of blocks.

Every block is written as a pair of comment delimiters around its HTML::

    <!-- wp:paragraph {"align":"center"} --><p class="has-text-align-center">Hi</p><!-- /wp:paragraph -->

Attributes are JSON; characters that could end the comment early
(``--``, ``<``, ``>``, ``&``) are written as ``\\u`` escapes.  Lists carry
their items as nested ``wp:list-item`` blocks.

:func:`parse_block_markup` is a small stack-based parser for that format and
:func:`blocks_from_markup` rebuilds typed blocks from it, so that
``blocks_from_markup(serialize_blocks(blocks)) == blocks``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from html import escape, unescape
import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Sequence

from bs4 import BeautifulSoup

from .block_schema import (
    Block,
    CodeBlock,
    EmbedBlock,
    HeadingBlock,
    ImageBlock,
    ListBlock,
    ParagraphBlock,
    QuoteBlock,
    TableBlock,
    code,
    heading,
    image,
    list_block,
    paragraph,
    quote,
    table,
)

logger = logging.getLogger(__name__)

_DELIMITER = re.compile(
    r"<!--\s+(?P<closer>/)?wp:(?P<name>[a-z][a-z0-9_-]*(?:/[a-z][a-z0-9_-]*)?)\s+"
    r"(?:(?P<attrs>\{.*?\})\s+)?(?P<void>/)?-->",
    re.DOTALL,
)


class BlockMarkupError(ValueError):
    """Raised for unbalanced or malformed block delimiters."""


@dataclass
class ParsedBlock:
    name: Optional[str]
    attrs: Dict[str, Any] = field(default_factory=dict)
    inner_html: str = ""
    inner_blocks: List["ParsedBlock"] = field(default_factory=list)


# --- Serialization ---

def _encode_attrs(attrs: Dict[str, Any]) -> str:
    raw = json.dumps(attrs, separators=(",", ":"), ensure_ascii=False)
    return (
        raw.replace("--", "\\u002d\\u002d")
        .replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
    )


def _wrap(name: str, inner: str, attrs: Optional[Dict[str, Any]] = None) -> str:
    opener = f"<!-- wp:{name} {_encode_attrs(attrs)} -->" if attrs else f"<!-- wp:{name} -->"
    return f"{opener}{inner}<!-- /wp:{name} -->"


def _heading(b: HeadingBlock) -> str:
    return _wrap(
        "heading",
        f'<h{b.level} class="wp-block-heading">{escape(b.text, quote=False)}</h{b.level}>',
        {"level": b.level},
    )


def _paragraph(b: ParagraphBlock) -> str:
    if b.align:
        return _wrap("paragraph", f'<p class="has-text-align-{b.align}">{b.html}</p>', {"align": b.align})
    return _wrap("paragraph", f"<p>{b.html}</p>")


def _list(b: ListBlock) -> str:
    tag = "ol" if b.ordered else "ul"
    items = "".join(_wrap("list-item", f"<li>{item}</li>") for item in b.items)
    return _wrap("list", f'<{tag} class="wp-block-list">{items}</{tag}>', {"ordered": True} if b.ordered else None)


def _quote(b: QuoteBlock) -> str:
    return _wrap("quote", f'<blockquote class="wp-block-quote">{b.html}</blockquote>')


def _image(b: ImageBlock) -> str:
    attrs: Dict[str, Any] = {}
    if b.asset_id:
        attrs["id"] = b.asset_id
    attrs["sizeSlug"] = "large"
    attrs["linkDestination"] = b.link_destination
    if b.align:
        attrs["align"] = b.align

    classes = "wp-block-image size-large"
    if b.align:
        classes += f" align{b.align}"
    img = f'<img src="{escape(b.src)}" alt="{escape(b.alt)}"'
    if b.asset_id:
        img += f' class="wp-image-{escape(b.asset_id)}"'
    img += "/>"
    if b.href:
        img = f'<a href="{escape(b.href)}">{img}</a>'
    caption = f'<figcaption class="wp-element-caption">{escape(b.caption, quote=False)}</figcaption>' if b.caption else ""
    return _wrap("image", f'<figure class="{classes}">{img}{caption}</figure>', attrs)


def _code(b: CodeBlock) -> str:
    return _wrap("code", f'<pre class="wp-block-code"><code>{escape(b.text, quote=False)}</code></pre>')


def _table(b: TableBlock) -> str:
    return _wrap("table", f'<figure class="wp-block-table"><table>{b.html}</table></figure>')


def _embed(b: EmbedBlock) -> str:
    attrs: Dict[str, Any] = {"url": b.url, "type": "video" if b.provider != "generic" else "rich"}
    classes = "wp-block-embed"
    if b.provider != "generic":
        attrs["providerNameSlug"] = b.provider
        classes += f" is-type-video is-provider-{b.provider} wp-block-embed-{b.provider}"
    attrs["responsive"] = True
    return _wrap(
        "embed",
        f'<figure class="{classes}"><div class="wp-block-embed__wrapper">\n{escape(b.url, quote=False)}\n</div></figure>',
        attrs,
    )


_SERIALIZERS: Dict[type, Callable[[Any], str]] = {
    HeadingBlock: _heading,
    ParagraphBlock: _paragraph,
    ListBlock: _list,
    QuoteBlock: _quote,
    ImageBlock: _image,
    CodeBlock: _code,
    TableBlock: _table,
    EmbedBlock: _embed,
}


def serialize_block(block: Block) -> str:
    return _SERIALIZERS[type(block)](block)


def serialize_blocks(blocks: Sequence[Block]) -> str:
    """Serialize blocks to delimited markup, one block per line."""
    return "\n\n".join(serialize_block(b) for b in blocks)


# --- Parsing ---

def parse_block_markup(markup: str) -> List[ParsedBlock]:
    """
    Parse delimited markup into a tree of :class:`ParsedBlock`.

    ``inner_html`` holds a block's own HTML with its nested blocks cut out;
    non-blank text outside any block comes back as a block with ``name=None``.
    """
    result: List[ParsedBlock] = []
    # (block, html chunks between nested blocks)
    stack: List[tuple] = []
    cursor = 0

    def add_text(text: str) -> None:
        if stack:
            stack[-1][1].append(text)
        elif text.strip():
            result.append(ParsedBlock(name=None, inner_html=text.strip()))

    def attach(block: ParsedBlock) -> None:
        if stack:
            stack[-1][0].inner_blocks.append(block)
        else:
            result.append(block)

    for m in _DELIMITER.finditer(markup):
        add_text(markup[cursor:m.start()])
        cursor = m.end()
        name = m.group("name")
        if m.group("closer"):
            if not stack or stack[-1][0].name != name:
                raise BlockMarkupError(f"Unexpected closing delimiter for {name} at offset {m.start()}")
            block, chunks = stack.pop()
            block.inner_html = "".join(chunks)
            attach(block)
            continue
        try:
            attrs = json.loads(m.group("attrs")) if m.group("attrs") else {}
        except json.JSONDecodeError as e:
            raise BlockMarkupError(f"Invalid attributes for {name}: {e}") from e
        block = ParsedBlock(name=name, attrs=attrs)
        if m.group("void"):
            attach(block)
        else:
            stack.append((block, []))

    add_text(markup[cursor:])
    if stack:
        raise BlockMarkupError(f"Unclosed block {stack[-1][0].name}")
    return result


def _inner(pattern: str, html: str) -> str:
    m = re.match(pattern, html, re.DOTALL)
    return m.group(1) if m else html


def _heading_from(p: ParsedBlock) -> Block:
    text = _inner(r"\s*<h[1-6][^>]*>(.*)</h[1-6]>\s*$", p.inner_html)
    return heading(p.attrs.get("level", 2), unescape(text))


def _paragraph_from(p: ParsedBlock) -> Block:
    return paragraph(_inner(r"\s*<p\b[^>]*>(.*)</p>\s*$", p.inner_html), p.attrs.get("align"))


def _list_from(p: ParsedBlock) -> Block:
    items = [_inner(r"\s*<li\b[^>]*>(.*)</li>\s*$", c.inner_html) for c in p.inner_blocks if c.name == "list-item"]
    return list_block(bool(p.attrs.get("ordered")), items)


def _quote_from(p: ParsedBlock) -> Block:
    return quote(_inner(r"\s*<blockquote\b[^>]*>(.*)</blockquote>\s*$", p.inner_html))


def _image_from(p: ParsedBlock) -> Block:
    soup = BeautifulSoup(p.inner_html, "html.parser")
    img = soup.find("img")
    if img is None:
        raise BlockMarkupError("Image block without <img>")
    a = soup.find("a")
    figcaption = soup.find("figcaption")
    href = a.get("href") if a is not None and p.attrs.get("linkDestination") == "custom" else None
    return image(
        img.get("src") or p.attrs.get("url", ""),
        alt=img.get("alt") or "",
        caption=figcaption.get_text() if figcaption is not None else "",
        align=p.attrs.get("align"),
        href=href,
        asset_id=str(p.attrs["id"]) if p.attrs.get("id") is not None else None,
    )


def _code_from(p: ParsedBlock) -> Block:
    return code(unescape(_inner(r"\s*<pre\b[^>]*><code>(.*)</code></pre>\s*$", p.inner_html)))


def _table_from(p: ParsedBlock) -> Block:
    return table(_inner(r"\s*<figure\b[^>]*><table\b[^>]*>(.*)</table></figure>\s*$", p.inner_html))


def _embed_from(p: ParsedBlock) -> Block:
    return EmbedBlock(provider=p.attrs.get("providerNameSlug", "generic"), url=p.attrs["url"])


_BUILDERS: Dict[str, Callable[[ParsedBlock], Block]] = {
    "heading": _heading_from,
    "paragraph": _paragraph_from,
    "list": _list_from,
    "quote": _quote_from,
    "image": _image_from,
    "code": _code_from,
    "table": _table_from,
    "embed": _embed_from,
}


def blocks_from_markup(markup: str) -> List[Block]:
    blocks: List[Block] = []
    for parsed in parse_block_markup(markup):
        name = parsed.name[5:] if parsed.name and parsed.name.startswith("core/") else parsed.name
        builder = _BUILDERS.get(name or "")
        if builder is None:
            logger.warning("Unknown block %r kept as paragraph", parsed.name)
            blocks.append(paragraph(parsed.inner_html))
            continue
        blocks.append(builder(parsed))
    return blocks
