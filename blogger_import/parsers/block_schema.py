from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

Align = Optional[Literal["left", "center", "right"]]
ALIGNMENTS = ("left", "center", "right")


class _Block(BaseModel):
    model_config = ConfigDict(frozen=True)


class HeadingBlock(_Block):
    type: Literal["heading"] = "heading"
    level: int = Field(2, ge=1, le=6)
    text: str = ""


class ParagraphBlock(_Block):
    type: Literal["paragraph"] = "paragraph"
    html: str = ""
    align: Align = None


class ListBlock(_Block):
    type: Literal["list"] = "list"
    ordered: bool = False
    items: Tuple[str, ...] = ()


class QuoteBlock(_Block):
    type: Literal["quote"] = "quote"
    html: str = ""


class ImageBlock(_Block):
    type: Literal["image"] = "image"
    src: str = Field(..., min_length=1)
    alt: str = ""
    caption: str = ""
    align: Align = None
    link_destination: Literal["none", "custom"] = "none"
    href: Optional[str] = None
    # Id of an already imported local asset, when the source URL was found
    asset_id: Optional[str] = None


class CodeBlock(_Block):
    type: Literal["code"] = "code"
    text: str = ""


class TableBlock(_Block):
    type: Literal["table"] = "table"
    html: str = ""


class EmbedBlock(_Block):
    type: Literal["embed"] = "embed"
    provider: Literal["youtube", "vimeo", "generic"] = "generic"
    url: str = Field(..., min_length=1)


Block = Annotated[
    Union[
        HeadingBlock,
        ParagraphBlock,
        ListBlock,
        QuoteBlock,
        ImageBlock,
        CodeBlock,
        TableBlock,
        EmbedBlock,
    ],
    Field(discriminator="type"),
]


# --- Builders ---

def heading(level: int, text: str) -> HeadingBlock:
    lvl = max(1, min(6, int(level or 1)))
    return HeadingBlock(level=lvl, text=text or "")


def paragraph(html: str, align: Align = None) -> ParagraphBlock:
    return ParagraphBlock(html=html or "", align=align or None)


def list_block(ordered: bool, items: Sequence[str]) -> ListBlock:
    return ListBlock(ordered=bool(ordered), items=tuple(items))


def quote(html: str) -> QuoteBlock:
    return QuoteBlock(html=html or "")


def image(
    src: str,
    *,
    alt: str = "",
    caption: str = "",
    align: Align = None,
    href: Optional[str] = None,
    asset_id: Optional[str] = None,
) -> ImageBlock:
    """Build an image block; a non-empty ``href`` makes it a custom link."""
    return ImageBlock(
        src=src,
        alt=alt or "",
        caption=caption or "",
        align=align or None,
        link_destination="custom" if href else "none",
        href=href or None,
        asset_id=asset_id or None,
    )


def code(text: str) -> CodeBlock:
    return CodeBlock(text=text or "")


def table(html: str) -> TableBlock:
    return TableBlock(html=html or "")


def embed(url: str) -> EmbedBlock:
    if "youtu" in url:
        provider = "youtube"
    elif "vimeo.com" in url:
        provider = "vimeo"
    else:
        provider = "generic"
    return EmbedBlock(provider=provider, url=url)


# --- Minimal validator/normalizer ---

def validate_blocks(blocks: Sequence[Block]) -> List[Block]:
    """
    Drop blocks that would render as nothing.
    - Paragraphs, quotes and tables whose markup is blank after sanitizing.
    - Lists without items.
    """
    fixed: List[Block] = []
    for b in blocks:
        if isinstance(b, (ParagraphBlock, QuoteBlock, TableBlock)) and not b.html.strip():
            continue
        if isinstance(b, ListBlock) and not b.items:
            continue
        fixed.append(b)
    return fixed
