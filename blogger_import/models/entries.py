from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EntryKind(str, Enum):
    POST = "post"
    PAGE = "page"


class EntryStatus(str, Enum):
    PUBLISHED = "publish"
    DRAFT = "draft"


def _dedup(values: Optional[List[str]]) -> List[str]:
    seen = set()
    deduped = []
    for item in values or []:
        if item not in seen:
            seen.add(item)
            deduped.append(item)
    return deduped


class Author(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    name: str = ""
    email: str = ""


class CommentAuthor(Author):
    url: str = ""


class ContentEntry(BaseModel):
    """A Blogger post or page, as read from the export."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    id: str = Field(..., min_length=1)
    kind: EntryKind = EntryKind.POST
    title: str = ""
    raw_content: str = Field("", alias="rawContent")
    permalink: str = ""
    published_at: datetime = Field(..., alias="publishedAt")
    updated_at: datetime = Field(..., alias="updatedAt")
    author: Author = Field(default_factory=Author)
    status: EntryStatus = EntryStatus.PUBLISHED
    tags: List[str] = Field(default_factory=list)
    media_urls: List[str] = Field(default_factory=list, alias="mediaUrls")

    @field_validator("tags", "media_urls", mode="before")
    @classmethod
    def _dedup_lists(cls, v: Optional[List[str]]):
        return _dedup(v)

    @property
    def is_draft(self) -> bool:
        return self.status is EntryStatus.DRAFT


class CommentEntry(BaseModel):
    """A single comment.

    ``target_ref`` is the raw ``thr:in-reply-to`` reference and may name either
    a post/page or another comment. ``post_id`` and ``parent_id`` are only
    filled in by thread reconstruction.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    id: str = Field(..., min_length=1)
    content: str = ""
    author: CommentAuthor = Field(default_factory=CommentAuthor)
    published_at: datetime = Field(..., alias="publishedAt")
    updated_at: datetime = Field(..., alias="updatedAt")
    target_ref: str = Field(..., min_length=1, alias="targetRef")
    post_id: Optional[str] = Field(None, alias="postId")
    parent_id: Optional[str] = Field(None, alias="parentId")

    @property
    def is_reply(self) -> bool:
        return self.parent_id is not None

    def resolved(self, post_id: str, parent_id: Optional[str]) -> "CommentEntry":
        return self.model_copy(update={"post_id": post_id, "parent_id": parent_id})


class AssetRef(BaseModel):
    """A media file already present in the target store."""

    model_config = ConfigDict(frozen=True)

    id: str
    url: str
    source_url: str = ""
